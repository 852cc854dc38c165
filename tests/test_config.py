import logging

from nextqueue.core.config import Settings
from nextqueue.core.logging import _parse_headers, build_logging_config, configure_logging, init_tracer
from nextqueue.queueing import QueueEngine


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("NEXTQUEUE_HISTORY_LIMIT", "5")
    monkeypatch.setenv("NEXTQUEUE_AUTO_FORWARD_DEFAULT", "true")
    monkeypatch.setenv("NEXTQUEUE_DEFAULT_WORKSTATION_TYPE", "Sala")

    settings = Settings()

    assert settings.history_limit == 5
    assert settings.auto_forward_default is True
    assert settings.default_workstation_type == "Sala"
    assert settings.speech_locale == "pt-BR"


def test_engine_from_settings():
    engine = QueueEngine.from_settings(
        Settings(history_limit=2, auto_forward_default=True, default_workstation_type="Sala")
    )
    engine.add_stage("Triage")
    engine.increment_workstation(engine.stages[0])
    for _ in range(3):
        engine.generate_ticket(False)
        engine.call_next_in_stage(engine.stages[0], engine.stages[0].workstations[0].id)
        engine.finish_ticket(engine.stages[0].workstations[0])

    assert engine.auto_forward_enabled
    assert [entry.ticket_number for entry in engine.history] == ["C003", "C002"]
    assert engine.history[0].workstation_name == "Sala 1"


def test_configure_logging_sets_level():
    logger = configure_logging(Settings(log_level="debug"))
    assert logger.name == "nextqueue"
    assert logger.level == logging.DEBUG


def test_tracer_disabled_by_default():
    assert init_tracer(Settings()) is None


def test_parse_headers_skips_malformed_items():
    assert _parse_headers("a=1, b = 2 ,broken,=orphan,") == {"a": "1", "b": "2"}
    assert _parse_headers(None) == {}


def test_logging_config_keeps_other_loggers_quiet():
    config = build_logging_config(Settings(log_level="info", log_format="%(message)s"))

    assert config["root"]["level"] == logging.WARNING
    assert config["loggers"]["nextqueue"]["level"] == logging.INFO
    assert config["handlers"]["console"]["level"] == logging.INFO
    assert config["formatters"]["queue"]["format"] == "%(message)s"


def test_unknown_log_level_falls_back_to_info():
    config = build_logging_config(Settings(log_level="chatty"))
    assert config["loggers"]["nextqueue"]["level"] == logging.INFO
