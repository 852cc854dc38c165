from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from nextqueue.announcements import SpeechAnnouncer
from nextqueue.main import create_app
from nextqueue.metrics import MetricsRegistry
from nextqueue.queueing import QueueEngine


class FakeClock:
    """Clock that advances one second on every reading."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


class RecordingSynthesizer:
    def __init__(self) -> None:
        self.spoken: list[tuple[str, str]] = []

    async def speak(self, text: str, locale: str) -> None:
        self.spoken.append((text, locale))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def engine(clock: FakeClock, registry: MetricsRegistry) -> QueueEngine:
    return QueueEngine(clock=clock, metrics=registry)


@pytest.fixture
def synthesizer() -> RecordingSynthesizer:
    return RecordingSynthesizer()


@pytest.fixture
def client(engine: QueueEngine, synthesizer: RecordingSynthesizer):
    app = create_app()
    app.state.queue_engine = engine
    app.state.announcer = SpeechAnnouncer(synthesizer, locale="pt-BR")
    with TestClient(app) as test_client:
        yield test_client
