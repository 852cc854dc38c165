import asyncio
import threading
from datetime import datetime, timezone

import pytest

from nextqueue.announcements import SpeechAnnouncer, format_call_announcement
from nextqueue.queueing import CalledTicketInfo


def _info() -> CalledTicketInfo:
    return CalledTicketInfo(
        ticket_number="P001",
        stage_name="Triage",
        workstation_name="Guichê 1",
        called_at=datetime.now(timezone.utc),
    )


def test_format_call_announcement():
    assert format_call_announcement(_info()) == "Senha P001, Guichê 1"


@pytest.mark.asyncio
async def test_announce_schedules_speech_with_locale(synthesizer):
    announcer = SpeechAnnouncer(synthesizer, locale="pt-BR")

    announcer.announce_call(_info())
    announcer.announce("Bem-vindo", locale="en-US")
    await announcer.drain()

    assert synthesizer.spoken == [("Senha P001, Guichê 1", "pt-BR"), ("Bem-vindo", "en-US")]


@pytest.mark.asyncio
async def test_announce_swallows_synthesizer_failures():
    class BrokenSynthesizer:
        async def speak(self, text: str, locale: str) -> None:
            raise OSError("no audio device")

    announcer = SpeechAnnouncer(BrokenSynthesizer())

    announcer.announce("Senha C001")
    await announcer.drain()


def test_announce_without_running_loop_completes(synthesizer):
    announcer = SpeechAnnouncer(synthesizer, locale="es-ES")
    announcer.announce("Hola")
    assert announcer.join(timeout=5)
    assert synthesizer.spoken == [("Hola", "es-ES")]


def test_disabled_announcer_drops_requests(synthesizer):
    announcer = SpeechAnnouncer(synthesizer, enabled=False)
    announcer.announce_call(_info())
    assert synthesizer.spoken == []


def test_announce_without_running_loop_does_not_wait_for_speech():
    release = threading.Event()
    started = threading.Event()

    class SlowSynthesizer:
        async def speak(self, text: str, locale: str) -> None:
            started.set()
            while not release.is_set():
                await asyncio.sleep(0.01)

    announcer = SpeechAnnouncer(SlowSynthesizer())
    announcer.announce("Senha C001")

    assert started.wait(timeout=5)
    assert announcer.join(timeout=0.05) is False
    release.set()
    assert announcer.join(timeout=5)


@pytest.mark.asyncio
async def test_drain_waits_for_thread_backed_announcements(synthesizer):
    announcer = SpeechAnnouncer(synthesizer)
    await asyncio.to_thread(announcer.announce, "Senha P002")
    await announcer.drain()
    assert synthesizer.spoken == [("Senha P002", "pt-BR")]
