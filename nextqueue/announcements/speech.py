"""Voice announcements for tickets called to a workstation."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Coroutine, Protocol

from nextqueue.queueing.models import CalledTicketInfo

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "pt-BR"


class SpeechSynthesizer(Protocol):
    async def speak(self, text: str, locale: str) -> None:
        ...


class LoggingSpeechSynthesizer:
    """Synthesizer that writes utterances to the log instead of a speaker."""

    async def speak(self, text: str, locale: str) -> None:
        logger.info("[%s] %s", locale, text)


def format_call_announcement(info: CalledTicketInfo) -> str:
    return f"Senha {info.ticket_number}, {info.workstation_name}"


class SpeechAnnouncer:
    """Fire-and-forget front end for a :class:`SpeechSynthesizer`.

    Requests never report back: failures are logged and dropped so a broken
    speaker cannot interfere with calling tickets. Inside an event loop the
    speech runs as a task; elsewhere it runs on a daemon thread, so
    :meth:`announce` never waits for the synthesizer.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer | None = None,
        *,
        locale: str = DEFAULT_LOCALE,
        enabled: bool = True,
    ) -> None:
        self._synthesizer = synthesizer or LoggingSpeechSynthesizer()
        self.locale = locale
        self.enabled = enabled
        self._pending: set[asyncio.Task[None]] = set()
        self._threads: list[threading.Thread] = []
        self._threads_lock = threading.Lock()

    def announce(self, text: str, locale: str | None = None) -> None:
        if not self.enabled or not text:
            return
        coroutine = self._speak(text, locale or self.locale)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._start_thread(coroutine)
            return
        task = loop.create_task(coroutine)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def announce_call(self, info: CalledTicketInfo) -> None:
        self.announce(format_call_announcement(info))

    async def drain(self) -> None:
        """Wait for announcements that are still being spoken."""

        if self._pending:
            await asyncio.gather(*list(self._pending))
        await asyncio.to_thread(self.join)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for thread-backed announcements; ``False`` if any is still running."""

        with self._threads_lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)
        with self._threads_lock:
            self._threads = [thread for thread in self._threads if thread.is_alive()]
            return not self._threads

    def _start_thread(self, coroutine: Coroutine[Any, Any, None]) -> None:
        thread = threading.Thread(target=asyncio.run, args=(coroutine,), name="speech-announcer", daemon=True)
        with self._threads_lock:
            self._threads = [running for running in self._threads if running.is_alive()]
            self._threads.append(thread)
        thread.start()

    async def _speak(self, text: str, locale: str) -> None:
        try:
            await self._synthesizer.speak(text, locale)
        except Exception:  # noqa: BLE001 - speech output is best effort
            logger.warning("Speech announcement failed: %r", text, exc_info=True)
