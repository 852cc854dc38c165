"""Speech output for ticket calls."""

from .speech import (
    LoggingSpeechSynthesizer,
    SpeechAnnouncer,
    SpeechSynthesizer,
    format_call_announcement,
)

__all__ = [
    "LoggingSpeechSynthesizer",
    "SpeechAnnouncer",
    "SpeechSynthesizer",
    "format_call_announcement",
]
