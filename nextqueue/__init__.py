"""Multi-stage service counter queueing engine."""

from .queueing import QueueEngine

__all__ = ["QueueEngine"]
