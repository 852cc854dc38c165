"""Route modules exposed by the API package."""

from . import metrics, ping, queue

__all__ = ["metrics", "ping", "queue"]
