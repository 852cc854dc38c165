"""HTTP surface of the queue service."""
