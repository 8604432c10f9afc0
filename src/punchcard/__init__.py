"""punchcard: a personal time tracker with a single running task and durable JSON storage."""

__version__ = "0.1.0"
