"""zanai: terminal chat client for the ZanAi reply service."""

__version__ = "0.1.0"
