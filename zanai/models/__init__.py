"""Data models for zanai."""

from zanai.models.message import HistoryRecord, Message, MessageStatus, Sender

__all__ = [
    "HistoryRecord",
    "Message",
    "MessageStatus",
    "Sender",
]
