"""
Message models for the chat session.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MessageStatus(str, Enum):
    PENDING = "pending"  # optimistic, awaiting the server
    CONFIRMED = "confirmed"
    FAILED = "failed"


class Message(BaseModel):
    """A single message in the conversation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    sender: Sender
    text: str
    timestamp: datetime = Field(default_factory=_utcnow)
    status: MessageStatus = MessageStatus.CONFIRMED

    @property
    def is_pending(self) -> bool:
        return self.status is MessageStatus.PENDING

    @property
    def is_failed(self) -> bool:
        return self.status is MessageStatus.FAILED


class HistoryRecord(BaseModel):
    """A history entry as returned by the login endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    sender: Any = Field(default="user", alias="from")
    text: Any = None
    time: Any = None
