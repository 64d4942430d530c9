"""
History normalization.

Converts the history payload returned by the login endpoint into confirmed
messages. Runs once per session, before any send.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from zanai.models.message import HistoryRecord, Message, MessageStatus, Sender

logger = logging.getLogger(__name__)

HISTORY_ID_PREFIX = "hist"
_EPOCH = datetime.fromtimestamp(0, UTC)


def parse_time(value: Any) -> datetime:
    """
    Parse a history timestamp.

    Accepts ISO 8601 strings (a trailing 'Z' is fine, naive values are taken
    as UTC) and numeric epochs in milliseconds. Anything else falls back to
    the Unix epoch so that derived ids stay deterministic.
    """
    if isinstance(value, bool):
        return _EPOCH

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return _EPOCH

    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            logger.debug(f"Unparseable history time {value!r}, using epoch")
            return _EPOCH
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed

    return _EPOCH


def history_id(index: int, timestamp: datetime) -> str:
    """Deterministic id for the history entry at `index`."""
    epoch_ms = int(timestamp.timestamp() * 1000)
    return f"{HISTORY_ID_PREFIX}-{index}-{epoch_ms}"


def _to_sender(value: Any) -> Sender:
    if isinstance(value, str) and value.strip().lower() == Sender.USER.value:
        return Sender.USER
    return Sender.ASSISTANT


def normalize_history(payload: Any) -> list[Message]:
    """
    Convert a server history payload into confirmed messages.

    Args:
        payload: List of ``{"from", "text", "time"}`` records, oldest first.

    Returns:
        Messages in the same order, all confirmed. An empty list when the
        payload is not a list or holds a record that is not a mapping.
    """
    if payload is None:
        return []

    if not isinstance(payload, list):
        logger.warning(
            f"Ignoring history payload of type {type(payload).__name__}; expected a list"
        )
        return []

    messages: list[Message] = []
    for index, raw in enumerate(payload):
        if not isinstance(raw, Mapping):
            logger.warning(f"History record {index} is not an object; ignoring history")
            return []

        if "from" not in raw and "sender" in raw:
            record = HistoryRecord(sender=raw["sender"], text=raw.get("text"), time=raw.get("time"))
        else:
            record = HistoryRecord.model_validate(dict(raw))

        timestamp = parse_time(record.time)
        text = "" if record.text is None else str(record.text)
        messages.append(
            Message(
                id=history_id(index, timestamp),
                sender=_to_sender(record.sender),
                text=text,
                timestamp=timestamp,
                status=MessageStatus.CONFIRMED,
            )
        )

    logger.debug(f"Normalized {len(messages)} history messages")
    return messages
