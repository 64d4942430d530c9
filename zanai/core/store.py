"""
Message store for one chat session.

An ordered list of messages with stable ids, mutated only through the
transitions below:

- load:            history -> confirmed messages (once, at session start)
- append_pending:  optimistic user message, becomes the in-flight marker
- confirm:         pending -> confirmed user message (new id) + assistant reply
- fail:            pending -> failed user message with an error annotation

Every transition notifies listeners once, after the list is updated, with a
full snapshot. Listeners must not mutate the store.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from zanai.core.errors import SendInProgressError, UnknownMessageError
from zanai.models.message import Message, MessageStatus, Sender

logger = logging.getLogger(__name__)

# Keeps the reply strictly after the confirmed user message.
REPLY_OFFSET = timedelta(milliseconds=1)


class ChangeKind(str, Enum):
    LOADED = "loaded"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    CLEARED = "cleared"


@dataclass(frozen=True)
class StoreChange:
    """A single observable mutation of the store."""

    kind: ChangeKind
    messages: tuple[Message, ...]
    changed: tuple[Message, ...] = ()
    removed_id: str | None = None


Listener = Callable[[StoreChange], None]


class MessageIds:
    """
    Issues client-side message ids.

    Each kind gets its own prefix and all kinds share one counter, so an id
    is never issued twice within a session. History ids use the ``hist``
    prefix and never collide with these.
    """

    PENDING = "pending"
    USER = "user"
    ASSISTANT = "assistant"
    FAILED = "failed"

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def next(self, prefix: str) -> str:
        return f"{prefix}-{next(self._counter)}"


@dataclass
class _State:
    messages: list[Message] = field(default_factory=list)
    pending_id: str | None = None
    loaded: bool = False


class MessageStore:
    """
    Ordered messages of the current session plus the single in-flight marker.
    """

    def __init__(
        self,
        ids: MessageIds | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._ids = ids or MessageIds()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._state = _State()
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def messages(self) -> tuple[Message, ...]:
        with self._lock:
            return tuple(self._state.messages)

    @property
    def pending_id(self) -> str | None:
        """Id of the message awaiting the server, if any."""
        with self._lock:
            return self._state.pending_id

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._state.pending_id is not None

    @property
    def loaded(self) -> bool:
        with self._lock:
            return self._state.loaded

    def get(self, message_id: str) -> Message | None:
        with self._lock:
            for msg in self._state.messages:
                if msg.id == message_id:
                    return msg
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._state.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(f"Store listener failed on {change.kind.value} change")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def load(self, messages: list[Message]) -> None:
        """
        Populate the store from normalized history.

        Only allowed once, on an empty store with nothing in flight.
        """
        with self._lock:
            if self._state.loaded or self._state.messages:
                raise RuntimeError("Message store is already populated")
            if any(m.is_pending for m in messages):
                raise ValueError("History cannot contain pending messages")
            self._state.messages = list(messages)
            self._state.loaded = True
            change = StoreChange(
                kind=ChangeKind.LOADED,
                messages=tuple(self._state.messages),
                changed=tuple(messages),
            )
        self._notify(change)

    def append_pending(self, text: str) -> Message:
        """
        Append an optimistic user message and mark it in flight.

        Raises:
            SendInProgressError: Another message is still pending.
        """
        with self._lock:
            if self._state.pending_id is not None:
                raise SendInProgressError(self._state.pending_id)
            message = Message(
                id=self._ids.next(MessageIds.PENDING),
                sender=Sender.USER,
                text=text,
                timestamp=self._clock(),
                status=MessageStatus.PENDING,
            )
            self._state.messages.append(message)
            self._state.pending_id = message.id
            change = StoreChange(
                kind=ChangeKind.PENDING,
                messages=tuple(self._state.messages),
                changed=(message,),
            )
        self._notify(change)
        return message

    def confirm(self, pending_id: str, reply: str) -> tuple[Message, Message]:
        """
        Resolve the pending message as delivered.

        The pending entry is replaced in place by a confirmed user message with
        a fresh id, and the assistant reply is inserted right after it.

        Returns:
            The confirmed user message and the assistant reply.
        """
        with self._lock:
            index, pending = self._take_pending(pending_id)
            now = self._clock()
            confirmed = Message(
                id=self._ids.next(MessageIds.USER),
                sender=Sender.USER,
                text=pending.text,
                timestamp=now,
                status=MessageStatus.CONFIRMED,
            )
            answer = Message(
                id=self._ids.next(MessageIds.ASSISTANT),
                sender=Sender.ASSISTANT,
                text=reply,
                timestamp=now + REPLY_OFFSET,
                status=MessageStatus.CONFIRMED,
            )
            self._state.messages[index : index + 1] = [confirmed, answer]
            self._state.pending_id = None
            change = StoreChange(
                kind=ChangeKind.CONFIRMED,
                messages=tuple(self._state.messages),
                changed=(confirmed, answer),
                removed_id=pending_id,
            )
        self._notify(change)
        return confirmed, answer

    def fail(self, pending_id: str, reason: str) -> Message:
        """
        Resolve the pending message as failed.

        The pending entry is dropped and a failed user message, annotated with
        ``(Error: <reason>)``, takes its place.
        """
        with self._lock:
            index, pending = self._take_pending(pending_id)
            failed = Message(
                id=self._ids.next(MessageIds.FAILED),
                sender=Sender.USER,
                text=f"{pending.text} (Error: {reason})",
                timestamp=self._clock(),
                status=MessageStatus.FAILED,
            )
            self._state.messages[index] = failed
            self._state.pending_id = None
            change = StoreChange(
                kind=ChangeKind.FAILED,
                messages=tuple(self._state.messages),
                changed=(failed,),
                removed_id=pending_id,
            )
        self._notify(change)
        return failed

    def clear(self) -> None:
        """Discard every message (logout)."""
        with self._lock:
            self._state = _State()
            change = StoreChange(kind=ChangeKind.CLEARED, messages=())
        self._notify(change)

    def _take_pending(self, pending_id: str) -> tuple[int, Message]:
        if pending_id != self._state.pending_id:
            raise UnknownMessageError(pending_id)
        for index, msg in enumerate(self._state.messages):
            if msg.id == pending_id:
                return index, msg
        raise UnknownMessageError(pending_id)
