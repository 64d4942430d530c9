"""
Send orchestrator.

Drives one round trip per submit:

    idle -> composing -> sent (pending) -> resolved | failed

The message store is updated optimistically before the network call and
reconciled right after it. At most one send is in flight; a submit made
while one is pending is a no-op.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum

from zanai.core.errors import ServerRejection, TransportFailure, UnknownMessageError
from zanai.core.service import NETWORK_ISSUE, SEND_FAILED
from zanai.core.store import MessageStore

logger = logging.getLogger(__name__)

# (text, token) -> reply; raises ServerRejection or TransportFailure
SendFunc = Callable[[str, str], str]


class SendState(str, Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    SENT = "sent"
    RESOLVED = "resolved"
    FAILED = "failed"


class SendOutcome(str, Enum):
    SKIPPED = "skipped"  # empty text or a send already in flight
    CONFIRMED = "confirmed"
    REJECTED = "rejected"  # server answered with an error
    FAILED = "failed"  # no usable answer


class SendOrchestrator:
    """
    Sole mutator of the message store after history has been loaded.

    Args:
        store: The session's message store.
        sender: Network collaborator, called as ``sender(text, token)``.
        token: Auth token of the current session.
    """

    def __init__(self, store: MessageStore, sender: SendFunc, token: str):
        self.store = store
        self._sender = sender
        self._token = token
        self._lock = threading.RLock()
        self._state = SendState.IDLE

    @property
    def state(self) -> SendState:
        with self._lock:
            return self._state

    @property
    def busy(self) -> bool:
        """True while a send is in flight."""
        return self.store.has_pending

    def _set_state(self, state: SendState) -> None:
        with self._lock:
            self._state = state

    def submit(self, text: str) -> SendOutcome:
        """
        Send a message, updating the store optimistically.

        Returns:
            SKIPPED if nothing was sent (or the store was cleared while the
            send was in flight), otherwise how the send resolved.
        """
        message_text = (text or "").strip()
        if not message_text:
            logger.debug("Ignoring empty message")
            return SendOutcome.SKIPPED

        with self._lock:
            if self.store.has_pending:
                logger.debug(f"Send already in flight ({self.store.pending_id}), ignoring submit")
                return SendOutcome.SKIPPED
            self._state = SendState.COMPOSING
            pending = self.store.append_pending(message_text)
            self._state = SendState.SENT

        logger.debug(f"Sending {pending.id}")
        try:
            try:
                reply = self._sender(message_text, self._token)
            except ServerRejection as e:
                self.store.fail(pending.id, e.message or SEND_FAILED)
                self._set_state(SendState.FAILED)
                logger.info(f"Send {pending.id} rejected: {e}")
                return SendOutcome.REJECTED
            except TransportFailure as e:
                self.store.fail(pending.id, NETWORK_ISSUE)
                self._set_state(SendState.FAILED)
                logger.warning(f"Send {pending.id} failed: {e}")
                return SendOutcome.FAILED
            except Exception as e:
                # Anything else the collaborator throws counts as a transport failure
                self.store.fail(pending.id, NETWORK_ISSUE)
                self._set_state(SendState.FAILED)
                logger.exception(f"Send {pending.id} failed unexpectedly: {e}")
                return SendOutcome.FAILED

            if not isinstance(reply, str):
                self.store.fail(pending.id, NETWORK_ISSUE)
                self._set_state(SendState.FAILED)
                logger.warning(f"Send {pending.id} returned a non-text reply")
                return SendOutcome.FAILED

            confirmed, answer = self.store.confirm(pending.id, reply)
        except UnknownMessageError:
            # The store was cleared (logout) while the send was in flight
            self._set_state(SendState.FAILED)
            logger.info(f"Send {pending.id} resolved after the store was cleared, dropping result")
            return SendOutcome.SKIPPED

        self._set_state(SendState.RESOLVED)
        logger.debug(f"Send {pending.id} confirmed as {confirmed.id}, reply {answer.id}")
        return SendOutcome.CONFIRMED
