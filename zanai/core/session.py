"""
Chat session: the message store and send orchestrator for one login.
"""

from __future__ import annotations

import logging

from zanai.core.auth import AuthSession
from zanai.core.history import normalize_history
from zanai.core.orchestrator import SendFunc, SendOrchestrator, SendOutcome
from zanai.core.store import MessageStore

logger = logging.getLogger(__name__)


class ChatSession:
    """
    Everything that lives between login and logout.

    History is normalized and loaded once, at construction. From then on the
    orchestrator is the only thing that changes the store.
    """

    def __init__(
        self,
        auth: AuthSession,
        sender: SendFunc,
        store: MessageStore | None = None,
    ):
        self.auth = auth
        self.store = store if store is not None else MessageStore()
        self.store.load(normalize_history(auth.history))
        self.orchestrator = SendOrchestrator(self.store, sender, auth.token)
        self._closed = False
        logger.debug(f"Chat session started with {len(self.store)} messages")

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, text: str) -> SendOutcome:
        if self._closed:
            return SendOutcome.SKIPPED
        return self.orchestrator.submit(text)

    def close(self) -> None:
        """Discard the session's messages."""
        if self._closed:
            return
        self._closed = True
        self.store.clear()
