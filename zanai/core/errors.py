"""
Error taxonomy for the zanai client.

Validation errors are raised before any network call. Server rejections and
transport failures come from the service client; the send orchestrator turns
both into failed messages instead of letting them escape.
"""

from __future__ import annotations


class ZanaiError(Exception):
    """Base class for zanai errors."""


class ValidationError(ZanaiError):
    """Raised when user input is rejected locally (bad PIN, empty message)."""


class ServerRejection(ZanaiError):
    """The server answered with a non-2xx status and (maybe) a message body."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidPinError(ServerRejection):
    """The login endpoint refused the PIN."""


class TransportFailure(ZanaiError):
    """No structured server answer: network error, timeout or unparseable body."""

    def __init__(self, message: str, original: Exception | None = None):
        self.original = original
        super().__init__(message)


class SendInProgressError(ZanaiError):
    """Raised by the message store when a second optimistic insert is attempted."""

    def __init__(self, pending_id: str):
        self.pending_id = pending_id
        super().__init__(f"Message '{pending_id}' is still awaiting a reply.")


class UnknownMessageError(ZanaiError):
    """Raised when reconciling an id that is not the pending message."""

    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__(f"No pending message with id '{message_id}'.")
