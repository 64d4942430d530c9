"""
Authentication session.

Turns a PIN into an AuthSession (token plus the history returned at login)
and persists the token so the next launch opens straight into the chat view.
The session is created on login success and destroyed on logout.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from zanai.core.config import ConfigManager, get_config_manager
from zanai.core.errors import ValidationError
from zanai.core.service import LoginResult

logger = logging.getLogger(__name__)

TOKEN_KEY = "ZANAI_TOKEN"
PIN_LENGTH = 6
_PIN_RE = re.compile(rf"[0-9]{{{PIN_LENGTH}}}")


class LoginService(Protocol):
    def login(self, pin: str) -> LoginResult: ...


@dataclass
class AuthSession:
    """An authenticated login: the opaque token and the history it came with."""

    token: str
    history: Any = field(default_factory=list)
    restored: bool = False  # True when rebuilt from a stored token


def validate_pin(pin: str) -> str:
    """
    Check that a PIN is exactly six ASCII digits.

    Returns:
        The PIN with surrounding whitespace removed.

    Raises:
        ValidationError: The PIN has the wrong shape.
    """
    pin = (pin or "").strip()
    if not _PIN_RE.fullmatch(pin):
        raise ValidationError(f"PIN must be {PIN_LENGTH} digits.")
    return pin


def authenticate(
    service: LoginService,
    pin: str,
    config_mgr: ConfigManager | None = None,
    remember: bool = True,
) -> AuthSession:
    """
    Log in with a PIN and return the new session.

    Validation happens before any network call. Errors from the service
    (InvalidPinError, ServerRejection, TransportFailure) propagate unchanged
    and nothing is persisted.
    """
    pin = validate_pin(pin)
    result = service.login(pin)

    if remember:
        (config_mgr or get_config_manager()).set(TOKEN_KEY, result.token)

    logger.info("Logged in")
    return AuthSession(token=result.token, history=result.history)


def restore_session(config_mgr: ConfigManager | None = None) -> AuthSession | None:
    """
    Rebuild a session from the stored token.

    The history is not stored, so a restored session starts empty. No
    expiry check is made; the server decides on the next send.
    """
    token = (config_mgr or get_config_manager()).get(TOKEN_KEY)
    if not token:
        return None
    return AuthSession(token=token, history=[], restored=True)


def end_session(config_mgr: ConfigManager | None = None) -> bool:
    """Forget the stored token. Returns True if one was stored."""
    removed = (config_mgr or get_config_manager()).delete(TOKEN_KEY)
    logger.info("Logged out")
    return removed
