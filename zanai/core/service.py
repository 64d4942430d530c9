"""
Service client for the ZanAi reply service.

Wraps the two REST endpoints the client uses:

    POST /api/auth/login   {"pin": ...}      -> {"token", "history"} | {"msg"}
    POST /api/chat/send    {"message": ...}  -> {"reply"} | {"msg"}

Failures are raised as ServerRejection / InvalidPinError (the server answered
with a non-2xx status and a JSON body) or TransportFailure (no usable answer,
including a non-JSON body on any status).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from zanai.core.config import get_config_manager
from zanai.core.errors import InvalidPinError, ServerRejection, TransportFailure

logger = logging.getLogger(__name__)

# Config keys stored in ~/.zanai/config/
API_URL = "ZANAI_API_URL"
API_TIMEOUT = "ZANAI_TIMEOUT"
DEFAULT_API_URL = "https://zanaimvpbd00-production.up.railway.app"
DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_READ_TIMEOUT = 60.0

TOKEN_HEADER = "x-auth-token"
LOGIN_PATH = "/api/auth/login"
SEND_PATH = "/api/chat/send"

LOGIN_FAILED = "Login failed. Please try again."
LOGIN_UNREACHABLE = "An error occurred. Please check your connection or try again later."
SEND_FAILED = "Send failed"
NETWORK_ISSUE = "Network issue"

# Statuses that mean "wrong PIN" rather than a server fault
_PIN_REJECTED = {400, 401, 403}


@dataclass
class LoginResult:
    """Successful login: an opaque token plus the raw history payload."""

    token: str
    history: Any = field(default_factory=list)


def _parse_body(response: httpx.Response, failure: str) -> Any:
    """
    Decode a JSON response body, whatever the status.

    A body that is not JSON carries no server message (a proxy error page,
    say), so it is a transport failure even on a non-2xx status.
    """
    try:
        return response.json()
    except ValueError as e:
        logger.warning(f"Unreadable response from service ({response.status_code}): {e}")
        raise TransportFailure(failure, original=e) from e


def _error_message(data: Any, default: str) -> str:
    """Pull the ``msg`` field out of a decoded error body, if there is one."""
    if isinstance(data, dict):
        msg = data.get("msg")
        if isinstance(msg, str) and msg.strip():
            return msg
    return default


def resolve_timeout(value: float | str | None = None) -> float:
    """Read timeout in seconds from an explicit value, config, or the default."""
    if value is None:
        value = get_config_manager().get(API_TIMEOUT)
    if value is None or value == "":
        return DEFAULT_READ_TIMEOUT
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid {API_TIMEOUT} value {value!r}, using default")
        return DEFAULT_READ_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_READ_TIMEOUT


class ChatServiceClient:
    """
    Client for the login and send endpoints.

    Every request is a single attempt; there is no retry.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        config_mgr = get_config_manager()
        self.base_url = (base_url or config_mgr.get(API_URL) or DEFAULT_API_URL).rstrip("/")
        self.timeout = resolve_timeout(timeout)
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(DEFAULT_CONNECT_TIMEOUT, read=self.timeout),
            transport=transport,
        )

    def __enter__(self) -> ChatServiceClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def login(self, pin: str) -> LoginResult:
        """
        Exchange a PIN for a token and the conversation history.

        Raises:
            InvalidPinError: The server refused the PIN.
            ServerRejection: Any other non-2xx answer.
            TransportFailure: The server could not be reached or sent garbage.
        """
        try:
            response = self._client.post(LOGIN_PATH, json={"pin": pin})
        except httpx.RequestError as e:
            logger.warning(f"Could not reach service at {self.base_url}: {e}")
            raise TransportFailure(LOGIN_UNREACHABLE, original=e) from e

        data = _parse_body(response, LOGIN_UNREACHABLE)

        if response.is_error:
            message = _error_message(data, LOGIN_FAILED)
            logger.info(f"Login rejected ({response.status_code}): {message}")
            if response.status_code in _PIN_REJECTED:
                raise InvalidPinError(message, response.status_code)
            raise ServerRejection(message, response.status_code)

        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            logger.warning("Login response did not contain a token")
            raise TransportFailure(LOGIN_UNREACHABLE)

        history = data.get("history")
        logger.debug(
            f"Login succeeded with {len(history) if isinstance(history, list) else 0} history records"
        )
        return LoginResult(token=token, history=history if history is not None else [])

    def send(self, message: str, token: str) -> str:
        """
        Send a chat message and return the assistant's reply.

        Raises:
            ServerRejection: Non-2xx answer; carries the server ``msg`` if any.
            TransportFailure: Network error, timeout, or a body without a reply.
        """
        try:
            response = self._client.post(
                SEND_PATH,
                json={"message": message},
                headers={TOKEN_HEADER: token},
            )
        except httpx.RequestError as e:
            logger.warning(f"Could not reach service at {self.base_url}: {e}")
            raise TransportFailure(NETWORK_ISSUE, original=e) from e

        data = _parse_body(response, NETWORK_ISSUE)

        if response.is_error:
            reason = _error_message(data, SEND_FAILED)
            logger.info(f"Send rejected ({response.status_code}): {reason}")
            raise ServerRejection(reason, response.status_code)

        reply = data.get("reply") if isinstance(data, dict) else None
        if not isinstance(reply, str):
            logger.warning("Send response did not contain a reply")
            raise TransportFailure(NETWORK_ISSUE)
        return reply

    def close(self):
        """Close the HTTP client."""
        self._client.close()
