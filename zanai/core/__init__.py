"""Core module for zanai."""

from zanai.core.auth import AuthSession, authenticate, end_session, restore_session, validate_pin
from zanai.core.config import ConfigManager, get_config_manager
from zanai.core.history import normalize_history
from zanai.core.orchestrator import SendOrchestrator, SendOutcome, SendState
from zanai.core.service import ChatServiceClient, LoginResult
from zanai.core.session import ChatSession
from zanai.core.store import ChangeKind, MessageStore, StoreChange

__all__ = [
    "AuthSession",
    "ChangeKind",
    "ChatServiceClient",
    "ChatSession",
    "ConfigManager",
    "LoginResult",
    "MessageStore",
    "SendOrchestrator",
    "SendOutcome",
    "SendState",
    "StoreChange",
    "authenticate",
    "end_session",
    "get_config_manager",
    "normalize_history",
    "restore_session",
    "validate_pin",
]
