"""
Tests for PIN validation, login and the chat session lifecycle.
"""

from unittest.mock import MagicMock

import pytest

from zanai.core.auth import (
    TOKEN_KEY,
    AuthSession,
    authenticate,
    end_session,
    restore_session,
    validate_pin,
)
from zanai.core.errors import InvalidPinError, TransportFailure, ValidationError
from zanai.core.orchestrator import SendOutcome
from zanai.core.service import LoginResult
from zanai.core.session import ChatSession
from zanai.models.message import MessageStatus


class TestValidatePin:
    def test_valid(self):
        assert validate_pin("123456") == "123456"

    def test_strips_whitespace(self):
        assert validate_pin(" 123456 ") == "123456"

    @pytest.mark.parametrize("pin", ["", "12345", "1234567", "12a456", "١٢٣٤٥٦", None])
    def test_invalid(self, pin):
        with pytest.raises(ValidationError, match="PIN must be 6 digits."):
            validate_pin(pin)


class TestAuthenticate:
    def test_success_persists_token(self, config_mgr, sample_history):
        service = MagicMock()
        service.login.return_value = LoginResult(token="tok-1", history=sample_history)

        session = authenticate(service, "123456", config_mgr=config_mgr)

        assert session.token == "tok-1"
        assert session.history == sample_history
        assert not session.restored
        assert config_mgr.get(TOKEN_KEY) == "tok-1"
        service.login.assert_called_once_with("123456")

    def test_invalid_pin_format_skips_network(self, config_mgr):
        service = MagicMock()
        with pytest.raises(ValidationError):
            authenticate(service, "12", config_mgr=config_mgr)
        service.login.assert_not_called()

    @pytest.mark.parametrize("error", [InvalidPinError("Invalid PIN", 400), TransportFailure("down")])
    def test_errors_propagate_without_persisting(self, config_mgr, error):
        service = MagicMock()
        service.login.side_effect = error

        with pytest.raises(type(error)):
            authenticate(service, "123456", config_mgr=config_mgr)
        assert config_mgr.get(TOKEN_KEY) is None

    def test_remember_false(self, config_mgr):
        service = MagicMock()
        service.login.return_value = LoginResult(token="tok-1")

        authenticate(service, "123456", config_mgr=config_mgr, remember=False)
        assert config_mgr.get(TOKEN_KEY) is None


class TestRestoreAndEnd:
    def test_restore_without_token(self, config_mgr):
        assert restore_session(config_mgr) is None

    def test_restore_with_token(self, config_mgr):
        config_mgr.set(TOKEN_KEY, "tok-1")
        session = restore_session(config_mgr)

        assert session.token == "tok-1"
        assert session.history == []
        assert session.restored

    def test_end_session(self, config_mgr):
        config_mgr.set(TOKEN_KEY, "tok-1")
        assert end_session(config_mgr) is True
        assert restore_session(config_mgr) is None
        assert end_session(config_mgr) is False

    def test_uses_global_config(self):
        from zanai.core.config import get_config_manager

        get_config_manager().set(TOKEN_KEY, "tok-global")
        assert restore_session().token == "tok-global"


class TestChatSession:
    def test_loads_history(self, sample_history):
        session = ChatSession(AuthSession(token="t", history=sample_history), MagicMock())

        assert len(session.store) == 3
        assert all(m.status is MessageStatus.CONFIRMED for m in session.store)

    def test_bad_history_starts_empty(self):
        session = ChatSession(AuthSession(token="t", history={"oops": 1}), MagicMock())
        assert len(session.store) == 0

    def test_submit_uses_token(self):
        sender = MagicMock(return_value="Hi!")
        session = ChatSession(AuthSession(token="tok-9"), sender)

        assert session.submit("Hello") is SendOutcome.CONFIRMED
        sender.assert_called_once_with("Hello", "tok-9")

    def test_close_discards_messages(self, sample_history):
        sender = MagicMock(return_value="Hi!")
        session = ChatSession(AuthSession(token="t", history=sample_history), sender)

        session.close()

        assert session.closed
        assert len(session.store) == 0
        assert session.submit("Hello") is SendOutcome.SKIPPED
        sender.assert_not_called()

    @pytest.mark.parametrize("result", ["reply", TransportFailure("down")])
    def test_close_during_send_does_not_raise(self, result):
        session = None

        def sender(text, token):
            session.close()
            if isinstance(result, Exception):
                raise result
            return result

        session = ChatSession(AuthSession(token="t"), sender)

        assert session.submit("Hello") is SendOutcome.SKIPPED
        assert len(session.store) == 0
        assert session.store.pending_id is None
