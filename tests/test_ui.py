"""
Tests for the chat view and message rendering.
"""

import io
from datetime import UTC, datetime

import pytest
from rich.console import Console

from zanai.cli.ui import ChatView, render_history, render_message, resolve_command
from zanai.core.history import normalize_history
from zanai.models.message import Message, MessageStatus, Sender


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def console(output):
    return Console(file=output, width=80, force_terminal=False, color_system=None)


def _msg(sender=Sender.USER, text="Hello", status=MessageStatus.CONFIRMED):
    return Message(
        id="m-1",
        sender=sender,
        text=text,
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        status=status,
    )


class TestResolveCommand:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("/help", ("/help", "")),
            ("/?", ("/help", "")),
            ("/q", ("/quit", "")),
            ("/EXIT", ("/quit", "")),
            ("/history 5", ("/history", "5")),
        ],
    )
    def test_aliases(self, text, expected):
        assert resolve_command(text) == expected


class TestRenderMessage:
    def test_user_message(self, console, output):
        console.print(render_message(_msg()))
        assert "You" in output.getvalue()
        assert "Hello" in output.getvalue()

    def test_assistant_message_as_markdown(self, console, output):
        console.print(render_message(_msg(Sender.ASSISTANT, "**Hi!**")))
        text = output.getvalue()
        assert "ZanAi" in text
        assert "Hi!" in text
        assert "**" not in text

    def test_failed_message(self, console, output):
        console.print(render_message(_msg(text="Hello (Error: bad)", status=MessageStatus.FAILED)))
        assert "Hello (Error: bad)" in output.getvalue()


class TestRenderHistory:
    def test_last_n(self, console, output, sample_history):
        render_history(console, normalize_history(sample_history), 1)
        text = output.getvalue()
        assert "Tell me a joke" in text
        assert "Hi there" not in text

    def test_empty(self, console, output):
        render_history(console, [], 10)
        assert "No messages yet" in output.getvalue()


class TestChatView:
    def test_renders_store_changes(self, console, output, store, sample_history):
        view = ChatView(console)
        store.subscribe(view.on_change)

        store.load(normalize_history(sample_history))
        pending = store.append_pending("Hello")
        store.confirm(pending.id, "Hi!")

        text = output.getvalue()
        assert "Hi there" in text
        assert "sending..." in text
        assert text.index("sending...") < text.index("Hi!")

    def test_failure_rendered(self, console, output, store):
        view = ChatView(console)
        store.subscribe(view.on_change)
        store.load([])

        pending = store.append_pending("Hello")
        store.fail(pending.id, "bad")

        text = output.getvalue()
        assert "No previous messages" in text
        assert "Hello (Error: bad)" in text

    def test_live_mode_stops_on_resolution(self, store):
        console = Console(file=io.StringIO(), width=80, force_terminal=True)
        view = ChatView(console, use_live=True)
        store.subscribe(view.on_change)

        pending = store.append_pending("Hello")
        assert view._live is not None

        store.confirm(pending.id, "Hi!")
        assert view._live is None
