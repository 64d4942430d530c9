"""
UI components for the zanai chat screen.

Provides input (prompt_toolkit when available) and output (Rich rendering of
the message store). The view only reads the store; it redraws whenever the
store reports a change.
"""

from __future__ import annotations

import sys
from pathlib import Path

from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.spinner import Spinner
from rich.text import Text

from zanai.core.store import ChangeKind, StoreChange
from zanai.models.message import Message, MessageStatus, Sender

# ---------------------------------------------------------------------------
# Slash command definitions (command -> description)
# ---------------------------------------------------------------------------

SLASH_COMMANDS: dict[str, str] = {
    "/help": "Show available commands",
    "/history": "Show last n messages (default: 10)",
    "/logout": "Log out and forget the stored token",
    "/quit": "Exit the chat",
}

_SLASH_ALIASES: dict[str, str] = {
    "/h": "/help",
    "/?": "/help",
    "/exit": "/quit",
    "/q": "/quit",
}

ASSISTANT_LABEL = "ZanAi"
USER_LABEL = "You"


def resolve_command(text: str) -> tuple[str, str]:
    """Split a slash command into (canonical command, argument string)."""
    parts = text.strip().split(None, 1)
    cmd = parts[0].lower()
    arg = parts[1].strip() if len(parts) > 1 else ""
    return _SLASH_ALIASES.get(cmd, cmd), arg


# ---------------------------------------------------------------------------
# prompt_toolkit components (lazy imports to avoid hard crash if missing)
# ---------------------------------------------------------------------------


def _get_prompt_toolkit():
    """Import prompt_toolkit components. Returns None if unavailable."""
    try:
        from prompt_toolkit import PromptSession
        from prompt_toolkit.completion import WordCompleter
        from prompt_toolkit.history import FileHistory

        return {
            "PromptSession": PromptSession,
            "WordCompleter": WordCompleter,
            "FileHistory": FileHistory,
        }
    except ImportError:
        return None


def create_prompt_session(history_dir: Path | None = None):
    """
    Create a prompt_toolkit PromptSession for the chat input.

    Returns None if not in a real terminal (e.g. under CliRunner in tests)
    or if prompt_toolkit is not available.
    """
    if not sys.stdin.isatty():
        return None

    pt = _get_prompt_toolkit()
    if pt is None:
        return None

    try:
        history_dir = history_dir or Path.home() / ".zanai" / "history"
        history_dir.mkdir(parents=True, exist_ok=True)
        commands = list(SLASH_COMMANDS) + list(_SLASH_ALIASES)
        return pt["PromptSession"](
            completer=pt["WordCompleter"](commands, sentence=True),
            history=pt["FileHistory"](str(history_dir / "chat.hist")),
            complete_while_typing=False,
            multiline=False,
        )
    except Exception:
        return None


def read_input(console: Console, prompt_session=None) -> str:
    """Read one line of chat input. Raises EOFError / KeyboardInterrupt."""
    if prompt_session is not None:
        return prompt_session.prompt(f"{USER_LABEL}: ")
    return console.input(f"[bold]{USER_LABEL}:[/bold] ")


# ---------------------------------------------------------------------------
# Message rendering
# ---------------------------------------------------------------------------


def render_message(message: Message):
    """Build the renderable for one message."""
    stamp = message.timestamp.astimezone().strftime("%H:%M")

    if message.sender is Sender.ASSISTANT:
        header = Text.assemble((f"{ASSISTANT_LABEL} ", "bold cyan"), (stamp, "dim"))
        return Group(header, Markdown(message.text))

    if message.status is MessageStatus.FAILED:
        style = "red"
    elif message.status is MessageStatus.PENDING:
        style = "dim"
    else:
        style = ""

    header = Text.assemble((f"{USER_LABEL} ", "bold"), (stamp, "dim"))
    return Group(header, Text(message.text, style=style))


def render_help(console: Console) -> None:
    console.print()
    for cmd, desc in SLASH_COMMANDS.items():
        console.print(f"  [cyan]{cmd:<10}[/cyan] {desc}")
    console.print()


def render_history(console: Console, messages: tuple[Message, ...] | list[Message], n: int = 10):
    """Print the last `n` messages."""
    recent = list(messages)[-n:] if n > 0 else []
    if not recent:
        console.print("[dim]No messages yet[/dim]")
        return
    for message in recent:
        console.print(render_message(message))


class ChatView:
    """
    Renders store changes to the console.

    A pending message is shown in a transient Live area with a spinner and is
    replaced by its resolved counterpart once the send settles. Without a
    terminal, a plain "sending..." line is printed instead.
    """

    def __init__(self, console: Console, use_live: bool | None = None):
        self._console = console
        self._use_live = console.is_terminal if use_live is None else use_live
        self._live: Live | None = None

    def on_change(self, change: StoreChange) -> None:
        if change.kind is ChangeKind.LOADED:
            if change.changed:
                for message in change.changed:
                    self._console.print(render_message(message))
            else:
                self._console.print("[dim]No previous messages[/dim]")
        elif change.kind is ChangeKind.PENDING:
            self._show_pending(change.changed[0])
        elif change.kind in (ChangeKind.CONFIRMED, ChangeKind.FAILED):
            self._stop_live()
            for message in change.changed:
                self._console.print(render_message(message))
        elif change.kind is ChangeKind.CLEARED:
            self._stop_live()

    def _show_pending(self, message: Message) -> None:
        if not self._use_live:
            self._console.print("[dim]  sending...[/dim]")
            return
        self._stop_live()
        self._live = Live(
            Group(render_message(message), Spinner("dots", text=Text("sending...", style="dim"))),
            console=self._console,
            refresh_per_second=8,
            transient=True,
        )
        self._live.start()

    def _stop_live(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None
