"""
CLI entry point for zanai: terminal chat with the ZanAi reply service.
"""

import sys

import click
from rich.console import Console
from rich.panel import Panel

try:
    from importlib.metadata import version as pkg_version

    _version = pkg_version("zanai")
except Exception:
    _version = "0.1.0"

from zanai.core.config import ConfigManager

console = Console()
console_err = Console(stderr=True)

LOGIN_ATTEMPTS = 3


# =============================================================================
# Root CLI Group
# =============================================================================


@click.group(invoke_without_command=True)
@click.version_option(version=_version, prog_name="zanai")
@click.option("--url", default=None, help="Service URL (overrides ZANAI_API_URL)")
@click.option("--debug", is_flag=True, hidden=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, url: str | None, debug: bool):
    """
    ZanAi: chat from your terminal.

    Running without a command opens the chat: you are asked for your PIN
    unless a previous login is remembered.

    \b
        zanai              # Log in (if needed) and chat
        zanai logout       # Forget the stored login
        zanai status       # Show login state and service URL
        zanai config list  # Show stored settings
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["url"] = url

    if debug:
        import logging

        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(name)s: %(message)s")
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    if ctx.invoked_subcommand is None:
        ctx.invoke(chat)


# =============================================================================
# Chat
# =============================================================================


def _login_interactive(client, attempts: int = LOGIN_ATTEMPTS):
    """
    Prompt for the PIN until login succeeds.

    Returns the AuthSession, or None if the prompt was aborted. Exits after
    too many failed attempts.
    """
    from zanai.core.auth import authenticate
    from zanai.core.errors import ValidationError, ZanaiError

    console.print(
        Panel(
            "[bold]ZanAi[/bold]\n\nEnter your 6-digit PIN",
            border_style="blue",
        )
    )

    for _ in range(attempts):
        try:
            pin = click.prompt("PIN", hide_input=True, default="", show_default=False)
        except click.exceptions.Abort:
            return None

        try:
            with console.status("Verifying...", spinner="dots"):
                return authenticate(client, pin)
        except ValidationError as e:
            console.print(f"[red]{e}[/red]")
        except ZanaiError as e:
            console.print(f"[red]Error:[/red] {e}")

    console.print("[yellow]Too many attempts.[/yellow]")
    sys.exit(1)


def _handle_command(text: str, session) -> str | None:
    """
    Run a slash command.

    Returns "quit" or "logout" when the chat loop should end, None otherwise.
    """
    from zanai.cli.ui import SLASH_COMMANDS, render_help, render_history, resolve_command

    cmd, arg = resolve_command(text)

    if cmd == "/help":
        render_help(console)
    elif cmd == "/history":
        try:
            n = int(arg) if arg else 10
        except ValueError:
            console.print("[red]Usage: /history \\[n][/red]")
            return None
        render_history(console, session.store.messages, n)
    elif cmd == "/logout":
        return "logout"
    elif cmd == "/quit":
        return "quit"
    elif cmd not in SLASH_COMMANDS:
        console.print(f"[yellow]Unknown command {cmd}. Type /help.[/yellow]")
    return None


def _chat_loop(auth, client) -> str:
    """Run one chat session. Returns "quit" or "logout"."""
    from zanai.cli.ui import ChatView, create_prompt_session, read_input
    from zanai.core.session import ChatSession
    from zanai.core.store import MessageStore

    store = MessageStore()
    view = ChatView(console)
    unsubscribe = store.subscribe(view.on_change)
    session = ChatSession(auth, client.send, store=store)
    prompt_session = create_prompt_session()

    console.print("[dim]Type /help for commands.[/dim]")
    result = "quit"
    try:
        while True:
            try:
                text = read_input(console, prompt_session)
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

            text = text.strip()
            if not text:
                continue

            if text.startswith("/"):
                action = _handle_command(text, session)
                if action:
                    result = action
                    break
                continue

            session.submit(text)
    finally:
        session.close()
        unsubscribe()

    return result


@cli.command()
@click.pass_context
def chat(ctx: click.Context):
    """
    Open the chat (the default command).

    Uses the stored login if there is one, otherwise asks for the PIN.
    """
    from zanai.core.auth import end_session, restore_session
    from zanai.core.service import ChatServiceClient

    url = (ctx.obj or {}).get("url")

    with ChatServiceClient(base_url=url) as client:
        auth = restore_session()
        while True:
            if auth is None:
                auth = _login_interactive(client)
                if auth is None:
                    return

            if _chat_loop(auth, client) == "logout":
                end_session()
                console.print("[green]Logged out.[/green]")
                auth = None
                continue
            break


# =============================================================================
# Session Commands
# =============================================================================


@cli.command()
def logout():
    """
    Log out.

    Removes the stored auth token; the next start asks for the PIN again.
    """
    from zanai.core.auth import end_session

    removed = end_session()
    if removed:
        console.print("[green]Logged out.[/green]")
    else:
        console.print("[grey62]Not currently logged in.[/grey62]")


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """
    Show login state and the service URL.
    """
    from zanai.core.auth import TOKEN_KEY
    from zanai.core.service import API_URL, DEFAULT_API_URL, resolve_timeout

    config_mgr = ConfigManager()
    base_url = (ctx.obj or {}).get("url") or config_mgr.get(API_URL) or DEFAULT_API_URL

    if config_mgr.get(TOKEN_KEY):
        console.print("[green]Logged in[/green]")
    else:
        console.print("[yellow]Not logged in.[/yellow]")
        console.print("Run [cyan]zanai[/cyan] to log in with your PIN.")

    console.print(f"[grey62]Service: {base_url}[/grey62]")
    console.print(f"[grey62]Timeout: {resolve_timeout():g}s[/grey62]")


# =============================================================================
# Config Commands
# =============================================================================


@cli.group()
def config():
    """Manage stored settings (service URL, timeout)."""
    pass


@config.command("set")
@click.argument("key_name")
@click.argument("value")
def config_set(key_name: str, value: str):
    """
    Store a setting.

    \b
    Examples:
        zanai config set ZANAI_API_URL http://localhost:5000
        zanai config set ZANAI_TIMEOUT 30
    """
    from zanai.core.config import KNOWN_SETTINGS

    name = key_name.upper()
    if name not in KNOWN_SETTINGS:
        console.print(f"[yellow]Note:[/yellow] {name} is not a known setting")

    config_mgr = ConfigManager()
    config_mgr.set(name, value)
    console.print(f"[green]✓[/green] Saved {name}")


@config.command("list")
def config_list():
    """List stored settings."""
    config_mgr = ConfigManager()
    config_mgr.show_status()


@config.command("delete")
@click.argument("key_name")
def config_delete(key_name: str):
    """Delete a stored setting."""
    config_mgr = ConfigManager()
    name = key_name.upper()
    if config_mgr.delete(name):
        console.print(f"[green]✓[/green] Deleted {name}")
    else:
        console_err.print(f"[yellow]Setting {name} not found[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    cli()
