"""CLI commands for talkline."""

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from talkline import __logo__, __version__
from talkline.config.loader import load_config

app = typer.Typer(
    name="talkline",
    help=f"{__logo__} talkline - chat composition and delivery",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} talkline v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _print_notice(notice) -> None:
    styles = {"success": "green", "warning": "yellow", "error": "red"}
    style = styles.get(notice.level, "cyan")
    console.print(f"[{style}]{notice.message}[/{style}]")


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """talkline - chat composition and delivery."""
    _configure_logging(verbose)


# ============================================================================
# Attachments
# ============================================================================


@app.command()
def check(file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to validate")):
    """Validate a file as a chat attachment."""
    from talkline.media.attachment import CandidateFile
    from talkline.media.validator import AttachmentValidator, format_file_size, get_file_category

    candidate = CandidateFile.from_path(file)
    result = AttachmentValidator().validate(candidate)

    console.print(f"File: {candidate.name}")
    console.print(f"Type: {candidate.mime_type} ({get_file_category(candidate.mime_type)})")
    console.print(f"Size: {format_file_size(candidate.size)}")

    if not result.ok:
        console.print(f"[red]✗ {result.message}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Accepted[/green]")


@app.command()
def url(
    path: str = typer.Argument(..., help="File name or storage path"),
    room: str = typer.Option(None, "--room", "-r", help="Room the file belongs to"),
    download: bool = typer.Option(False, "--download", "-d", help="Download URL"),
    thumbnail: bool = typer.Option(False, "--thumbnail", "-t", help="Thumbnail URL"),
):
    """Resolve the retrieval URL of a stored file."""
    from talkline.auth.session import FileSessionProvider
    from talkline.media.paths import PathResolver
    from talkline.media.storage import HttpStorageBackend

    config = load_config()
    session = FileSessionProvider(config.session_file)
    storage = HttpStorageBackend(config.storage, session)
    resolver = PathResolver(config.storage, session, storage, config.thumbnails)

    if thumbnail:
        resolved = resolver.thumbnail_url(path, room)
    elif download:
        resolved = resolver.download_url(path, room)
    else:
        resolved = resolver.preview_url(path, room)

    if not resolved:
        console.print(f"[red]Cannot resolve {path!r}[/red]")
        raise typer.Exit(1)
    console.print(resolved, soft_wrap=True)


# ============================================================================
# Delivery
# ============================================================================


@app.command()
def send(
    room: str = typer.Argument(..., help="Room ID"),
    text: str = typer.Option("", "--text", "-m", help="Message text"),
    file: Path = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="File to attach"),
):
    """Send a message (and optionally one file) to a room."""
    from talkline.client import ChatClient
    from talkline.delivery.tickets import Outcome

    config = load_config()

    async def run():
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Uploading", total=100, visible=file is not None)
            client = ChatClient(
                config,
                notifier=_print_notice,
                on_progress=lambda percent: progress.update(task, completed=percent),
            )
            async with client:
                client.join(room)
                client.set_text(text)
                if file is not None:
                    pending = client.attach_path(file)
                    if pending.error:
                        console.print(f"[red]{pending.error.short_message}[/red]")
                        return None
                return await client.submit()

    try:
        result = asyncio.run(run())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if result is None:
        raise typer.Exit(1)
    if result.outcome != Outcome.acknowledged:
        console.print(f"[red]✗ {result.outcome.value}[/red] {result.reason}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Sent to {room}")


@app.command()
def history(
    room: str = typer.Argument(..., help="Room ID"),
    before: str = typer.Option(None, "--before", "-b", help="Only messages older than this timestamp"),
):
    """Fetch previous messages of a room."""
    from talkline.client import ChatClient
    from talkline.delivery.tickets import Outcome

    config = load_config()

    async def run():
        async with ChatClient(config, notifier=_print_notice) as client:
            client.join(room)
            return await client.load_more(before)

    try:
        result = asyncio.run(run())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if result.outcome != Outcome.acknowledged:
        console.print(f"[red]✗ {result.outcome.value}[/red] {result.reason}")
        raise typer.Exit(1)

    data = result.result or {}
    messages = data.get("messages", []) if isinstance(data, dict) else list(data)
    if not messages:
        console.print("No messages.")
        return

    table = Table(title=f"Room {room}")
    table.add_column("Time", style="cyan")
    table.add_column("Sender")
    table.add_column("Content")
    for message in messages:
        sender = message.get("sender") or {}
        name = sender.get("name", "") if isinstance(sender, dict) else str(sender)
        table.add_row(str(message.get("timestamp", "")), name, str(message.get("content", "")))
    console.print(table)
    if isinstance(data, dict) and data.get("hasMore"):
        console.print("[dim]More messages available[/dim]")


if __name__ == "__main__":
    app()
