"""Pretty formatting utilities for CLI output."""

import shutil
import sys
from typing import IO, Optional, Sequence

import click

from ..submit import SubmitResult

STATUS_COLORS = {
    'created': 'green',
    'updated': 'yellow',
    'noop': 'bright_black',
}

def get_term_width() -> int:
    """Get terminal width, default to 80 if can't detect."""
    try:
        return shutil.get_terminal_size().columns
    except OSError:
        return 80

def header(text: str, use_emoji: bool = True) -> str:
    """Create a header with optional emoji."""
    emoji = "🥞 " if use_emoji else ""
    rule = "─" * min(get_term_width(), len(text) + len(emoji) + 4)
    return f"{rule}\n  {emoji}{text}\n{rule}"

def format_result(result: SubmitResult) -> str:
    status = click.style(result.status, fg=STATUS_COLORS[result.status])
    return f"{click.style(result.head, fg='green')}: {result.pr_url} ({status})"

def print_header(text: str, use_emoji: bool = True, file: Optional[IO[str]] = None) -> None:
    """Print a header to file (default stdout)."""
    click.echo(header(text, use_emoji), file=file or sys.stdout)

def print_results(results: Sequence[SubmitResult], file: Optional[IO[str]] = None) -> None:
    for result in results:
        click.echo(format_result(result), file=file or sys.stdout)
