import os
import json
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from book_tracker.config import settings

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "BOOK_TRACKER_OUTPUT"
OUTPUT_MODES = {"plain", "json", "rich"}

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode not in OUTPUT_MODES:
        raise ValueError(f"'{mode}' is not a valid output mode, must be one of 'plain' 'json' 'rich'")
    os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    mode = os.environ.get(OUTPUT_MODE_ENV, settings.output_mode).lower()
    return mode if mode in OUTPUT_MODES else "plain"


def _label(book: Any) -> str:
    if book.title:
        return f"{book.title.title()} by {book.author.title()}"
    return f"ISBN {book.isbn}"


def print_list_result(books: List[Any]) -> None:
    """Print the tracked books in the current output mode.
    - plain: 'STATE - Title by Author' lines, or 'No books tracked.'
    - json: array of book objects
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books tracked.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Status", style="green")
        table.add_column("Genres", style="dim")
        for b in books:
            table.add_row(b.isbn or "", b.title.title(), b.author.title(), str(b.state), ", ".join(b.genres))
        _console.print(table)
    else:
        for b in books:
            print(f"{b.state} - {_label(b)}")


def print_book(book: Any, action: str) -> None:
    """Print a single book after a command changed it."""
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"action": action, "book": book.to_dict()}, ensure_ascii=False))
    elif mode == "rich":
        _console.print(Panel.fit(str(book), title=f"📖 {action.title()}", border_style="cyan"))
    else:
        print(f"{action.title()}: {_label(book)}")
        print(book)


def print_catalog_result(entry: Any) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(entry.to_dict(), ensure_ascii=False))
    elif mode == "rich":
        content = f"[bold]Title:[/] {entry.title}\n[bold]Author:[/] {entry.author}"
        _console.print(Panel.fit(content, title=f"🔎 {entry.isbn}", border_style="blue"))
    else:
        print(f"title: {entry.title}")
        print(f"author: {entry.author}")


def print_stats_result(stats: Dict[str, int]) -> None:
    """Print per-state counts in the current output mode."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{name.upper()}:[/] {count}" for name, count in stats.items())
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for name, count in stats.items():
            print(f"{name.upper()}: {count}")
