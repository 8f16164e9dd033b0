import logging
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Optional

import typer

from book_tracker.config import settings
from book_tracker.database import BookStore
from book_tracker.errors import BookTrackerError
from book_tracker.identity import attached_isbn, resolve_identity
from book_tracker.library import Library
from book_tracker.utils.ui_helpers import (
    print_book,
    print_catalog_result,
    print_list_result,
    print_stats_result,
    set_output_mode,
)
from book_tracker.utils.validators import parse_genres, parse_state, require_non_empty

ARGS_USAGE = "[[title author]|ISBN]"
STATE_HELP = "the state of the book, must be one of 'none' 'reading' 'finished' 'tbr' 'dnf'"
TIMESTAMP_FORMATS = [settings.timestamp_format]


@dataclass
class CliState:
    """Global options shared by every command."""
    isbn_mode: bool = False
    lookup: bool = False
    db_file: Optional[str] = None

    def library(self) -> Library:
        return Library(BookStore(self.db_file))


def reports_errors(func):
    """Render tracker errors as 'Error: ...' on stderr and exit with code 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (BookTrackerError, ValueError, LookupError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)
    return wrapper


app = typer.Typer(help="track your books locally", no_args_is_help=True)


@app.callback()
def _global_options(
    ctx: typer.Context,
    isbn_mode: bool = typer.Option(False, "--ISBN", "-I", help="use ISBN instead of title and author pair"),
    lookup: bool = typer.Option(
        False, "--lookup", "-L",
        help="use openlibrary to look up details about a book and add those details to the database",
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="output format: plain | json | rich (default: plain)",
    ),
    db_file: Optional[str] = typer.Option(None, "--db", help="path of the sqlite database file"),
):
    """Global options (identity mode, lookup, output mode, database)."""
    logging.basicConfig(level=settings.log_level)
    if output:
        try:
            set_output_mode(output)
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--output")
    ctx.obj = CliState(isbn_mode=isbn_mode, lookup=lookup, db_file=db_file)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj or CliState()


@app.command("add", help=f"add a new book {ARGS_USAGE}")
@reports_errors
def cli_add(
    ctx: typer.Context,
    title: Optional[str] = typer.Argument(None, help="the title of the book, or its ISBN with -I"),
    author: Optional[str] = typer.Argument(None, help="the name of the author"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="the ISBN number of the book"),
    series: Optional[str] = typer.Option(None, "--series", "-se", help="the name of the series the book belongs to"),
    state: str = typer.Option("none", "--state", "-st", help=STATE_HELP),
    started: Optional[datetime] = typer.Option(
        None, "--started", "-s", formats=TIMESTAMP_FORMATS, help="the date you started the book"),
    finished: Optional[datetime] = typer.Option(
        None, "--finished", "-f", formats=TIMESTAMP_FORMATS, help="the date you finished the book"),
    genres: Optional[str] = typer.Option(None, "--genres", "-g", help="a list of comma separated genres genre1,genre2"),
):
    opts = _state(ctx)
    identity = resolve_identity(opts.isbn_mode, title, author, isbn, isbn is not None)
    book = opts.library().add_book(
        identity,
        isbn=attached_isbn(opts.isbn_mode, isbn, isbn is not None),
        series=series,
        state=parse_state(state),
        started_at=started,
        finished_at=finished,
        genres=parse_genres(genres),
        lookup=opts.lookup,
    )
    print_book(book, "added")


@app.command("start", help=f"start a book {ARGS_USAGE}")
@reports_errors
def cli_start(
    ctx: typer.Context,
    title: Optional[str] = typer.Argument(None, help="the title of the book, or its ISBN with -I"),
    author: Optional[str] = typer.Argument(None, help="the name of the author"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="the ISBN number of the book"),
    series: Optional[str] = typer.Option(None, "--series", "-se", help="the name of the series the book belongs to"),
    started: Optional[datetime] = typer.Option(
        None, "--started", "-s", formats=TIMESTAMP_FORMATS, help="the date you started the book (default: now)"),
    genres: Optional[str] = typer.Option(None, "--genres", "-g", help="a list of comma separated genres genre1,genre2"),
):
    opts = _state(ctx)
    identity = resolve_identity(opts.isbn_mode, title, author, isbn, isbn is not None)
    book = opts.library().start_book(
        identity,
        isbn=attached_isbn(opts.isbn_mode, isbn, isbn is not None),
        series=series,
        started_at=started,
        genres=parse_genres(genres),
        lookup=opts.lookup,
    )
    print_book(book, "started")


@app.command("finish", help=f"finish a book that you started {ARGS_USAGE}")
@reports_errors
def cli_finish(
    ctx: typer.Context,
    title: Optional[str] = typer.Argument(None, help="the title of the book, or its ISBN with -I"),
    author: Optional[str] = typer.Argument(None, help="the name of the author"),
    state: Optional[str] = typer.Option(None, "--state", "-st", help="'finished' (default) or 'dnf'"),
    finished: Optional[datetime] = typer.Option(
        None, "--finished", "-f", formats=TIMESTAMP_FORMATS, help="the date you finished the book (default: now)"),
):
    opts = _state(ctx)
    identity = resolve_identity(opts.isbn_mode, title, author)
    book = opts.library().finish_book(identity, state=parse_state(state), finished_at=finished)
    print_book(book, "finished")


@app.command("update", help=f"update info about a book {ARGS_USAGE}")
@reports_errors
def cli_update(
    ctx: typer.Context,
    title: Optional[str] = typer.Argument(None, help="the title of the book, or its ISBN with -I"),
    author: Optional[str] = typer.Argument(None, help="the name of the author"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="the new ISBN number of the book"),
    new_title: Optional[str] = typer.Option(None, "--title", "-t", help="the new title of the book"),
    new_author: Optional[str] = typer.Option(None, "--author", "-a", help="the new author who wrote the book"),
    series: Optional[str] = typer.Option(None, "--series", "-se", help="the name of the series the book belongs to"),
    state: Optional[str] = typer.Option(None, "--state", "-st", help=STATE_HELP),
    started: Optional[datetime] = typer.Option(
        None, "--started", "-s", formats=TIMESTAMP_FORMATS, help="the date you started the book"),
    finished: Optional[datetime] = typer.Option(
        None, "--finished", "-f", formats=TIMESTAMP_FORMATS, help="the date you finished the book"),
    genres: Optional[str] = typer.Option(None, "--genres", "-g", help="a list of comma separated genres genre1,genre2"),
):
    opts = _state(ctx)
    # with -I the ISBN names the book and --isbn must agree with it;
    # otherwise --isbn is the new value to store
    identity = resolve_identity(opts.isbn_mode, title, author, isbn, isbn is not None)
    book = opts.library().update_book(
        identity,
        isbn=None if opts.isbn_mode else isbn,
        title=require_non_empty("title", new_title),
        author=require_non_empty("author", new_author),
        series=series,
        state=parse_state(state),
        started_at=started,
        finished_at=finished,
        genres=parse_genres(genres),
    )
    print_book(book, "updated")


@app.command("remove", help=f"remove a book from the database {ARGS_USAGE}")
@reports_errors
def cli_remove(
    ctx: typer.Context,
    title: Optional[str] = typer.Argument(None, help="the title of the book, or its ISBN with -I"),
    author: Optional[str] = typer.Argument(None, help="the name of the author"),
):
    opts = _state(ctx)
    identity = resolve_identity(opts.isbn_mode, title, author)
    opts.library().remove_book(identity)
    print(f"Book {identity} has been removed.")


@app.command("list")
@reports_errors
def cli_list(
    ctx: typer.Context,
    state: Optional[str] = typer.Option(None, "--state", "-st", help="only list books in this state"),
):
    """list out all of the books in the database"""
    books = _state(ctx).library().list_books(parse_state(state))
    print_list_result(books)


@app.command("search")
@reports_errors
def cli_search(ctx: typer.Context, isbn: str = typer.Argument(..., help="the ISBN to look up")):
    """lookup an ISBN number on openlibrary"""
    entry = _state(ctx).library().search_catalog(isbn)
    print_catalog_result(entry)


@app.command("stats")
@reports_errors
def cli_stats(ctx: typer.Context):
    """show how many books are in each reading state"""
    print_stats_result(_state(ctx).library().get_statistics())


def run() -> None:
    app(prog_name=settings.app_name)


if __name__ == "__main__":
    run()
