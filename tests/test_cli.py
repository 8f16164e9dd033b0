import json
import sqlite3
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from book_tracker.library import Library
from book_tracker.main import app
from book_tracker.services.openlibrary import CatalogEntry

runner = CliRunner()


@pytest.fixture
def invoke(db_file):
    def _invoke(*args):
        return runner.invoke(app, ["--db", db_file, *args])
    return _invoke


def _status(db_file, isbn):
    conn = sqlite3.connect(db_file)
    try:
        return conn.execute("SELECT status, date_finished FROM books WHERE isbn = ?", (isbn,)).fetchone()
    finally:
        conn.close()


def test_list_no_books(invoke):
    result = invoke("list")
    assert result.exit_code == 0
    assert "No books tracked." in result.stdout


def test_start_and_finish_by_isbn(invoke, db_file):
    result = invoke("-I", "start", "978-0-306-40615-7")
    assert result.exit_code == 0, result.output
    assert "Started: ISBN 9780306406157" in result.stdout
    assert _status(db_file, "9780306406157")[0] == 1

    result = invoke("-I", "start", "9780306406157")
    assert result.exit_code == 1
    assert "Error: book with ISBN 9780306406157 already exists" in result.output

    result = invoke("-I", "finish", "9780306406157")
    assert result.exit_code == 0, result.output
    status, finished = _status(db_file, "9780306406157")
    assert status == 2
    assert finished is not None

    result = invoke("-I", "finish", "0306406152")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_start_by_title_author(invoke):
    result = invoke(
        "start", "The Hobbit", "J. R. R. Tolkien",
        "--series", "Middle-earth", "--genres", "fantasy,classic", "--started", "2024-01-02T10:00:00",
    )
    assert result.exit_code == 0, result.output
    assert "Title   : The Hobbit" in result.stdout
    assert "Started : 2024-01-02 10:00:00" in result.stdout
    assert "Genres  : fantasy, classic" in result.stdout

    result = invoke("list")
    assert "READING - The Hobbit by J. R. R. Tolkien" in result.stdout


def test_missing_identity(invoke):
    result = invoke("start")
    assert result.exit_code == 1
    assert "title and author must be provided or use '-I ISBN'" in result.output

    result = invoke("start", "The Hobbit")
    assert result.exit_code == 1
    assert "author must be provided" in result.output


def test_invalid_isbn(invoke):
    result = invoke("-I", "start", "9780306406150", "--isbn", "9780306406150")
    assert result.exit_code == 1
    assert "'9780306406150' is not a valid ISBN number" in result.output


def test_conflicting_isbn_flag(invoke):
    result = invoke("-I", "start", "9780306406157", "--isbn", "0306406152")
    assert result.exit_code == 1
    assert "isbn was set twice and they do not match" in result.output
    assert "'9780306406157'" in result.output and "'0306406152'" in result.output


def test_author_in_isbn_mode(invoke):
    result = invoke("-I", "add", "9780306406157", "Tolkien")
    assert result.exit_code == 1
    assert "ISBN mode" in result.output


def test_finish_into_tbr_is_rejected(invoke):
    invoke("start", "Dune", "Frank Herbert")
    result = invoke("finish", "dune", "frank herbert", "--state", "tbr")
    assert result.exit_code == 1
    assert "cannot finish a book into state 'TBR'" in result.output


def test_invalid_state_name(invoke):
    result = invoke("add", "Dune", "Frank Herbert", "--state", "paused")
    assert result.exit_code == 1
    assert "'paused' is not a valid state for a book" in result.output


def test_add_update_remove(invoke):
    result = invoke(
        "add", "Emma", "Jane Austen", "--state", "finished",
        "--started", "2020-01-01T00:00:00", "--finished", "2020-02-01T00:00:00",
    )
    assert result.exit_code == 0, result.output
    assert "Took    : 31 days, 0:00:00" in result.stdout

    result = invoke("update", "emma", "jane austen", "--state", "reading", "--title", "Emma (annotated)")
    assert result.exit_code == 0, result.output
    assert "Status  : READING" in result.stdout

    result = invoke("update", "emma", "jane austen", "--author", " ")
    assert result.exit_code == 1
    assert "author can not be empty" in result.output

    result = invoke("remove", "emma (annotated)", "jane austen")
    assert result.exit_code == 0, result.output
    assert "has been removed" in result.stdout

    result = invoke("remove", "emma (annotated)", "jane austen")
    assert result.exit_code == 1


def test_list_filter_and_json_output(invoke):
    invoke("start", "Dune", "Frank Herbert")
    invoke("add", "Emma", "Jane Austen", "--state", "tbr")

    result = invoke("-o", "json", "list", "--state", "tbr")
    assert result.exit_code == 0, result.output
    books = json.loads(result.stdout)
    assert [b["title"] for b in books] == ["emma"]
    assert books[0]["state"] == "TBR"


def test_stats(invoke):
    invoke("start", "Dune", "Frank Herbert")
    result = invoke("stats")
    assert result.exit_code == 0
    assert "READING: 1" in result.stdout
    assert "TOTAL: 1" in result.stdout


def test_search(invoke, monkeypatch):
    lookup = MagicMock(return_value=CatalogEntry("9780306406157", "The Hobbit", ["J. R. R. Tolkien"]))
    monkeypatch.setattr(Library, "search_catalog", lookup)

    result = invoke("search", "9780306406157")
    assert result.exit_code == 0, result.output
    assert "title: The Hobbit" in result.stdout
    assert "author: J. R. R. Tolkien" in result.stdout
    lookup.assert_called_once_with("9780306406157")


def test_search_invalid_isbn(invoke):
    result = invoke("search", "12345")
    assert result.exit_code == 1
    assert "not a valid ISBN" in result.output


def test_lenient_isbn_literal_is_stored_normalized(invoke, db_file):
    result = invoke("-I", "start", "ISBN 978-0-306-40615-7")
    assert result.exit_code == 0, result.output
    assert _status(db_file, "9780306406157")[0] == 1

    result = invoke("-I", "start", "9780306406157")
    assert result.exit_code == 1
    assert "already exists" in result.output

    result = invoke("-I", "finish", "9780306406157")
    assert result.exit_code == 0, result.output
    assert _status(db_file, "9780306406157")[0] == 2


def test_update_conflicting_isbn_flag_in_isbn_mode(invoke, db_file):
    invoke("-I", "start", "9780306406157")
    result = invoke("-I", "update", "9780306406157", "--isbn", "0306406152")
    assert result.exit_code == 1
    assert "isbn was set twice and they do not match" in result.output
    assert _status(db_file, "9780306406157")[0] == 1
    assert _status(db_file, "0306406152") is None


def test_update_matching_isbn_flag_in_isbn_mode(invoke, db_file):
    invoke("-I", "start", "9780306406157")
    result = invoke("-I", "update", "978-0-306-40615-7", "--isbn", "9780306406157", "--state", "dnf")
    assert result.exit_code == 0, result.output
    assert _status(db_file, "9780306406157")[0] == 4


def test_update_without_fields(invoke):
    invoke("start", "Dune", "Frank Herbert")
    result = invoke("update", "dune", "frank herbert")
    assert result.exit_code == 1
    assert "Nothing to update. Provide at least one field." in result.output
