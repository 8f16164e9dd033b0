import sqlite3
from datetime import datetime

import pytest

from book_tracker.book import BookRecord, IsbnIdentity, ReadingState, TitleAuthorIdentity
from book_tracker.database import (
    STATE_CODES,
    BookStore,
    decode_genres,
    encode_genres,
)
from book_tracker.errors import AlreadyExists, InvalidField, StorageFailure


def test_state_codes_are_frozen():
    assert {state.name: code for state, code in STATE_CODES.items()} == {
        "NONE": 0, "READING": 1, "FINISHED": 2, "TBR": 3, "DNF": 4,
    }


def test_genres_without_commas_use_plain_join():
    assert encode_genres(["fantasy", "classic"]) == "fantasy,classic"
    assert decode_genres("fantasy,classic") == ["fantasy", "classic"]
    assert decode_genres(None) == []
    assert decode_genres("") == []


def test_genres_with_delimiter_are_escaped():
    genres = ["sci-fi, hard", "back\\slash", "classic"]
    encoded = encode_genres(genres)
    assert encoded == "sci-fi\\, hard,back\\\\slash,classic"
    assert decode_genres(encoded) == genres


def test_insert_and_find(store):
    record = BookRecord(
        title="The Hobbit",
        author="J. R. R. Tolkien",
        isbn="9780306406157",
        series="Middle-earth",
        state=ReadingState.READING,
        started_at=datetime(2024, 1, 2, 3, 4, 5),
        genres=["fantasy", "adventure, classic"],
    )
    store.insert(record)

    by_isbn = store.find_by_isbn("9780306406157")
    by_pair = store.find_by_title_author("the hobbit", "j. r. r. tolkien")
    assert by_isbn == by_pair
    assert by_isbn.title == "the hobbit"
    assert by_isbn.state is ReadingState.READING
    assert by_isbn.started_at == datetime(2024, 1, 2, 3, 4, 5)
    assert by_isbn.finished_at is None
    assert by_isbn.genres == ["fantasy", "adventure, classic"]


def test_status_is_stored_as_integer(store):
    store.insert(BookRecord(isbn="0306406152", state=ReadingState.TBR))
    conn = sqlite3.connect(store.db_file)
    try:
        status, finished = conn.execute("SELECT status, date_finished FROM books").fetchone()
    finally:
        conn.close()
    assert status == 3
    assert finished is None


def test_duplicate_isbn_insert_is_rejected(store):
    store.insert(BookRecord(isbn="0306406152"))
    with pytest.raises(AlreadyExists) as exc:
        store.insert(BookRecord(isbn="0306406152"))
    assert exc.value.identity == IsbnIdentity("0306406152")


def test_duplicate_title_author_insert_is_rejected(store):
    store.insert(BookRecord(title="dune", author="frank herbert"))
    with pytest.raises(AlreadyExists) as exc:
        store.insert(BookRecord(title="Dune", author="Frank Herbert"))
    assert exc.value.identity == TitleAuthorIdentity("dune", "frank herbert")


def test_isbn_only_books_do_not_collide_on_empty_title(store):
    store.insert(BookRecord(isbn="0306406152"))
    store.insert(BookRecord(isbn="9780306406157"))
    assert len(store.list_books()) == 2


def test_update_and_delete(store):
    identity = TitleAuthorIdentity("dune", "frank herbert")
    store.insert(BookRecord(title="dune", author="frank herbert"))
    assert store.update(identity, {"state": ReadingState.DNF, "series": "Dune"}) == 1
    record = store.find(identity)
    assert record.state is ReadingState.DNF
    assert record.series == "Dune"

    assert store.delete(identity) is True
    assert store.find(identity) is None
    assert store.delete(identity) is False


def test_update_rejects_unknown_fields(store):
    with pytest.raises(InvalidField, match="Unknown book fields: rating"):
        store.update(IsbnIdentity("0306406152"), {"rating": 5})


def test_list_and_counts(store):
    store.insert(BookRecord(title="dune", author="frank herbert", state=ReadingState.READING))
    store.insert(BookRecord(title="emma", author="jane austen", state=ReadingState.FINISHED))
    store.insert(BookRecord(isbn="0306406152", state=ReadingState.READING))

    assert [b.title for b in store.list_books()] == ["dune", "emma", ""]
    assert [b.isbn for b in store.list_books(ReadingState.READING)] == [None, "0306406152"]

    counts = store.count_by_state()
    assert counts[ReadingState.READING] == 2
    assert counts[ReadingState.FINISHED] == 1
    assert counts[ReadingState.DNF] == 0


def test_unreachable_database_is_storage_failure(tmp_path):
    with pytest.raises(StorageFailure):
        BookStore(str(tmp_path / "missing" / "dir" / "books.db"))
