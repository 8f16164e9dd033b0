import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from book_tracker.book import BookIdentity, BookRecord, IsbnIdentity, ReadingState, TitleAuthorIdentity
from book_tracker.config import settings
from book_tracker.errors import AlreadyExists, InvalidField, StorageFailure

logger = logging.getLogger(__name__)

# Storage format, version 1. This is the only place the integer codes of the
# reading states are defined; changing them requires a new schema version.
SCHEMA_VERSION = 1
STATE_CODES: Dict[ReadingState, int] = {
    ReadingState.NONE: 0,
    ReadingState.READING: 1,
    ReadingState.FINISHED: 2,
    ReadingState.TBR: 3,
    ReadingState.DNF: 4,
}
CODE_STATES: Dict[int, ReadingState] = {code: state for state, code in STATE_CODES.items()}

SCHEMA = """
CREATE TABLE IF NOT EXISTS books (
    id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    isbn TEXT,
    author TEXT NOT NULL,
    title TEXT NOT NULL,
    series TEXT,
    date_started INTEGER,
    date_finished INTEGER,
    status INTEGER NOT NULL DEFAULT 0,
    genres TEXT
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_books_isbn
    ON books(isbn) WHERE isbn IS NOT NULL AND isbn <> '';
CREATE UNIQUE INDEX IF NOT EXISTS idx_books_title_author
    ON books(title, author) WHERE title <> '' AND author <> '';
CREATE INDEX IF NOT EXISTS idx_books_status ON books(status);
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# record attribute -> column
COLUMNS = {
    "isbn": "isbn",
    "title": "title",
    "author": "author",
    "series": "series",
    "state": "status",
    "started_at": "date_started",
    "finished_at": "date_finished",
    "genres": "genres",
}


def encode_genres(genres: List[str]) -> str:
    """Join genres with ``,``; a literal comma is written ``\\,`` and a backslash ``\\\\``."""
    return ",".join(g.replace("\\", "\\\\").replace(",", "\\,") for g in genres)


def decode_genres(text: Optional[str]) -> List[str]:
    if not text:
        return []
    genres: List[str] = []
    current: List[str] = []
    escaped = False
    for ch in text:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == ",":
            genres.append("".join(current))
            current = []
        else:
            current.append(ch)
    if escaped:
        # dangling backslash at the end is kept literally
        current.append("\\")
    genres.append("".join(current))
    return [g for g in genres if g]


def _to_column(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name == "state":
        return STATE_CODES[value]
    if name in ("started_at", "finished_at"):
        return int(value.timestamp())
    if name == "genres":
        return encode_genres(value)
    return value


def _row_to_record(row: sqlite3.Row) -> BookRecord:
    started, finished = row["date_started"], row["date_finished"]
    return BookRecord(
        isbn=row["isbn"] or None,
        title=row["title"],
        author=row["author"],
        series=row["series"] or None,
        state=CODE_STATES[row["status"]],
        started_at=datetime.fromtimestamp(started) if started is not None else None,
        finished_at=datetime.fromtimestamp(finished) if finished is not None else None,
        genres=decode_genres(row["genres"]),
    )


def _identity_of(record: BookRecord, exc: sqlite3.IntegrityError) -> BookIdentity:
    if record.isbn and "isbn" in str(exc):
        return IsbnIdentity(record.isbn)
    if record.title and record.author:
        return TitleAuthorIdentity(record.title.lower(), record.author.lower())
    return IsbnIdentity(record.isbn or "")


class BookStore:
    """SQLite storage for tracked books.

    A connection is opened per operation and closed afterwards.
    """

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or settings.db_file
        self.initialize()

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_file)
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(SCHEMA)
            if conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0] == 0:
                logger.info("Creating book database %s (schema version %d)", self.db_file, SCHEMA_VERSION)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            conn.commit()
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc
        finally:
            conn.close()

    # ------------------------- Lookups ------------------------- #
    def _fetch_one(self, query: str, params: tuple) -> Optional[BookRecord]:
        conn = self._connect()
        try:
            row = conn.execute(query, params).fetchone()
            return _row_to_record(row) if row else None
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc
        finally:
            conn.close()

    def _fetch_all(self, query: str, params: tuple = ()) -> List[BookRecord]:
        conn = self._connect()
        try:
            return [_row_to_record(row) for row in conn.execute(query, params).fetchall()]
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc
        finally:
            conn.close()

    def find_by_isbn(self, isbn: str) -> Optional[BookRecord]:
        return self._fetch_one("SELECT * FROM books WHERE isbn = ?", (isbn,))

    def find_by_title_author(self, title: str, author: str) -> Optional[BookRecord]:
        return self._fetch_one(
            "SELECT * FROM books WHERE title = ? AND author = ?",
            (title.lower(), author.lower()),
        )

    def find(self, identity: BookIdentity) -> Optional[BookRecord]:
        if isinstance(identity, IsbnIdentity):
            return self.find_by_isbn(identity.value)
        return self.find_by_title_author(identity.title, identity.author)

    def list_books(self, state: Optional[ReadingState] = None) -> List[BookRecord]:
        if state is None:
            return self._fetch_all("SELECT * FROM books ORDER BY id")
        return self._fetch_all("SELECT * FROM books WHERE status = ? ORDER BY id", (STATE_CODES[state],))

    def count_by_state(self) -> Dict[ReadingState, int]:
        counts = {state: 0 for state in ReadingState}
        conn = self._connect()
        try:
            for status, count in conn.execute("SELECT status, COUNT(*) FROM books GROUP BY status"):
                counts[CODE_STATES[status]] = count
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc
        finally:
            conn.close()
        return counts

    # ------------------------- Writes ------------------------- #
    def insert(self, record: BookRecord) -> None:
        """Insert a record; the unique indexes reject duplicates with ``AlreadyExists``."""
        values = {name: _to_column(name, getattr(record, name)) for name in COLUMNS}
        values["title"] = (record.title or "").lower()
        values["author"] = (record.author or "").lower()
        columns = ", ".join(COLUMNS[name] for name in values)
        placeholders = ", ".join("?" for _ in values)
        conn = self._connect()
        try:
            conn.execute(f"INSERT INTO books ({columns}) VALUES ({placeholders})", tuple(values.values()))
            conn.commit()
            logger.info("Inserted book isbn=%s title=%r state=%s", record.isbn, record.title, record.state)
        except sqlite3.IntegrityError as exc:
            raise AlreadyExists(_identity_of(record, exc)) from exc
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc
        finally:
            conn.close()

    def update(self, identity: BookIdentity, fields: Dict[str, Any]) -> int:
        """Write a partial set of fields to the record matching ``identity``."""
        if not fields:
            return 0
        unknown = set(fields) - set(COLUMNS)
        if unknown:
            raise InvalidField(f"Unknown book fields: {', '.join(sorted(unknown))}")
        values = {name: _to_column(name, value) for name, value in fields.items()}
        for name in ("title", "author"):
            if values.get(name):
                values[name] = values[name].lower()
        assignments = ", ".join(f"{COLUMNS[name]} = ?" for name in values)
        where, params = self._where(identity)
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"UPDATE books SET {assignments} WHERE {where}", tuple(values.values()) + params
            )
            conn.commit()
            logger.info("Updated book %s: %s", identity, ", ".join(values))
            return cursor.rowcount
        except sqlite3.IntegrityError as exc:
            raise AlreadyExists(self._conflicting_identity(fields, identity)) from exc
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc
        finally:
            conn.close()

    def delete(self, identity: BookIdentity) -> bool:
        where, params = self._where(identity)
        conn = self._connect()
        try:
            cursor = conn.execute(f"DELETE FROM books WHERE {where}", params)
            conn.commit()
            logger.info("Deleted book %s", identity)
            return cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc
        finally:
            conn.close()

    @staticmethod
    def _where(identity: BookIdentity):
        if isinstance(identity, IsbnIdentity):
            return "isbn = ?", (identity.value,)
        return "title = ? AND author = ?", (identity.title.lower(), identity.author.lower())

    @staticmethod
    def _conflicting_identity(fields: Dict[str, Any], identity: BookIdentity) -> BookIdentity:
        if fields.get("isbn"):
            return IsbnIdentity(fields["isbn"])
        if fields.get("title") or fields.get("author"):
            title = fields.get("title") or getattr(identity, "title", "")
            author = fields.get("author") or getattr(identity, "author", "")
            if title and author:
                return TitleAuthorIdentity(title.lower(), author.lower())
        return identity
