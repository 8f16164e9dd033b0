import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from book_tracker import lifecycle
from book_tracker.book import BookIdentity, BookRecord, IsbnIdentity, ReadingState
from book_tracker.database import BookStore
from book_tracker.errors import NothingToUpdate
from book_tracker.guard import ExistenceGuard
from book_tracker.services.openlibrary import OpenLibraryService
from book_tracker.utils.validators import IsbnCodec

logger = logging.getLogger(__name__)


class Library:
    """Runs the reading commands against an injected store.

    Every operation resolves nothing itself: it receives an already resolved
    identity, performs one existence check through the guard, computes the
    values to write with the lifecycle rules and then writes once.
    """

    def __init__(
        self,
        store: BookStore,
        catalog: Optional[OpenLibraryService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.guard = ExistenceGuard(store)
        self.catalog = catalog
        self.clock = clock or datetime.now

    # ------------------------- Core operations ------------------------- #
    def start_book(
        self,
        identity: BookIdentity,
        *,
        isbn: Optional[str] = None,
        series: Optional[str] = None,
        started_at: Optional[datetime] = None,
        genres: Optional[List[str]] = None,
        lookup: bool = False,
    ) -> BookRecord:
        """Create a book in state READING. Fails with AlreadyExists if it is tracked."""
        self.guard.require_absent(identity)
        transition = lifecycle.start(started_at, now=self.clock())
        record = self._new_record(identity, isbn=isbn, series=series, genres=genres, lookup=lookup)
        record = replace(record, **transition.fields())
        self.store.insert(record)
        return record

    def finish_book(
        self,
        identity: BookIdentity,
        *,
        state: Optional[ReadingState] = None,
        finished_at: Optional[datetime] = None,
    ) -> BookRecord:
        """Move a tracked book to FINISHED (or the DNF override)."""
        record = self.guard.require_present(identity)
        transition = lifecycle.finish(record.state, state, finished_at, now=self.clock())
        fields = transition.fields()
        self.store.update(identity, fields)
        return replace(record, **fields)

    def add_book(
        self,
        identity: BookIdentity,
        *,
        isbn: Optional[str] = None,
        series: Optional[str] = None,
        state: Optional[ReadingState] = None,
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
        genres: Optional[List[str]] = None,
        lookup: bool = False,
    ) -> BookRecord:
        """Register a book with any state and timestamps, e.g. to backfill history."""
        self.guard.require_absent(identity)
        transition = lifecycle.add(state, started_at, finished_at)
        record = self._new_record(identity, isbn=isbn, series=series, genres=genres, lookup=lookup)
        record = replace(record, **transition.fields())
        self.store.insert(record)
        return record

    def update_book(
        self,
        identity: BookIdentity,
        *,
        isbn: Optional[str] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
        series: Optional[str] = None,
        state: Optional[ReadingState] = None,
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
        genres: Optional[List[str]] = None,
    ) -> BookRecord:
        """Overwrite any subset of fields. The new state is not checked against the old one."""
        fields: Dict[str, Any] = {}
        if isbn is not None:
            fields["isbn"] = IsbnCodec.require_valid(isbn)
        if title is not None:
            fields["title"] = title.strip().lower()
        if author is not None:
            fields["author"] = author.strip().lower()
        if series is not None:
            fields["series"] = series
        if genres is not None:
            fields["genres"] = genres
        fields.update(lifecycle.update(state, started_at, finished_at).fields())
        if not fields:
            raise NothingToUpdate()

        record = self.guard.require_present(identity)
        if state is not None and record.state.is_terminal and not state.is_terminal:
            logger.info(f"Reopening {identity}: {record.state} -> {state}")
        self.store.update(identity, fields)
        return replace(record, **fields)

    def remove_book(self, identity: BookIdentity) -> BookRecord:
        record = self.guard.require_present(identity)
        self.store.delete(identity)
        return record

    def find_book(self, identity: BookIdentity) -> Optional[BookRecord]:
        return self.guard.lookup(identity)

    def list_books(self, state: Optional[ReadingState] = None) -> List[BookRecord]:
        return self.store.list_books(state)

    def search_catalog(self, isbn: str):
        """Validate an ISBN and look it up in the catalog."""
        normalized = IsbnCodec.require_valid(isbn)
        return self._catalog().lookup(normalized)

    def get_statistics(self) -> Dict[str, int]:
        counts = self.store.count_by_state()
        stats = {state.value: counts[state] for state in ReadingState}
        stats["total"] = sum(counts.values())
        return stats

    # ------------------------- Helpers ------------------------- #
    def _catalog(self) -> OpenLibraryService:
        if self.catalog is None:
            self.catalog = OpenLibraryService()
        return self.catalog

    def _new_record(
        self,
        identity: BookIdentity,
        *,
        isbn: Optional[str],
        series: Optional[str],
        genres: Optional[List[str]],
        lookup: bool,
    ) -> BookRecord:
        record = BookRecord(series=series or None, genres=list(genres or []))
        if isinstance(identity, IsbnIdentity):
            record.isbn = identity.value
            if lookup:
                entry = self._catalog().lookup(identity.value)
                record.title = entry.title.lower()
                record.author = entry.author.lower()
        else:
            record.title = identity.title
            record.author = identity.author
            record.isbn = isbn
        return record
