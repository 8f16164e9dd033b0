from typing import Optional

from book_tracker.book import BookIdentity, BookRecord
from book_tracker.errors import AlreadyExists, NotFound


class ExistenceGuard:
    """Checks presence or absence of a book before a write.

    Each check is exactly one storage lookup.
    """

    def __init__(self, store) -> None:
        self.store = store

    def lookup(self, identity: BookIdentity) -> Optional[BookRecord]:
        return self.store.find(identity)

    def exists(self, identity: BookIdentity) -> bool:
        return self.lookup(identity) is not None

    def require_absent(self, identity: BookIdentity) -> None:
        if self.lookup(identity) is not None:
            raise AlreadyExists(identity)

    def require_present(self, identity: BookIdentity) -> BookRecord:
        record = self.lookup(identity)
        if record is None:
            raise NotFound(identity)
        return record
