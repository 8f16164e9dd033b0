"""Error kinds raised by the tracker core.

Every failure the core can produce has its own exception class so the CLI can
render it without inspecting message text. Classes also inherit from the
builtin they specialize (``ValueError`` for bad input, ``LookupError`` for a
missing record) so callers that only care about the broad category can keep
catching those.
"""

from typing import Iterable, Optional


class BookTrackerError(Exception):
    """Base class for all tracker errors."""


class InvalidIsbn(BookTrackerError, ValueError):
    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"'{raw}' is not a valid ISBN number")


class MissingIdentity(BookTrackerError, ValueError):
    """Neither a usable ISBN nor a complete (title, author) pair was supplied."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = tuple(missing)
        names = " and ".join(self.missing)
        super().__init__(f"{names} must be provided or use '-I ISBN'")


class ConflictingArguments(BookTrackerError, ValueError):
    """Mutually exclusive identity inputs were supplied together."""


class IdentityConflict(ConflictingArguments):
    def __init__(self, positional: str, flag: str) -> None:
        self.positional = positional
        self.flag = flag
        super().__init__(
            f"isbn was set twice and they do not match: ISBN = '{positional}' isbn = '{flag}'"
        )


class InvalidState(BookTrackerError, ValueError):
    def __init__(self, name: str, allowed: Iterable[str]) -> None:
        self.name = name
        allowed_text = " ".join(f"'{a}'" for a in allowed)
        super().__init__(
            f"'{name}' is not a valid state for a book, state must be one of {allowed_text}"
        )


class InvalidStateForTransition(BookTrackerError, ValueError):
    def __init__(self, command: str, state, reason: Optional[str] = None) -> None:
        self.command = command
        self.state = state
        message = reason or f"cannot {command} a book into state '{state}'"
        super().__init__(message)


class AlreadyExists(BookTrackerError):
    def __init__(self, identity) -> None:
        self.identity = identity
        super().__init__(f"book {identity} already exists")


class NotFound(BookTrackerError, LookupError):
    def __init__(self, identity) -> None:
        self.identity = identity
        super().__init__(f"book {identity} not found")


class StorageFailure(BookTrackerError):
    """The storage layer itself failed; the original error is chained."""


class ExternalServiceError(BookTrackerError):
    """The catalog service could not be reached."""


class InvalidField(BookTrackerError, ValueError):
    """A field value was rejected before reaching storage."""


class NothingToUpdate(BookTrackerError, ValueError):
    def __init__(self) -> None:
        super().__init__("Nothing to update. Provide at least one field.")
