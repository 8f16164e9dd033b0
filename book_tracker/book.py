from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Union

from book_tracker.errors import InvalidState, MissingIdentity


class ReadingState(Enum):
    """Lifecycle stage of a book.

    The persisted integer code is not defined here; see ``database.STATE_CODES``.
    """

    NONE = "none"
    TBR = "tbr"
    READING = "reading"
    FINISHED = "finished"
    DNF = "dnf"

    @classmethod
    def names(cls) -> List[str]:
        return [state.value for state in cls]

    @classmethod
    def from_name(cls, name: str) -> "ReadingState":
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            raise InvalidState(name, cls.names()) from None

    @property
    def is_terminal(self) -> bool:
        return self in (ReadingState.FINISHED, ReadingState.DNF)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IsbnIdentity:
    value: str

    def __str__(self) -> str:
        return f"with ISBN {self.value}"


@dataclass(frozen=True)
class TitleAuthorIdentity:
    title: str
    author: str

    def __post_init__(self) -> None:
        missing = [name for name, value in (("title", self.title), ("author", self.author)) if not value]
        if missing:
            raise MissingIdentity(missing)

    def __str__(self) -> str:
        return f"'{self.title}' by '{self.author}'"


BookIdentity = Union[IsbnIdentity, TitleAuthorIdentity]


@dataclass
class BookRecord:
    """A single tracked book as stored in the database."""

    title: str = ""
    author: str = ""
    isbn: Optional[str] = None
    series: Optional[str] = None
    state: ReadingState = ReadingState.NONE
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    genres: List[str] = field(default_factory=list)

    @property
    def took(self) -> Optional[timedelta]:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def __str__(self) -> str:
        def stamp(value: Optional[datetime]) -> str:
            return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"

        lines = [
            f"Title   : {self.title.title()}",
            f"Series  : {(self.series or '').title()}",
            f"Author  : {self.author.title()}",
            f"ISBN    : {self.isbn or ''}",
            f"Status  : {self.state}",
            f"Started : {stamp(self.started_at)}",
            f"Finished: {stamp(self.finished_at)}",
            f"Took    : {self.took if self.took is not None else '-'}",
            f"Genres  : {', '.join(self.genres)}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "series": self.series,
            "state": self.state.name,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "genres": list(self.genres),
        }

