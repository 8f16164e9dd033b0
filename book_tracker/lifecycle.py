"""Reading lifecycle: which states each command may produce and what it stamps.

``start`` and ``finish`` follow the normal reading order. ``add`` and
``update`` write whatever they are given so history can be backfilled or
corrected; ``update`` in particular may move a finished book back to any
state, which ``finish`` never allows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from book_tracker.book import ReadingState
from book_tracker.errors import InvalidStateForTransition

FINISH_TARGETS = (ReadingState.FINISHED, ReadingState.DNF)


@dataclass
class Transition:
    """Values a command writes: a state plus the timestamps it stamps."""

    state: Optional[ReadingState] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    # names of the fields above that must be written
    stamps: tuple = field(default_factory=tuple)

    def fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.stamps}


def _now(now: Optional[datetime]) -> datetime:
    return (now or datetime.now()).replace(microsecond=0)


def start(started_at: Optional[datetime] = None, now: Optional[datetime] = None) -> Transition:
    return Transition(
        state=ReadingState.READING,
        started_at=started_at or _now(now),
        stamps=("state", "started_at"),
    )


def finish(
    current: ReadingState,
    override: Optional[ReadingState] = None,
    finished_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Transition:
    target = override or ReadingState.FINISHED
    if target not in FINISH_TARGETS:
        raise InvalidStateForTransition(
            "finish", target,
            f"cannot finish a book into state '{target}', must be one of 'finished' 'dnf'",
        )
    if current.is_terminal:
        raise InvalidStateForTransition(
            "finish", target, f"book is already {current}, use 'update' to change it"
        )
    return Transition(
        state=target,
        finished_at=finished_at or _now(now),
        stamps=("state", "finished_at"),
    )


def add(
    state: Optional[ReadingState] = None,
    started_at: Optional[datetime] = None,
    finished_at: Optional[datetime] = None,
) -> Transition:
    return Transition(
        state=state or ReadingState.NONE,
        started_at=started_at,
        finished_at=finished_at,
        stamps=("state", "started_at", "finished_at"),
    )


def update(
    state: Optional[ReadingState] = None,
    started_at: Optional[datetime] = None,
    finished_at: Optional[datetime] = None,
) -> Transition:
    # no successor check here, see module docstring
    supplied = (("state", state), ("started_at", started_at), ("finished_at", finished_at))
    return Transition(
        state=state,
        started_at=started_at,
        finished_at=finished_at,
        stamps=tuple(name for name, value in supplied if value is not None),
    )
