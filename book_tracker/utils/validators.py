from typing import List, Optional

from book_tracker.book import ReadingState
from book_tracker.errors import InvalidField, InvalidIsbn


class IsbnCodec:
    """ISBN-10 / ISBN-13 cleaning and checksum validation.

    Validation is lenient on purpose: every character that is not a digit or
    an ``x``/``X`` is ignored instead of rejected, so ``"ISBN 0-306-40615-2"``
    is accepted.
    """

    @staticmethod
    def clean(raw: str) -> str:
        if raw is None:
            return ""
        return raw.replace("-", "").replace(" ", "")

    @staticmethod
    def digits(raw: str) -> List[int]:
        values = []
        for ch in raw or "":
            if ch in "xX":
                values.append(10)
            elif "0" <= ch <= "9":
                values.append(ord(ch) - ord("0"))
        return values

    @staticmethod
    def _valid_10(digits: List[int]) -> bool:
        if len(digits) != 10:
            return False
        total = sum((10 - i) * d for i, d in enumerate(digits))
        return total % 11 == 0

    @staticmethod
    def _valid_13(digits: List[int]) -> bool:
        if len(digits) != 13:
            return False
        total = sum(d if i % 2 == 0 else 3 * d for i, d in enumerate(digits))
        return total % 10 == 0

    @staticmethod
    def validate(raw: str) -> bool:
        digits = IsbnCodec.digits(raw)
        return IsbnCodec._valid_10(digits) or IsbnCodec._valid_13(digits)

    @staticmethod
    def normalize(raw: str) -> str:
        """Only the checksum characters, with ``x`` upper-cased.

        This is the stored form, so every spelling validate() accepts for one
        ISBN maps to the same key.
        """
        return "".join(ch.upper() for ch in raw or "" if ch in "xX" or "0" <= ch <= "9")

    @staticmethod
    def require_valid(raw: str) -> str:
        """Return the normalized ISBN or raise ``InvalidIsbn``."""
        if not IsbnCodec.validate(raw):
            raise InvalidIsbn(raw)
        return IsbnCodec.normalize(raw)


# --- per-field validators used by the CLI before calling the core --- #

def parse_state(name: Optional[str]) -> Optional[ReadingState]:
    if name is None:
        return None
    return ReadingState.from_name(name)


def parse_genres(raw: Optional[str]) -> Optional[List[str]]:
    """Split a ``genre1,genre2`` flag value; blank entries are dropped."""
    if raw is None:
        return None
    return [g.strip() for g in raw.split(",") if g.strip()]


def require_non_empty(field_name: str, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not value.strip():
        raise InvalidField(f"{field_name} can not be empty")
    return value.strip()
