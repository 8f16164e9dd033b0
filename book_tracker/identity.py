"""Turn raw command inputs into a single book identity.

A command names its book either by ISBN (global ``-I`` switch, the ISBN is
given in the ``title`` position) or by a title and author pair. Nothing in
here touches storage.
"""

from typing import Optional

from book_tracker.book import BookIdentity, IsbnIdentity, TitleAuthorIdentity
from book_tracker.errors import ConflictingArguments, IdentityConflict, MissingIdentity
from book_tracker.utils.validators import IsbnCodec


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def resolve_identity(
    isbn_mode: bool,
    title: Optional[str],
    author: Optional[str],
    isbn_flag: Optional[str] = None,
    isbn_flag_set: bool = False,
) -> BookIdentity:
    if not isbn_mode:
        missing = [name for name, value in (("title", title), ("author", author)) if _blank(value)]
        if missing:
            raise MissingIdentity(missing)
        return TitleAuthorIdentity(title.strip().lower(), author.strip().lower())

    # the ISBN literal is checked before anything else so a bad one always
    # reports as InvalidIsbn
    isbn = IsbnCodec.require_valid(title or "")
    if not _blank(author):
        raise ConflictingArguments(
            f"'{author}' given as author but ISBN mode identifies the book by ISBN only"
        )
    if isbn_flag_set and IsbnCodec.clean(isbn_flag or "") != IsbnCodec.clean(title):
        raise IdentityConflict(title, isbn_flag or "")
    return IsbnIdentity(isbn)


def attached_isbn(isbn_mode: bool, isbn_flag: Optional[str], isbn_flag_set: bool) -> Optional[str]:
    """ISBN to store on a record named by title and author.

    In ISBN mode the identity already carries the ISBN, so this returns None.
    """
    if isbn_mode or not isbn_flag_set:
        return None
    return IsbnCodec.require_valid(isbn_flag or "")
