import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from book_tracker.config import settings
from book_tracker.errors import ExternalServiceError
from book_tracker.utils.validators import IsbnCodec

logger = logging.getLogger(__name__)


@dataclass
class CatalogEntry:
    """Title and authors the catalog returned for an ISBN"""
    isbn: str
    title: str
    authors: List[str] = field(default_factory=list)

    @property
    def author(self) -> str:
        return ", ".join(self.authors) if self.authors else "Unknown Author"

    def to_dict(self) -> Dict[str, Any]:
        return {"isbn": self.isbn, "title": self.title, "authors": self.authors}


class OpenLibraryService:
    """Looks up book details on Open Library's search API.

    Callers must pass an ISBN that already passed validation. One request is
    made per lookup.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.openlibrary_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.openlibrary_timeout

    def lookup(self, isbn: str) -> CatalogEntry:
        clean = IsbnCodec.clean(isbn)
        url = f"{self.base_url}/search.json?q={clean}&fields=title,author_name"
        logger.info(f"Searching '{clean}' on Open Library")
        start_time = time.time()
        try:
            response = httpx.get(url, timeout=self.timeout)
        except httpx.RequestError as exc:
            logger.error(f"Open Library request failed: {exc}")
            raise ExternalServiceError("Open Library unreachable") from exc

        response_time_ms = int((time.time() - start_time) * 1000)
        if response.status_code != 200:
            logger.error(f"Open Library returned {response.status_code} in {response_time_ms}ms")
            raise LookupError(f"no book found for ISBN {clean}")

        docs = (response.json() or {}).get("docs") or []
        if not docs or not docs[0].get("title"):
            raise LookupError(f"no book found for ISBN {clean}")

        first = docs[0]
        logger.info(f"Open Library answered in {response_time_ms}ms")
        return CatalogEntry(isbn=clean, title=first["title"], authors=list(first.get("author_name") or []))
