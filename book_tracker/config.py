import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    # Database settings
    db_file: str = os.getenv("BOOK_TRACKER_DB_FILE", "books.db")

    # Open Library settings
    openlibrary_url: str = os.getenv("OPENLIBRARY_URL", "https://openlibrary.org")
    openlibrary_timeout: float = float(os.getenv("OPENLIBRARY_TIMEOUT", "10"))

    # CLI settings
    output_mode: str = os.getenv("BOOK_TRACKER_OUTPUT", "plain")
    timestamp_format: str = os.getenv("BOOK_TRACKER_TIMESTAMP_FORMAT", "%Y-%m-%dT%H:%M:%S")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING").upper()

    # Application settings
    app_name: str = os.getenv("APP_NAME", "bookTracker")


settings = Settings()
