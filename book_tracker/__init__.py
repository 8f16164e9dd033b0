"""Book Tracker - Core Application Package

This package contains the core application modules including:
- CLI interface (main.py)
- Reading operations (library.py)
- Identity resolution and reading lifecycle (identity.py, lifecycle.py, guard.py)
- Data models (book.py)
- Database layer (database.py)
"""

__version__ = "0.1.0"
