"""Book Tracker - Utilities Package

This package contains helpers shared by the CLI and the core:
- Input validators (ISBN checksum, state names, genres)
- Output rendering (plain, json, rich)
"""
