"""Book Tracker - Services Package

This package contains service modules for external integrations:
- Open Library catalog lookup
"""
