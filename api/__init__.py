"""
FastAPI REST API for the Book Store.

This module provides:
- CRUD endpoints for books
- Search by title or author, genre and stock filters
- A uniform JSON response envelope
"""

__version__ = "1.0.0"
