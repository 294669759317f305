"""
Book catalog package.

This package contains:
- Book schema and validation models
- MongoDB connection manager and book repository
- Book service used by the API handlers
"""

__version__ = "1.0.0"
