"""Database package for recallcore.

This package provides the persistence adapter around the memory model.
Only RecallDatabase is exported as the public API.
"""

from .database import RecallDatabase

__all__ = ["RecallDatabase"]
