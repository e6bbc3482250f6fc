"""Database layer for CivicTrack, SQLAlchemy 2.0 async."""

from __future__ import annotations

from civictrack.db.base import Base
from civictrack.db.engine import DatabaseManager

__all__ = ["Base", "DatabaseManager"]
