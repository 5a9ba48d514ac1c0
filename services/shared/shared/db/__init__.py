"""Account, usage and generation record persistence."""

from .connection import DatabaseConnection, get_database_url, get_db, get_session
from .models import Base, generate_uuid, utcnow

__all__ = [
    "Base",
    "DatabaseConnection",
    "generate_uuid",
    "get_database_url",
    "get_db",
    "get_session",
    "utcnow",
]
