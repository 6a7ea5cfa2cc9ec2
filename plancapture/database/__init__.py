"""Database connectivity for plancapture."""

from plancapture.database.connection import establish_connection

__all__ = ["establish_connection"]
