"""Per-database connection state shared by every sample of one database."""

from dataclasses import dataclass
from typing import Any

from plancapture.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ConnectionContext:
    """
    An open connection to one database plus what the prober learned about it.

    Owned by a single unit of work; samples run on it strictly one at a time
    because the prepared statement name is shared within the session.
    """

    database: str
    connection: Any
    helper_available: bool = False
    is_elevated_session: bool = False
    # True while the shared prepared statement may still exist on the session
    statement_prepared: bool = False

    @property
    def needs_helper_advisory(self) -> bool:
        return not self.helper_available and not self.is_elevated_session

    def close(self) -> None:
        """Close the connection."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None
            logger.debug(f"Closed connection to database \"{self.database}\"")

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
