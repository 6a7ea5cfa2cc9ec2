"""
Postgres connection establishment for plan capture.

Connections run in autocommit mode so a failed EXPLAIN does not abort a
surrounding transaction for the samples that follow, and JSON results are
left undecoded so plans stay as the text the server produced.
"""

from typing import Any

import psycopg2
import psycopg2.extras

from plancapture.config import ServerConfig
from plancapture.utils.logger import get_logger

logger = get_logger(__name__)


def _keep_text(value: str) -> str:
    return value


def establish_connection(server: ServerConfig, database: str) -> Any:
    """
    Open a connection to one database of the server.

    Args:
        server: Server configuration
        database: Target database; empty selects the configured default

    Returns:
        An open psycopg2 connection

    Raises:
        ConnectionError: If the connection cannot be established
    """
    kwargs = server.get_connection_kwargs(database)
    try:
        connection = psycopg2.connect(**kwargs)
    except psycopg2.Error as e:
        raise ConnectionError(f"PostgreSQL connection failed: {str(e).strip()}") from e

    try:
        connection.autocommit = True
        psycopg2.extras.register_default_json(connection, loads=_keep_text)
        psycopg2.extras.register_default_jsonb(connection, loads=_keep_text)
    except psycopg2.Error as e:
        connection.close()
        raise ConnectionError(f"PostgreSQL connection setup failed: {str(e).strip()}") from e

    logger.debug(f"Connected to PostgreSQL: {server.host}:{server.port}/{kwargs['dbname']}")
    return connection
