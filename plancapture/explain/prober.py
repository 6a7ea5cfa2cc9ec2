"""
Capability probing for a freshly opened connection.

Determines once per database whether the pganalyze.explain() helper is
installed and whether the session runs with superuser-equivalent rights.
"""

from typing import Any

import psycopg2

from plancapture.config import SystemType
from plancapture.explain.context import ConnectionContext
from plancapture.explain.errors import CapabilityProbeError
from plancapture.explain.queries import (
    HAS_ROLE_SQL,
    HELPER_EXISTS_SQL,
    HELPER_FUNCTION,
    HELPER_SCHEMA,
    IS_SUPERUSER_SQL,
)
from plancapture.utils.logger import get_logger

logger = get_logger(__name__)

# Roles that managed services hand out in place of superuser
MANAGED_SUPERUSER_ROLES = {
    SystemType.AMAZON_RDS: "rds_superuser",
    SystemType.GOOGLE_CLOUDSQL: "cloudsqlsuperuser",
}


def _fetch_flag(connection: Any, sql: str, params: Any = None) -> bool:
    with connection.cursor() as cursor:
        cursor.execute(sql, params)
        row = cursor.fetchone()
    return bool(row and row[0])


def helper_exists(connection: Any, function: str = HELPER_FUNCTION) -> bool:
    """Look up the helper function in the catalog without calling it."""
    return _fetch_flag(connection, HELPER_EXISTS_SQL, (HELPER_SCHEMA, function))


def connected_as_superuser(connection: Any, system_type: SystemType) -> bool:
    """
    Check whether the session has superuser-equivalent privileges.

    Self-hosted servers report is_superuser directly; Amazon RDS and Cloud SQL
    are checked via their admin role. Other managed services are assumed not
    to grant it.
    """
    if system_type == SystemType.SELF_HOSTED:
        return _fetch_flag(connection, IS_SUPERUSER_SQL)

    role = MANAGED_SUPERUSER_ROLES.get(system_type)
    if role is None:
        return False
    return _fetch_flag(connection, HAS_ROLE_SQL, {"role": role})


def probe_capabilities(context: ConnectionContext, system_type: SystemType) -> ConnectionContext:
    """
    Probe the context's connection and record the result on it.

    The superuser check is only needed when the helper is missing.

    Raises:
        CapabilityProbeError: If a probe query fails
    """
    try:
        context.helper_available = helper_exists(context.connection)
        if context.helper_available:
            logger.debug(f"Found pganalyze.explain() helper in database \"{context.database}\"")
        else:
            context.is_elevated_session = connected_as_superuser(context.connection, system_type)
    except psycopg2.Error as e:
        raise CapabilityProbeError(context.database, str(e).strip()) from e

    return context
