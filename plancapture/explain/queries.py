"""
SQL issued by the explain engine.

Every statement is prefixed with QUERY_MARKER_SQL so the collector's own
traffic can be recognized (and skipped) when it shows up in captured samples.
"""

QUERY_MARKER_SQL = "/* pganalyze-collector */ "

PREPARED_STATEMENT_NAME = "pganalyze_explain"

EXPLAIN_PREFIX = "EXPLAIN (VERBOSE, FORMAT JSON) "

# Phrases of backup control functions; such queries are never explained
BACKUP_QUERY_PHRASES = ("pg_start_backup", "pg_stop_backup")

HELPER_SCHEMA = "pganalyze"
HELPER_FUNCTION = "explain"

HELPER_EXISTS_SQL = (
    QUERY_MARKER_SQL
    + """SELECT COUNT(*) > 0
FROM pg_catalog.pg_proc p
JOIN pg_catalog.pg_namespace n ON (p.pronamespace = n.oid)
WHERE n.nspname = %s AND p.proname = %s"""
)

IS_SUPERUSER_SQL = QUERY_MARKER_SQL + "SELECT current_setting('is_superuser') = 'on'"

# Managed services grant a provider-specific role instead of real superuser
HAS_ROLE_SQL = (
    QUERY_MARKER_SQL
    + """SELECT CASE
    WHEN EXISTS (SELECT 1 FROM pg_catalog.pg_roles WHERE rolname = %(role)s)
    THEN pg_catalog.pg_has_role(current_user, %(role)s, 'MEMBER')
    ELSE false
END"""
)

HELPER_EXPLAIN_SQL = QUERY_MARKER_SQL + f"SELECT {HELPER_SCHEMA}.{HELPER_FUNCTION}(%s, %s)"


def direct_explain_sql(query: str) -> str:
    """EXPLAIN wrapping the query text itself."""
    return QUERY_MARKER_SQL + EXPLAIN_PREFIX + query


def prepare_sql(query: str) -> str:
    """PREPARE the query under the shared statement name."""
    return QUERY_MARKER_SQL + f"PREPARE {PREPARED_STATEMENT_NAME} AS " + query


def explain_execute_sql(literal_params: str) -> str:
    """EXPLAIN an EXECUTE of the prepared statement with literal arguments."""
    return QUERY_MARKER_SQL + EXPLAIN_PREFIX + f"EXECUTE {PREPARED_STATEMENT_NAME}({literal_params})"


def deallocate_sql() -> str:
    """Release the shared prepared statement."""
    return QUERY_MARKER_SQL + f"DEALLOCATE {PREPARED_STATEMENT_NAME}"
