"""
Sample routing.

Drops samples that must never be explained and groups the rest by the
database they ran in, before any connection is opened.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from plancapture.explain.queries import BACKUP_QUERY_PHRASES, QUERY_MARKER_SQL
from plancapture.models.sample import QuerySample


class SkipReason(str, Enum):
    """Why a sample was filtered out before explain."""

    NOT_MONITORED = "not_monitored"
    HAS_EXPLAIN = "has_explain"
    COLLECTOR_QUERY = "collector_query"
    BACKUP_QUERY = "backup_query"


@dataclass
class RoutedSamples:
    """Samples grouped per database, each kept with its position in the batch."""

    groups: dict[str, list[tuple[int, QuerySample]]] = field(default_factory=dict)
    skipped: dict[int, SkipReason] = field(default_factory=dict)

    @property
    def routed_count(self) -> int:
        return sum(len(group) for group in self.groups.values())


def skip_reason(
    sample: QuerySample, is_monitored: Callable[[str], bool]
) -> SkipReason | None:
    """Return why a sample is excluded, or None when it should be explained."""
    if not is_monitored(sample.database):
        return SkipReason.NOT_MONITORED
    # Already captured, e.g. by auto_explain
    if sample.has_explain:
        return SkipReason.HAS_EXPLAIN
    if sample.query.startswith(QUERY_MARKER_SQL):
        return SkipReason.COLLECTOR_QUERY
    # Backup calls run long for reasons EXPLAIN cannot show
    if any(phrase in sample.query for phrase in BACKUP_QUERY_PHRASES):
        return SkipReason.BACKUP_QUERY
    return None


def route_samples(
    samples: Sequence[QuerySample],
    is_monitored: Callable[[str], bool],
    resolve_database: Callable[[str], str] = lambda database: database,
) -> RoutedSamples:
    """
    Partition samples into per-database groups.

    Args:
        samples: Input batch
        is_monitored: Predicate telling whether a database is in scope
        resolve_database: Maps a sample's database to the connection target,
            e.g. the empty default name to the configured database

    Returns:
        RoutedSamples with groups in first-seen order and the skipped positions
    """
    routed = RoutedSamples()
    for position, sample in enumerate(samples):
        reason = skip_reason(sample, is_monitored)
        if reason is not None:
            routed.skipped[position] = reason
            continue
        database = resolve_database(sample.database)
        routed.groups.setdefault(database, []).append((position, sample))
    return routed
