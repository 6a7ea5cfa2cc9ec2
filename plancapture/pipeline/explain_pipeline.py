"""
Explain pipeline for plancapture.

Orchestrates the complete flow from a batch of query samples to samples
carrying captured plans: routing, one probed connection per database,
classification and execution of each eligible sample.
"""

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from plancapture.config import ServerConfig
from plancapture.database.connection import establish_connection
from plancapture.explain.classifier import classify_statement
from plancapture.explain.context import ConnectionContext
from plancapture.explain.errors import CapabilityProbeError
from plancapture.explain.executor import explain_sample
from plancapture.explain.prober import probe_capabilities
from plancapture.explain.router import route_samples
from plancapture.models.sample import QuerySample
from plancapture.utils.logger import database_context, get_logger

logger = get_logger(__name__)

ConnectFn = Callable[[ServerConfig, str], Any]

HELPER_ADVISORY = (
    "Warning: pganalyze.explain() helper function not found in database \"{database}\". "
    "Please set up the monitoring helper functions "
    "(https://github.com/pganalyze/collector#setting-up-a-restricted-monitoring-user) "
    "in every database you want to monitor to avoid permissions issues when running "
    "log-based EXPLAIN."
)


@dataclass
class ExplainStats:
    """Statistics from pipeline execution."""

    databases_processed: int = 0
    databases_skipped: int = 0
    samples_filtered: int = 0
    samples_ineligible: int = 0
    samples_explained: int = 0
    samples_failed: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "ExplainStats") -> None:
        """Add another unit's counters to this one."""
        self.databases_processed += other.databases_processed
        self.databases_skipped += other.databases_skipped
        self.samples_filtered += other.samples_filtered
        self.samples_ineligible += other.samples_ineligible
        self.samples_explained += other.samples_explained
        self.samples_failed += other.samples_failed
        self.errors.extend(other.errors)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "databases_processed": self.databases_processed,
            "databases_skipped": self.databases_skipped,
            "samples_filtered": self.samples_filtered,
            "samples_ineligible": self.samples_ineligible,
            "samples_explained": self.samples_explained,
            "samples_failed": self.samples_failed,
            "errors": self.errors,
        }


@dataclass
class DatabaseResult:
    """Output of one database's unit of work, keyed by batch position."""

    database: str
    samples: list[tuple[int, QuerySample]]
    stats: ExplainStats


@dataclass
class ExplainBatchResult:
    """Transformed batch plus run statistics."""

    samples: list[QuerySample]
    stats: ExplainStats


class ExplainPipeline:
    """
    Main pipeline for log-based EXPLAIN.

    Every database is an independent unit owning one connection; samples of
    a database run sequentially on it. Units run one at a time unless
    ``workers`` is greater than one.

    Usage:
        pipeline = ExplainPipeline(get_settings().server)
        result = pipeline.run(samples)
    """

    def __init__(
        self,
        server: ServerConfig,
        connect: ConnectFn | None = None,
        workers: int = 1,
    ):
        """
        Initialize the pipeline.

        Args:
            server: Server configuration, including the monitored scope
            connect: Connection factory (default: establish_connection)
            workers: Number of databases processed concurrently
        """
        self.server = server
        self._connect = connect or establish_connection
        self.workers = max(1, workers)

    def run(self, samples: Sequence[QuerySample]) -> ExplainBatchResult:
        """
        Capture plans for a batch of samples.

        Args:
            samples: Input batch

        Returns:
            Every input sample, in input order, with explain fields populated
            where a capture was attempted
        """
        stats = ExplainStats()
        output = list(samples)

        routed = route_samples(samples, self.server.is_monitored, self.server.resolve_database)
        stats.samples_filtered = len(routed.skipped)
        for position, reason in routed.skipped.items():
            logger.debug(f"Skipping sample #{position}: {reason.value}")

        if not routed.groups:
            return ExplainBatchResult(samples=output, stats=stats)

        logger.info(
            f"Running EXPLAIN for {routed.routed_count} sample(s) "
            f"in {len(routed.groups)} database(s)"
        )

        for result in self._run_units(routed.groups):
            stats.merge(result.stats)
            for position, sample in result.samples:
                output[position] = sample

        return ExplainBatchResult(samples=output, stats=stats)

    def _run_units(
        self, groups: dict[str, list[tuple[int, QuerySample]]]
    ) -> list[DatabaseResult]:
        if self.workers == 1 or len(groups) == 1:
            return [self._explain_database(db, entries) for db, entries in groups.items()]

        with ThreadPoolExecutor(max_workers=min(self.workers, len(groups))) as executor:
            futures = [
                executor.submit(self._explain_database, db, entries)
                for db, entries in groups.items()
            ]
            return [future.result() for future in futures]

    def _explain_database(
        self, database: str, entries: list[tuple[int, QuerySample]]
    ) -> DatabaseResult:
        """Process all samples of one database on a single connection."""
        with database_context(database):
            return self._process_database(database, entries)

    def _process_database(
        self, database: str, entries: list[tuple[int, QuerySample]]
    ) -> DatabaseResult:
        stats = ExplainStats()

        try:
            connection = self._connect(self.server, database)
        except ConnectionError as e:
            logger.debug(f"Could not connect to {database} to run explain: {e}; skipping")
            stats.databases_skipped += 1
            stats.errors.append(f"{database}: {e}")
            return DatabaseResult(database, list(entries), stats)

        with ConnectionContext(database=database, connection=connection) as context:
            try:
                probe_capabilities(context, self.server.system_type)
            except CapabilityProbeError as e:
                logger.debug(f"{e}; skipping")
                stats.databases_skipped += 1
                stats.errors.append(str(e))
                return DatabaseResult(database, list(entries), stats)

            if context.needs_helper_advisory:
                logger.info(HELPER_ADVISORY.format(database=database))

            results = []
            for position, sample in entries:
                # Never EXPLAIN what cannot be parsed or holds several statements
                if classify_statement(sample.query) is None:
                    stats.samples_ineligible += 1
                    results.append((position, sample))
                    continue

                explained = explain_sample(context, sample)
                if explained.explain_error:
                    stats.samples_failed += 1
                else:
                    stats.samples_explained += 1
                results.append((position, explained))

        stats.databases_processed += 1
        return DatabaseResult(database, results, stats)


def run_explain(
    server: ServerConfig,
    samples: Sequence[QuerySample],
    connect: ConnectFn | None = None,
    workers: int = 1,
) -> list[QuerySample]:
    """Capture plans for a batch and return the transformed samples."""
    return ExplainPipeline(server, connect=connect, workers=workers).run(samples).samples
