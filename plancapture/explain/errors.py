"""Exceptions raised by the explain engine."""


class ExplainCaptureError(Exception):
    """Base class for explain engine errors."""


class CapabilityProbeError(ExplainCaptureError):
    """Probing a connection for helper functions or privileges failed."""

    def __init__(self, database: str, message: str):
        self.database = database
        super().__init__(f"Capability probe failed for database \"{database}\": {message}")


class EmptyPlanError(ExplainCaptureError):
    """The capture query returned no row, or a NULL plan."""

    def __init__(self):
        super().__init__("EXPLAIN returned no plan")
