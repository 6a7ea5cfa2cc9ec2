"""
Query sample models for plancapture.

A query sample is one previously observed statement execution (text plus the
parameter values it ran with) together with the plan captured for it.
"""

from enum import Enum

from pydantic import Field

from plancapture.models.base import BaseModel


class ExplainSource(str, Enum):
    """Where a captured plan came from."""

    STATEMENT_LOG = "statement_log"
    AUTO_EXPLAIN = "auto_explain"
    EXTERNAL = "external"


class ExplainFormat(str, Enum):
    """Encoding of the captured plan payload."""

    TEXT = "text"
    JSON = "json"


class QuerySample(BaseModel):
    """
    One observed query execution eligible for plan capture.

    Samples are immutable; the explain engine returns updated copies.
    """

    database: str = Field(default="", description="Owning database, empty for the default one")
    query: str = Field(..., description="Raw SQL text as observed")
    parameters: list[str] = Field(default_factory=list, description="Positional parameter values")
    has_explain: bool = Field(default=False, description="Plan already captured elsewhere")
    explain_source: ExplainSource | None = Field(default=None, description="Plan provenance")
    explain_format: ExplainFormat | None = Field(default=None, description="Plan encoding")
    explain_output: str = Field(default="", description="Captured plan payload")
    explain_error: str = Field(default="", description="Reason the capture failed")

    @property
    def explain_attempted(self) -> bool:
        """Whether a capture produced either a plan or an error."""
        return bool(self.explain_output or self.explain_error)

    def with_explain_flag(self) -> "QuerySample":
        """
        Set ``has_explain`` from the capture outcome.

        Callers apply this before resubmitting samples so a second pass
        leaves them alone.
        """
        if self.has_explain or not self.explain_attempted:
            return self
        return self.model_copy(update={"has_explain": True})
