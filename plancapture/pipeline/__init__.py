"""Pipeline package for plancapture."""

from plancapture.pipeline.explain_pipeline import (
    ExplainBatchResult,
    ExplainPipeline,
    ExplainStats,
    run_explain,
)

__all__ = ["ExplainBatchResult", "ExplainPipeline", "ExplainStats", "run_explain"]
