"""
Plan capture engine.

Decides per query sample whether it is safe to re-run under EXPLAIN, picks a
strategy from the connection's capabilities and records the plan or error.
"""

from plancapture.explain.classifier import StatementKind, classify_statement, is_explainable
from plancapture.explain.context import ConnectionContext
from plancapture.explain.encoder import encode_bind_params, encode_literal_params, quote_literal
from plancapture.explain.errors import CapabilityProbeError, EmptyPlanError, ExplainCaptureError
from plancapture.explain.executor import explain_sample
from plancapture.explain.prober import probe_capabilities
from plancapture.explain.router import RoutedSamples, SkipReason, route_samples
from plancapture.explain.strategy import ExplainStrategy, select_strategy

__all__ = [
    "CapabilityProbeError",
    "ConnectionContext",
    "EmptyPlanError",
    "ExplainCaptureError",
    "ExplainStrategy",
    "RoutedSamples",
    "SkipReason",
    "StatementKind",
    "classify_statement",
    "encode_bind_params",
    "encode_literal_params",
    "explain_sample",
    "is_explainable",
    "probe_capabilities",
    "quote_literal",
    "route_samples",
    "select_strategy",
]
