"""Models package for plancapture."""

from plancapture.models.base import BaseModel
from plancapture.models.sample import ExplainFormat, ExplainSource, QuerySample

__all__ = [
    "BaseModel",
    "ExplainFormat",
    "ExplainSource",
    "QuerySample",
]
