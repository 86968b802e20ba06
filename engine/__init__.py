"""
Engine module initialization.

The derived-relation and aggregation core: toggle relations, composed
read pipelines, channel metrics and the ownership guard.
"""

from engine.composer import QueryComposer
from engine.metrics import ChannelMetrics, ChannelStats
from engine.ownership import check_ownership, is_owner, require_ownership
from engine.pagination import Page, paginate
from engine.pipeline import Compute, Flatten, Join, Pipeline, PipelineError
from engine.result import EngineError, ErrorKind, Result
from engine.toggle import RelationToggleEngine, ToggleOutcome, ToggleState

__all__ = [
    "QueryComposer",
    "ChannelMetrics",
    "ChannelStats",
    "check_ownership",
    "is_owner",
    "require_ownership",
    "Page",
    "paginate",
    "Compute",
    "Flatten",
    "Join",
    "Pipeline",
    "PipelineError",
    "EngineError",
    "ErrorKind",
    "Result",
    "RelationToggleEngine",
    "ToggleOutcome",
    "ToggleState",
]
