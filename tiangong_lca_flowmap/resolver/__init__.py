"""Flow resolver public API."""

from .entities import FlowRecord, Identifiable, LocationRecord, flow_of, location_of, synthesized_flow_id
from .scoring import is_better_match, match_length
from .service import FlowResolver

__all__ = [
    "FlowResolver",
    "FlowRecord",
    "LocationRecord",
    "Identifiable",
    "flow_of",
    "location_of",
    "synthesized_flow_id",
    "is_better_match",
    "match_length",
]
