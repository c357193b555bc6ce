"""
Tiangong LCA flow mapping package.

The package exposes building blocks for:
- normalising flow requests into stable query keys,
- indexing units and categories of the reference catalog,
- resolving queries to catalog flows (or creating them),
- persisting the resulting flow map through the mapping service.
"""

from .core.config import Settings, get_settings
from .query import FlowQuery
from .resolver import FlowResolver

__all__ = [
    "Settings",
    "get_settings",
    "FlowQuery",
    "FlowResolver",
]
