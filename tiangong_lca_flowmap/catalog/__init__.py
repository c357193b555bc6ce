"""Catalog and mapping service adapters."""

from .client import McpCatalogClient
from .memory import InMemoryCatalog
from .protocols import EntityRecord, FlowCatalog, MappingService

__all__ = [
    "EntityRecord",
    "FlowCatalog",
    "MappingService",
    "InMemoryCatalog",
    "McpCatalogClient",
]
