"""Shared core utilities for Tiangong flow mapping."""

from .config import Settings, get_settings
from .exceptions import (
    CatalogError,
    FlowCreationError,
    FlowMappingError,
    MappingPersistenceError,
    UnknownUnitError,
)
from .logging import configure_logging, get_logger
from .models import (
    Category,
    FlowMap,
    FlowMapRef,
    FlowProperty,
    FlowType,
    MappingEntry,
    Ref,
    Unit,
    UnitGroup,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "FlowMappingError",
    "CatalogError",
    "UnknownUnitError",
    "FlowCreationError",
    "MappingPersistenceError",
    "FlowType",
    "Ref",
    "Unit",
    "UnitGroup",
    "FlowProperty",
    "Category",
    "FlowMapRef",
    "MappingEntry",
    "FlowMap",
]
