"""Custom exception hierarchy for flow resolution."""

from __future__ import annotations


class FlowMappingError(Exception):
    """Base error for the Tiangong flow mapping package."""


class CatalogError(FlowMappingError):
    """Raised when a call to the remote catalog fails."""


class UnknownUnitError(FlowMappingError):
    """Raised when a query unit is not registered in the unit index."""

    def __init__(self, unit: str) -> None:
        self.unit = unit
        super().__init__(f"Unknown unit '{unit}'")


class FlowCreationError(FlowMappingError):
    """Raised when a synthesized flow could not be stored in the catalog."""


class MappingPersistenceError(FlowMappingError):
    """Raised when the flow map document could not be written back."""
