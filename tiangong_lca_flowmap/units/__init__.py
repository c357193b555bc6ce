"""Unit index public API."""

from .index import UnitEntry, UnitIndex

__all__ = ["UnitEntry", "UnitIndex"]
