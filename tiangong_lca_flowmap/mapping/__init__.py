"""Mapping store public API."""

from .store import MappingStore

__all__ = ["MappingStore"]
