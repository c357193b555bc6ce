"""Category tree public API."""

from .tree import CategoryNode, CategoryTree

__all__ = ["CategoryNode", "CategoryTree"]
