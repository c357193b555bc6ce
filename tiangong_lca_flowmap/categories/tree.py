"""Multi-root category tree built from the flat category catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Iterator, Sequence

from tiangong_lca_flowmap.core.logging import get_logger
from tiangong_lca_flowmap.core.models import Category

if TYPE_CHECKING:
    from tiangong_lca_flowmap.catalog.protocols import FlowCatalog

LOGGER = get_logger(__name__)


@dataclass(slots=True, eq=False)
class CategoryNode:
    id: str
    name: str
    model_type: str
    parent_id: str | None = None
    children: list["CategoryNode"] = field(default_factory=list)

    @classmethod
    def of(cls, category: Category) -> "CategoryNode":
        return cls(
            id=category.id,
            name=category.name,
            model_type=category.model_type.upper(),
            parent_id=category.parent_id,
        )


class CategoryTree:
    """Read-only view over the category hierarchy, grouped by model type."""

    def __init__(self, roots: dict[str, list[CategoryNode]], nodes: dict[str, CategoryNode]) -> None:
        self._roots = roots
        self._nodes = nodes

    @classmethod
    def build(cls, catalog: FlowCatalog) -> "CategoryTree":
        categories = list(catalog.fetch_categories())
        return cls.from_categories(categories)

    @classmethod
    def from_categories(cls, categories: Iterable[Category]) -> "CategoryTree":
        nodes: dict[str, CategoryNode] = {}
        for category in categories:
            nodes[category.id] = CategoryNode.of(category)

        roots: dict[str, list[CategoryNode]] = {}
        for node in nodes.values():
            parent = nodes.get(node.parent_id) if node.parent_id else None
            if parent is None:
                if node.parent_id:
                    LOGGER.debug("category_tree.orphan_as_root", category=node.name, parent_id=node.parent_id)
                    node.parent_id = None
                roots.setdefault(node.model_type, []).append(node)
            else:
                parent.children.append(node)

        for root_list in roots.values():
            _sort_recursively(root_list)
        LOGGER.debug("category_tree.built", nodes=len(nodes), model_types=sorted(roots))
        return cls(roots, nodes)

    def roots_of(self, model_type: str) -> list[CategoryNode]:
        return list(self._roots.get(model_type.upper(), []))

    def parent_of(self, node: CategoryNode) -> CategoryNode | None:
        if not node.parent_id:
            return None
        return self._nodes.get(node.parent_id)

    def path_of(self, node: CategoryNode) -> list[str]:
        names: list[str] = []
        current: CategoryNode | None = node
        while current is not None:
            names.append(current.name)
            current = self.parent_of(current)
        names.reverse()
        return names

    def find_path(self, model_type: str, segments: Sequence[str]) -> CategoryNode | None:
        """Walk from the roots along ``segments`` (case-insensitive names)."""
        candidates = self.roots_of(model_type)
        found: CategoryNode | None = None
        for segment in segments:
            target = segment.strip().casefold()
            if not target:
                continue
            found = next((node for node in candidates if node.name.casefold() == target), None)
            if found is None:
                return None
            candidates = found.children
        return found

    def iter_nodes(self, model_type: str | None = None) -> Iterator[CategoryNode]:
        """Depth-first iteration in sorted order."""
        model_types = [model_type.upper()] if model_type else sorted(self._roots)
        for key in model_types:
            stack = list(reversed(self._roots.get(key, [])))
            while stack:
                node = stack.pop()
                yield node
                stack.extend(reversed(node.children))

    def __len__(self) -> int:
        return len(self._nodes)


def _sort_recursively(nodes: list[CategoryNode]) -> None:
    for node in nodes:
        _sort_recursively(node.children)
    nodes.sort(key=lambda node: node.name.casefold())
