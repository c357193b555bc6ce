"""Normalized description of a flow requested by a caller."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, replace
from functools import cached_property
from uuid import UUID

from tiangong_lca_flowmap.core.models import (
    FlowMap,
    FlowMapRef,
    FlowType,
    MappingEntry,
    Ref,
    flow_type_label,
)


def _clean(value: str | None) -> str:
    return (value or "").strip()


@dataclass(frozen=True)
class FlowQuery:
    """Immutable flow request; ``flow_id`` is the cache key of its mapping.

    Build instances with the ``for_*`` constructors and refine them with the
    ``with_*`` methods, which return new queries::

        FlowQuery.for_elementary("Carbon dioxide").with_unit("g").with_category("air/unspecified")
    """

    flow_type: FlowType
    name: str
    unit: str = ""
    category: str = ""
    location: str = ""

    def __post_init__(self) -> None:
        for attr in ("name", "unit", "category", "location"):
            object.__setattr__(self, attr, _clean(getattr(self, attr)))

    @classmethod
    def for_type(cls, flow_type: FlowType, name: str | None) -> "FlowQuery":
        return cls(flow_type=flow_type, name=_clean(name))

    @classmethod
    def for_elementary(cls, name: str | None) -> "FlowQuery":
        return cls.for_type("elementary", name)

    @classmethod
    def for_product(cls, name: str | None) -> "FlowQuery":
        return cls.for_type("product", name)

    @classmethod
    def for_waste(cls, name: str | None) -> "FlowQuery":
        return cls.for_type("waste", name)

    def with_unit(self, unit: str | None) -> "FlowQuery":
        return replace(self, unit=_clean(unit))

    def with_category(self, category: str | None) -> "FlowQuery":
        return replace(self, category=_clean(category))

    def with_location(self, location: str | None) -> "FlowQuery":
        return replace(self, location=_clean(location))

    @property
    def category_segments(self) -> tuple[str, ...]:
        return tuple(part.strip() for part in self.category.split("/") if part.strip())

    def __str__(self) -> str:
        parts = (flow_type_label(self.flow_type), self.name, self.unit, self.location, self.category)
        return " - ".join(part for part in parts if part)

    @cached_property
    def flow_id(self) -> str:
        # MD5 bytes read as a little-endian GUID, matching ids already stored in mappings.
        digest = hashlib.md5(str(self).encode("utf-8")).digest()
        return str(UUID(bytes_le=digest))

    def to_mapping_ref(self) -> FlowMapRef:
        flow = Ref(
            id=self.flow_id,
            name=self.name,
            flow_type=self.flow_type,
            ref_unit=self.unit or None,
            category_path=self.category_segments,
            location=self.location or None,
        )
        unit = Ref(id=self.unit, name=self.unit) if self.unit else None
        return FlowMapRef(flow=flow, unit=unit)

    def find_entry_in(self, flow_map: FlowMap | None) -> MappingEntry | None:
        if flow_map is None:
            return None
        for entry in flow_map.mappings:
            if not entry.is_well_formed:
                continue
            if entry.source_id == self.flow_id:
                return entry
        return None
