"""Capability interfaces the resolver consumes from the remote catalog."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from tiangong_lca_flowmap.core.models import Category, FlowMap, FlowProperty, Ref, UnitGroup


class EntityRecord(Protocol):
    """Anything that can be upserted into the catalog."""

    id: str
    name: str

    def as_dict(self) -> dict[str, Any]: ...


class FlowCatalog(Protocol):
    """Read and upsert access to the reference database.

    The ``fetch_*`` and search methods return iterables that may be backed by
    a remote stream; callers drain them completely before using the result.
    """

    def search_flows(self, query: str) -> Iterable[Ref]: ...

    def get_providers_for(self, flow: Ref) -> Iterable[Ref]: ...

    def fetch_unit_groups(self) -> Iterable[UnitGroup]: ...

    def fetch_flow_properties(self) -> Iterable[FlowProperty]: ...

    def fetch_categories(self) -> Iterable[Category]: ...

    def create_flow(self, record: EntityRecord) -> Ref: ...

    def create_other_entity(self, record: EntityRecord) -> Ref: ...


class MappingService(Protocol):
    """Whole-document load/replace of named flow maps."""

    def get_mapping(self, name: str) -> FlowMap | None: ...

    def put_mapping(self, flow_map: FlowMap) -> None: ...
