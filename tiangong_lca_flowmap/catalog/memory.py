"""Catalog and mapping service kept in process memory."""

from __future__ import annotations

import copy
from collections import Counter
from typing import Any, Iterable, Mapping

from tiangong_lca_flowmap.core.exceptions import CatalogError, FlowMappingError
from tiangong_lca_flowmap.core.models import Category, FlowMap, FlowProperty, Ref, UnitGroup

from .protocols import EntityRecord


class InMemoryCatalog:
    """Offline stand-in for the remote catalog and mapping service.

    Search returns every flow sharing at least one word with the query, in
    insertion order. ``calls`` counts invocations per operation and
    ``fail_on`` makes an operation raise, which lets callers exercise the
    transport failure paths.
    """

    def __init__(
        self,
        *,
        flows: Iterable[Ref] = (),
        unit_groups: Iterable[UnitGroup] = (),
        flow_properties: Iterable[FlowProperty] = (),
        categories: Iterable[Category] = (),
        providers: Mapping[str, Iterable[Ref]] | None = None,
        mappings: Iterable[FlowMap] = (),
    ) -> None:
        self.flows: dict[str, Ref] = {flow.id: flow for flow in flows}
        self.unit_groups = list(unit_groups)
        self.flow_properties = list(flow_properties)
        self.categories = list(categories)
        self.providers: dict[str, list[Ref]] = {key: list(value) for key, value in (providers or {}).items()}
        self.entities: dict[str, dict[str, Any]] = {}
        self.documents: dict[str, dict[str, Any]] = {flow_map.name: flow_map.as_dict() for flow_map in mappings}
        self.calls: Counter[str] = Counter()
        self._failures: dict[str, FlowMappingError] = {}

    def fail_on(self, operation: str, error: FlowMappingError | None = None) -> None:
        self._failures[operation] = error or CatalogError(f"{operation} failed")

    def recover(self, operation: str) -> None:
        self._failures.pop(operation, None)

    def _record(self, operation: str) -> None:
        self.calls[operation] += 1
        failure = self._failures.get(operation)
        if failure is not None:
            raise failure

    def search_flows(self, query: str) -> list[Ref]:
        self._record("search_flows")
        words = [word for word in query.casefold().split() if word]
        return [flow for flow in self.flows.values() if any(word in flow.name.casefold() for word in words)]

    def get_providers_for(self, flow: Ref) -> list[Ref]:
        self._record("get_providers_for")
        return list(self.providers.get(flow.id, ()))

    def fetch_unit_groups(self) -> list[UnitGroup]:
        self._record("fetch_unit_groups")
        return list(self.unit_groups)

    def fetch_flow_properties(self) -> list[FlowProperty]:
        self._record("fetch_flow_properties")
        return list(self.flow_properties)

    def fetch_categories(self) -> list[Category]:
        self._record("fetch_categories")
        return list(self.categories)

    def create_flow(self, record: EntityRecord) -> Ref:
        self._record("create_flow")
        as_ref = getattr(record, "as_ref", None)
        ref = as_ref() if callable(as_ref) else Ref.from_dict(record.as_dict())
        self.flows[ref.id] = ref
        self.entities[ref.id] = record.as_dict()
        return ref

    def create_other_entity(self, record: EntityRecord) -> Ref:
        self._record("create_other_entity")
        payload = record.as_dict()
        self.entities[record.id] = payload
        return Ref(id=record.id, name=record.name, ref_type=payload.get("@type"))

    def get_mapping(self, name: str) -> FlowMap | None:
        self._record("get_mapping")
        for stored_name, document in self.documents.items():
            if stored_name.strip().casefold() == name.strip().casefold():
                return FlowMap.from_dict(copy.deepcopy(document))
        return None

    def put_mapping(self, flow_map: FlowMap) -> None:
        self._record("put_mapping")
        self.documents[flow_map.name] = flow_map.as_dict()
