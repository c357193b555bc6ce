"""Resolve flow queries to canonical catalog flows and remember the result."""

from __future__ import annotations

from typing import Iterable

from tiangong_lca_flowmap.catalog.protocols import FlowCatalog, MappingService
from tiangong_lca_flowmap.categories import CategoryNode, CategoryTree
from tiangong_lca_flowmap.core.config import Settings, get_settings
from tiangong_lca_flowmap.core.exceptions import FlowCreationError, FlowMappingError, UnknownUnitError
from tiangong_lca_flowmap.core.logging import bind_flow_map, get_logger
from tiangong_lca_flowmap.core.models import FlowMap, FlowMapRef, MappingEntry, Ref
from tiangong_lca_flowmap.mapping import MappingStore
from tiangong_lca_flowmap.query import FlowQuery
from tiangong_lca_flowmap.units import UnitEntry, UnitIndex

from .entities import FlowRecord, flow_of, location_of, synthesized_flow_id
from .scoring import category_score, is_better_match, location_matches, name_score

LOGGER = get_logger(__name__)


class FlowResolver:
    """Maps flow queries onto catalog flows, one mapping entry per distinct query.

    A query already present in the flow map is answered from the map without
    touching the catalog. Otherwise the query unit must be known to the unit
    index; the best scoring, unit-compatible search candidate becomes the
    target, or a new flow is created when nothing matches. Product and waste
    targets additionally get a provider process when the catalog knows one.
    Every new entry is persisted before it is returned.

    Failures are logged and reported as ``None``; the flow map never keeps an
    entry that could not be persisted. Calls must be serialized by the caller.
    """

    def __init__(
        self,
        catalog: FlowCatalog,
        store: MappingStore,
        unit_index: UnitIndex,
        *,
        category_tree: CategoryTree | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._units = unit_index
        self._categories = category_tree

    @classmethod
    def open(
        cls,
        catalog: FlowCatalog,
        mapping_service: MappingService | None = None,
        *,
        map_name: str | None = None,
        settings: Settings | None = None,
        with_categories: bool = False,
    ) -> "FlowResolver":
        """Build the indexes from ``catalog`` and load (or start) the named flow map."""
        name = map_name or (settings or get_settings()).flow_map_name
        service = mapping_service if mapping_service is not None else catalog
        bind_flow_map(name)
        unit_index = UnitIndex.build(catalog)
        category_tree = CategoryTree.build(catalog) if with_categories else None
        store = MappingStore.open(service, name)
        return cls(catalog, store, unit_index, category_tree=category_tree)

    @property
    def unit_index(self) -> UnitIndex:
        return self._units

    @property
    def flow_map(self) -> FlowMap:
        return self._store.flow_map

    def resolve(self, query: FlowQuery) -> MappingEntry | None:
        cached = query.find_entry_in(self._store.flow_map)
        if cached is not None:
            LOGGER.debug("flow_resolver.cache_hit", flow=str(query), flow_id=query.flow_id)
            return cached
        try:
            return self._resolve_uncached(query)
        except FlowMappingError as exc:
            LOGGER.error("flow_resolver.failed", flow=str(query), error_type=type(exc).__name__, error=str(exc))
            return None

    def resolve_elementary(self, name: str, unit: str, category: str = "") -> MappingEntry | None:
        query = FlowQuery.for_elementary(name).with_unit(unit).with_category(category)
        return self.resolve(query)

    def resolve_all(self, queries: Iterable[FlowQuery]) -> list[MappingEntry | None]:
        return [self.resolve(query) for query in queries]

    def _resolve_uncached(self, query: FlowQuery) -> MappingEntry:
        unit_entry = self._units.entry_of(query.unit)
        if unit_entry is None:
            raise UnknownUnitError(query.unit)

        target = self._search(query)
        if target is None:
            target = self._create_flow(query, unit_entry)

        provider = None
        if query.flow_type in ("product", "waste"):
            provider = self._find_provider(query, target)

        entry = MappingEntry(
            from_ref=query.to_mapping_ref(),
            to_ref=FlowMapRef(flow=target, unit=self._unit_ref(target.ref_unit), provider=provider),
            conversion_factor=self._conversion_factor(query, target, unit_entry),
        )
        self._store.append_and_flush(entry)
        LOGGER.info(
            "flow_resolver.mapped",
            flow=str(query),
            target_id=target.id,
            target_name=target.name,
            provider=provider.name if provider is not None else None,
            conversion_factor=entry.conversion_factor,
        )
        return entry

    def _search(self, query: FlowQuery) -> Ref | None:
        best: Ref | None = None
        examined = 0
        for candidate in self._catalog.search_flows(query.name):
            examined += 1
            if candidate.flow_type != query.flow_type:
                continue
            if not self._units.are_convertible(query.unit, candidate.ref_unit):
                LOGGER.debug("flow_resolver.unit_mismatch", candidate=candidate.name, ref_unit=candidate.ref_unit)
                continue
            if name_score(query, candidate) <= 0:
                continue
            if is_better_match(best, candidate, query):
                best = candidate
        LOGGER.debug(
            "flow_resolver.search",
            flow=str(query),
            examined=examined,
            match=best.id if best is not None else None,
        )
        return best

    def _create_flow(self, query: FlowQuery, unit_entry: UnitEntry) -> Ref:
        flow_id = synthesized_flow_id(
            query.flow_type,
            query.name,
            unit_entry.unit_group.id,
            unit_entry.flow_property.id,
        )
        record = flow_of(
            query.name,
            query.flow_type,
            unit_entry.flow_property.as_ref(),
            flow_id=flow_id,
            ref_unit=unit_entry.reference_unit_name,
        )
        self._assign_category(record, query)
        try:
            if query.location:
                location = location_of(query.location)
                self._catalog.create_other_entity(location)
                record.location = location.as_ref()
            created = self._catalog.create_flow(record)
        except FlowMappingError as exc:
            raise FlowCreationError(f"Could not create flow '{query.name}'") from exc
        LOGGER.info("flow_resolver.flow_created", flow=str(query), flow_id=created.id)
        return created

    def _assign_category(self, record: FlowRecord, query: FlowQuery) -> None:
        record.category_path = query.category_segments
        if self._categories is None or not query.category_segments:
            return
        node = self._match_category(query)
        if node is not None:
            record.category = Ref(id=node.id, name=node.name, ref_type="Category")
            record.category_path = tuple(self._categories.path_of(node))

    def _match_category(self, query: FlowQuery) -> CategoryNode | None:
        exact = self._categories.find_path("FLOW", query.category_segments)
        if exact is not None:
            return exact
        best: CategoryNode | None = None
        best_score = 0
        for node in self._categories.iter_nodes("FLOW"):
            score = category_score(query, self._categories.path_of(node))
            if score > best_score:
                best, best_score = node, score
        return best

    def _find_provider(self, query: FlowQuery, flow: Ref) -> Ref | None:
        first: Ref | None = None
        for provider in self._catalog.get_providers_for(flow):
            if location_matches(query, provider):
                return provider
            if first is None:
                first = provider
        return first

    def _conversion_factor(self, query: FlowQuery, target: Ref, unit_entry: UnitEntry) -> float:
        factor = self._units.conversion_factor(query.unit, target.ref_unit)
        if factor is None:
            return unit_entry.conversion_factor
        return factor

    def _unit_ref(self, unit_name: str | None) -> Ref | None:
        entry = self._units.entry_of(unit_name)
        if entry is None:
            return None
        return Ref(id=entry.unit.id, name=unit_name, ref_type="Unit")
