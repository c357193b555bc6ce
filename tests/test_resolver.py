from __future__ import annotations

import pytest

from conftest import ITEMS, MAP_NAME, MASS, make_catalog
from tiangong_lca_flowmap.catalog import InMemoryCatalog
from tiangong_lca_flowmap.core.models import FlowMap, FlowProperty, Ref
from tiangong_lca_flowmap.query import FlowQuery
from tiangong_lca_flowmap.resolver import FlowResolver, synthesized_flow_id

AIR = "Elementary flows/Emission to air/unspecified"


def test_known_flow_is_mapped_with_unit_conversion(resolver, catalog):
    entry = resolver.resolve_elementary("Carbon dioxide", "g", AIR)

    assert entry is not None
    assert entry.target.id == "f-co2"
    assert entry.conversion_factor == pytest.approx(0.001)
    assert entry.to_ref.unit.name == "kg"
    assert entry.from_ref.flow.name == "Carbon dioxide"
    assert entry.from_ref.unit.name == "g"
    assert catalog.calls["create_flow"] == 0
    assert catalog.documents[MAP_NAME]["mappings"][0]["to"]["flow"]["@id"] == "f-co2"


def test_entry_source_id_is_query_flow_id(resolver):
    query = FlowQuery.for_elementary("Carbon dioxide").with_unit("g").with_category(AIR)

    entry = resolver.resolve(query)

    assert entry.source_id == query.flow_id


def test_unmatched_flow_is_created_and_cached(resolver, catalog):
    first = resolver.resolve_elementary("SARS-CoV-2", "Item(s)")
    second = resolver.resolve_elementary("SARS-CoV-2", "Item(s)")

    assert first is not None
    assert second is first
    assert first.target.id == synthesized_flow_id("elementary", "SARS-CoV-2", "ug-items", "fp-items")
    assert first.target.ref_unit == "Item(s)"
    assert first.conversion_factor == pytest.approx(1.0)
    assert catalog.calls["create_flow"] == 1
    assert catalog.calls["search_flows"] == 1
    assert catalog.calls["put_mapping"] == 1
    assert len(resolver.flow_map.mappings) == 1


def test_created_flow_carries_reference_property(resolver, catalog):
    entry = resolver.resolve_elementary("SARS-CoV-2", "Item(s)")

    stored = catalog.entities[entry.target.id]
    assert stored["@type"] == "Flow"
    assert stored["flowType"] == "ElementaryFlow"
    assert stored["flowProperties"][0]["flowProperty"]["@id"] == "fp-items"
    assert stored["flowProperties"][0]["referenceFlowProperty"] is True


def test_synthesized_ids_are_stable_across_sessions():
    ids = []
    for _ in range(2):
        resolver = FlowResolver.open(make_catalog(), map_name=MAP_NAME)
        ids.append(resolver.resolve_elementary("SARS-CoV-2", "Item(s)").target.id)

    assert ids[0] == ids[1]


def test_unknown_unit_returns_none_without_search(resolver, catalog):
    assert resolver.resolve_elementary("Carbon dioxide", "furlong") is None
    assert resolver.resolve_elementary("Carbon dioxide", "") is None
    assert catalog.calls["search_flows"] == 0
    assert resolver.flow_map.mappings == []


def test_candidates_with_other_unit_group_are_ignored(resolver, catalog):
    entry = resolver.resolve_elementary("Carbon dioxide", "MJ")

    assert entry.target.id not in {"f-co2", "f-co2-bio"}
    assert entry.target.ref_unit == "MJ"
    assert catalog.calls["create_flow"] == 1


def test_candidates_of_other_flow_type_are_ignored(resolver, catalog):
    entry = resolver.resolve(FlowQuery.for_product("Carbon dioxide").with_unit("kg"))

    assert entry.target.id == synthesized_flow_id("product", "Carbon dioxide", "ug-mass", "fp-mass")
    assert entry.target.flow_type == "product"
    assert entry.to_ref.provider is None


def test_category_overlap_breaks_name_ties(resolver):
    entry = resolver.resolve_elementary("Carbon dioxide", "kg", AIR)

    assert entry.target.id == "f-co2"


def test_first_candidate_wins_full_tie(resolver):
    entry = resolver.resolve_elementary("Carbon dioxide", "kg")

    assert entry.target.id == "f-co2-bio"


def test_location_breaks_name_ties_and_selects_provider(resolver):
    query = FlowQuery.for_product("Electricity").with_unit("kWh").with_location("CN")

    entry = resolver.resolve(query)

    assert entry.target.id == "f-elec-cn"
    assert entry.to_ref.provider.id == "p-elec-cn"
    assert entry.conversion_factor == pytest.approx(3.6)
    assert entry.to_ref.unit.name == "MJ"


def test_provider_falls_back_to_first_listed(resolver):
    entry = resolver.resolve(FlowQuery.for_product("Electricity, high voltage").with_unit("MJ"))

    assert entry.target.id == "f-elec-cn"
    assert entry.to_ref.provider.id == "p-elec-glo"


def test_elementary_flows_never_get_providers(resolver, catalog):
    resolver.resolve_elementary("Carbon dioxide", "kg")

    assert catalog.calls["get_providers_for"] == 0


def test_created_flow_gets_location_entity(resolver, catalog):
    query = FlowQuery.for_product("Widget").with_unit("t").with_location("DE")

    entry = resolver.resolve(query)

    locations = [payload for payload in catalog.entities.values() if payload["@type"] == "Location"]
    assert len(locations) == 1
    assert locations[0]["code"] == "DE"
    assert entry.target.location == "DE"
    assert entry.conversion_factor == pytest.approx(1000.0)


def test_persist_failure_returns_none_and_keeps_map_clean(resolver, catalog):
    catalog.fail_on("put_mapping")

    assert resolver.resolve_elementary("Carbon dioxide", "kg", AIR) is None
    assert resolver.flow_map.mappings == []

    catalog.recover("put_mapping")
    entry = resolver.resolve_elementary("Carbon dioxide", "kg", AIR)
    assert entry is not None
    assert len(catalog.documents[MAP_NAME]["mappings"]) == 1


def test_search_failure_returns_none(resolver, catalog):
    catalog.fail_on("search_flows")

    assert resolver.resolve_elementary("Carbon dioxide", "kg") is None
    assert resolver.flow_map.mappings == []


def test_create_failure_returns_none(resolver, catalog):
    catalog.fail_on("create_flow")

    assert resolver.resolve_elementary("SARS-CoV-2", "Item(s)") is None
    assert catalog.calls["put_mapping"] == 0


def test_provider_lookup_failure_returns_none(resolver, catalog):
    catalog.fail_on("get_providers_for")

    assert resolver.resolve(FlowQuery.for_product("Electricity").with_unit("MJ")) is None
    assert resolver.flow_map.mappings == []


def test_existing_flow_map_answers_without_catalog_calls():
    query = FlowQuery.for_elementary("Carbon dioxide").with_unit("g").with_category(AIR)
    seed = FlowResolver.open(make_catalog(), map_name=MAP_NAME)
    entry = seed.resolve(query)
    stored = FlowMap.from_dict(seed.flow_map.as_dict())

    catalog = make_catalog(mappings=(stored,))
    resolver = FlowResolver.open(catalog, map_name=MAP_NAME.upper())
    cached = resolver.resolve(query)

    assert cached.target.id == entry.target.id
    assert cached.conversion_factor == pytest.approx(0.001)
    assert catalog.calls["search_flows"] == 0
    assert catalog.calls["put_mapping"] == 0


def test_resolve_all_keeps_order(resolver):
    queries = [
        FlowQuery.for_elementary("Carbon dioxide").with_unit("kg"),
        FlowQuery.for_elementary("Carbon dioxide").with_unit("parsec"),
        FlowQuery.for_product("Electricity").with_unit("MJ"),
    ]

    results = resolver.resolve_all(queries)

    assert [result.target.id if result else None for result in results] == ["f-co2-bio", None, "f-elec-de"]


def test_category_tree_assigns_category_to_created_flow(catalog):
    resolver = FlowResolver.open(catalog, map_name=MAP_NAME, with_categories=True)

    entry = resolver.resolve_elementary("Novel emission", "kg", "elementary flows/emission to air")

    stored = catalog.entities[entry.target.id]
    assert stored["category"]["@id"] == "c-air"
    assert stored["categoryPath"] == ["Elementary flows", "Emission to air"]


def test_category_tree_falls_back_to_best_overlap(catalog):
    resolver = FlowResolver.open(catalog, map_name=MAP_NAME, with_categories=True)

    entry = resolver.resolve_elementary("Novel emission", "kg", "Emission to water")

    stored = catalog.entities[entry.target.id]
    assert stored["category"]["@id"] == "c-water"
    assert stored["categoryPath"] == ["Elementary flows", "Emission to water"]


def test_without_category_tree_query_path_is_kept(resolver, catalog):
    entry = resolver.resolve_elementary("Novel emission", "kg", "air/urban")

    stored = catalog.entities[entry.target.id]
    assert "category" not in stored
    assert stored["categoryPath"] == ["air", "urban"]


class DiskFullMappingService:
    def __init__(self) -> None:
        self.attempts = 0

    def get_mapping(self, name):
        return None

    def put_mapping(self, flow_map):
        self.attempts += 1
        raise OSError("disk full")


def test_foreign_persist_errors_return_none_and_are_not_cached():
    catalog = make_catalog()
    service = DiskFullMappingService()
    resolver = FlowResolver.open(catalog, service, map_name=MAP_NAME)

    assert resolver.resolve_elementary("Carbon dioxide", "kg") is None
    assert resolver.flow_map.mappings == []
    assert resolver.resolve_elementary("Carbon dioxide", "kg") is None
    assert service.attempts == 2
    assert catalog.calls["search_flows"] == 2


def _scenario_catalog() -> InMemoryCatalog:
    carbon_dioxide = Ref(
        id="f-co2-air",
        name="Carbon dioxide",
        ref_type="Flow",
        flow_type="elementary",
        ref_unit="kg",
        category_path=("emission", "air", "unspecified"),
    )
    return InMemoryCatalog(
        flows=[carbon_dioxide],
        unit_groups=[MASS, ITEMS],
        flow_properties=[
            FlowProperty(id="fp-mass", name="Mass", unit_group_id="ug-mass"),
            FlowProperty(id="fp-items", name="Number of items", unit_group_id="ug-items"),
        ],
    )


def test_grams_of_carbon_dioxide_map_to_existing_kilogram_flow():
    catalog = _scenario_catalog()
    resolver = FlowResolver.open(catalog, map_name=MAP_NAME)
    query = FlowQuery.for_elementary("Carbon dioxide").with_unit("g").with_category("air/unspecified")

    entry = resolver.resolve(query)

    assert entry.target.id == "f-co2-air"
    assert entry.conversion_factor == pytest.approx(resolver.unit_index.conversion_factor("g", "kg"))
    assert entry.conversion_factor == pytest.approx(0.001)
    assert catalog.calls["create_flow"] == 0


def test_unknown_virus_flow_is_created_once_and_then_served_from_map():
    catalog = _scenario_catalog()
    resolver = FlowResolver.open(catalog, map_name=MAP_NAME)
    query = FlowQuery.for_elementary("SARS-CoV-2 viruses").with_unit("Item(s)").with_category("air/urban")

    first = resolver.resolve(query)
    second = resolver.resolve(query)

    assert first.target.id == synthesized_flow_id("elementary", "SARS-CoV-2 viruses", "ug-items", "fp-items")
    assert first.target.id in catalog.flows
    assert resolver.flow_map.mappings == [first]
    assert second.target.id == first.target.id
    assert catalog.calls["create_flow"] == 1
