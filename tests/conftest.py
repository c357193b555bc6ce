from __future__ import annotations

import pytest

from tiangong_lca_flowmap.catalog import InMemoryCatalog
from tiangong_lca_flowmap.core.models import Category, FlowMap, FlowProperty, Ref, Unit, UnitGroup
from tiangong_lca_flowmap.resolver import FlowResolver

MASS = UnitGroup(
    id="ug-mass",
    name="Units of mass",
    units=(
        Unit(id="u-kg", name="kg", conversion_factor=1.0, reference_unit=True),
        Unit(id="u-g", name="g", conversion_factor=0.001),
        Unit(id="u-t", name="t", conversion_factor=1000.0, synonyms=("tonne",)),
    ),
    default_flow_property_id="fp-mass",
)
ENERGY = UnitGroup(
    id="ug-energy",
    name="Units of energy",
    units=(
        Unit(id="u-mj", name="MJ", conversion_factor=1.0, reference_unit=True),
        Unit(id="u-kwh", name="kWh", conversion_factor=3.6),
    ),
    default_flow_property_id="fp-energy",
)
ITEMS = UnitGroup(
    id="ug-items",
    name="Units of items",
    units=(Unit(id="u-item", name="Item(s)", conversion_factor=1.0, reference_unit=True),),
    default_flow_property_id="fp-items",
)

FLOW_PROPERTIES = [
    FlowProperty(id="fp-mass", name="Mass", unit_group_id="ug-mass"),
    FlowProperty(id="fp-energy", name="Net calorific value", unit_group_id="ug-energy"),
    FlowProperty(id="fp-gross", name="Gross calorific value", unit_group_id="ug-energy"),
    FlowProperty(id="fp-items", name="Number of items", unit_group_id="ug-items"),
]

CATEGORIES = [
    Category(id="c-elem", name="Elementary flows", model_type="FLOW"),
    Category(id="c-air", name="Emission to air", model_type="FLOW", parent_id="c-elem"),
    Category(id="c-air-unspec", name="unspecified", model_type="FLOW", parent_id="c-air"),
    Category(id="c-water", name="Emission to water", model_type="FLOW", parent_id="c-elem"),
    Category(id="c-tech", name="Technosphere flows", model_type="FLOW"),
    Category(id="c-energy", name="Energy", model_type="PROCESS"),
]

CO2_BIOGENIC = Ref(
    id="f-co2-bio",
    name="Carbon dioxide, biogenic",
    ref_type="Flow",
    flow_type="elementary",
    ref_unit="kg",
    category_path=("Elementary flows", "Emission to water"),
)
CO2 = Ref(
    id="f-co2",
    name="Carbon dioxide",
    ref_type="Flow",
    flow_type="elementary",
    ref_unit="kg",
    category_path=("Elementary flows", "Emission to air", "unspecified"),
)
ELECTRICITY_DE = Ref(
    id="f-elec-de",
    name="Electricity, medium voltage",
    ref_type="Flow",
    flow_type="product",
    ref_unit="MJ",
    location="DE",
)
ELECTRICITY_CN = Ref(
    id="f-elec-cn",
    name="Electricity, high voltage",
    ref_type="Flow",
    flow_type="product",
    ref_unit="MJ",
    location="CN",
)

PROVIDERS = {
    "f-elec-de": [Ref(id="p-elec-de", name="market for electricity, medium voltage", ref_type="Process", location="DE")],
    "f-elec-cn": [
        Ref(id="p-elec-glo", name="electricity production, hard coal", ref_type="Process", location="GLO"),
        Ref(id="p-elec-cn", name="market for electricity, high voltage", ref_type="Process", location="CN"),
    ],
}

MAP_NAME = "test-flow-map"


def make_catalog(mappings: tuple[FlowMap, ...] = ()) -> InMemoryCatalog:
    return InMemoryCatalog(
        flows=[CO2_BIOGENIC, CO2, ELECTRICITY_DE, ELECTRICITY_CN],
        unit_groups=[MASS, ENERGY, ITEMS],
        flow_properties=FLOW_PROPERTIES,
        categories=CATEGORIES,
        providers=PROVIDERS,
        mappings=mappings,
    )


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return make_catalog()


@pytest.fixture
def resolver(catalog: InMemoryCatalog) -> FlowResolver:
    return FlowResolver.open(catalog, map_name=MAP_NAME)
