"""In-memory index from unit symbols to their quantity and unit group."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from tiangong_lca_flowmap.core.logging import get_logger
from tiangong_lca_flowmap.core.models import FlowProperty, Unit, UnitGroup

if TYPE_CHECKING:
    from tiangong_lca_flowmap.catalog.protocols import FlowCatalog

LOGGER = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class UnitEntry:
    """Resolved unit: its default quantity, group and factor to the group reference."""

    flow_property: FlowProperty
    unit_group: UnitGroup
    unit: Unit
    conversion_factor: float

    @property
    def reference_unit_name(self) -> str:
        reference = self.unit_group.reference_unit
        return reference.name if reference is not None else self.unit.name


class UnitIndex:
    """Maps unit names and synonyms to exactly one ``UnitEntry``.

    Only units of groups whose default flow property is present in the catalog
    are indexed. When two groups declare the same symbol, the first registration
    is kept and the collision is logged.
    """

    def __init__(self, entries: dict[str, UnitEntry]) -> None:
        self._entries = entries

    @classmethod
    def build(cls, catalog: FlowCatalog) -> "UnitIndex":
        groups = list(catalog.fetch_unit_groups())
        properties = list(catalog.fetch_flow_properties())
        LOGGER.debug("unit_index.fetched", unit_groups=len(groups), flow_properties=len(properties))
        return cls.from_catalog(groups, properties)

    @classmethod
    def from_catalog(cls, groups: Iterable[UnitGroup], properties: Iterable[FlowProperty]) -> "UnitIndex":
        groups_by_id = {group.id: group for group in groups}
        entries: dict[str, UnitEntry] = {}
        for prop in properties:
            group = groups_by_id.get(prop.unit_group_id or "")
            if group is None or prop.id != group.default_flow_property_id:
                continue
            for unit in group.units:
                entry = UnitEntry(
                    flow_property=prop,
                    unit_group=group,
                    unit=unit,
                    conversion_factor=unit.conversion_factor,
                )
                for symbol in (unit.name, *unit.synonyms):
                    cls._register(entries, symbol, entry)
        LOGGER.info("unit_index.built", symbols=len(entries))
        return cls(entries)

    @staticmethod
    def _register(entries: dict[str, UnitEntry], symbol: str, entry: UnitEntry) -> None:
        if not symbol:
            return
        existing = entries.get(symbol)
        if existing is None:
            entries[symbol] = entry
            return
        if existing.unit_group.id == entry.unit_group.id and existing.unit.id == entry.unit.id:
            return
        LOGGER.warning(
            "unit_index.duplicate_unit",
            unit=symbol,
            kept_group=existing.unit_group.name,
            dropped_group=entry.unit_group.name,
        )

    def entry_of(self, symbol: str | None) -> UnitEntry | None:
        if not symbol:
            return None
        return self._entries.get(symbol.strip())

    def are_convertible(self, unit_a: str | None, unit_b: str | None) -> bool:
        entry_a = self.entry_of(unit_a)
        entry_b = self.entry_of(unit_b)
        if entry_a is None or entry_b is None:
            return False
        return entry_a.unit_group.id == entry_b.unit_group.id

    def conversion_factor(self, from_unit: str | None, to_unit: str | None) -> float | None:
        """Factor that converts an amount in ``from_unit`` into ``to_unit``."""
        if not self.are_convertible(from_unit, to_unit):
            return None
        source = self.entry_of(from_unit)
        target = self.entry_of(to_unit)
        if not target.conversion_factor:
            return None
        return source.conversion_factor / target.conversion_factor

    def property_of(self, symbol: str | None) -> FlowProperty | None:
        entry = self.entry_of(symbol)
        return entry.flow_property if entry is not None else None

    def factor_of(self, symbol: str | None) -> float | None:
        entry = self.entry_of(symbol)
        return entry.conversion_factor if entry is not None else None

    def reference_unit_of(self, symbol: str | None) -> str | None:
        entry = self.entry_of(symbol)
        return entry.reference_unit_name if entry is not None else None

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and self.entry_of(symbol) is not None

    def __len__(self) -> int:
        return len(self._entries)
