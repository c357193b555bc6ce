"""Shared data models exchanged with the catalog and the mapping service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Mapping, TypeVar

from .logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

FlowType = Literal["elementary", "product", "waste"]

FLOW_TYPE_LABELS: dict[str, str] = {
    "elementary": "ElementaryFlow",
    "product": "ProductFlow",
    "waste": "WasteFlow",
}


def normalize_flow_type(value: Any) -> FlowType | None:
    """Map the various spellings used by catalogs onto a ``FlowType``."""
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    if "elementary" in text:
        return "elementary"
    if "product" in text:
        return "product"
    if "waste" in text:
        return "waste"
    return None


def flow_type_label(flow_type: str) -> str:
    return FLOW_TYPE_LABELS.get(flow_type, flow_type)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _ref_id(value: Any) -> str | None:
    if isinstance(value, Mapping):
        identifier = _text(value.get("@id") or value.get("id"))
        return identifier or None
    identifier = _text(value)
    return identifier or None


def _location(value: Any) -> str | None:
    if isinstance(value, Mapping):
        value = value.get("code") or value.get("name")
    return _text(value) or None


def _factor(value: Any, default: float = 1.0) -> float:
    """Numeric conversion factor; missing values fall back to ``default``, garbage raises ``ValueError``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid conversion factor {value!r}") from exc


def _parse_each(parse: Callable[[Mapping[str, Any]], T], items: Iterable[Any], kind: str) -> list[T]:
    parsed: list[T] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        try:
            parsed.append(parse(item))
        except ValueError as exc:
            LOGGER.warning("models.skipped_malformed", kind=kind, error=str(exc))
    return parsed


def _category_path(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        separator = " > " if " > " in value else "/"
        return tuple(part.strip() for part in value.split(separator) if part.strip())
    if isinstance(value, (list, tuple)):
        return tuple(_text(part) for part in value if _text(part))
    return ()


@dataclass(slots=True, frozen=True)
class Ref:
    """Canonical reference to a catalog entity (flow, process, unit, ...)."""

    id: str
    name: str = ""
    ref_type: str | None = None
    flow_type: FlowType | None = None
    ref_unit: str | None = None
    category_path: tuple[str, ...] = ()
    location: str | None = None

    @property
    def category(self) -> str:
        return "/".join(self.category_path)

    @classmethod
    def from_dict(cls, data: Any) -> "Ref | None":
        if not isinstance(data, Mapping):
            return None
        return cls(
            id=_text(data.get("@id") or data.get("id") or data.get("uuid")),
            name=_text(data.get("name") or data.get("base_name")),
            ref_type=_text(data.get("@type") or data.get("type")) or None,
            flow_type=normalize_flow_type(data.get("flowType") or data.get("flow_type")),
            ref_unit=_text(data.get("refUnit") or data.get("ref_unit")) or None,
            category_path=_category_path(data.get("categoryPath") or data.get("category_path")),
            location=_location(data.get("location")),
        )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"@id": self.id, "name": self.name}
        if self.ref_type:
            payload["@type"] = self.ref_type
        if self.flow_type:
            payload["flowType"] = flow_type_label(self.flow_type)
        if self.ref_unit:
            payload["refUnit"] = self.ref_unit
        if self.category_path:
            payload["categoryPath"] = list(self.category_path)
        if self.location:
            payload["location"] = self.location
        return payload


@dataclass(slots=True, frozen=True)
class Unit:
    id: str
    name: str
    conversion_factor: float = 1.0
    reference_unit: bool = False
    synonyms: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Unit":
        synonyms = data.get("synonyms") or ()
        if isinstance(synonyms, str):
            synonyms = [part for part in synonyms.split(";")]
        return cls(
            id=_text(data.get("@id") or data.get("id")),
            name=_text(data.get("name")),
            conversion_factor=_factor(data.get("conversionFactor", data.get("conversion_factor"))),
            reference_unit=bool(data.get("referenceUnit") or data.get("reference_unit")),
            synonyms=tuple(_text(item) for item in synonyms if _text(item)),
        )


@dataclass(slots=True, frozen=True)
class UnitGroup:
    """A set of mutually convertible units sharing one reference unit."""

    id: str
    name: str
    units: tuple[Unit, ...] = ()
    default_flow_property_id: str | None = None

    @property
    def reference_unit(self) -> Unit | None:
        for unit in self.units:
            if unit.reference_unit:
                return unit
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UnitGroup":
        units = data.get("units") or ()
        default_property = data.get("defaultFlowProperty") or data.get("defaultFlowPropertyId") or data.get("default_flow_property_id")
        return cls(
            id=_text(data.get("@id") or data.get("id")),
            name=_text(data.get("name")),
            units=tuple(_parse_each(Unit.from_dict, units, "unit")),
            default_flow_property_id=_ref_id(default_property),
        )


@dataclass(slots=True, frozen=True)
class FlowProperty:
    id: str
    name: str
    unit_group_id: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FlowProperty":
        group = data.get("unitGroup") or data.get("unitGroupId") or data.get("unit_group_id")
        return cls(
            id=_text(data.get("@id") or data.get("id")),
            name=_text(data.get("name")),
            unit_group_id=_ref_id(group),
        )

    def as_ref(self) -> Ref:
        return Ref(id=self.id, name=self.name, ref_type="FlowProperty")


@dataclass(slots=True, frozen=True)
class Category:
    id: str
    name: str
    model_type: str
    parent_id: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Category":
        parent = data.get("category") or data.get("parentId") or data.get("parent_id")
        return cls(
            id=_text(data.get("@id") or data.get("id")),
            name=_text(data.get("name")),
            model_type=_text(data.get("modelType") or data.get("model_type")).upper(),
            parent_id=_ref_id(parent),
        )


@dataclass(slots=True, frozen=True)
class FlowMapRef:
    """One side of a mapping entry: a flow, its unit and an optional provider."""

    flow: Ref | None
    unit: Ref | None = None
    provider: Ref | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "FlowMapRef | None":
        if not isinstance(data, Mapping):
            return None
        return cls(
            flow=Ref.from_dict(data.get("flow")),
            unit=Ref.from_dict(data.get("unit")),
            provider=Ref.from_dict(data.get("provider")),
        )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.flow is not None:
            payload["flow"] = self.flow.as_dict()
        if self.unit is not None:
            payload["unit"] = self.unit.as_dict()
        if self.provider is not None:
            payload["provider"] = self.provider.as_dict()
        return payload


@dataclass(slots=True, frozen=True)
class MappingEntry:
    """Persisted association from a flow query to a canonical flow."""

    from_ref: FlowMapRef | None
    to_ref: FlowMapRef | None
    conversion_factor: float = 1.0

    @property
    def source_id(self) -> str | None:
        if self.from_ref is None or self.from_ref.flow is None:
            return None
        return self.from_ref.flow.id or None

    @property
    def target(self) -> Ref | None:
        if self.to_ref is None:
            return None
        return self.to_ref.flow

    @property
    def is_well_formed(self) -> bool:
        return self.source_id is not None and self.target is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MappingEntry":
        factor = data.get("conversionFactor", data.get("conversion_factor"))
        return cls(
            from_ref=FlowMapRef.from_dict(data.get("from")),
            to_ref=FlowMapRef.from_dict(data.get("to")),
            conversion_factor=_factor(factor),
        )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"conversionFactor": self.conversion_factor}
        if self.from_ref is not None:
            payload["from"] = self.from_ref.as_dict()
        if self.to_ref is not None:
            payload["to"] = self.to_ref.as_dict()
        return payload


@dataclass(slots=True)
class FlowMap:
    name: str
    id: str
    mappings: list[MappingEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FlowMap":
        entries = data.get("mappings") or []
        return cls(
            name=_text(data.get("name")),
            id=_text(data.get("@id") or data.get("id")),
            mappings=_parse_each(MappingEntry.from_dict, entries, "mapping_entry"),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "@type": "FlowMap",
            "@id": self.id,
            "name": self.name,
            "mappings": [entry.as_dict() for entry in self.mappings],
        }
