"""Builders for catalog entities created when no existing flow matches."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import NAMESPACE_URL, uuid4, uuid5

from tiangong_lca_flowmap.core.models import FlowType, Ref, flow_type_label

DEFAULT_ENTITY_VERSION = "00.00.000"


class Identifiable(Protocol):
    """Common identity fields shared by every root entity."""

    id: str
    name: str
    version: str
    last_change: str

    def assign_identity(self, *, entity_id: str, name: str, version: str = DEFAULT_ENTITY_VERSION) -> None: ...


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def synthesized_flow_id(flow_type: str, name: str, unit_group_id: str, flow_property_id: str) -> str:
    """Stable id for a flow created from a query under a given unit context."""
    key = "/".join(("flow", flow_type, name.strip(), unit_group_id, flow_property_id))
    return str(uuid5(NAMESPACE_URL, key))


def location_id(code: str) -> str:
    return str(uuid5(NAMESPACE_URL, f"location/{code.strip().lower()}"))


@dataclass(slots=True)
class LocationRecord:
    id: str = ""
    name: str = ""
    version: str = DEFAULT_ENTITY_VERSION
    last_change: str = ""
    code: str = ""

    def assign_identity(self, *, entity_id: str, name: str, version: str = DEFAULT_ENTITY_VERSION) -> None:
        self.id = entity_id
        self.name = name
        self.version = version
        self.last_change = _timestamp()

    def as_ref(self) -> Ref:
        return Ref(id=self.id, name=self.name, ref_type="Location")

    def as_dict(self) -> dict[str, Any]:
        return {
            "@type": "Location",
            "@id": self.id,
            "name": self.name,
            "version": self.version,
            "lastChange": self.last_change,
            "code": self.code,
        }


@dataclass(slots=True)
class FlowRecord:
    id: str = ""
    name: str = ""
    version: str = DEFAULT_ENTITY_VERSION
    last_change: str = ""
    flow_type: FlowType = "product"
    flow_property: Ref | None = None
    ref_unit: str | None = None
    category: Ref | None = None
    category_path: tuple[str, ...] = ()
    location: Ref | None = None

    def assign_identity(self, *, entity_id: str, name: str, version: str = DEFAULT_ENTITY_VERSION) -> None:
        self.id = entity_id
        self.name = name
        self.version = version
        self.last_change = _timestamp()

    def as_ref(self) -> Ref:
        return Ref(
            id=self.id,
            name=self.name,
            ref_type="Flow",
            flow_type=self.flow_type,
            ref_unit=self.ref_unit,
            category_path=self.category_path,
            location=self.location.name if self.location is not None else None,
        )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "@type": "Flow",
            "@id": self.id,
            "name": self.name,
            "version": self.version,
            "lastChange": self.last_change,
            "flowType": flow_type_label(self.flow_type),
            "flowProperties": [],
        }
        if self.flow_property is not None:
            payload["flowProperties"].append(
                {
                    "conversionFactor": 1.0,
                    "referenceFlowProperty": True,
                    "flowProperty": {"@id": self.flow_property.id, "name": self.flow_property.name},
                }
            )
        if self.ref_unit:
            payload["refUnit"] = self.ref_unit
        if self.category is not None:
            payload["category"] = {"@id": self.category.id, "name": self.category.name}
        if self.category_path:
            payload["categoryPath"] = list(self.category_path)
        if self.location is not None:
            payload["location"] = {"@id": self.location.id, "name": self.location.name}
        return payload


def flow_of(
    name: str,
    flow_type: FlowType,
    flow_property: Ref | None = None,
    *,
    flow_id: str | None = None,
    ref_unit: str | None = None,
) -> FlowRecord:
    record = FlowRecord(flow_type=flow_type, flow_property=flow_property, ref_unit=ref_unit)
    record.assign_identity(entity_id=flow_id or str(uuid4()), name=name)
    return record


def location_of(name: str, code: str | None = None) -> LocationRecord:
    resolved_code = (code or name).strip()
    record = LocationRecord(code=resolved_code)
    record.assign_identity(entity_id=location_id(resolved_code), name=name)
    return record
