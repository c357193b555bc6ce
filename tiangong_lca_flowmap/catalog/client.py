"""Catalog and mapping service backed by the Tiangong MCP tools."""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from tenacity import Retrying, stop_after_attempt, wait_exponential

from tiangong_lca_flowmap.core.config import Settings, get_settings
from tiangong_lca_flowmap.core.exceptions import CatalogError
from tiangong_lca_flowmap.core.logging import get_logger
from tiangong_lca_flowmap.core.mcp_client import MCPToolClient
from tiangong_lca_flowmap.core.models import Category, FlowMap, FlowProperty, Ref, UnitGroup, flow_type_label

from .protocols import EntityRecord

LOGGER = get_logger(__name__)

TIMEOUT_ERRORS = (httpx.TimeoutException, TimeoutError)

_ENTITY_TABLES: dict[str, str] = {
    "Flow": "flows",
    "Location": "locations",
    "Process": "processes",
    "FlowProperty": "flowproperties",
    "UnitGroup": "unitgroups",
    "Source": "sources",
    "Actor": "contacts",
}


class McpCatalogClient:
    """Implements the catalog and mapping capabilities over MCP tool calls.

    Flow search goes through the search tool; every other capability is a
    ``Database_CRUD_Tool`` operation. Calls are retried with exponential
    backoff and any remaining failure is raised as ``CatalogError``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        mcp_client: MCPToolClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._server_name = self._settings.mcp_service_name
        self._search_tool = self._settings.flow_search_tool_name
        self._database_tool = self._settings.database_tool_name
        self._mcp = mcp_client or MCPToolClient(self._settings)
        self._max_attempts = max(1, self._settings.max_retries)

    def search_flows(self, query: str) -> list[Ref]:
        raw = self._call(self._search_tool, {"query": str(query or "").strip()})
        candidates = [Ref.from_dict(item) for item in _records(raw)]
        flows = [candidate for candidate in candidates if candidate is not None and candidate.id]
        LOGGER.info("catalog.search_flows", query=query, candidate_count=len(flows))
        return flows

    def get_providers_for(self, flow: Ref) -> list[Ref]:
        arguments: dict[str, Any] = {"operation": "providers", "table": "processes", "flowId": flow.id}
        if flow.flow_type:
            arguments["flowType"] = flow_type_label(flow.flow_type)
        raw = self._call(self._database_tool, arguments)
        providers = [Ref.from_dict(item) for item in _records(raw)]
        return [provider for provider in providers if provider is not None and provider.id]

    def fetch_unit_groups(self) -> list[UnitGroup]:
        raw = self._call(self._database_tool, {"operation": "select", "table": "unitgroups"})
        return [UnitGroup.from_dict(item) for item in _records(raw)]

    def fetch_flow_properties(self) -> list[FlowProperty]:
        raw = self._call(self._database_tool, {"operation": "select", "table": "flowproperties"})
        return [FlowProperty.from_dict(item) for item in _records(raw)]

    def fetch_categories(self) -> list[Category]:
        raw = self._call(self._database_tool, {"operation": "select", "table": "categories"})
        return [Category.from_dict(item) for item in _records(raw)]

    def create_flow(self, record: EntityRecord) -> Ref:
        payload = record.as_dict()
        raw = self._upsert("flows", record.id, payload)
        stored = next(iter(_records(raw)), None)
        ref = Ref.from_dict(stored) if stored else None
        if ref is not None and ref.id:
            return ref
        as_ref = getattr(record, "as_ref", None)
        return as_ref() if callable(as_ref) else Ref(id=record.id, name=record.name, ref_type="Flow")

    def create_other_entity(self, record: EntityRecord) -> Ref:
        payload = record.as_dict()
        entity_type = str(payload.get("@type") or "")
        table = _ENTITY_TABLES.get(entity_type)
        if table is None:
            raise CatalogError(f"Unsupported entity type '{entity_type}'")
        self._upsert(table, record.id, payload)
        return Ref(id=record.id, name=record.name, ref_type=entity_type)

    def get_mapping(self, name: str) -> FlowMap | None:
        raw = self._call(self._database_tool, {"operation": "select", "table": "flowmaps", "name": name})
        for document in _records(raw):
            if str(document.get("name") or "").strip().casefold() == name.strip().casefold():
                return FlowMap.from_dict(document)
        return None

    def put_mapping(self, flow_map: FlowMap) -> None:
        self._upsert("flowmaps", flow_map.id, flow_map.as_dict())

    def close(self) -> None:
        self._mcp.close()

    def __enter__(self) -> "McpCatalogClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _upsert(self, table: str, record_id: str, payload: Mapping[str, Any]) -> Any:
        return self._call(
            self._database_tool,
            {"operation": "upsert", "table": table, "id": record_id, "jsonOrdered": dict(payload)},
        )

    def _call(self, tool_name: str, arguments: Mapping[str, Any]) -> Any:
        LOGGER.debug("catalog.request", tool=tool_name, operation=arguments.get("operation"), table=arguments.get("table"))
        retryer = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=max(self._settings.retry_backoff, 0.1), min=0.5, max=8),
            reraise=True,
        )
        try:
            for attempt in retryer:
                with attempt:
                    return self._mcp.invoke_json_tool(self._server_name, tool_name, arguments)
        except CatalogError:
            raise
        except TIMEOUT_ERRORS as exc:  # type: ignore[misc]
            attempts = int(retryer.statistics.get("attempt_number") or self._max_attempts)
            LOGGER.error("catalog.timeout", tool=tool_name, attempts=attempts, timeout=self._settings.request_timeout)
            raise CatalogError(f"Catalog tool '{tool_name}' timed out after {attempts} attempt(s)") from exc
        except Exception as exc:  # pylint: disable=broad-except
            raise CatalogError(f"Catalog tool '{tool_name}' invocation failed") from exc


def _records(raw: Any) -> list[dict[str, Any]]:
    """Flatten the list/envelope shapes returned by the tools into records."""
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        for key in ("data", "records", "candidates", "flows", "results"):
            items = raw.get(key)
            if isinstance(items, list):
                return _records(items)
        return [_unwrap(raw)]
    if isinstance(raw, list):
        return [_unwrap(item) for item in raw if isinstance(item, Mapping)]
    LOGGER.warning("catalog.unexpected_payload", payload_type=type(raw).__name__)
    return []


def _unwrap(record: Mapping[str, Any]) -> dict[str, Any]:
    for key in ("json_ordered", "json"):
        payload = record.get(key)
        if isinstance(payload, Mapping):
            return dict(payload)
    return dict(record)
