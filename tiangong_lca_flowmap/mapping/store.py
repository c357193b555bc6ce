"""Ordered mapping table persisted as one document in the mapping service."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from tiangong_lca_flowmap.core.exceptions import MappingPersistenceError
from tiangong_lca_flowmap.core.logging import get_logger
from tiangong_lca_flowmap.core.models import FlowMap, MappingEntry

if TYPE_CHECKING:
    from tiangong_lca_flowmap.catalog.protocols import MappingService

LOGGER = get_logger(__name__)


class MappingStore:
    """Owns one ``FlowMap`` for a session; not safe for concurrent appends."""

    def __init__(self, service: MappingService, flow_map: FlowMap) -> None:
        self._service = service
        self._flow_map = flow_map

    @classmethod
    def open(cls, service: MappingService, name: str) -> "MappingStore":
        flow_map = service.get_mapping(name)
        if flow_map is None:
            flow_map = FlowMap(name=name, id=str(uuid4()))
            LOGGER.info("mapping_store.initialized", name=name, id=flow_map.id)
        else:
            LOGGER.info("mapping_store.loaded", name=name, entries=len(flow_map.mappings))
        return cls(service, flow_map)

    @property
    def flow_map(self) -> FlowMap:
        return self._flow_map

    @property
    def name(self) -> str:
        return self._flow_map.name

    @property
    def entries(self) -> tuple[MappingEntry, ...]:
        return tuple(self._flow_map.mappings)

    def find(self, flow_id: str) -> MappingEntry | None:
        for entry in self._flow_map.mappings:
            if entry.is_well_formed and entry.source_id == flow_id:
                return entry
        return None

    def append(self, entry: MappingEntry) -> None:
        self._flow_map.mappings.append(entry)

    def flush(self) -> None:
        try:
            self._service.put_mapping(self._flow_map)
        except Exception as exc:  # pylint: disable=broad-except
            raise MappingPersistenceError(f"Failed to store flow map '{self.name}'") from exc
        LOGGER.info("mapping_store.flushed", name=self.name, entries=len(self._flow_map.mappings))

    def append_and_flush(self, entry: MappingEntry) -> None:
        """Append ``entry`` and persist; the entry is rolled back if persisting fails."""
        self.append(entry)
        try:
            self.flush()
        except BaseException:
            self._flow_map.mappings.pop()
            raise

    def __len__(self) -> int:
        return len(self._flow_map.mappings)
