"""Adapter registry keyed by tool identifier."""

from __future__ import annotations

import logging
from typing import Optional

from common.config import Settings, load_settings
from common.errors import UnknownAdapterError
from common.models.benchmark import AdapterType
from common.models.connection import DatabaseType
from adapters.base import BenchmarkAdapter
from adapters.hammerdb import HammerDBAdapter
from adapters.swingbench import SwingbenchAdapter
from adapters.sysbench import SysbenchAdapter
from adapters.tpcc import TpccAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Explicit lookup table from tool identifier to adapter."""

    def __init__(self):
        self._adapters: dict[AdapterType, BenchmarkAdapter] = {}

    def register(self, adapter: BenchmarkAdapter) -> None:
        if adapter.tool in self._adapters:
            logger.warning(f"Replacing registered adapter: {adapter.name}")
        self._adapters[adapter.tool] = adapter
        logger.debug(f"Registered adapter: {adapter.name}")

    def get(self, tool: AdapterType | str) -> BenchmarkAdapter:
        """Return the adapter for a tool or raise UnknownAdapterError."""
        adapter = self.get_by_tool(tool)
        if adapter is None:
            raise UnknownAdapterError(getattr(tool, "value", str(tool)))
        return adapter

    def get_by_tool(self, tool: AdapterType | str) -> Optional[BenchmarkAdapter]:
        """Case-insensitive lookup returning None when nothing matches."""
        name = getattr(tool, "value", str(tool)).strip().lower()
        try:
            return self._adapters.get(AdapterType(name))
        except ValueError:
            return None

    def find_by_database(self, database_type: DatabaseType | str) -> list[BenchmarkAdapter]:
        """Adapters able to drive the given database type."""
        return [adapter for adapter in self.list() if adapter.supports_database(database_type)]

    def list(self) -> list[BenchmarkAdapter]:
        return list(self._adapters.values())

    def __contains__(self, tool: object) -> bool:
        return isinstance(tool, (str, AdapterType)) and self.get_by_tool(tool) is not None

    def __len__(self) -> int:
        return len(self._adapters)


def create_default_registry(settings: Optional[Settings] = None) -> AdapterRegistry:
    """Registry with every built-in adapter sharing one settings instance."""
    settings = settings or load_settings()
    registry = AdapterRegistry()
    for adapter_class in (SysbenchAdapter, HammerDBAdapter, SwingbenchAdapter, TpccAdapter):
        registry.register(adapter_class(settings))
    return registry
