from __future__ import annotations

import logging
from typing import Any, Dict, List

from gridquery.core.config import Settings
from gridquery.services.data_source import DataSource, Transport, create_source

_LOG = logging.getLogger("gridquery.source")


class SourceRegistry:
    """Named data sources served by the grid API."""

    def __init__(self):
        self._sources: Dict[str, DataSource] = {}

    def register(self, name: str, source: Any, source_options: Any = None, **kwargs) -> DataSource:
        key = str(name or "").strip()
        if not key:
            raise ValueError("Source name must not be empty")
        resolved = create_source(source, source_options, **kwargs)
        self._sources[key] = resolved
        _LOG.info("grid_source_registered name=%s kind=%s", key, resolved.name)
        return resolved

    def get(self, name: str) -> DataSource | None:
        return self._sources.get(str(name or "").strip())

    def names(self) -> List[str]:
        return sorted(self._sources)

    def describe(self) -> List[dict]:
        return [{"name": key, "kind": self._sources[key].name} for key in self.names()]


def registry_from_settings(cfg: Settings, *, transport: Transport | None = None) -> SourceRegistry:
    registry = SourceRegistry()
    for name, url, options in cfg.grid_odata_sources_list:
        registry.register(name, url, options, transport=transport, settings=cfg)
    return registry
