from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Protocol, Sequence

import httpx

from gridquery.core.config import Settings, settings as default_settings
from gridquery.core.errors import (
    ConfigurationError,
    MalformedResponseError,
    TransportError,
    UnsupportedSourceOptionsError,
    UnsupportedSourceTypeError,
)
from gridquery.schemas.query import DataPage, DataRequest, ODataVersion
from gridquery.services.deferred import DataLoad
from gridquery.services.local_query import run_local_query
from gridquery.services.odata_query import build_request_url, map_data

_LOG = logging.getLogger("gridquery.source")

Transport = Callable[[str], Awaitable[Any]]

_DIALECT_TAGS = {
    "odata3": ODataVersion.V3,
    "odata4": ODataVersion.V4,
}


class DataSource(Protocol):
    name: str

    def load(self, request: DataRequest) -> DataLoad:
        ...


class EmptySource:
    name = "empty"

    def load(self, request: DataRequest) -> DataLoad:
        async def _resolve() -> DataPage:
            return DataPage(items=[], total=0)

        return DataLoad(_resolve, source_name=self.name)


class ArraySource:
    name = "array"

    def __init__(self, rows: Sequence[Any]):
        # Bound by reference, every load works on its own copy.
        self.rows = rows

    def load(self, request: DataRequest) -> DataLoad:
        async def _resolve() -> DataPage:
            return run_local_query(self.rows, request)

        return DataLoad(_resolve, source_name=self.name)


class HttpxTransport:
    def __init__(
        self,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = float(timeout if timeout is not None else default_settings.ODATA_TIMEOUT_SECONDS)
        self.headers = {"Accept": "application/json", **(headers or {})}
        self._transport = transport

    async def __call__(self, url: str) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, headers=self.headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"OData request failed: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(f"OData endpoint returned status {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError("OData endpoint returned invalid JSON") from exc


class ODataSource:
    name = "odata"

    def __init__(
        self,
        url: str,
        version: ODataVersion,
        *,
        transport: Transport | None = None,
        count_fallback: bool = False,
    ):
        self.url = url
        self.version = version
        self.transport = transport or HttpxTransport()
        self.count_fallback = count_fallback

    def load(self, request: DataRequest) -> DataLoad:
        async def _resolve() -> DataPage:
            url = build_request_url(self.version, self.url, request)
            _LOG.debug("odata_load version=%s url=%s", int(self.version), url)
            raw = await self.transport(url)
            return map_data(self.version, raw, count_fallback=self.count_fallback)

        return DataLoad(_resolve, source_name=self.name)


def resolve_odata_version(options: Any, default_version: int = 4) -> ODataVersion | None:
    if isinstance(options, ODataVersion):
        return options
    if isinstance(options, bool):
        return None
    if isinstance(options, int):
        return ODataVersion(options) if options in (3, 4) else None
    if not isinstance(options, str):
        return None
    tag = options.strip().lower()
    if tag == "odata":
        try:
            return ODataVersion(default_version)
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported ODATA_DEFAULT_VERSION: {default_version!r}") from exc
    return _DIALECT_TAGS.get(tag)


def create_source(
    source: Any,
    source_options: Any = None,
    *,
    transport: Transport | None = None,
    settings: Settings | None = None,
) -> DataSource:
    cfg = settings or default_settings
    if source is None:
        return EmptySource()

    if isinstance(source, str):
        version = resolve_odata_version(source_options, cfg.ODATA_DEFAULT_VERSION)
        if version is None:
            raise UnsupportedSourceOptionsError(source_options)
        return ODataSource(
            source,
            version,
            transport=transport or HttpxTransport(timeout=cfg.ODATA_TIMEOUT_SECONDS),
            count_fallback=cfg.ODATA_COUNT_FALLBACK,
        )

    if isinstance(source, (list, tuple)):
        return ArraySource(source)

    raise UnsupportedSourceTypeError(source)
