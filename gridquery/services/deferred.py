from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional

from gridquery.core.errors import LoadAlreadyFetchedError
from gridquery.schemas.query import DataPage

_LOG = logging.getLogger("gridquery.load")

SuccessCallback = Callable[[List[Any], int], None]
ErrorCallback = Callable[[BaseException], None]
AlwaysCallback = Callable[[], None]
Resolver = Callable[[], Awaitable[DataPage]]


def _noop(*_args) -> None:
    return None


@dataclass
class LoadResult:
    page: Optional[DataPage] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DataLoad:
    """A query that has not run yet.

    Subscribe with ``success``/``error``/``always`` (a later subscription replaces
    the earlier one), then ``await fetch()``. Exactly one of success or error is
    called, followed by always.
    """

    def __init__(self, resolver: Resolver, *, source_name: str = ""):
        self._resolver = resolver
        self._source_name = source_name
        self._on_success: SuccessCallback = _noop
        self._on_error: ErrorCallback = _noop
        self._on_always: AlwaysCallback = _noop
        self._fetched = False

    def success(self, callback: SuccessCallback) -> "DataLoad":
        self._on_success = callback
        return self

    def error(self, callback: ErrorCallback) -> "DataLoad":
        self._on_error = callback
        return self

    def always(self, callback: AlwaysCallback) -> "DataLoad":
        self._on_always = callback
        return self

    async def fetch(self) -> LoadResult:
        if self._fetched:
            raise LoadAlreadyFetchedError(f"Load from source {self._source_name!r} was already fetched")
        self._fetched = True
        try:
            page = await self._resolver()
        except Exception as exc:
            _LOG.warning("grid_load_failed source=%s error=%s", self._source_name, exc)
            try:
                self._on_error(exc)
            finally:
                self._on_always()
            return LoadResult(error=exc)
        try:
            self._on_success(page.items, page.total)
        finally:
            self._on_always()
        return LoadResult(page=page)
