from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_LOG = logging.getLogger("gridquery.http")

# request.state attributes the grid endpoints fill in, in log order
GRID_LOG_FIELDS = ("grid_source", "grid_kind", "grid_total", "grid_error")


def _request_id(raw: str | None) -> str:
    value = str(raw or "").strip()
    return value if _REQUEST_ID_RE.fullmatch(value) else uuid4().hex


def grid_log_suffix(request: Request) -> str:
    parts = []
    for name in GRID_LOG_FIELDS:
        value = getattr(request.state, name, None)
        if value is not None:
            parts.append(f"{name.removeprefix('grid_')}={value}")
    return " " + " ".join(parts) if parts else ""


def install_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def _log_grid_request(request: Request, call_next):
        request.state.request_id = _request_id(request.headers.get(REQUEST_ID_HEADER))
        started_at = perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        _LOG.info(
            "%s %s status=%s duration_ms=%.2f request_id=%s%s",
            request.method,
            request.url.path,
            response.status_code,
            (perf_counter() - started_at) * 1000.0,
            request.state.request_id,
            grid_log_suffix(request),
        )
        return response
