import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from gridquery.core.errors import (
    GridQueryError,
    MalformedResponseError,
    TransportError,
)
from gridquery.schemas.query import (
    DataPage,
    DataRequest,
    FieldTypeInfo,
    ODataUrlRequest,
    SourceInfo,
    UrlSet,
)
from gridquery.services.field_types import FieldTypeRegistry
from gridquery.services.odata_query import build_url
from gridquery.services.source_registry import SourceRegistry

router = APIRouter()
_LOG = logging.getLogger("gridquery.api")


def get_source_registry(request: Request) -> SourceRegistry:
    return request.app.state.grid_sources


def get_field_types(request: Request) -> FieldTypeRegistry:
    return request.app.state.field_types


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (TransportError, MalformedResponseError)):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, (GridQueryError, TypeError)):
        return HTTPException(status_code=400, detail=str(exc))
    _LOG.error("grid_query_failed error=%r", exc)
    return HTTPException(status_code=500, detail="Grid query failed")


@router.post("/odata/url", response_model=UrlSet)
def odata_url(body: ODataUrlRequest):
    try:
        return build_url(body.version, body.url, body.request)
    except GridQueryError as exc:
        raise _http_error(exc)


@router.get("/sources", response_model=List[SourceInfo])
def list_sources(registry: SourceRegistry = Depends(get_source_registry)):
    return registry.describe()


@router.post("/sources/{name}/query", response_model=DataPage)
async def query_source(
    name: str,
    body: DataRequest,
    request: Request,
    registry: SourceRegistry = Depends(get_source_registry),
):
    request.state.grid_source = name
    source = registry.get(name)
    if source is None:
        raise HTTPException(status_code=404, detail=f'Unknown grid source "{name}"')
    request.state.grid_kind = source.name
    result = await source.load(body).fetch()
    if result.error is not None:
        request.state.grid_error = type(result.error).__name__
        raise _http_error(result.error)
    request.state.grid_total = result.page.total
    return result.page


@router.get("/types", response_model=List[FieldTypeInfo])
def list_field_types(types: FieldTypeRegistry = Depends(get_field_types)):
    return [FieldTypeInfo(name=name, filter=types.get_filter_component(name)) for name in types.names()]
