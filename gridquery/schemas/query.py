from enum import Enum, IntEnum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

from gridquery.core.errors import UnknownOperatorError, UnknownSortDirectionError


class FilterOperator(str, Enum):
    EQUALS = "eq"
    NOT_EQUALS = "neq"
    GREATER_THAN = "gt"
    GREATER_OR_EQUAL = "gte"
    LOWER_THAN = "lt"
    LOWER_OR_EQUAL = "lte"
    IN = "in"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"


DEFAULT_OPERATOR = FilterOperator.EQUALS


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ODataVersion(IntEnum):
    V3 = 3
    V4 = 4


def operator_or_default(operator: Any) -> FilterOperator:
    """Resolve a raw operator value to a FilterOperator.

    ``None`` and blank strings resolve to ``DEFAULT_OPERATOR`` (equals). Any other
    value must be a member or a wire value of ``FilterOperator``.
    """
    if operator is None:
        return DEFAULT_OPERATOR
    if isinstance(operator, FilterOperator):
        return operator
    if isinstance(operator, str) and not operator.strip():
        return DEFAULT_OPERATOR
    try:
        return FilterOperator(operator)
    except ValueError:
        raise UnknownOperatorError(operator)


def in_candidates(value: Any) -> List[Any]:
    """Candidate list of an ``in`` filter; a single scalar is one candidate."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def resolve_direction(direction: Any) -> SortDirection:
    if isinstance(direction, SortDirection):
        return direction
    try:
        return SortDirection(direction)
    except ValueError:
        raise UnknownSortDirectionError(direction)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FilterValue(_WireModel):
    field: str
    # Kept as received so unknown operators fail inside the engines, not while parsing.
    operator: Any = None
    value: Any = None


class FilterGroup(_WireModel):
    filters: List[FilterValue] = Field(default_factory=list)


class SortField(_WireModel):
    field: str
    direction: Any = SortDirection.ASC


class FieldInfo(_WireModel):
    field: str
    data_type: Optional[str] = Field(default=None, alias="dataType")


class DataRequest(_WireModel):
    page: Optional[int] = Field(default=0, ge=0)
    page_size: Optional[int] = Field(default=None, alias="pageSize", gt=0)
    sorting: List[SortField] = Field(default_factory=list)
    filters: List[FilterGroup] = Field(default_factory=list)
    fields: List[FieldInfo] = Field(default_factory=list)
    args: Optional[Dict[str, Any]] = None

    def field_info(self, field: str) -> Optional[FieldInfo]:
        for info in self.fields:
            if info.field == field:
                return info
        return None


class DataPage(_WireModel):
    items: List[Any] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)


class UrlSet(_WireModel):
    data_url: str = Field(alias="dataUrl")
    page_url: str = Field(alias="pageUrl")


class ODataUrlRequest(_WireModel):
    version: ODataVersion = ODataVersion.V4
    url: str
    request: DataRequest = Field(default_factory=DataRequest)


class SourceInfo(_WireModel):
    name: str
    kind: str


class FieldTypeInfo(_WireModel):
    name: str
    filter: Optional[Dict[str, Any]] = None
