from __future__ import annotations

from typing import Any


class GridQueryError(Exception):
    pass


class ConfigurationError(GridQueryError):
    pass


class UnsupportedSourceOptionsError(ConfigurationError):
    def __init__(self, options: Any):
        self.options = options
        super().__init__(
            f"Source options must be set to odata, odata3 or odata4 for url sources, got {options!r}"
        )


class UnsupportedSourceTypeError(ConfigurationError):
    def __init__(self, source: Any):
        self.source_type = type(source).__name__
        super().__init__(
            f"Not supported data type passed as source: {self.source_type}. "
            "Expected string url or list of rows."
        )


class UnknownOperatorError(GridQueryError):
    def __init__(self, operator: Any, message: str | None = None):
        self.operator = operator
        super().__init__(message or f"Unknown filter type: {operator}")


class UnknownFilterOperatorError(UnknownOperatorError):
    def __init__(self, operator: Any):
        super().__init__(operator, f"Unknown odata filter type: {operator}")


class UnknownSortDirectionError(GridQueryError):
    def __init__(self, direction: Any):
        self.direction = direction
        super().__init__(f"Unknown sort direction: {direction}")


class MalformedResponseError(GridQueryError):
    pass


class MalformedCountFieldError(MalformedResponseError):
    def __init__(self, key: str, value: Any):
        self.key = key
        self.value = value
        super().__init__(f'Response count field "{key}" is missing or not an integer: {value!r}')


class TransportError(GridQueryError):
    pass


class LoadAlreadyFetchedError(GridQueryError):
    pass
