from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from gridquery.core.config import Settings, settings as default_settings

Formatter = Callable[[Any, Any], str]


@dataclass
class DisplaySettings:
    thousand_separator: str = " "
    decimal_precision: int = 2
    decimal_separator: str = "."
    date_format: str = "%Y-%m-%d"
    datetime_format: str = "%Y-%m-%d %H:%M"
    yes_text: str = "Yes"
    no_text: str = "No"

    @classmethod
    def from_settings(cls, cfg: Settings) -> "DisplaySettings":
        return cls(
            thousand_separator=cfg.GRID_THOUSAND_SEPARATOR,
            decimal_precision=cfg.GRID_DECIMAL_PRECISION,
            decimal_separator=cfg.GRID_DECIMAL_SEPARATOR,
            date_format=cfg.GRID_DATE_FORMAT,
            datetime_format=cfg.GRID_DATETIME_FORMAT,
            yes_text=cfg.GRID_YES_TEXT,
            no_text=cfg.GRID_NO_TEXT,
        )


@dataclass
class FieldType:
    name: str
    formatter: Optional[Formatter] = None
    filter_component: Optional[str] = None
    filter_params: Dict[str, Any] = field(default_factory=dict)


def default_formatter(value: Any, options: Any = None) -> str:
    return "" if value is None else str(value)


def format_number(value: Any, precision: int, thousand: str, separator: str) -> str:
    if isinstance(value, str):
        try:
            value = Decimal(value.strip().replace(",", "."))
        except InvalidOperation:
            return value
    text = format(value, f",.{int(precision)}f")
    integer, _, fraction = text.partition(".")
    integer = integer.replace(",", thousand)
    return f"{integer}{separator}{fraction}" if fraction else integer


def _as_datetime(value: Any) -> datetime | date:
    if isinstance(value, (datetime, date)):
        return value
    return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))


class FieldTypeRegistry:
    """Type name -> display formatter and filter widget lookup for grid columns."""

    def __init__(self, display: DisplaySettings | None = None):
        self.display = display or DisplaySettings()
        self._types: Dict[str, FieldType] = {}

    def add_type(
        self,
        name: str,
        *,
        formatter: Formatter | None = None,
        filter_component: str | None = None,
        filter_params: Dict[str, Any] | None = None,
    ) -> FieldType:
        entry = FieldType(
            name=name,
            formatter=formatter,
            filter_component=filter_component,
            filter_params=dict(filter_params or {}),
        )
        self._types[name] = entry
        return entry

    def get_formatter(self, type_name: str | None) -> Formatter:
        entry = self._types.get(type_name) if type_name else None
        if entry is None or entry.formatter is None:
            return default_formatter
        return entry.formatter

    def get_filter_component(self, type_name: str | None) -> Dict[str, Any] | None:
        entry = self._types.get(type_name) if type_name else None
        if entry is None or not entry.filter_component:
            return None
        return {"component": entry.filter_component, "params": entry.filter_params}

    def set_filter_component(self, type_name: str, filter_component: str) -> None:
        entry = self._types.get(type_name)
        if entry is not None:
            entry.filter_component = filter_component

    def names(self) -> list[str]:
        return sorted(self._types)

    def format_value(self, type_name: str | None, value: Any, options: Any = None) -> str:
        return self.get_formatter(type_name)(value, options)


def default_registry(cfg: Settings | None = None) -> FieldTypeRegistry:
    display = DisplaySettings.from_settings(cfg or default_settings)
    registry = FieldTypeRegistry(display)

    def bool_formatter(value, options=None):
        if value is None:
            return ""
        return display.yes_text if value else display.no_text

    def date_formatter(pattern_default: str):
        def _format(value, options=None):
            if not value:
                return ""
            pattern = options if isinstance(options, str) else pattern_default
            return _as_datetime(value).strftime(pattern)

        return _format

    def decimal_formatter(value, options=None):
        if value == 0:
            return "0"
        if not value:
            return ""
        opts = options if isinstance(options, dict) else {}
        return format_number(
            value,
            opts.get("precision", display.decimal_precision),
            opts.get("thousand", display.thousand_separator),
            opts.get("separator", display.decimal_separator),
        )

    def int_formatter(value, options=None):
        if value == 0:
            return "0"
        if not value:
            return ""
        opts = options if isinstance(options, dict) else {}
        return format_number(
            value,
            0,
            opts.get("thousand", display.thousand_separator),
            opts.get("separator", display.decimal_separator),
        )

    registry.add_type("bool", formatter=bool_formatter, filter_component="BoolFilter")
    registry.add_type("date", formatter=date_formatter(display.date_format), filter_component="DateFilter")
    registry.add_type(
        "dateTime",
        formatter=date_formatter(display.datetime_format),
        filter_component="DateTimeFilter",
    )
    for name in ("decimal", "double"):
        registry.add_type(
            name,
            formatter=decimal_formatter,
            filter_component="NumericFilter",
            filter_params={"decimal": True},
        )
    registry.add_type("text", filter_component="TextFilter")
    registry.add_type(
        "int",
        formatter=int_formatter,
        filter_component="NumericFilter",
        filter_params={"decimal": False},
    )
    return registry
