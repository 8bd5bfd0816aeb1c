from __future__ import annotations

import logging
import numbers
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Optional
from uuid import UUID

logger = logging.getLogger(__name__)

_TRUE_STRINGS = ('true', 't', '1', 'yes', 'y', 'on')
_FALSE_STRINGS = ('false', 'f', '0', 'no', 'n', 'off')

# Types whose values support <, <=, >, >=
_ORDERED_TYPES = (numbers.Real, Decimal, str, bytes, date, time, timedelta, UUID)


def _parse_bool(s: str) -> bool:
    lv = s.strip().lower()
    if lv in _TRUE_STRINGS:
        return True
    if lv in _FALSE_STRINGS:
        return False
    raise ValueError(f"Invalid boolean literal: {s!r}")


def _parse_datetime(s: str) -> datetime:
    s = s.strip()
    if s.endswith('Z'):
        s = s[:-1] + '+00:00'
    return datetime.fromisoformat(s)


def _parse_date(s: str) -> date:
    return date.fromisoformat(s.strip())


def _parse_time(s: str) -> time:
    return time.fromisoformat(s.strip())


def _parse_decimal(s: str) -> Decimal:
    try:
        return Decimal(s.strip())
    except InvalidOperation as e:
        raise ValueError(str(e)) from e


def _parse_enum(enum_cls: type, s: str) -> Enum:
    # Enum member name first (STATUS=ACTIVE), then the member value
    try:
        return enum_cls[s]  # type: ignore[index]
    except KeyError:
        pass
    try:
        return enum_cls(s)
    except ValueError:
        if issubclass(enum_cls, int):
            return enum_cls(int(s))
        raise


_DEFAULT_CONVERTERS: Dict[type, Callable[[str], Any]] = {
    str: lambda s: s,
    int: lambda s: int(s.strip()),
    float: lambda s: float(s.strip()),
    Decimal: _parse_decimal,
    bool: _parse_bool,
    datetime: _parse_datetime,
    date: _parse_date,
    time: _parse_time,
    UUID: lambda s: UUID(s.strip()),
}


def supports_ordering(scalar_type: Any) -> bool:
    """Whether values of ``scalar_type`` can be range-compared.

    Unknown types (``object`` or non-classes) are given the benefit of the doubt.
    """
    if not isinstance(scalar_type, type) or scalar_type is object:
        return True
    if issubclass(scalar_type, bool):
        return False
    return issubclass(scalar_type, _ORDERED_TYPES)


def _is_assignable(value: Any, target_type: type) -> bool:
    if not isinstance(value, target_type):
        return False
    # bool subclasses int and datetime subclasses date; neither is assignable across
    if isinstance(value, bool) and not issubclass(target_type, bool):
        return False
    if isinstance(value, datetime) and not issubclass(target_type, datetime):
        return False
    return True


class ConversionService:
    """Best-effort conversion of raw values to a field's scalar type.

    Strings are parsed with the converter registered for the target type
    (looked up along the target's MRO, so ``datetime`` wins over ``date`` and
    every ``Enum`` subclass shares the enum converter). Numbers are widened or
    narrowed between numeric types. Whenever no converter applies, or a
    converter rejects the input, the value is returned unchanged: failures
    surface later, at the point the value is used.
    """

    def __init__(self, converters: Optional[Dict[type, Callable[[str], Any]]] = None):
        self._converters: Dict[type, Callable[[str], Any]] = dict(_DEFAULT_CONVERTERS)
        if converters:
            self._converters.update(converters)

    def register(self, target_type: type, fn: Callable[[str], Any]) -> None:
        self._converters[target_type] = fn

    def converter_for(self, target_type: Any) -> Optional[Callable[[str], Any]]:
        if not isinstance(target_type, type):
            return None
        if issubclass(target_type, Enum):
            # str-based enums would otherwise hit the plain str converter
            return self._converters.get(target_type) or (lambda s: _parse_enum(target_type, s))
        for klass in target_type.__mro__:
            fn = self._converters.get(klass)
            if fn is not None:
                return fn
        return None

    def can_convert(self, target_type: Any) -> bool:
        return self.converter_for(target_type) is not None

    def convert(self, value: Any, target_type: Any) -> Any:
        if value is None or target_type is None or target_type is object:
            return value
        if not isinstance(target_type, type):
            return value
        if _is_assignable(value, target_type):
            return value
        if isinstance(value, str):
            fn = self.converter_for(target_type)
            if fn is None:
                return value
            try:
                return fn(value)
            except (ValueError, TypeError, KeyError, ArithmeticError) as e:
                logger.debug("Passing %r through unconverted to %s: %s", value, target_type.__name__, e)
                return value
        if isinstance(value, numbers.Number) and not isinstance(value, bool):
            return self._convert_number(value, target_type)
        if isinstance(value, datetime) and issubclass(target_type, date) and not issubclass(target_type, datetime):
            return value.date()
        return value

    @staticmethod
    def _convert_number(value: Any, target_type: type) -> Any:
        try:
            if issubclass(target_type, bool):
                return value
            if issubclass(target_type, int):
                return int(value)
            if issubclass(target_type, float):
                return float(value)
            if issubclass(target_type, Decimal):
                return Decimal(str(value))
        except (ValueError, TypeError, OverflowError, ArithmeticError) as e:
            logger.debug("Passing %r through unconverted to %s: %s", value, target_type.__name__, e)
        return value


# Shared default; stateless apart from the converter table
default_conversion_service = ConversionService()
