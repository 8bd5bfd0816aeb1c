"""Exception types raised by entflow.

Configuration problems (a class that is not an entity, inconsistent field
markers) fail fast with :class:`NotAnEntity` or :class:`MetadataError`.
Reflective access failures while mapping abort the whole operation with
:class:`MappingError`. Malformed filter values and unconvertible wire values
never raise; they fall back to the raw value.
"""
from __future__ import annotations

from typing import Optional


class EntflowError(Exception):
    """Base class for all entflow errors."""


class NotAnEntity(EntflowError, TypeError):
    """Raised when resolving a class that lacks the entity/API markers."""

    def __init__(self, entity_type: object, reason: str = ""):
        self.entity_type = entity_type
        name = getattr(entity_type, '__qualname__', None) or repr(entity_type)
        msg = f"{name} is not an API entity"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MetadataError(EntflowError, ValueError):
    """Raised when entity metadata is inconsistent with its declaration."""


class MappingError(EntflowError, RuntimeError):
    """Raised when a field cannot be read or written reflectively.

    Identifies the entity and field so the drift between metadata and the
    actual class can be tracked down.
    """

    def __init__(self, entity_name: str, field_name: Optional[str], cause: Optional[BaseException] = None):
        self.entity_name = entity_name
        self.field_name = field_name
        if field_name:
            msg = f"Failed to map field '{field_name}' of {entity_name}"
        else:
            msg = f"Failed to instantiate {entity_name}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


__all__ = ['EntflowError', 'NotAnEntity', 'MetadataError', 'MappingError']
