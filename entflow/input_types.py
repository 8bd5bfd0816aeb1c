"""
GraphQL input types for field filters.

Each input mirrors the operator suffixes understood by the filter compiler
(``name_like``, ``age_gte`` ...), so a GraphQL ``where`` argument can be
flattened into the same string-keyed parameter map a REST query produces.
"""

from typing import List, Optional
import strawberry
from datetime import datetime


@strawberry.input
class FieldFilterInput:
    """Text-valued filter; values are converted to the field's type on compile."""
    eq: Optional[str] = None
    like: Optional[str] = None
    gt: Optional[str] = None
    gte: Optional[str] = None
    lt: Optional[str] = None
    lte: Optional[str] = None
    in_: Optional[List[str]] = strawberry.field(name="in", default=None)
    not_in: Optional[List[str]] = None
    is_null: Optional[bool] = None
    between: Optional[List[str]] = None


@strawberry.input
class IntFilterInput:
    """Input type for integer field filters."""
    eq: Optional[int] = None
    gt: Optional[int] = None
    gte: Optional[int] = None
    lt: Optional[int] = None
    lte: Optional[int] = None
    in_: Optional[List[int]] = strawberry.field(name="in", default=None)
    not_in: Optional[List[int]] = None
    is_null: Optional[bool] = None
    between: Optional[List[int]] = None


@strawberry.input
class FloatFilterInput:
    """Input type for float field filters."""
    eq: Optional[float] = None
    gt: Optional[float] = None
    gte: Optional[float] = None
    lt: Optional[float] = None
    lte: Optional[float] = None
    in_: Optional[List[float]] = strawberry.field(name="in", default=None)
    not_in: Optional[List[float]] = None
    is_null: Optional[bool] = None
    between: Optional[List[float]] = None


@strawberry.input
class DateTimeFilterInput:
    """Input type for datetime field filters."""
    eq: Optional[datetime] = None
    gt: Optional[datetime] = None
    gte: Optional[datetime] = None
    lt: Optional[datetime] = None
    lte: Optional[datetime] = None
    is_null: Optional[bool] = None
    between: Optional[List[datetime]] = None


# Export all input types
__all__ = [
    'FieldFilterInput',
    'IntFilterInput',
    'FloatFilterInput',
    'DateTimeFilterInput',
]
