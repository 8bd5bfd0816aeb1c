from __future__ import annotations
from typing import Any, Callable, Dict, Optional

from sqlalchemy import and_, func, inspect as sa_inspect, select, true
from sqlalchemy.orm import ColumnProperty, joinedload

from ..core.filters import Predicate
from ..core.predicates import Between, Comparison, Conjunction, Membership, Nullity
from ..errors import MetadataError

# Translate predicate nodes into SQLAlchemy clauses. Executing them is the caller's job.

# Global operator registry (extensible)
OPERATOR_REGISTRY: Dict[str, Callable[[Any, Any], Any]] = {
    'eq': lambda col, v: col == v,
    'lt': lambda col, v: col < v,
    'lte': lambda col, v: col <= v,
    'gt': lambda col, v: col > v,
    'gte': lambda col, v: col >= v,
    'like': lambda col, v: col.like(v),
    'in': lambda col, v: col.in_(list(v)),
    'not_in': lambda col, v: ~col.in_(list(v)),
    'between': lambda col, v: col.between(v[0], v[1]),
    'is_null': lambda col, v: col.is_(None),
    'is_not_null': lambda col, v: col.is_not(None),
}


def register_operator(name: str, fn: Callable[[Any, Any], Any]):  # pragma: no cover - simple
    OPERATOR_REGISTRY[name] = fn


def _column(model_cls: type, name: str):
    """Return the mapped column attribute ``model_cls.<name>``."""
    mapper = sa_inspect(model_cls, raiseerr=False)
    prop = mapper.attrs.get(name) if mapper is not None else None
    if not isinstance(prop, ColumnProperty):
        raise MetadataError(f"{getattr(model_cls, '__name__', model_cls)} has no mapped column {name!r}")
    return getattr(model_cls, name)


def to_clause(expr: Any, model_cls: type):
    """Translate one predicate node into a SQLAlchemy boolean clause."""
    if isinstance(expr, Conjunction):
        if not expr.items:
            return true()
        clauses = [to_clause(item, model_cls) for item in expr.items]
        return clauses[0] if len(clauses) == 1 else and_(*clauses)
    if isinstance(expr, Comparison):
        col = _column(model_cls, expr.field)
        value = expr.value
        if expr.case_insensitive:
            col = func.lower(col)
            if isinstance(value, str):
                value = value.lower()
        try:
            op = OPERATOR_REGISTRY[expr.op]
        except KeyError:
            raise MetadataError(f"Unknown filter operator: {expr.op}") from None
        return op(col, value)
    if isinstance(expr, Membership):
        col = _column(model_cls, expr.field)
        return OPERATOR_REGISTRY['not_in' if expr.negated else 'in'](col, expr.values)
    if isinstance(expr, Nullity):
        col = _column(model_cls, expr.field)
        return OPERATOR_REGISTRY['is_null' if expr.is_null else 'is_not_null'](col, None)
    if isinstance(expr, Between):
        col = _column(model_cls, expr.field)
        return OPERATOR_REGISTRY['between'](col, (expr.low, expr.high))
    raise TypeError(f"Unsupported predicate node: {expr!r}")


def build_select(predicate: Predicate, *, limit: Optional[int] = None, offset: Optional[int] = None):
    """SELECT for the predicate's entity with its eager-fetch plan applied."""
    model_cls = predicate.entity_type
    stmt = select(model_cls)
    if not predicate.is_trivial:
        stmt = stmt.where(to_clause(predicate.where, model_cls))
    for rel in predicate.fetch.relations:
        stmt = stmt.options(joinedload(getattr(model_cls, rel)))
    if predicate.fetch.distinct:
        stmt = stmt.distinct()
    if offset is not None:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


def build_count(predicate: Predicate):
    """COUNT(*) for the predicate; fetch directives never apply to counts."""
    model_cls = predicate.entity_type
    stmt = select(func.count()).select_from(model_cls)
    if not predicate.is_trivial:
        stmt = stmt.where(to_clause(predicate.where, model_cls))
    return stmt
