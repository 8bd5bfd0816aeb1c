from __future__ import annotations
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Tuple, Union

# Comparison operators understood by every predicate executor
EQ = 'eq'
LIKE = 'like'
GT = 'gt'
GTE = 'gte'
LT = 'lt'
LTE = 'lte'


@dataclass(frozen=True)
class Comparison:
    """``field <op> value``; ``case_insensitive`` compares lower-cased text."""

    field: str
    op: str
    value: Any
    case_insensitive: bool = False


@dataclass(frozen=True)
class Membership:
    field: str
    values: Tuple[Any, ...]
    negated: bool = False


@dataclass(frozen=True)
class Nullity:
    field: str
    is_null: bool = True


@dataclass(frozen=True)
class Between:
    field: str
    low: Any
    high: Any


@dataclass(frozen=True)
class Conjunction:
    """Logical AND of ``items``; an empty conjunction is always true."""

    items: Tuple['Expr', ...] = ()

    @property
    def is_trivial(self) -> bool:
        return not self.items

    def and_(self, *more: 'Expr') -> 'Conjunction':
        return Conjunction(self.items + tuple(more))


Expr = Union[Comparison, Membership, Nullity, Between, Conjunction]

ALWAYS_TRUE = Conjunction()


@lru_cache(maxsize=256)
def like_regex(pattern: str, case_insensitive: bool = False) -> 're.Pattern[str]':
    """Translate a SQL LIKE pattern (``%`` and ``_`` wildcards) to a regex."""
    out = []
    for ch in pattern:
        if ch == '%':
            out.append('.*')
        elif ch == '_':
            out.append('.')
        else:
            out.append(re.escape(ch))
    flags = re.DOTALL | (re.IGNORECASE if case_insensitive else 0)
    return re.compile('^' + ''.join(out) + '$', flags)


def _fold(value: Any, case_insensitive: bool) -> Any:
    if case_insensitive and isinstance(value, str):
        return value.lower()
    return value


def _compare(op: str, left: Any, right: Any) -> bool:
    # SQL semantics: comparisons against NULL are never true
    if left is None or right is None:
        return False
    try:
        if op == EQ:
            return left == right
        if op == GT:
            return left > right
        if op == GTE:
            return left >= right
        if op == LT:
            return left < right
        if op == LTE:
            return left <= right
    except TypeError:
        return False
    raise ValueError(f"Unknown comparison operator: {op}")


def evaluate(expr: Expr, instance: Any, read: Callable[[Any, str], Any] = getattr) -> bool:
    """Evaluate ``expr`` against one in-memory instance.

    ``read(instance, field)`` fetches a field value; by default plain
    attribute access.
    """
    if isinstance(expr, Conjunction):
        return all(evaluate(item, instance, read) for item in expr.items)
    if isinstance(expr, Comparison):
        value = read(instance, expr.field)
        if expr.op == LIKE:
            if value is None or expr.value is None:
                return False
            return like_regex(str(expr.value), expr.case_insensitive).match(str(value)) is not None
        return _compare(
            expr.op,
            _fold(value, expr.case_insensitive),
            _fold(expr.value, expr.case_insensitive),
        )
    if isinstance(expr, Membership):
        value = read(instance, expr.field)
        if value is None:
            return False
        return (value in expr.values) != expr.negated
    if isinstance(expr, Nullity):
        return (read(instance, expr.field) is None) == expr.is_null
    if isinstance(expr, Between):
        value = read(instance, expr.field)
        return _compare(GTE, value, expr.low) and _compare(LTE, value, expr.high)
    raise TypeError(f"Unsupported predicate node: {expr!r}")

