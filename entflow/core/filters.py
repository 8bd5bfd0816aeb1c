from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from ..errors import MetadataError
from .conversion import ConversionService, default_conversion_service
from .markers import FilterType
from .metadata import EntityMetadata, FieldMetadata
from .naming import split_csv
from .predicates import (
    ALWAYS_TRUE,
    EQ,
    GT,
    GTE,
    LIKE,
    LT,
    LTE,
    Between,
    Comparison,
    Conjunction,
    Expr,
    Membership,
    Nullity,
    evaluate,
)

logger = logging.getLogger(__name__)

# Query parameter suffix per operator; EQUALS uses the bare base name
PARAM_SUFFIXES = {
    FilterType.EQUALS: '',
    FilterType.LIKE: '_like',
    FilterType.GREATER_THAN: '_gt',
    FilterType.GREATER_THAN_OR_EQUAL: '_gte',
    FilterType.LESS_THAN: '_lt',
    FilterType.LESS_THAN_OR_EQUAL: '_lte',
    FilterType.IN: '_in',
    FilterType.NOT_IN: '_not_in',
    FilterType.IS_NULL: '_null',
    FilterType.BETWEEN: '_between',
}

_ORDERED_OPS = {
    FilterType.GREATER_THAN: GT,
    FilterType.GREATER_THAN_OR_EQUAL: GTE,
    FilterType.LESS_THAN: LT,
    FilterType.LESS_THAN_OR_EQUAL: LTE,
}


@dataclass(frozen=True)
class FetchPlan:
    """Eager-fetch directives attached to a compiled predicate.

    Attributes:
        relations: To-one relation names to load together with the root rows.
        distinct: Deduplicate result rows (set whenever relations are fetched).
    """

    relations: Tuple[str, ...] = ()
    distinct: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.relations and not self.distinct


NO_FETCH = FetchPlan()


@dataclass(frozen=True)
class Predicate:
    """A compiled, executor-agnostic filter for one entity type."""

    entity_type: type
    where: Expr = ALWAYS_TRUE
    fetch: FetchPlan = NO_FETCH

    @property
    def is_trivial(self) -> bool:
        return isinstance(self.where, Conjunction) and self.where.is_trivial

    def matches(self, instance: Any) -> bool:
        return evaluate(self.where, instance)

    def and_(self, *exprs: Expr) -> 'Predicate':
        base = self.where if isinstance(self.where, Conjunction) else Conjunction((self.where,))
        return replace(self, where=base.and_(*exprs))

    def without_fetch(self) -> 'Predicate':
        return replace(self, fetch=NO_FETCH)


def param_base_name(field: FieldMetadata) -> str:
    cfg = field.filter_config
    if cfg is not None and cfg.param_name:
        return cfg.param_name
    return field.name


def param_names(field: FieldMetadata) -> List[str]:
    """Every query parameter name ``field`` responds to, in operator order."""
    cfg = field.filter_config
    if cfg is None:
        return []
    base = param_base_name(field)
    names: List[str] = []
    for ft in cfg.types:
        if ft is FilterType.RANGE:
            suffixes = ['_gte', '_lte']
        else:
            suffixes = [PARAM_SUFFIXES[ft]]
        for s in suffixes:
            if base + s not in names:
                names.append(base + s)
    return names


def _as_list(raw: Any) -> List[Any]:
    if isinstance(raw, (list, tuple, set, frozenset)):
        return list(raw)
    return split_csv(str(raw))


class FilterCompiler:
    """Compiles string-keyed query parameters into a :class:`Predicate`.

    Only fields carrying a filter configuration take part, and each only for
    the operators it declares. Parameters that do not correspond to a declared
    operator are ignored, as are malformed ``_between`` values; values that
    fail conversion to the field's type are used as the raw string.
    """

    def __init__(self, conversion_service: Optional[ConversionService] = None):
        self.conversion = conversion_service or default_conversion_service

    def compile(
        self,
        metadata: EntityMetadata,
        params: Optional[Mapping[str, Any]],
        fetch_hints: Optional[Union[str, Iterable[str]]] = None,
        *,
        count_query: bool = False,
    ) -> Predicate:
        params = params or {}
        conditions: List[Expr] = []
        for field in metadata.filterable_fields:
            for cond in self._field_conditions(field, params):
                if cond not in conditions:
                    conditions.append(cond)
        fetch = NO_FETCH if count_query else self._fetch_plan(metadata, fetch_hints)
        logger.debug(
            "Compiled %d condition(s) for %s (fetch=%s)",
            len(conditions), metadata.type_name, list(fetch.relations),
        )
        return Predicate(metadata.type_identity, Conjunction(tuple(conditions)), fetch)

    def compile_count(self, metadata: EntityMetadata, params: Optional[Mapping[str, Any]]) -> Predicate:
        """Count-only variant: same conditions, never any fetch directives."""
        return self.compile(metadata, params, count_query=True)

    # ----- per-field conditions -----
    def _convert(self, field: FieldMetadata, raw: Any) -> Any:
        return self.conversion.convert(raw, field.scalar_type)

    def _field_conditions(self, field: FieldMetadata, params: Mapping[str, Any]) -> List[Expr]:
        cfg = field.filter_config
        if cfg is None:
            return []
        if field.is_relation:
            raise MetadataError(f"Filter configured on relation field {field.name!r}")
        base = param_base_name(field)
        fold = field.is_textual and not cfg.case_sensitive
        out: List[Expr] = []
        for ft in cfg.types:
            if ft is FilterType.RANGE:
                for suffix, op in (('_gte', GTE), ('_lte', LTE)):
                    raw = params.get(base + suffix)
                    if raw is not None:
                        out.append(Comparison(field.name, op, self._convert(field, raw)))
                continue
            raw = params.get(base + PARAM_SUFFIXES[ft])
            if raw is None:
                continue
            cond = self._condition(field, ft, raw, fold)
            if cond is not None:
                out.append(cond)
        return out

    def _condition(self, field: FieldMetadata, ft: FilterType, raw: Any, fold: bool) -> Optional[Expr]:
        name = field.name
        if ft is FilterType.EQUALS:
            if fold:
                return Comparison(name, EQ, str(raw).lower(), case_insensitive=True)
            return Comparison(name, EQ, self._convert(field, raw))
        if ft is FilterType.LIKE:
            text = str(raw).lower() if fold else str(raw)
            return Comparison(name, LIKE, f"%{text}%", case_insensitive=fold)
        if ft in _ORDERED_OPS:
            return Comparison(name, _ORDERED_OPS[ft], self._convert(field, raw))
        if ft in (FilterType.IN, FilterType.NOT_IN):
            values = tuple(self._convert(field, v) for v in _as_list(raw))
            return Membership(name, values, negated=ft is FilterType.NOT_IN)
        if ft is FilterType.IS_NULL:
            flag = raw if isinstance(raw, bool) else str(raw).strip().lower() == 'true'
            return Nullity(name, is_null=flag)
        if ft is FilterType.BETWEEN:
            parts = _as_list(raw)
            if len(parts) != 2:
                logger.debug("Ignoring malformed between value %r for %s", raw, name)
                return None
            return Between(name, self._convert(field, parts[0]), self._convert(field, parts[1]))
        return None

    # ----- eager fetch -----
    @staticmethod
    def _fetch_plan(metadata: EntityMetadata, fetch_hints: Optional[Union[str, Iterable[str]]]) -> FetchPlan:
        if isinstance(fetch_hints, str):
            fetch_hints = [h.strip() for h in split_csv(fetch_hints) if h.strip()]
        hints = list(fetch_hints or ())
        if hints:
            relations = []
            for name in hints:
                f = metadata.field(name)
                if f is None or not f.is_to_one:
                    logger.debug("Ignoring fetch hint %r on %s", name, metadata.type_name)
                    continue
                if name not in relations:
                    relations.append(name)
            return FetchPlan(tuple(relations), distinct=True)
        relations = [f.name for f in metadata.relation_fields if f.is_to_one and not f.hidden]
        return FetchPlan(tuple(relations), distinct=True)


def with_soft_delete(
    predicate: Predicate,
    metadata: EntityMetadata,
    include_deleted: bool = False,
    deleted_only: bool = False,
) -> Predicate:
    """Scope ``predicate`` to live (or only deleted) rows of a soft-delete entity.

    Entities without ``@soft_delete`` are returned unchanged, as is every
    predicate when ``include_deleted`` is set.
    """
    cfg = metadata.soft_delete
    if cfg is None or (include_deleted and not deleted_only):
        return predicate
    if metadata.field(cfg.deleted_field) is None:
        raise MetadataError(
            f"{metadata.type_name} is soft-delete enabled but has no {cfg.deleted_field!r} field"
        )
    return predicate.and_(Comparison(cfg.deleted_field, EQ, bool(deleted_only)))
