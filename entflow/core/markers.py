from __future__ import annotations
from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, TypeVar

from .naming import ensure_list

T = TypeVar('T', bound=type)

# Namespace key inside SQLAlchemy ``info`` dictionaries
INFO_KEY = 'entflow'


class Expose(str, Enum):
    ALL = 'all'
    READ_ONLY = 'read_only'
    CREATE_UPDATE = 'create_update'
    CUSTOM = 'custom'


class SecurityLevel(str, Enum):
    PUBLIC = 'public'
    AUTHENTICATED = 'authenticated'
    ROLE_BASED = 'role_based'
    UNDEFINED = 'undefined'


class FilterType(str, Enum):
    """Filter operators a field may declare.

    Each operator maps to a query-parameter suffix on the field's base name:

        EQUALS                 ?name=John
        LIKE                   ?name_like=Joh
        GREATER_THAN           ?age_gt=18
        GREATER_THAN_OR_EQUAL  ?age_gte=18
        LESS_THAN              ?age_lt=65
        LESS_THAN_OR_EQUAL     ?age_lte=65
        RANGE                  ?age_gte=18&age_lte=65
        IN                     ?status_in=ACTIVE,PENDING
        NOT_IN                 ?status_not_in=DELETED
        IS_NULL                ?deleted_at_null=true
        BETWEEN                ?age_between=18,65
    """

    EQUALS = 'equals'
    LIKE = 'like'
    GREATER_THAN = 'gt'
    GREATER_THAN_OR_EQUAL = 'gte'
    LESS_THAN = 'lt'
    LESS_THAN_OR_EQUAL = 'lte'
    RANGE = 'range'
    IN = 'in'
    NOT_IN = 'not_in'
    IS_NULL = 'null'
    BETWEEN = 'between'


# Operators whose semantics need an ordered scalar type
ORDERED_FILTER_TYPES = frozenset({
    FilterType.GREATER_THAN,
    FilterType.GREATER_THAN_OR_EQUAL,
    FilterType.LESS_THAN,
    FilterType.LESS_THAN_OR_EQUAL,
    FilterType.RANGE,
    FilterType.BETWEEN,
})


@dataclass(frozen=True)
class Filterable:
    """Filter configuration of one field.

    Attributes:
        types: Supported operators. Defaults to equality only.
        param_name: Query parameter base name; empty means the field name.
        case_sensitive: When False, textual EQUALS/LIKE compare lower-cased.
        description: Free text for API documentation.
    """

    types: Tuple[FilterType, ...] = (FilterType.EQUALS,)
    param_name: str = ''
    case_sensitive: bool = True
    description: str = ''

    def supports(self, filter_type: FilterType) -> bool:
        return filter_type in self.types


def normalize_filterable(raw: Any) -> Optional[Filterable]:
    """Accept the shorthand forms allowed in ``field_info(filterable=...)``."""
    if raw is None or raw is False:
        return None
    if raw is True:
        return Filterable()
    if isinstance(raw, Filterable):
        return raw
    if isinstance(raw, (FilterType, str)):
        return Filterable(types=(FilterType(raw),))
    if isinstance(raw, dict):
        types = ensure_list(raw.get('types')) or [FilterType.EQUALS]
        return Filterable(
            types=tuple(FilterType(t) for t in types),
            param_name=raw.get('param_name') or '',
            case_sensitive=raw.get('case_sensitive', True),
            description=raw.get('description') or '',
        )
    if isinstance(raw, (list, tuple, set, frozenset)):
        return Filterable(types=tuple(FilterType(t) for t in raw))
    raise TypeError(f"Unsupported filterable form: {raw!r}")


@dataclass(frozen=True)
class Constraint:
    """A validation constraint recorded on a field (never executed here)."""

    name: str
    params: Mapping[str, Any] = dc_field(default_factory=dict)

    def __hash__(self) -> int:  # params is a plain dict
        return hash((self.name, tuple(sorted(self.params.items()))))


VALIDATION_NAMES = frozenset({
    'not_null', 'not_blank', 'not_empty',
    'size', 'min', 'max',
    'email', 'pattern',
    'assert_true', 'assert_false',
    'decimal_min', 'decimal_max',
    'digits', 'past', 'past_or_present',
    'future', 'future_or_present',
})

# Constraints that make a field non-nullable regardless of the column
NON_NULL_CONSTRAINTS = frozenset({'not_null', 'not_blank'})


def not_null() -> Constraint:
    return Constraint('not_null')

def not_blank() -> Constraint:
    return Constraint('not_blank')

def not_empty() -> Constraint:
    return Constraint('not_empty')

def size(min: int = 0, max: Optional[int] = None) -> Constraint:
    params: Dict[str, Any] = {'min': min}
    if max is not None:
        params['max'] = max
    return Constraint('size', params)

def min_value(value: Any) -> Constraint:
    return Constraint('min', {'value': value})

def max_value(value: Any) -> Constraint:
    return Constraint('max', {'value': value})

def email() -> Constraint:
    return Constraint('email')

def pattern(regexp: str) -> Constraint:
    return Constraint('pattern', {'regexp': regexp})

def past() -> Constraint:
    return Constraint('past')

def future() -> Constraint:
    return Constraint('future')

def constraint(name: str, **params: Any) -> Constraint:
    """Generic constraint factory for the less common validation markers.

    Raises:
        ValueError: If ``name`` is not one of :data:`VALIDATION_NAMES`.
    """
    if name not in VALIDATION_NAMES:
        raise ValueError(f"Unknown validation constraint: {name!r}")
    return Constraint(name, dict(params))


def field_info(
    *,
    hidden: bool = False,
    read_only: bool = False,
    version: bool = False,
    filterable: Any = None,
    validations: Iterable[Constraint] = (),
    mapped_by: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build the ``info`` dictionary for a column or relationship.

    Pass the result as ``info=`` to ``Column``, ``mapped_column`` or
    ``relationship``. Markers are namespaced under :data:`INFO_KEY` so they
    coexist with other users of ``info``; extra keyword arguments are kept at
    the top level untouched.

    Args:
        hidden: Exclude the field from both directions of wire mapping.
        read_only: Exclude the field from input mapping only.
        version: Mark the field as the concurrency token.
        filterable: ``True``, a :class:`FilterType`, a list of them, a dict or
            a :class:`Filterable` instance.
        validations: Constraint markers such as ``not_blank()`` or ``size(max=50)``.
        mapped_by: Inverse field name on the target, for relations whose owning
            side cannot be inferred (many-to-many).

    Example:
        class Person(Base):
            name = Column(String(100), info=field_info(
                filterable=[FilterType.EQUALS, FilterType.LIKE],
                validations=[not_blank(), size(max=100)],
            ))
            password_hash = Column(String(128), info=field_info(hidden=True))
    """
    markers: Dict[str, Any] = {}
    if hidden:
        markers['hidden'] = True
    if read_only:
        markers['read_only'] = True
    if version:
        markers['version'] = True
    if filterable is not None:
        markers['filterable'] = normalize_filterable(filterable)
    vals = tuple(validations or ())
    if vals:
        markers['validations'] = vals
    if mapped_by:
        markers['mapped_by'] = mapped_by
    info = dict(extra)
    info[INFO_KEY] = markers
    return info


def markers_of(info: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Return the entflow markers stored in a SQLAlchemy ``info`` dict."""
    if not info:
        return {}
    return info.get(INFO_KEY) or {}


# --- Class-level markers ---

@dataclass(frozen=True)
class Security:
    """Access requirements transports should enforce for an entity."""

    level: SecurityLevel = SecurityLevel.PUBLIC
    roles: Tuple[str, ...] = ()
    authorities: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'level', SecurityLevel(self.level))
        object.__setattr__(self, 'roles', tuple(ensure_list(self.roles) or ()))
        object.__setattr__(self, 'authorities', tuple(ensure_list(self.authorities) or ()))


PUBLIC = Security()


@dataclass(frozen=True)
class AutoApi:
    path: str = ''
    expose: Expose = Expose.ALL
    description: str = ''
    tags: Tuple[str, ...] = ()
    pagination: bool = True
    sorting: bool = True
    security: Security = PUBLIC


@dataclass(frozen=True)
class SoftDelete:
    deleted_field: str = 'deleted'
    deleted_at_field: str = 'deleted_at'


@dataclass(frozen=True)
class Auditable:
    versioned: bool = False
    created_at_field: str = 'created_at'
    updated_at_field: str = 'updated_at'
    created_by_field: str = 'created_by'
    updated_by_field: str = 'updated_by'


def _class_marker(attr: str, config: Any) -> Callable[[T], T]:
    def decorate(cls: T) -> T:
        # Stored in the class __dict__ so subclasses do not inherit entity status
        setattr(cls, attr, config)
        return cls
    return decorate


def auto_api(
    cls: Optional[T] = None,
    *,
    path: str = '',
    expose: Expose = Expose.ALL,
    description: str = '',
    tags: Iterable[str] = (),
    pagination: bool = True,
    sorting: bool = True,
    security: Optional[Security] = None,
) -> Any:
    """Mark a mapped class as an API entity.

    Usable bare (``@auto_api``) or with options (``@auto_api(path='people')``).
    Only classes carrying this marker resolve to :class:`EntityMetadata`.
    ``security`` defaults to public access.
    """
    config = AutoApi(
        path=path,
        expose=Expose(expose),
        description=description,
        tags=tuple(tags),
        pagination=pagination,
        sorting=sorting,
        security=security or PUBLIC,
    )
    decorate = _class_marker('__auto_api__', config)
    if cls is not None:
        return decorate(cls)
    return decorate


def soft_delete(cls: Optional[T] = None, *, deleted_field: str = 'deleted', deleted_at_field: str = 'deleted_at') -> Any:
    decorate = _class_marker('__soft_delete__', SoftDelete(deleted_field, deleted_at_field))
    if cls is not None:
        return decorate(cls)
    return decorate


def auditable(cls: Optional[T] = None, *, versioned: bool = False, **field_names: str) -> Any:
    decorate = _class_marker('__auditable__', Auditable(versioned=versioned, **field_names))
    if cls is not None:
        return decorate(cls)
    return decorate


def shared_base(cls: T) -> T:
    """Mark a base class or mixin whose mapped fields entities inherit."""
    cls.__shared_base__ = True  # type: ignore[attr-defined]
    return cls


def class_marker(cls: type, attr: str) -> Any:
    """Read a class-level marker declared on ``cls`` itself (not inherited)."""
    return vars(cls).get(attr)


def is_shared_base(cls: type) -> bool:
    own = vars(cls)
    return bool(own.get('__shared_base__') or own.get('__abstract__'))
