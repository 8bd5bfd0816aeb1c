from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, get_origin

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import ColumnProperty, Mapped, MappedColumn, Mapper, RelationshipProperty
from sqlalchemy.orm.interfaces import MANYTOMANY, ONETOMANY
from sqlalchemy.sql.schema import Column

from ..errors import MetadataError, NotAnEntity
from .conversion import supports_ordering
from .markers import (
    NON_NULL_CONSTRAINTS,
    ORDERED_FILTER_TYPES,
    Constraint,
    class_marker,
    is_shared_base,
    markers_of,
    normalize_filterable,
)
from .metadata import Accessor, EntityMetadata, FieldMetadata, RelationKind, RelationMetadata
from .naming import from_camel

logger = logging.getLogger(__name__)


def _is_mapped_annotation(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(('Mapped[', 'orm.Mapped[', 'sqlalchemy.orm.Mapped['))
    return get_origin(annotation) is Mapped or annotation is Mapped


class MetadataCache:
    """Process-wide ``type -> EntityMetadata`` store owned by the caller.

    Population is compute-if-absent: two threads resolving the same type
    concurrently both compute, the first stored result wins and is returned
    to both. Resolution is deterministic so the duplicate work is harmless.
    """

    def __init__(self) -> None:
        self._entries: Dict[type, EntityMetadata] = {}

    def get(self, entity_type: type) -> Optional[EntityMetadata]:
        return self._entries.get(entity_type)

    def put_if_absent(self, entity_type: type, metadata: EntityMetadata) -> EntityMetadata:
        return self._entries.setdefault(entity_type, metadata)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._entries


class MetadataResolver:
    """Introspects SQLAlchemy mapped classes into :class:`EntityMetadata`.

    Responsibilities:
      - Reject classes that are not mapped or lack the ``@auto_api`` marker
      - Walk the class's own mapped attributes, then those inherited from
        ancestors marked as shared bases (``@shared_base``, ``__abstract__``
        or a mapped parent class)
      - Decode the ``field_info`` markers into plain flags
      - Classify relationships and record their target and inverse side
    """

    def __init__(self, cache: Optional[MetadataCache] = None):
        self.cache = cache

    def resolve(self, entity_type: type) -> EntityMetadata:
        if self.cache is not None:
            cached = self.cache.get(entity_type)
            if cached is not None:
                return cached
        metadata = self._build(entity_type)
        if self.cache is not None:
            metadata = self.cache.put_if_absent(entity_type, metadata)
        return metadata

    # ----- entity level -----
    def _build(self, entity_type: type) -> EntityMetadata:
        if not isinstance(entity_type, type):
            raise NotAnEntity(entity_type, "not a class")
        auto_api = class_marker(entity_type, '__auto_api__')
        if auto_api is None:
            raise NotAnEntity(entity_type, "missing @auto_api marker")
        mapper = sa_inspect(entity_type, raiseerr=False)
        if not isinstance(mapper, Mapper):
            raise NotAnEntity(entity_type, "not a SQLAlchemy mapped class")

        logger.debug("Resolving metadata for entity: %s", entity_type.__qualname__)
        if len(mapper.primary_key) > 1:
            raise MetadataError(
                f"{entity_type.__name__} has a composite identity "
                f"({', '.join(c.key for c in mapper.primary_key)}); only single-field identities are supported"
            )

        props = mapper.attrs  # configures mappers on first access
        fields: List[FieldMetadata] = []
        for name in self._field_names(entity_type, mapper):
            prop = props.get(name)
            if isinstance(prop, ColumnProperty):
                fields.append(self._column_field(entity_type, mapper, prop))
            elif isinstance(prop, RelationshipProperty):
                fields.append(self._relation_field(entity_type, prop))

        id_field_type = next((f.scalar_type for f in fields if f.is_id), None)
        return EntityMetadata(
            type_identity=entity_type,
            id_field_type=id_field_type,
            type_name=entity_type.__name__,
            storage_name=self._storage_name(entity_type, mapper),
            fields=tuple(fields),
            auto_api=auto_api,
            soft_delete=class_marker(entity_type, '__soft_delete__'),
            auditable=class_marker(entity_type, '__auditable__'),
        )

    @staticmethod
    def _storage_name(entity_type: type, mapper: Mapper) -> str:
        table = getattr(mapper, 'local_table', None)
        fullname = getattr(table, 'fullname', None)
        if fullname:
            return str(fullname)
        return from_camel(entity_type.__name__)

    @staticmethod
    def _annotations(klass: type) -> Dict[str, Any]:
        try:
            return dict(inspect.get_annotations(klass))
        except NameError:
            return {}

    def _declared_names(self, klass: type, *, entity: bool = False) -> List[str]:
        """Names ``klass`` declares in its body.

        Bare annotations on plain ancestors (``title: str``) are not field
        declarations; only ``Mapped[...]`` ones are, or any annotation on the
        entity itself or a shared base.
        """
        names = list(vars(klass).keys())
        keep_all = entity or self._is_shared(klass)
        for n, annotation in self._annotations(klass).items():
            if n in names:
                continue
            if keep_all or _is_mapped_annotation(annotation):
                names.append(n)
        return names

    def _field_names(self, entity_type: type, mapper: Mapper) -> Iterator[str]:
        """Yield candidate attribute names: own first, then shared ancestors.

        After mapping, SQLAlchemy instruments inherited attributes onto the
        entity class too, so a name an ancestor also declares is own only when
        the entity annotates it itself or maps it to a column of its own.
        """
        ancestors = [k for k in entity_type.__mro__[1:] if k is not object]
        declared_by: Dict[str, type] = {}
        for klass in ancestors:
            for n in self._declared_names(klass):
                declared_by.setdefault(n, klass)
        own_annotations = self._annotations(entity_type)
        seen: set[str] = set()
        for n in self._declared_names(entity_type, entity=True):
            if n in seen:
                continue
            owner = declared_by.get(n)
            if owner is None or n in own_annotations or self._overrides(mapper, n, vars(owner).get(n)):
                seen.add(n)
                yield n
        for klass in ancestors:
            if not self._is_shared(klass):
                continue
            for n in self._declared_names(klass):
                if declared_by.get(n) is klass and n not in seen:
                    seen.add(n)
                    yield n

    @staticmethod
    def _overrides(mapper: Mapper, name: str, inherited: Any) -> bool:
        """True when the mapped column for ``name`` is not a copy of ``inherited``.

        Declarative copies mixin columns onto the subclass table, so the copy
        carries the mixin column's info and type; a column the entity
        redeclares differs in at least one of them.
        """
        prop = mapper.attrs.get(name)
        if not isinstance(prop, ColumnProperty):
            return False
        if isinstance(inherited, MappedColumn):
            inherited = inherited.column
            strict = False
        else:
            strict = True
        if not isinstance(inherited, Column):
            return False
        col = prop.columns[0]
        if col is inherited:
            return False
        if dict(col.info) != dict(inherited.info):
            return True
        # mapped_column() types may come from the annotation on the copy only
        return strict and (
            type(col.type) is not type(inherited.type)
            or repr(col.type) != repr(inherited.type)
            or bool(col.primary_key) != bool(inherited.primary_key)
        )

    @staticmethod
    def _is_shared(klass: type) -> bool:
        if is_shared_base(klass):
            return True
        return isinstance(sa_inspect(klass, raiseerr=False), Mapper)

    # ----- field level -----
    @staticmethod
    def _collect_markers(*infos: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for info in infos:
            merged.update(markers_of(info))
        return merged

    @staticmethod
    def _validations(markers: Mapping[str, Any]) -> Tuple[Constraint, ...]:
        return tuple(c for c in (markers.get('validations') or ()) if isinstance(c, Constraint))

    def _column_field(self, entity_type: type, mapper: Mapper, prop: ColumnProperty) -> FieldMetadata:
        col = prop.columns[0]
        is_column = isinstance(col, Column)
        markers = self._collect_markers(prop.info, col.info if is_column else None)
        validations = self._validations(markers)
        try:
            scalar_type = col.type.python_type
        except (NotImplementedError, AttributeError):
            scalar_type = object

        is_id = bool(is_column and col.primary_key)
        is_version = bool(markers.get('version')) or (is_column and col is mapper.version_id_col)
        computed = not is_column
        if any(c.name in NON_NULL_CONSTRAINTS for c in validations):
            nullable = False
        elif is_column:
            nullable = bool(col.nullable)
        else:
            nullable = True
        filter_config = normalize_filterable(markers.get('filterable'))
        if filter_config is not None:
            bad = [t.value for t in filter_config.types if t in ORDERED_FILTER_TYPES]
            if bad and not supports_ordering(scalar_type):
                raise MetadataError(
                    f"{entity_type.__name__}.{prop.key}: operators {bad} need an ordered type, "
                    f"got {getattr(scalar_type, '__name__', scalar_type)}"
                )
        return FieldMetadata(
            accessor=Accessor(prop.key),
            name=prop.key,
            scalar_type=scalar_type,
            nullable=nullable,
            hidden=bool(markers.get('hidden')),
            read_only=bool(markers.get('read_only')) or is_id or is_version or computed,
            is_id=is_id,
            is_version=is_version,
            validations=validations,
            filter_config=filter_config,
        )

    def _relation_field(self, entity_type: type, prop: RelationshipProperty) -> FieldMetadata:
        markers = self._collect_markers(prop.info)
        if markers.get('filterable'):
            raise MetadataError(f"{entity_type.__name__}.{prop.key}: filters apply to scalar columns, not relations")
        validations = self._validations(markers)
        relation = self._relation_metadata(prop, markers)
        target = relation.target_type
        if relation.kind.is_to_many:
            coll = prop.collection_class
            scalar_type = coll if isinstance(coll, type) else list
        else:
            scalar_type = target

        if any(c.name in NON_NULL_CONSTRAINTS for c in validations):
            nullable = False
        elif relation.kind is RelationKind.MANY_TO_ONE or (relation.kind is RelationKind.ONE_TO_ONE and relation.inverse_field_name is None):
            local = list(prop.local_columns)
            nullable = not local or any(c.nullable for c in local)
        else:
            nullable = True
        return FieldMetadata(
            accessor=Accessor(prop.key),
            name=prop.key,
            scalar_type=scalar_type,
            nullable=nullable,
            hidden=bool(markers.get('hidden')),
            read_only=bool(markers.get('read_only')),
            validations=validations,
            relation=relation,
        )

    @staticmethod
    def _relation_metadata(prop: RelationshipProperty, markers: Mapping[str, Any]) -> RelationMetadata:
        reverse = next(iter(getattr(prop, '_reverse_property', None) or ()), None)
        inverse = prop.back_populates or (reverse.key if reverse is not None else None)
        direction = prop.direction
        if direction is MANYTOMANY:
            kind = RelationKind.MANY_TO_MANY
            mapped_by = markers.get('mapped_by')
        elif direction is ONETOMANY:
            # the foreign key lives on the target: this is the non-owning side
            kind = RelationKind.ONE_TO_MANY if prop.uselist else RelationKind.ONE_TO_ONE
            mapped_by = markers.get('mapped_by') or inverse
        else:
            one_to_one = reverse is not None and not reverse.uselist
            kind = RelationKind.ONE_TO_ONE if one_to_one else RelationKind.MANY_TO_ONE
            mapped_by = markers.get('mapped_by')
        return RelationMetadata(kind=kind, target_type=prop.mapper.class_, inverse_field_name=mapped_by)


def resolve(entity_type: type, cache: Optional[MetadataCache] = None) -> EntityMetadata:
    """Resolve ``entity_type`` through a throwaway resolver bound to ``cache``."""
    return MetadataResolver(cache).resolve(entity_type)
