from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..errors import MappingError
from .conversion import ConversionService, default_conversion_service
from .mapping import MappingConfig, MappingContext
from .metadata import EntityMetadata, FieldMetadata
from .resolver import MetadataCache, MetadataResolver

logger = logging.getLogger(__name__)

# (target metadata, identity value) -> lightweight reference instance
ReferenceFactory = Callable[[EntityMetadata, Any], Any]


def transient_reference(metadata: EntityMetadata, id_value: Any) -> Any:
    """Unattached instance of the target carrying only its identity.

    Nothing is loaded; a session that needs the persistent row can
    ``merge`` the reference or swap it for ``session.get``.
    """
    id_field = metadata.id_field
    if id_field is None:
        raise MappingError(metadata.type_name, None, TypeError("entity has no identity field"))
    try:
        instance = metadata.new_instance()
        id_field.accessor.write(instance, id_value)
    except Exception as e:
        raise MappingError(metadata.type_name, id_field.name, e) from e
    return instance


class EntityMapper:
    """Converts instances of one entity type to and from wire maps.

    Output walks every non-hidden field in declaration order. Relations are
    expanded until ``max_depth`` hops, after which (or on meeting an object
    already on the current path) only the related identity is emitted.

    Input assigns writable fields only: identity, hidden and read-only keys
    in the incoming map are ignored.
    """

    def __init__(self, metadata: EntityMetadata, factory: 'MapperFactory'):
        self.metadata = metadata
        self.factory = factory

    # ----- output -----
    def to_wire(
        self,
        instance: Any,
        config: Union[MappingConfig, MappingContext, None] = None,
    ) -> Optional[Dict[str, Any]]:
        if isinstance(config, MappingContext):
            ctx = config
        else:
            ctx = MappingContext(config)
        return self._to_wire(instance, ctx, 0)

    def to_wire_list(self, instances: Optional[Iterable[Any]], config: Optional[MappingConfig] = None) -> List[Optional[Dict[str, Any]]]:
        # every root object gets its own traversal context
        return [self.to_wire(i, config) for i in (instances or ())]

    def identity_of(self, instance: Any) -> Any:
        if instance is None:
            return None
        id_field = self.metadata.id_field
        if id_field is None:
            return None
        return self._read(id_field, instance)

    def _to_wire(self, instance: Any, ctx: MappingContext, depth: int) -> Optional[Dict[str, Any]]:
        if instance is None:
            return None
        include_nulls = ctx.config.include_null_fields
        out: Dict[str, Any] = {}
        ctx.enter(instance)
        try:
            for field in self.metadata.fields:
                if field.hidden:
                    continue
                value = self._read(field, instance)
                if field.is_to_one:
                    value = self._nested(field, value, ctx, depth)
                elif field.is_to_many and value is not None:
                    value = [self._nested(field, v, ctx, depth) for v in value]
                if value is None and not field.is_id and not include_nulls:
                    continue
                out[field.name] = value
        finally:
            ctx.exit(instance)
        return out

    def _nested(self, field: FieldMetadata, value: Any, ctx: MappingContext, depth: int) -> Any:
        if value is None:
            return None
        target = self.factory.mapper_for(field.relation.target_type)
        if depth >= ctx.config.max_depth or ctx.is_being_mapped(value):
            return target.identity_of(value)
        return target._to_wire(value, ctx, depth + 1)

    # ----- input -----
    def from_wire(self, data: Optional[Mapping[str, Any]]) -> Any:
        try:
            instance = self.metadata.new_instance()
        except Exception as e:
            raise MappingError(self.metadata.type_name, None, e) from e
        return self._apply(instance, data)

    def update_in_place(self, instance: Any, data: Optional[Mapping[str, Any]]) -> Any:
        """Assign only the writable keys present in ``data``; absent keys are untouched."""
        if instance is None:
            raise MappingError(self.metadata.type_name, None, ValueError("no instance to update"))
        return self._apply(instance, data)

    def _apply(self, instance: Any, data: Optional[Mapping[str, Any]]) -> Any:
        if not data:
            return instance
        for field in self.metadata.fields:
            if not field.writable or field.name not in data:
                continue
            value = self._coerce(field, data[field.name])
            self._write(field, instance, value)
        return instance

    def _coerce(self, field: FieldMetadata, raw: Any) -> Any:
        if field.is_to_one:
            return self._relation_value(field, raw)
        if field.is_to_many:
            if raw is None:
                items: List[Any] = []
            elif isinstance(raw, (list, tuple, set, frozenset)):
                items = [self._relation_value(field, v) for v in raw]
            else:
                items = [self._relation_value(field, raw)]
            coll = field.scalar_type
            if isinstance(coll, type) and coll is not list:
                try:
                    return coll(items)
                except TypeError:
                    return items
            return items
        return self.factory.conversion.convert(raw, field.scalar_type)

    def _relation_value(self, field: FieldMetadata, raw: Any) -> Any:
        target_type = field.relation.target_type
        if raw is None or isinstance(raw, target_type):
            return raw
        target = self.factory.mapper_for(target_type)
        id_field = target.metadata.id_field
        if isinstance(raw, Mapping):
            if id_field is not None and raw.get(id_field.name) is not None:
                return target.reference(raw[id_field.name])
            return target.from_wire(raw)
        return target.reference(raw)

    def reference(self, id_value: Any) -> Any:
        """Lazy reference to an instance of this entity by identity."""
        id_type = self.metadata.id_field_type
        id_value = self.factory.conversion.convert(id_value, id_type)
        return self.factory.reference_factory(self.metadata, id_value)

    # ----- reflective access -----
    def _read(self, field: FieldMetadata, instance: Any) -> Any:
        try:
            return field.accessor.read(instance)
        except Exception as e:
            raise MappingError(self.metadata.type_name, field.name, e) from e

    def _write(self, field: FieldMetadata, instance: Any, value: Any) -> None:
        try:
            field.accessor.write(instance, value)
        except Exception as e:
            raise MappingError(self.metadata.type_name, field.name, e) from e


class MapperFactory:
    """Bounded cache of :class:`EntityMapper` per entity type.

    On overflow the oldest entry is dropped. Population is compute-if-absent,
    mirroring :class:`MetadataCache`.
    """

    def __init__(
        self,
        resolver: Optional[MetadataResolver] = None,
        max_size: int = 256,
        reference_factory: Optional[ReferenceFactory] = None,
        conversion_service: Optional[ConversionService] = None,
    ):
        self.resolver = resolver or MetadataResolver(MetadataCache())
        self.max_size = max(1, int(max_size))
        self.reference_factory: ReferenceFactory = reference_factory or transient_reference
        self.conversion = conversion_service or default_conversion_service
        self._mappers: Dict[type, EntityMapper] = {}

    def mapper_for(self, entity_type: type) -> EntityMapper:
        mapper = self._mappers.get(entity_type)
        if mapper is not None:
            return mapper
        mapper = EntityMapper(self.resolver.resolve(entity_type), self)
        while len(self._mappers) >= self.max_size:
            try:
                oldest = next(iter(self._mappers))
                self._mappers.pop(oldest, None)
            except (StopIteration, RuntimeError):
                break
            logger.debug("Evicted mapper for %s", getattr(oldest, '__name__', oldest))
        return self._mappers.setdefault(entity_type, mapper)

    def to_wire(self, instance: Any, config: Optional[MappingConfig] = None) -> Optional[Dict[str, Any]]:
        if instance is None:
            return None
        return self.mapper_for(type(instance)).to_wire(instance, config)

    def clear(self) -> None:
        self._mappers.clear()

    def __len__(self) -> int:
        return len(self._mappers)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._mappers
