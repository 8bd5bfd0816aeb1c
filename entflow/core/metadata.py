from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from .markers import Auditable, AutoApi, Constraint, Filterable, SoftDelete


class RelationKind(str, Enum):
    ONE_TO_ONE = 'one_to_one'
    MANY_TO_ONE = 'many_to_one'
    ONE_TO_MANY = 'one_to_many'
    MANY_TO_MANY = 'many_to_many'

    @property
    def is_to_one(self) -> bool:
        return self in (RelationKind.ONE_TO_ONE, RelationKind.MANY_TO_ONE)

    @property
    def is_to_many(self) -> bool:
        return not self.is_to_one


@dataclass(frozen=True)
class Accessor:
    """Read/write capability for one attribute, resolved once per field."""

    attr: str

    def read(self, instance: Any) -> Any:
        return getattr(instance, self.attr)

    def write(self, instance: Any, value: Any) -> None:
        setattr(instance, self.attr, value)


@dataclass(frozen=True)
class RelationMetadata:
    kind: RelationKind
    target_type: type
    inverse_field_name: Optional[str] = None


@dataclass(frozen=True)
class FieldMetadata:
    """Decoded description of one persisted field.

    The engine depends only on these flags, never on the SQLAlchemy
    ``info`` markers they were decoded from.
    """

    accessor: Accessor
    name: str
    scalar_type: Any
    nullable: bool = True
    hidden: bool = False
    read_only: bool = False
    is_id: bool = False
    is_version: bool = False
    validations: Tuple[Constraint, ...] = ()
    filter_config: Optional[Filterable] = None
    relation: Optional[RelationMetadata] = None

    @property
    def is_relation(self) -> bool:
        return self.relation is not None

    @property
    def is_to_one(self) -> bool:
        return self.relation is not None and self.relation.kind.is_to_one

    @property
    def is_to_many(self) -> bool:
        return self.relation is not None and self.relation.kind.is_to_many

    @property
    def is_textual(self) -> bool:
        return isinstance(self.scalar_type, type) and issubclass(self.scalar_type, str)

    @property
    def writable(self) -> bool:
        """Whether input mapping may assign this field."""
        return not (self.is_id or self.hidden or self.read_only)


@dataclass(frozen=True)
class EntityMetadata:
    """Immutable structural description of one entity class.

    Attributes:
        type_identity: The mapped class itself.
        id_field_type: Python type of the identity field (``None`` when absent).
        type_name: Class name used for display.
        storage_name: Fully qualified table name.
        fields: Persisted fields in declaration order.
        auto_api: Exposure configuration from ``@auto_api``.
        soft_delete: Soft-delete configuration, when declared.
        auditable: Audit configuration, when declared.
    """

    type_identity: type
    id_field_type: Optional[type]
    type_name: str
    storage_name: str
    fields: Tuple[FieldMetadata, ...]
    auto_api: Optional[AutoApi] = None
    soft_delete: Optional[SoftDelete] = None
    auditable: Optional[Auditable] = None

    def field(self, name: str) -> Optional[FieldMetadata]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def id_field(self) -> Optional[FieldMetadata]:
        for f in self.fields:
            if f.is_id:
                return f
        return None

    @property
    def is_soft_delete_enabled(self) -> bool:
        return self.soft_delete is not None

    @property
    def is_auditable(self) -> bool:
        return self.auditable is not None

    @property
    def is_versioned(self) -> bool:
        return any(f.is_version for f in self.fields)

    @property
    def filterable_fields(self) -> Tuple[FieldMetadata, ...]:
        return tuple(f for f in self.fields if f.filter_config is not None)

    @property
    def relation_fields(self) -> Tuple[FieldMetadata, ...]:
        return tuple(f for f in self.fields if f.relation is not None)

    def new_instance(self) -> Any:
        return self.type_identity()
