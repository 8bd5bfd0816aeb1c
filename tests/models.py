"""Database models for entflow tests (shared)."""

import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Numeric, Table, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, relationship, column_property

from entflow.core.markers import (
    FilterType,
    Filterable,
    auditable,
    auto_api,
    field_info,
    not_blank,
    shared_base,
    size,
    soft_delete,
)


class Base(DeclarativeBase):
    """Base class for test models."""
    pass


@shared_base
class TimestampMixin:
    """Shared audit column inherited by entities."""
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))


class ScratchMixin:
    """Unmarked mixin: its columns are mapped but never resolved as fields."""
    scratch = Column(String(50), nullable=True)


class PersonStatus(str, enum.Enum):
    ACTIVE = 'active'
    PENDING = 'pending'
    DELETED = 'deleted'


person_projects = Table(
    'person_projects',
    Base.metadata,
    Column('person_id', Integer, ForeignKey('people.id'), primary_key=True),
    Column('project_id', Integer, ForeignKey('projects.id'), primary_key=True),
)


@auto_api(path='departments')
class Department(Base):
    __tablename__ = 'departments'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, info=field_info(
        filterable=Filterable(types=(FilterType.EQUALS, FilterType.LIKE), case_sensitive=False),
    ))
    budget = Column(Numeric(12, 2), nullable=True, info=field_info(filterable=[FilterType.RANGE]))

    people = relationship("Person", back_populates="department", foreign_keys="Person.department_id")


@auto_api(path='people', tags=['hr'])
@auditable
class Person(TimestampMixin, ScratchMixin, Base):
    __tablename__ = 'people'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, info=field_info(
        filterable=[FilterType.EQUALS, FilterType.LIKE],
        validations=[not_blank(), size(max=100)],
    ))
    age = Column(Integer, nullable=True, info=field_info(
        filterable=[FilterType.RANGE, FilterType.GREATER_THAN, FilterType.LESS_THAN,
                    FilterType.IN, FilterType.NOT_IN, FilterType.BETWEEN],
    ))
    email = Column(String(255), nullable=True, info=field_info(
        filterable=Filterable(types=(FilterType.EQUALS, FilterType.IS_NULL), param_name='mail', case_sensitive=False),
    ))
    password_hash = Column(String(128), nullable=True, info=field_info(hidden=True))
    status = Column(SAEnum(PersonStatus), nullable=True, info=field_info(
        filterable=[FilterType.EQUALS, FilterType.IN, FilterType.NOT_IN],
    ))
    active = Column(Boolean, nullable=False, default=True, info=field_info(filterable=True))
    department_id = Column(Integer, ForeignKey('departments.id'), nullable=True)
    manager_id = Column(Integer, ForeignKey('people.id'), nullable=True)

    department = relationship("Department", back_populates="people", foreign_keys=[department_id])
    manager = relationship("Person", remote_side="Person.id", foreign_keys=[manager_id], info=field_info(hidden=True))
    address = relationship("Address", back_populates="person", uselist=False)
    projects = relationship("Project", secondary=person_projects, back_populates="members")


@auto_api
class Address(Base):
    __tablename__ = 'addresses'

    id = Column(Integer, primary_key=True)
    city = Column(String(100), nullable=True)
    person_id = Column(Integer, ForeignKey('people.id'), nullable=False, unique=True)

    person = relationship("Person", back_populates="address")


@auto_api
class Project(Base):
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)

    members = relationship(
        "Person",
        secondary=person_projects,
        back_populates="projects",
        collection_class=set,
        info=field_info(mapped_by='projects'),
    )


@auto_api
class Document(Base):
    """Versioned entity with a computed column."""
    __tablename__ = 'documents'

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    revision = Column(Integer, nullable=False)
    title_upper = column_property(func.upper(title))

    __mapper_args__ = {"version_id_col": revision}


@auto_api
@soft_delete
class Note(Base):
    __tablename__ = 'notes'

    id = Column(Integer, primary_key=True)
    text = Column(String(500), nullable=True, info=field_info(filterable=[FilterType.LIKE]))
    deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)


@auto_api
class Partner(Base):
    """Self-referencing pair, used to build A -> B -> A cycles."""
    __tablename__ = 'partners'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=True)
    partner_id = Column(Integer, ForeignKey('partners.id'), nullable=True)

    partner = relationship("Partner", remote_side="Partner.id", foreign_keys=[partner_id], post_update=True)


class AuditLog(Base):
    """Mapped but not exposed through the API."""
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    message = Column(String(500), nullable=True)


class PlainThing:
    """Neither mapped nor exposed."""
    id = 1
