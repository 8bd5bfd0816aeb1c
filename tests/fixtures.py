"""Database fixtures for entflow tests (shared)."""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tests.models import Address, Department, Note, Person, PersonStatus, Project


async def create_sample_departments(session: AsyncSession):
    """Create and commit the sample departments."""
    departments = [
        Department(name="Engineering", budget=Decimal("1000.00")),
        Department(name="Sales", budget=Decimal("500.00")),
    ]
    session.add_all(departments)
    await session.flush()
    await session.commit()
    return departments


@pytest.fixture(scope="function")
async def sample_departments(db_session: AsyncSession):
    return await create_sample_departments(db_session)


async def create_sample_people(session: AsyncSession, departments):
    """Create and commit people with a spread of ages, statuses and emails."""
    eng, sales = departments
    people = [
        Person(name="Ann", age=30, email="ann@example.com", status=PersonStatus.ACTIVE,
               password_hash="x1", department_id=eng.id),
        Person(name="Joanna", age=17, email=None, status=PersonStatus.PENDING,
               password_hash="x2", department_id=eng.id),
        Person(name="Bob", age=70, email="BOB@Example.com", status=PersonStatus.ACTIVE,
               password_hash="x3", department_id=sales.id),
        Person(name="Carl", age=None, email="carl@example.com", status=PersonStatus.DELETED,
               password_hash="x4", department_id=None, active=False),
    ]
    session.add_all(people)
    await session.flush()
    await session.commit()
    return people


@pytest.fixture(scope="function")
async def sample_people(db_session: AsyncSession, sample_departments):
    return await create_sample_people(db_session, sample_departments)


@pytest.fixture(scope="function")
async def populated_db(db_session: AsyncSession, sample_departments, sample_people):
    """Departments and people plus an address, a project and two notes."""
    ann, _, bob, _ = sample_people
    db_session.add(Address(city="Paris", person_id=ann.id))
    db_session.add(Project(title="Apollo", members={ann, bob}))
    db_session.add_all([
        Note(text="kept note", deleted=False),
        Note(text="removed note", deleted=True),
    ])
    await db_session.flush()
    await db_session.commit()
    return {
        'departments': sample_departments,
        'people': sample_people,
    }
