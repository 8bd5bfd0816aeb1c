import pytest

from entflow.core.filters import FetchPlan, FilterCompiler, Predicate, param_names, with_soft_delete
from entflow.core.predicates import (
    ALWAYS_TRUE,
    Between,
    Comparison,
    Conjunction,
    Membership,
    Nullity,
)
from tests.models import Department, Note, Person, PersonStatus


@pytest.fixture
def person_md(resolver):
    return resolver.resolve(Person)


def conditions(predicate: Predicate):
    return list(predicate.where.items)


def test_person_scenario(compiler, person_md):
    p = compiler.compile(person_md, {"name_like": "ann", "age_gte": "18", "age_lte": "65"})
    assert conditions(p) == [
        Comparison('name', 'like', '%ann%'),
        Comparison('age', 'gte', 18),
        Comparison('age', 'lte', 65),
    ]
    assert p.entity_type is Person


def test_no_params_is_always_true(compiler, person_md):
    p = compiler.compile(person_md, {})
    assert p.where == ALWAYS_TRUE
    assert p.is_trivial
    assert compiler.compile(person_md, None).is_trivial


def test_unknown_params_ignored(compiler, person_md):
    p = compiler.compile(person_md, {"password_hash": "x", "name_gt": "a", "department": "1"})
    assert p.is_trivial


def test_undeclared_operator_ignored(compiler, person_md):
    # name declares equals/like only
    assert compiler.compile(person_md, {"name_in": "a,b"}).is_trivial


def test_equality_converted_to_field_type(compiler, person_md):
    p = compiler.compile(person_md, {"name": "Ann", "active": "false"})
    assert conditions(p) == [Comparison('name', 'eq', 'Ann'), Comparison('active', 'eq', False)]


def test_case_insensitive_equality_uses_param_override(compiler, person_md):
    p = compiler.compile(person_md, {"mail": "Bob@Example.COM", "email": "ignored"})
    assert conditions(p) == [Comparison('email', 'eq', 'bob@example.com', case_insensitive=True)]


def test_case_insensitive_like(compiler, resolver):
    p = compiler.compile(resolver.resolve(Department), {"name_like": "ENG"})
    assert conditions(p) == [Comparison('name', 'like', '%eng%', case_insensitive=True)]


def test_strict_operators(compiler, person_md):
    p = compiler.compile(person_md, {"age_gt": "20", "age_lt": "40"})
    assert conditions(p) == [Comparison('age', 'gt', 20), Comparison('age', 'lt', 40)]


def test_range_single_bound(compiler, person_md):
    p = compiler.compile(person_md, {"age_lte": "65"})
    assert conditions(p) == [Comparison('age', 'lte', 65)]


def test_membership_elements_converted(compiler, person_md):
    p = compiler.compile(person_md, {"age_in": "1,2,3", "status_not_in": "DELETED,PENDING"})
    assert conditions(p) == [
        Membership('age', (1, 2, 3)),
        Membership('status', (PersonStatus.DELETED, PersonStatus.PENDING), negated=True),
    ]


def test_membership_accepts_lists(compiler, person_md):
    p = compiler.compile(person_md, {"age_in": [4, "5"]})
    assert conditions(p) == [Membership('age', (4, 5))]


@pytest.mark.parametrize("raw,is_null", [("true", True), ("TRUE", True), ("false", False), ("nope", False)])
def test_nullity(compiler, person_md, raw, is_null):
    p = compiler.compile(person_md, {"mail_null": raw})
    assert conditions(p) == [Nullity('email', is_null=is_null)]


def test_between(compiler, person_md):
    p = compiler.compile(person_md, {"age_between": "18,65"})
    assert conditions(p) == [Between('age', 18, 65)]


@pytest.mark.parametrize("raw", ["notanumber", "1,2,3", "", "5"])
def test_malformed_between_ignored(compiler, person_md, raw):
    p = compiler.compile(person_md, {"age_between": raw})
    assert p.is_trivial


def test_unconvertible_value_passes_raw(compiler, person_md):
    p = compiler.compile(person_md, {"age_gte": "abc"})
    assert conditions(p) == [Comparison('age', 'gte', 'abc')]


def test_conditions_are_not_duplicated(resolver, compiler):
    # budget declares RANGE only; gte/lte map onto it once each
    p = compiler.compile(resolver.resolve(Department), {"budget_gte": "10", "budget_lte": "20"})
    assert len(conditions(p)) == 2


def test_default_fetch_plan_excludes_hidden_and_to_many(compiler, person_md):
    p = compiler.compile(person_md, {})
    assert p.fetch == FetchPlan(('department', 'address'), distinct=True)


def test_explicit_fetch_hints(compiler, person_md):
    p = compiler.compile(person_md, {}, ["address", "projects", "bogus", "name", "address"])
    assert p.fetch == FetchPlan(('address',), distinct=True)


def test_explicit_fetch_hints_csv(compiler, person_md):
    p = compiler.compile(person_md, {}, "manager, department")
    assert p.fetch.relations == ('manager', 'department')


def test_count_query_never_fetches(compiler, person_md):
    assert compiler.compile(person_md, {"name": "Ann"}, ["department"], count_query=True).fetch == FetchPlan()
    assert compiler.compile_count(person_md, {}).fetch.is_empty


def test_to_many_only_entity_gets_distinct_without_relations(compiler, resolver):
    p = compiler.compile(resolver.resolve(Department), {})
    assert p.fetch == FetchPlan((), distinct=True)


def test_param_names(person_md):
    assert param_names(person_md.field('age')) == [
        'age_gte', 'age_lte', 'age_gt', 'age_lt', 'age_in', 'age_not_in', 'age_between',
    ]
    assert param_names(person_md.field('email')) == ['mail', 'mail_null']
    assert param_names(person_md.field('id')) == []


def test_predicate_matches_in_memory(compiler, person_md):
    p = compiler.compile(person_md, {"name_like": "ann", "age_gte": "18", "age_lte": "65"})
    assert p.matches(Person(name="Joanna", age=30))
    assert not p.matches(Person(name="Joanna", age=17))
    assert not p.matches(Person(name="Bob", age=30))
    assert not p.matches(Person(name="Ann", age=None))


def test_in_memory_case_insensitive_and_membership(compiler, person_md):
    p = compiler.compile(person_md, {"mail": "ANN@example.com", "status_in": "ACTIVE"})
    assert p.matches(Person(email="ann@EXAMPLE.com", status=PersonStatus.ACTIVE))
    assert not p.matches(Person(email="ann@example.com", status=PersonStatus.PENDING))


def test_in_memory_between_and_nullity(compiler, person_md):
    p = compiler.compile(person_md, {"age_between": "10,20", "mail_null": "true"})
    assert p.matches(Person(age=10, email=None))
    assert not p.matches(Person(age=21, email=None))
    assert not p.matches(Person(age=15, email="x@y.z"))


def test_soft_delete_scoping(compiler, resolver):
    md = resolver.resolve(Note)
    base = compiler.compile(md, {"text_like": "note"})
    live = with_soft_delete(base, md)
    assert conditions(live)[-1] == Comparison('deleted', 'eq', False)
    gone = with_soft_delete(base, md, deleted_only=True)
    assert conditions(gone)[-1] == Comparison('deleted', 'eq', True)
    assert with_soft_delete(base, md, include_deleted=True) is base


def test_soft_delete_noop_for_plain_entities(compiler, person_md):
    p = compiler.compile(person_md, {})
    assert with_soft_delete(p, person_md) is p


def test_predicate_and_keeps_fetch(compiler, person_md):
    p = compiler.compile(person_md, {"name": "Ann"})
    extended = p.and_(Nullity('email', is_null=False))
    assert isinstance(extended.where, Conjunction)
    assert len(extended.where.items) == 2
    assert extended.fetch == p.fetch
    assert extended.without_fetch().fetch == FetchPlan()


def test_compiler_is_reusable_across_entities(resolver):
    compiler = FilterCompiler()
    a = compiler.compile(resolver.resolve(Person), {"name": "Ann"})
    b = compiler.compile(resolver.resolve(Department), {"name": "Eng"})
    assert a.entity_type is Person and b.entity_type is Department
