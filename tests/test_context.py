import pytest

from schoolgraph.config import LoaderSettings
from schoolgraph.context import create_context, create_loaders
from schoolgraph.loader import LoaderState
from schoolgraph.sources.sqlalchemy import FetchQuery


def test_fresh_loaders_per_request(sa_engine):
    loaders1 = create_loaders(sa_engine)
    loaders2 = create_loaders(sa_engine)
    for loader1, loader2 in zip(loaders1.all(), loaders2.all()):
        assert loader1 is not loader2
        assert loader1.name == loader2.name
        assert loader1.state is LoaderState.IDLE


def test_relation_kinds(sa_engine):
    loaders = create_loaders(sa_engine)
    assert loaders.students_by_school.many is True
    assert loaders.school_by_id.many is False
    assert isinstance(loaders.school_by_id.fetch, FetchQuery)


def test_settings_applied(sa_engine):
    settings = LoaderSettings(max_batch_size=10, timeout=1.5)
    for loader in create_loaders(sa_engine, settings).all():
        assert loader.max_batch_size == 10
        assert loader.timeout == 1.5


def test_request_context(sa_engine):
    ctx1 = create_context(sa_engine)
    ctx2 = create_context(sa_engine)
    assert ctx1.request_id != ctx2.request_id
    assert ctx1.loaders is not ctx2.loaders
    assert ctx1.repositories.schools.sa_engine is sa_engine


@pytest.mark.asyncio
async def test_no_shared_cache(sa_engine, data, statements):
    ctx1 = create_context(sa_engine)
    ctx2 = create_context(sa_engine)

    school1 = await ctx1.loaders.school_by_id.load(data.alpha["id"])
    school2 = await ctx2.loaders.school_by_id.load(data.alpha["id"])
    assert school1 == school2
    assert school1 is not school2
    assert len(statements) == 2

    await ctx1.loaders.school_by_id.load(data.alpha["id"])
    assert len(statements) == 2


@pytest.mark.asyncio
async def test_soft_deleted_not_loaded(sa_engine, data):
    loaders = create_loaders(sa_engine)
    assert await loaders.school_by_id.load(data.closed["id"]) is None
    assert await loaders.student_by_id.load(data.expelled["id"]) is None

    students = await loaders.students_by_school.load(data.alpha["id"])
    assert data.expelled["id"] not in {s["id"] for s in students}
    assert len(students) == 2
