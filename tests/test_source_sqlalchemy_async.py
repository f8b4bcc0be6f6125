import pytest

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from schoolgraph.context import create_context, create_loaders
from schoolgraph.endpoint import AsyncGraphQLEndpoint
from schoolgraph.error import SchoolGraphError
from schoolgraph.models import metadata, school_table
from schoolgraph.sources.sqlalchemy_async import FetchQuery

from tests.conftest import student_data

pytest.importorskip("aiosqlite")


async def setup_db(sa_engine):
    async with sa_engine.begin() as connection:
        await connection.run_sync(metadata.create_all)
        await connection.execute(
            school_table.insert(),
            [
                {"id": "s1", "name": "Alpha"},
                {"id": "s2", "name": "Beta"},
            ],
        )
        await connection.execute(
            metadata.tables["student"].insert(),
            [
                dict(student_data("s1"), id="p1"),
                dict(student_data("s1"), id="p2"),
            ],
        )


def create_engine():
    return create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.mark.asyncio
async def test_fetch_query():
    sa_engine = create_engine()
    try:
        await setup_db(sa_engine)
        query = FetchQuery(sa_engine, school_table.c.id)
        rows = await query(["s2", "s1", "s3"])
        assert sorted(r["name"] for r in rows) == ["Alpha", "Beta"]
        assert await query([]) == []
    finally:
        await sa_engine.dispose()


@pytest.mark.asyncio
async def test_create_loaders_for_async_engine():
    sa_engine = create_engine()
    try:
        await setup_db(sa_engine)
        loaders = create_loaders(sa_engine)
        assert isinstance(loaders.school_by_id.fetch, FetchQuery)

        school, missing = await loaders.school_by_id.load_many(["s1", "s3"])
        assert school["name"] == "Alpha"
        assert missing is None

        students, none = await loaders.students_by_school.load_many(
            ["s1", "s2"]
        )
        assert sorted(s["id"] for s in students) == ["p1", "p2"]
        assert none == []
    finally:
        await sa_engine.dispose()


@pytest.mark.asyncio
async def test_request_context_requires_sync_engine():
    sa_engine = create_engine()
    try:
        with pytest.raises(SchoolGraphError) as err:
            create_context(sa_engine)
        err.match("requires a sync engine")

        with pytest.raises(SchoolGraphError) as err:
            AsyncGraphQLEndpoint(sa_engine)
        err.match("requires a sync engine")
    finally:
        await sa_engine.dispose()
