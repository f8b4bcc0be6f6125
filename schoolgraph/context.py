"""Request-scoped state: loaders and repositories.

A :py:class:`RequestContext` is created for every incoming request and passed
down the traversal, loaders are never shared between requests.

Usage in resolver:

.. code-block:: python

    def resolve_school(student, info):
        return info.context.loaders.school_by_id.load(student["school_id"])
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine

from schoolgraph.config import LoaderSettings
from schoolgraph.error import SchoolGraphError
from schoolgraph.loader import Loader
from schoolgraph.models import active, school_table, student_table, user_table
from schoolgraph.repository import Repositories, create_repositories
from schoolgraph.sources import sqlalchemy as sa_source
from schoolgraph.sources import sqlalchemy_async as sa_async_source

Record = Dict[str, Any]


@dataclass
class Loaders:
    school_by_id: Loader[str, Optional[Record]]
    students_by_school: Loader[str, List[Record]]
    student_by_id: Loader[str, Optional[Record]]
    user_by_id: Loader[str, Optional[Record]]

    def all(self) -> List[Loader]:
        return [
            self.school_by_id,
            self.students_by_school,
            self.student_by_id,
            self.user_by_id,
        ]


def _loader(
    query: sa_source.FetchQuery,
    settings: LoaderSettings,
    *,
    name: str,
    many: bool = False,
) -> Loader:
    return Loader(
        query,
        query.key_fn,
        many=many,
        name=name,
        cache=settings.cache,
        max_batch_size=settings.max_batch_size,
        timeout=settings.timeout,
        metrics=settings.metrics,
    )


def create_loaders(
    sa_engine: Any, settings: Optional[LoaderSettings] = None
) -> Loaders:
    """Factory of fresh, empty loaders for one request

    :param sa_engine: :py:class:`sqlalchemy.engine.Engine` or
                      :py:class:`sqlalchemy.ext.asyncio.AsyncEngine`
    :param settings: options applied to every loader
    """
    settings = settings or LoaderSettings()
    if isinstance(sa_engine, AsyncEngine):
        query_cls = sa_async_source.FetchQuery
    else:
        query_cls = sa_source.FetchQuery

    return Loaders(
        school_by_id=_loader(
            query_cls(
                sa_engine, school_table.c.id, where=active(school_table)
            ),
            settings,
            name="school_by_id",
        ),
        students_by_school=_loader(
            query_cls(
                sa_engine,
                student_table.c.school_id,
                where=active(student_table),
                order_by=[student_table.c.created_at, student_table.c.id],
            ),
            settings,
            name="students_by_school",
            many=True,
        ),
        student_by_id=_loader(
            query_cls(
                sa_engine, student_table.c.id, where=active(student_table)
            ),
            settings,
            name="student_by_id",
        ),
        user_by_id=_loader(
            query_cls(sa_engine, user_table.c.id, where=active(user_table)),
            settings,
            name="user_by_id",
        ),
    )


@dataclass
class RequestContext:
    sa_engine: Engine
    loaders: Loaders
    repositories: Repositories
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


def create_context(
    sa_engine: Engine, settings: Optional[LoaderSettings] = None
) -> RequestContext:
    """Context of one request, repositories only work with a sync engine"""
    if isinstance(sa_engine, AsyncEngine):
        raise SchoolGraphError(
            "Request context requires a sync engine, {!r} given".format(
                sa_engine
            )
        )
    return RequestContext(
        sa_engine=sa_engine,
        loaders=create_loaders(sa_engine, settings),
        repositories=create_repositories(sa_engine),
    )
