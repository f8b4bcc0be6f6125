from dataclasses import dataclass, field
from typing import Any, Optional

import sqlalchemy
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from schoolgraph.telemetry import LoaderMetrics


@dataclass
class LoaderSettings:
    """Options shared by every loader created for a request

    :param max_batch_size: split batches into fetches of at most this many
                           keys, unlimited by default
    :param timeout: seconds to wait for an awaitable bulk fetch, has no
                    effect on the fetchers of a sync engine
    :param cache: memoize loads by key within a request
    :param metrics: track loader activity in prometheus counters
    """

    max_batch_size: Optional[int] = None
    timeout: Optional[float] = None
    cache: bool = True
    metrics: Optional[LoaderMetrics] = None


@dataclass
class Config:
    database_url: str = "sqlite://"
    echo: bool = False
    loader: LoaderSettings = field(default_factory=LoaderSettings)

    def create_engine(self, **kwargs: Any) -> Engine:
        if self.database_url in ("sqlite://", "sqlite:///:memory:"):
            # single in-memory database shared by all connections
            kwargs.setdefault("poolclass", StaticPool)
            kwargs.setdefault("connect_args", {"check_same_thread": False})
        return sqlalchemy.create_engine(
            self.database_url, echo=self.echo, **kwargs
        )
