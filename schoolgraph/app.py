import logging
from typing import Optional

from schoolgraph.config import Config
from schoolgraph.endpoint import AsyncGraphQLEndpoint
from schoolgraph.models import metadata

log = logging.getLogger(__name__)


def create_endpoint(
    config: Optional[Config] = None, *, batching: bool = False
) -> AsyncGraphQLEndpoint:
    """Connects to the database, creates missing tables and returns an
    endpoint ready to dispatch requests
    """
    config = config or Config()
    sa_engine = config.create_engine()
    metadata.create_all(sa_engine)
    log.info("Database ready at %s", sa_engine.url)
    return AsyncGraphQLEndpoint(
        sa_engine, settings=config.loader, batching=batching
    )
