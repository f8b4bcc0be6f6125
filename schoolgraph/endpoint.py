import logging
from asyncio import gather
from typing import Any, Dict, List, Optional, TypedDict, Union, overload

from graphql import ExecutionResult, GraphQLSchema
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine

from schoolgraph.config import LoaderSettings
from schoolgraph.context import create_context
from schoolgraph.error import SchoolGraphError
from schoolgraph.schema import create_schema, execute

log = logging.getLogger(__name__)


class GraphQLErrorObject(TypedDict):
    message: str


class GraphQLRequest(TypedDict, total=False):
    query: str
    variables: Optional[Dict[str, Any]]
    operationName: Optional[str]


class GraphQLResponse(TypedDict, total=False):
    data: Optional[Dict[str, object]]
    errors: Optional[List[GraphQLErrorObject]]


BatchedRequest = List[GraphQLRequest]
BatchedResponse = List[GraphQLResponse]

SingleOrBatchedRequest = Union[GraphQLRequest, BatchedRequest]
SingleOrBatchedResponse = Union[GraphQLResponse, BatchedResponse]


class AsyncGraphQLEndpoint:
    """Executes GraphQL requests, each with its own request context

    Example:

    .. code-block:: python

        endpoint = AsyncGraphQLEndpoint(config.create_engine())
        result = await endpoint.dispatch({"query": "{ GetAllSchools { id } }"})
    """

    def __init__(
        self,
        sa_engine: Engine,
        schema: Optional[GraphQLSchema] = None,
        settings: Optional[LoaderSettings] = None,
        batching: bool = False,
    ) -> None:
        if isinstance(sa_engine, AsyncEngine):
            raise SchoolGraphError(
                "AsyncGraphQLEndpoint requires a sync engine, {!r} given".format(
                    sa_engine
                )
            )
        self.sa_engine = sa_engine
        self.schema = schema or create_schema()
        self.settings = settings
        self.batching = batching

    def process_result(self, result: ExecutionResult) -> GraphQLResponse:
        data: GraphQLResponse = {"data": result.data}

        if result.errors:
            for error in result.errors:
                if error.original_error is not None and not isinstance(
                    error.original_error, SchoolGraphError
                ):
                    log.error(
                        "Unexpected error in %s",
                        error.path,
                        exc_info=error.original_error,
                    )
            data["errors"] = [{"message": e.message} for e in result.errors]

        return data

    async def _dispatch(self, data: GraphQLRequest) -> GraphQLResponse:
        assert "query" in data, "query is required"
        context = create_context(self.sa_engine, self.settings)
        result = await execute(
            self.schema,
            data["query"],
            variables=data.get("variables"),
            operation_name=data.get("operationName"),
            context=context,
        )
        return self.process_result(result)

    @overload
    async def dispatch(self, data: GraphQLRequest) -> GraphQLResponse: ...

    @overload
    async def dispatch(self, data: BatchedRequest) -> BatchedResponse: ...

    async def dispatch(
        self, data: SingleOrBatchedRequest
    ) -> SingleOrBatchedResponse:
        """Dispatch graphql request

        :param dict data:
            {"query": str, "variables": dict, "operationName": str}
        :return: :py:class:`dict` graphql response: data or errors
        """
        if isinstance(data, list):
            if not self.batching:
                raise SchoolGraphError("Batching is not supported")
            return list(await gather(*(self._dispatch(item) for item in data)))
        else:
            return await self._dispatch(data)
