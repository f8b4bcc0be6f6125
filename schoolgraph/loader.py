import asyncio
import inspect
import logging
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from schoolgraph.cache import MISSING, BaseCache, NoCache, RequestCache
from schoolgraph.demux import KeyFn, demultiplex
from schoolgraph.error import FetchError, InvalidKeyError
from schoolgraph.telemetry import LoaderMetrics
from schoolgraph.utils import chunks

log = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

FetchFn = Callable[[List[Any]], Any]


class LoaderState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FETCHING = "fetching"


class Batch:
    """Load requests collected since the last flush, in request order"""

    __slots__ = ("keys", "futures")

    def __init__(self) -> None:
        self.keys: List[Any] = []
        self.futures: List[asyncio.Future] = []

    def add(self, key: Any, future: asyncio.Future) -> None:
        self.keys.append(key)
        self.futures.append(future)

    def distinct_keys(self) -> List[Any]:
        return list(dict.fromkeys(self.keys))

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[Tuple[Any, asyncio.Future]]:
        return zip(self.keys, self.futures)


def _check_key(key: Any, loader: str) -> None:
    if key is None or (isinstance(key, str) and not key):
        raise InvalidKeyError(key, loader)


class Loader(Generic[K, V]):
    """Request-scoped loader for one relation kind.

    Every :py:meth:`load` issued while the event loop is busy with the
    current step is collected into one batch. The batch is flushed with
    ``loop.call_soon``, after all already queued callbacks (resolvers of the
    same traversal level) ran, so the bulk fetcher is called once with all
    of the collected keys.

    Example:

    .. code-block:: python

        loader = Loader(fetch_schools, itemgetter("id"))
        a, b = await asyncio.gather(loader.load("a"), loader.load("b"))

    :param fetch: bulk fetcher, called with a list of distinct keys,
                  returns records, a mapping or an awaitable of them
    :param key_fn: extracts the key from a fetched record
    :param many: one-to-many relation, missing keys resolve to ``[]``
                 instead of ``None``
    :param name: used in errors, logs and metrics labels
    :param cache: memoize loads by key
    :param max_batch_size: split batches into fetches of this size
    :param timeout: seconds to wait for an awaitable fetch, sync fetchers
                    are not bounded
    :param metrics: prometheus metrics to track
    """

    def __init__(
        self,
        fetch: FetchFn,
        key_fn: Optional[KeyFn] = None,
        *,
        many: bool = False,
        name: Optional[str] = None,
        cache: bool = True,
        max_batch_size: Optional[int] = None,
        timeout: Optional[float] = None,
        metrics: Optional[LoaderMetrics] = None,
    ) -> None:
        if max_batch_size is not None and max_batch_size < 1:
            raise ValueError(
                "max_batch_size should be positive, {!r} given".format(
                    max_batch_size
                )
            )
        self._fetch = fetch
        self._key_fn = key_fn
        self.many = many
        self.name = name or getattr(fetch, "__name__", type(fetch).__name__)
        self.max_batch_size = max_batch_size
        self.timeout = timeout
        self.metrics = metrics

        self._cache: BaseCache = RequestCache() if cache else NoCache()
        self._batch = Batch()
        self._flush_handle: Optional[asyncio.Handle] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._timeout_ignored = False

    def __repr__(self) -> str:
        return "<{}: name={!r}, many={!r}, state={}>".format(
            self.__class__.__name__,
            self.name,
            self.many,
            self.state.value,
        )

    @property
    def fetch(self) -> FetchFn:
        return self._fetch

    @property
    def key_fn(self) -> Optional[KeyFn]:
        return self._key_fn

    @property
    def state(self) -> LoaderState:
        if self._batch:
            return LoaderState.ACCUMULATING
        elif self._in_flight:
            return LoaderState.FETCHING
        else:
            return LoaderState.IDLE

    def load(self, key: K) -> "asyncio.Future[V]":
        _check_key(key, self.name)

        future = self._cache.get(key)
        if future is not MISSING and not future.cancelled():
            self._track_load(hit=True)
            return asyncio.shield(future)

        self._track_load(hit=False)
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._cache.set(key, future)
        self._batch.add(key, future)
        if self._flush_handle is None:
            self._flush_handle = loop.call_soon(self._flush)
        # callers share the cached future, cancelling one must not cancel it
        return asyncio.shield(future)

    def load_many(self, keys: Iterable[K]) -> "asyncio.Future[List[V]]":
        keys = list(keys)
        for key in keys:
            _check_key(key, self.name)
        return asyncio.gather(*[self.load(key) for key in keys])

    async def dispatch(self) -> None:
        """Flush the current batch now and wait for its fetch"""
        task = self._flush()
        if task is not None:
            await task

    def prime(self, key: K, value: V) -> None:
        _check_key(key, self.name)
        if key in self._cache:
            return
        future = asyncio.get_running_loop().create_future()
        future.set_result(value)
        self._cache.set(key, future)

    def clear(self, key: K) -> None:
        self._cache.delete(key)

    def clear_all(self) -> None:
        self._cache.clear()

    def _flush(self) -> Optional[asyncio.Task]:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None

        batch, self._batch = self._batch, Batch()
        if not batch:
            return None

        log.debug("Loader %s dispatches %d request(s)", self.name, len(batch))
        task = asyncio.get_running_loop().create_task(self._resolve(batch))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _fetch_chunk(self, keys: List[K]) -> List[V]:
        self._track_fetch(len(keys))
        result = self._fetch(keys)
        if inspect.isawaitable(result):
            if self.timeout is not None:
                result = await asyncio.wait_for(result, self.timeout)
            else:
                result = await result
        elif self.timeout is not None and not self._timeout_ignored:
            self._timeout_ignored = True
            log.warning(
                "Loader %s has a sync fetcher, timeout %s is ignored",
                self.name,
                self.timeout,
            )
        return demultiplex(keys, result, self._key_fn, self.many)

    async def _resolve(self, batch: Batch) -> None:
        keys = batch.distinct_keys()
        key_chunks = list(chunks(keys, self.max_batch_size or len(keys)))
        try:
            results = await asyncio.gather(
                *[self._fetch_chunk(chunk) for chunk in key_chunks],
                return_exceptions=True,
            )
        except asyncio.CancelledError:
            for key, future in batch:
                self._forget(key, future)
                future.cancel()
            raise

        values: Dict[Any, Any] = {}
        errors: Dict[Any, FetchError] = {}
        for chunk, result in zip(key_chunks, results):
            if isinstance(result, BaseException):
                error = FetchError(self.name, chunk)
                error.__cause__ = result
                log.warning(
                    "Loader %s failed to fetch %d key(s)",
                    self.name,
                    len(chunk),
                    exc_info=result,
                )
                if self.metrics is not None:
                    self.metrics.track_error(self.name)
                errors.update((key, error) for key in chunk)
            else:
                values.update(zip(chunk, result))

        for key, future in batch:
            if key in errors:
                # failed loads are not memoized, next load retries
                self._forget(key, future)
                if not future.done():
                    future.set_exception(errors[key])
            elif not future.done():
                future.set_result(values[key])

    def _forget(self, key: Any, future: asyncio.Future) -> None:
        if self._cache.get(key) is future:
            self._cache.delete(key)

    def _track_load(self, hit: bool) -> None:
        if self.metrics is not None:
            self.metrics.track_load(self.name, hit)

    def _track_fetch(self, keys: int) -> None:
        if self.metrics is not None:
            self.metrics.track_fetch(self.name, keys)
