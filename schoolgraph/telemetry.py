from dataclasses import dataclass

from prometheus_client import Counter


LOADER_BATCHES = Counter(
    name="schoolgraph_loader_batches",
    documentation="Bulk fetches issued by loaders",
    labelnames=["loader"],
)
LOADER_KEYS = Counter(
    name="schoolgraph_loader_keys",
    documentation="Distinct keys passed to bulk fetches",
    labelnames=["loader"],
)
LOADER_CACHE_HITS = Counter(
    name="schoolgraph_loader_cache_hits",
    documentation="Loads served from the request cache",
    labelnames=["loader"],
)
LOADER_CACHE_MISSES = Counter(
    name="schoolgraph_loader_cache_misses",
    documentation="Loads queued into a batch",
    labelnames=["loader"],
)
LOADER_FETCH_ERRORS = Counter(
    name="schoolgraph_loader_fetch_errors",
    documentation="Failed bulk fetches",
    labelnames=["loader"],
)


@dataclass
class LoaderMetrics:
    batches_counter: Counter = LOADER_BATCHES
    keys_counter: Counter = LOADER_KEYS
    hits_counter: Counter = LOADER_CACHE_HITS
    misses_counter: Counter = LOADER_CACHE_MISSES
    errors_counter: Counter = LOADER_FETCH_ERRORS

    def track_load(self, loader: str, hit: bool) -> None:
        if hit:
            self.hits_counter.labels(loader).inc()
        else:
            self.misses_counter.labels(loader).inc()

    def track_fetch(self, loader: str, keys: int) -> None:
        self.batches_counter.labels(loader).inc()
        self.keys_counter.labels(loader).inc(keys)

    def track_error(self, loader: str) -> None:
        self.errors_counter.labels(loader).inc()
