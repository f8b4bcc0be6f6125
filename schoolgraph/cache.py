import abc
from typing import Any, Dict, Hashable

from schoolgraph.utils import const

MISSING = const("MISSING")


class BaseCache(abc.ABC):
    """Storage of loads by key, owned by exactly one loader"""

    @abc.abstractmethod
    def get(self, key: Hashable) -> Any:
        """Returns MISSING when key is not cached"""
        raise NotImplementedError()

    @abc.abstractmethod
    def set(self, key: Hashable, value: Any) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    def delete(self, key: Hashable) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    def clear(self) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not MISSING


class RequestCache(BaseCache):
    """Plain mapping without eviction and TTL, lives as long as its loader"""

    def __init__(self) -> None:
        self._store: Dict[Hashable, Any] = {}

    def get(self, key: Hashable) -> Any:
        return self._store.get(key, MISSING)

    def set(self, key: Hashable, value: Any) -> None:
        self._store[key] = value

    def delete(self, key: Hashable) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class NoCache(BaseCache):
    def get(self, key: Hashable) -> Any:
        return MISSING

    def set(self, key: Hashable, value: Any) -> None:
        pass

    def delete(self, key: Hashable) -> None:
        pass

    def clear(self) -> None:
        pass

    def __len__(self) -> int:
        return 0
