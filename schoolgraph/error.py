from typing import Any, List, Optional, Sequence

__all__ = [
    "SchoolGraphError",
    "InvalidKeyError",
    "FetchError",
    "ValidationError",
]


class SchoolGraphError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidKeyError(SchoolGraphError, ValueError):
    """Key is None or empty, it never enters a batch"""

    def __init__(self, key: Any, loader: Optional[str] = None) -> None:
        super().__init__(
            "Invalid key {!r} passed to loader {}".format(
                key, loader or "<unnamed>"
            )
        )
        self.key = key
        self.loader = loader


class FetchError(SchoolGraphError):
    """Bulk fetch failed, every request of the batch receives this error

    The original exception is available as ``__cause__``.
    """

    def __init__(self, loader: str, keys: Sequence[Any]) -> None:
        super().__init__(
            "Loader {} failed to fetch {} key(s)".format(loader, len(keys))
        )
        self.loader = loader
        self.keys = list(keys)


class ValidationError(SchoolGraphError):
    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors
