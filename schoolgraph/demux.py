"""Maps bulk fetch results back onto the requested keys.

Bulk fetchers return records in no particular order and skip keys without
matches, so correspondence to the requested keys is restored here:

- single relation: missing key yields ``None``
- one-to-many relation: every key starts with an empty list
"""

from collections import defaultdict
from collections.abc import Mapping
from typing import (
    Any,
    Callable,
    DefaultDict,
    Dict,
    Hashable,
    Iterable,
    List,
    Optional,
    Sequence,
)

KeyFn = Callable[[Any], Hashable]


def to_maybe(
    keys: Sequence[Hashable], records: Iterable[Any], key_fn: KeyFn
) -> List[Optional[Any]]:
    mapping: Dict[Hashable, Any] = {key_fn(r): r for r in records}
    return [mapping.get(key) for key in keys]


def to_many(
    keys: Sequence[Hashable], records: Iterable[Any], key_fn: KeyFn
) -> List[List[Any]]:
    mapping: DefaultDict[Hashable, List[Any]] = defaultdict(list)
    for record in records:
        mapping[key_fn(record)].append(record)
    return [list(mapping.get(key, ())) for key in keys]


def from_mapping(
    keys: Sequence[Hashable], mapping: Mapping, many: bool
) -> List[Any]:
    if many:
        return [list(mapping.get(key) or ()) for key in keys]
    return [mapping.get(key) for key in keys]


def demultiplex(
    keys: Sequence[Hashable],
    result: Any,
    key_fn: Optional[KeyFn],
    many: bool,
) -> List[Any]:
    if isinstance(result, Mapping):
        return from_mapping(keys, result, many)
    if key_fn is None:
        raise TypeError(
            "Fetch returned {!r} instead of a mapping and no key_fn "
            "was provided to correlate records with keys".format(
                type(result).__name__
            )
        )
    if many:
        return to_many(keys, result, key_fn)
    else:
        return to_maybe(keys, result, key_fn)
