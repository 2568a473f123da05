"""Canonical identity strings for (prefix, tags) pairs.

Identities deduplicate scopes in the registry and key metrics in snapshots, so
two equal tag sets must always encode to the same string regardless of their
insertion order. Scratch buffers come from a bounded pool; the pool only
saves allocations and never changes the result.
"""

from __future__ import annotations

import queue
from typing import Callable, Generic, Mapping, TypeVar

from statscope.agent.errors import InvalidTagError

NAME_SEPARATOR = "="
PAIR_SEPARATOR = ","
PREFIX_SEPARATOR = "+"

RESERVED_CHARACTERS = frozenset({NAME_SEPARATOR, PAIR_SEPARATOR, PREFIX_SEPARATOR})

_POOL_SIZE = 512

T = TypeVar("T")


class BufferPool(Generic[T]):
    """Bounded pool of reusable objects.

    ``get`` falls back to a fresh allocation when the pool is empty and ``put``
    silently drops the object when the pool is full.
    """

    def __init__(self, size: int, alloc: Callable[[], T], *, prefill: bool = True) -> None:
        self._alloc = alloc
        self._values: "queue.Queue[T]" = queue.Queue(maxsize=size)
        if prefill:
            for _ in range(size):
                self._values.put_nowait(alloc())

    def get(self) -> T:
        try:
            return self._values.get_nowait()
        except queue.Empty:
            return self._alloc()

    def put(self, value: T) -> None:
        try:
            self._values.put_nowait(value)
        except queue.Full:
            pass

    def __len__(self) -> int:
        return self._values.qsize()


_buffers: BufferPool[list[str]] = BufferPool(_POOL_SIZE, list, prefill=False)


def _check_part(kind: str, value: object) -> None:
    if not isinstance(value, str):
        raise InvalidTagError(f"{kind} must be a string, got {type(value).__name__}")
    for char in RESERVED_CHARACTERS:
        if char in value:
            raise InvalidTagError(f"{kind} {value!r} contains reserved character {char!r}")


def validate_name(value: object, *, kind: str = "name", allow_empty: bool = False) -> str:
    """Return ``value`` if it can be embedded in an identity, else raise.

    Only prefixes may be empty; an empty metric or scope name would yield a
    dangling separator or a nameless metric.
    """

    _check_part(kind, value)
    if not value and not allow_empty:
        raise InvalidTagError(f"{kind} must not be empty")
    return value  # type: ignore[return-value]


def validate_tags(tags: Mapping[str, str] | None) -> dict[str, str]:
    """Return a plain copy of ``tags`` after checking every key and value."""

    if not tags:
        return {}
    result: dict[str, str] = {}
    for key, value in tags.items():
        _check_part("tag key", key)
        _check_part("tag value", value)
        result[key] = value
    return result


def key_map(prefix: str, tags: Mapping[str, str] | None) -> str:
    """Encode ``prefix`` and ``tags`` as ``prefix+k1=v1,k2=v2`` with sorted keys."""

    buf = _buffers.get()
    try:
        if prefix:
            buf.append(prefix)
            buf.append(PREFIX_SEPARATOR)
        if tags:
            first = True
            for key in sorted(tags):
                if not first:
                    buf.append(PAIR_SEPARATOR)
                buf.append(key)
                buf.append(NAME_SEPARATOR)
                buf.append(tags[key])
                first = False
        return "".join(buf)
    finally:
        buf.clear()
        _buffers.put(buf)
