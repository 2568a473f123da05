"""Identity encoding and tag validation tests."""

from __future__ import annotations

import threading

import pytest

from statscope.agent.errors import InvalidTagError
from statscope.agent.keymap import BufferPool, key_map, validate_name, validate_tags


def test_identity_ignores_tag_insertion_order() -> None:
    """Identity should not depend on tag insertion order."""
    assert key_map("svc", {"b": "2", "a": "1"}) == key_map("svc", {"a": "1", "b": "2"})


def test_identity_distinguishes_tag_sets() -> None:
    """Different prefixes or tag sets should produce different identities."""
    assert key_map("svc", {"b": "2", "a": "1"}) != key_map("svc", {"a": "1"})
    assert key_map("svc", {"a": "1"}) != key_map("other", {"a": "1"})
    assert key_map("svc", {"a": "1"}) != key_map("svc", {"a": "2"})


def test_identity_format() -> None:
    """Identity should use the prefix, pair and name separators in sorted key order."""
    assert key_map("svc", {"b": "2", "a": "1"}) == "svc+a=1,b=2"
    assert key_map("", {"host": "db1"}) == "host=db1"
    assert key_map("svc", {}) == "svc+"
    assert key_map("", None) == ""


@pytest.mark.parametrize("bad", ["a=b", "a,b", "a+b"])
def test_validate_tags_rejects_reserved_characters(bad: str) -> None:
    """Reserved separator characters are refused in keys, values and names."""
    with pytest.raises(InvalidTagError):
        validate_tags({bad: "value"})
    with pytest.raises(InvalidTagError):
        validate_tags({"key": bad})
    with pytest.raises(InvalidTagError):
        validate_name(bad)


def test_validate_tags_rejects_non_strings() -> None:
    """Tag values must be strings."""
    with pytest.raises(InvalidTagError):
        validate_tags({"port": 8080})  # type: ignore[dict-item]


def test_validate_tags_returns_copy() -> None:
    """Validated tags are an independent copy of the input."""
    source = {"a": "1"}
    copied = validate_tags(source)
    copied["b"] = "2"
    assert source == {"a": "1"}
    assert validate_tags(None) == {}


def test_invalid_tag_error_is_value_error() -> None:
    """Validation errors can be caught as ValueError."""
    with pytest.raises(ValueError):
        validate_name("x+y", kind="prefix")


def test_buffer_pool_falls_back_to_fresh_allocation() -> None:
    """Pool misses allocate and a full pool drops returned buffers."""
    allocations: list[list[str]] = []

    def alloc() -> list[str]:
        buf: list[str] = []
        allocations.append(buf)
        return buf

    pool = BufferPool(1, alloc)
    assert len(allocations) == 1
    first = pool.get()
    second = pool.get()
    assert first is not second
    assert len(allocations) == 2

    pool.put(first)
    pool.put(second)  # full, dropped
    assert len(pool) == 1
    assert pool.get() is first


def test_key_map_is_consistent_across_threads() -> None:
    """Pooled buffers never leak partial state between concurrent callers."""
    cases = {f"job{i}": {"shard": str(i), "zone": f"z{i % 3}"} for i in range(16)}
    expected = {prefix: f"{prefix}+shard={tags['shard']},zone={tags['zone']}" for prefix, tags in cases.items()}
    mismatches: list[str] = []
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        for _ in range(200):
            for prefix, tags in cases.items():
                if key_map(prefix, tags) != expected[prefix]:
                    mismatches.append(prefix)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert mismatches == []
