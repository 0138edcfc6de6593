"""Durable store protocol.

A persistent key -> JSON-serializable mapping. The slow cache tier sits on
top of it; any backend with list/read/write/delete works (Redis, a flat
JSON file, a key-value database).

Backends raise ``DurableStoreError`` for any I/O or decoding failure.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DurableStore(Protocol):
    """Protocol for durable key -> JSON backends."""

    def read(self, key: str) -> dict[str, Any] | None:
        """Read one value, or None if absent."""
        ...

    def write(self, key: str, value: dict[str, Any]) -> None:
        """Write (or overwrite) one value."""
        ...

    def delete(self, key: str) -> bool:
        """Delete one value. Returns True if it existed."""
        ...

    def items(self) -> list[tuple[str, dict[str, Any] | None]]:
        """All stored (key, value) pairs. Undecodable values come back as None."""
        ...

    def clear(self) -> int:
        """Delete everything. Returns the number of values removed."""
        ...

    def health_check(self) -> bool:
        """True if the backend is reachable."""
        ...
