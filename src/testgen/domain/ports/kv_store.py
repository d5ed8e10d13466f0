"""Port: durable key-value blob used by the suite store."""

from __future__ import annotations

from typing import Protocol


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` when the key is absent."""
        ...

    def put(self, key: str, value: str) -> None:
        ...
