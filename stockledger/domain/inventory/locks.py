from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class ProductLockRegistry:
    """One writer per product inside this process.

    Database row locks cover writers in other processes; this keeps threads of the
    same process from queueing on the database for the same product. An entry lives
    only while some thread holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    @contextmanager
    def hold(self, product_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(product_id)
            if entry is None:
                entry = _Entry()
                self._entries[product_id] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[product_id]
