"""Coverage ledger of operations that live traffic has not exercised yet."""

from __future__ import annotations

import threading
from collections.abc import Iterable


class PendingLedger:
    """Set of operation handles still waiting for their first request.

    ``hit`` is idempotent and safe to call from concurrent request handlers.
    """

    def __init__(self, handles: Iterable[int] = ()) -> None:
        self._pending: set[int] = set(handles)
        self._lock = threading.Lock()

    def pending(self) -> list[int]:
        with self._lock:
            return sorted(self._pending)

    def hit(self, handle: int) -> bool:
        """Mark ``handle`` as exercised. Returns ``True`` on the first hit only."""

        with self._lock:
            if handle not in self._pending:
                return False
            self._pending.remove(handle)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._pending
