from __future__ import annotations

import threading
from typing import Dict, Optional

from ..quotas.model import LeaveBalance


class BalanceCache:
    """Session-local mirror of stored balances.

    Written only after a confirmed commit or a fresh read; never used to
    decide whether leave can be spent.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, LeaveBalance] = {}

    def get(self, applicant_id: str) -> Optional[LeaveBalance]:
        with self._lock:
            return self._items.get(applicant_id)

    def store(self, applicant_id: str, balance: LeaveBalance) -> None:
        with self._lock:
            self._items[applicant_id] = balance

    def invalidate(self, applicant_id: str) -> None:
        with self._lock:
            self._items.pop(applicant_id, None)
