from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from ..core.enums import Role
from ..quotas.model import LeaveBalance


class BalanceRepository(Protocol):
    def get(self, applicant_id: str) -> Optional[Mapping[str, Any]]:
        """Return the raw stored row (fields may be NULL) or None."""

        raise NotImplementedError

    def save(self, *, applicant_id: str, applicant_type: Role, balance: LeaveBalance) -> None:
        """Overwrite all four fields."""

        raise NotImplementedError
