from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from ..core.enums import Role
from .model import LeaveQuota


class QuotaRepository(Protocol):
    def get(self, role: Role) -> Optional[Mapping[str, Any]]:
        """Return the raw stored row (fields may be NULL) or None."""

        raise NotImplementedError

    def save(self, role: Role, quota: LeaveQuota) -> None:
        raise NotImplementedError
