from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from ..core.enums import LeaveType


def _is_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class LeaveQuota:
    """Days per leave type.

    Used both for a role's yearly default and for an applicant's remaining
    balance (see ``LeaveBalance``).
    """

    casual: int = 0
    medical: int = 0
    emergency: int = 0
    personal: int = 0

    def get(self, leave_type: LeaveType) -> int:
        return int(getattr(self, LeaveType(leave_type).value))

    def with_deduction(self, leave_type: LeaveType, days: int) -> "LeaveQuota":
        lt = LeaveType(leave_type)
        return replace(self, **{lt.value: self.get(lt) - int(days)})

    def is_non_negative(self) -> bool:
        return all(self.get(lt) >= 0 for lt in LeaveType)

    def to_dict(self) -> dict[str, int]:
        return {lt.value: self.get(lt) for lt in LeaveType}

    @staticmethod
    def invalid_fields(raw: Mapping[str, Any]) -> list[str]:
        return [lt.value for lt in LeaveType if not _is_number(raw.get(lt.value))]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], *, fallback: "LeaveQuota") -> "LeaveQuota":
        """Build from a stored row, taking any missing/non-numeric field from ``fallback``."""
        values = {}
        for lt in LeaveType:
            v = raw.get(lt.value)
            values[lt.value] = int(v) if _is_number(v) else fallback.get(lt)
        return cls(**values)


# Same shape; a balance is the remaining part of a quota.
LeaveBalance = LeaveQuota
