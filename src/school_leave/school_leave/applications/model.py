from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus, LeaveType, Role
from ..quotas.model import LeaveBalance


@dataclass(frozen=True)
class LeaveApplication:
    """Domain entity: a leave application.

    ``date_bucket`` is the submission-day partition key; together with
    ``application_id`` it addresses the record.
    """

    application_id: str
    date_bucket: str
    applicant_id: str
    applicant_type: Role
    leave_type: LeaveType
    start_date: date
    end_date: date
    duration: int
    reason: str
    status: LeaveStatus
    created_at: datetime
    updated_at: datetime
    balance_before: LeaveBalance
    processed: bool = False
    balance_after: Optional[LeaveBalance] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    applicant_name: Optional[str] = None

    @property
    def awaiting_processing(self) -> bool:
        return self.status == LeaveStatus.APPROVED and not self.processed
