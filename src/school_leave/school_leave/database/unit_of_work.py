from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Protocol, TypeVar

from ..applications.model import LeaveApplication
from ..core.enums import LeaveType, Role
from ..quotas.model import LeaveBalance

T = TypeVar("T")


class LedgerTransaction(Protocol):
    """Reads and writes performed atomically inside one transaction.

    Reads lock the rows they return until the transaction ends.
    """

    def get_balance(self, applicant_id: str) -> Optional[Mapping[str, Any]]:
        raise NotImplementedError

    def put_balance(self, *, applicant_id: str, applicant_type: Role, balance: LeaveBalance) -> None:
        raise NotImplementedError

    def create_balance(self, *, applicant_id: str, applicant_type: Role, balance: LeaveBalance) -> bool:
        """Insert the initial balance row; False when one already exists."""

        raise NotImplementedError

    def get_reset_year(self, applicant_id: str) -> Optional[int]:
        raise NotImplementedError

    def put_reset_record(self, *, applicant_id: str, year: int, reset_at: datetime) -> None:
        raise NotImplementedError

    def get_application(self, *, application_id: str, date_bucket: str) -> Optional[LeaveApplication]:
        raise NotImplementedError

    def insert_application(
        self,
        *,
        date_bucket: str,
        applicant_id: str,
        applicant_type: Role,
        applicant_name: Optional[str],
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        duration: int,
        reason: str,
        created_at: datetime,
        balance_before: LeaveBalance,
    ) -> str:
        """Create a pending, unprocessed application and return its id."""

        raise NotImplementedError

    def mark_processed(
        self,
        *,
        application_id: str,
        date_bucket: str,
        balance_after: LeaveBalance,
        updated_at: datetime,
    ) -> None:
        raise NotImplementedError


class UnitOfWork(Protocol):
    def run(self, fn: Callable[[LedgerTransaction], T]) -> T:
        """Run ``fn`` in a transaction; commit on return, roll back on error."""

        raise NotImplementedError
