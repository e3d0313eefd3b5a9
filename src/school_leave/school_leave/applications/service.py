from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from ..balances.reset_tracker import ResetTracker
from ..balances.service import BalanceService, repair_balance
from ..common.datetime_utils import date_bucket, inclusive_day_count, now_local
from ..common.validators import require_non_empty
from ..core.constants import (
    APPLICANT_HISTORY_DAYS,
    DEFAULT_LIST_LIMIT,
    PENDING_LOOKBACK_DAYS,
    PROCESSING_LOOKBACK_DAYS,
)
from ..core.enums import LeaveStatus, LeaveType, Role
from ..core.exceptions import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from ..database.unit_of_work import LedgerTransaction, UnitOfWork
from ..quotas.model import LeaveQuota
from .model import LeaveApplication
from .repository import ApplicationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplicationRef:
    """Address of a stored application: its id plus its submission-day bucket."""

    application_id: str
    date_bucket: str


def parse_leave_type(value: str) -> LeaveType:
    if not isinstance(value, str):
        raise ValidationError(f"Unknown leave type: {value}")
    try:
        return LeaveType(value.strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown leave type: {value}")


class LeaveApplicationService:
    def __init__(
        self,
        applications: ApplicationRepository,
        uow: UnitOfWork,
        balances: BalanceService,
        reset_tracker: ResetTracker,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._applications = applications
        self._uow = uow
        self._balances = balances
        self._reset_tracker = reset_tracker
        self._clock = clock

    def submit(
        self,
        *,
        current_role: Role,
        applicant_id: str,
        leave_type: str,
        start_date: date,
        end_date: date,
        reason: str,
        applicant_name: Optional[str] = None,
    ) -> ApplicationRef:
        if not Role(current_role).is_applicant:
            raise AuthorizationError("Only students and teachers can apply for leave")
        role = Role(current_role)

        lt = parse_leave_type(leave_type)
        if end_date < start_date:
            raise ValidationError("End date must be on or after the start date")
        reason = require_non_empty(reason, "Reason")
        duration = inclusive_day_count(start_date, end_date)

        # Make sure a balance row exists so it can be locked below.
        self._balances.get_balance(applicant_id=applicant_id, role=role)
        default = self._balances.default_for(role)

        now = self._clock()
        bucket = date_bucket(now)

        def _tx(tx: LedgerTransaction) -> str:
            self._reset_tracker.reset_within(tx, applicant_id=applicant_id, role=role, now=now)
            raw = tx.get_balance(applicant_id) or {}
            current = repair_balance(raw, applicant_id=applicant_id, default=default)
            remaining = current.get(lt)
            if duration > remaining:
                raise InsufficientBalanceError(lt.value, remaining, duration)
            return tx.insert_application(
                date_bucket=bucket,
                applicant_id=applicant_id,
                applicant_type=role,
                applicant_name=applicant_name,
                leave_type=lt,
                start_date=start_date,
                end_date=end_date,
                duration=duration,
                reason=reason,
                created_at=now,
                balance_before=current,
            )

        application_id = self._uow.run(_tx)
        logger.info(
            "Leave application %s/%s submitted by %s %s: %s x%s",
            bucket, application_id, role.value, applicant_id, lt.value, duration,
        )
        return ApplicationRef(application_id=application_id, date_bucket=bucket)

    def get(self, *, application_id: str, date_bucket: str) -> LeaveApplication:
        app = self._applications.get(application_id=application_id, date_bucket=date_bucket)
        if not app:
            raise NotFoundError("Leave application not found")
        return app

    def review(
        self,
        *,
        current_role: Role,
        reviewer_id: str,
        application_id: str,
        date_bucket: str,
        decision: LeaveStatus,
    ) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can review leave applications")
        decision = LeaveStatus(decision)
        if decision == LeaveStatus.PENDING:
            raise ValidationError("A review must approve or reject")

        app = self.get(application_id=application_id, date_bucket=date_bucket)
        if app.status != LeaveStatus.PENDING:
            raise ValidationError(f"Leave application was already {app.status.value}")

        ok = self._applications.decide(
            application_id=application_id,
            date_bucket=date_bucket,
            status=decision,
            reviewed_by=str(reviewer_id),
            reviewed_at=self._clock(),
        )
        if not ok:
            raise ValidationError("Leave application was reviewed by someone else")
        logger.info("Leave application %s/%s %s by %s", date_bucket, application_id, decision.value, reviewer_id)

    def approve(self, *, current_role: Role, reviewer_id: str, application_id: str, date_bucket: str) -> None:
        self.review(
            current_role=current_role,
            reviewer_id=reviewer_id,
            application_id=application_id,
            date_bucket=date_bucket,
            decision=LeaveStatus.APPROVED,
        )

    def reject(self, *, current_role: Role, reviewer_id: str, application_id: str, date_bucket: str) -> None:
        self.review(
            current_role=current_role,
            reviewer_id=reviewer_id,
            application_id=application_id,
            date_bucket=date_bucket,
            decision=LeaveStatus.REJECTED,
        )

    def _since(self, days: int) -> datetime:
        return self._clock() - timedelta(days=int(days))

    def list_for_applicant(
        self, *, applicant_id: str, lookback_days: int = APPLICANT_HISTORY_DAYS
    ) -> Sequence[LeaveApplication]:
        return self._applications.list_applications(
            applicant_id=applicant_id,
            since=self._since(lookback_days),
            limit=DEFAULT_LIST_LIMIT,
        )

    def list_pending(self, *, current_role: Role, lookback_days: int = PENDING_LOOKBACK_DAYS) -> Sequence[LeaveApplication]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can see all pending leave applications")
        return self._applications.list_applications(
            status=LeaveStatus.PENDING,
            since=self._since(lookback_days),
            limit=DEFAULT_LIST_LIMIT,
        )

    def list_awaiting_processing(
        self, *, applicant_id: Optional[str] = None, lookback_days: int = PROCESSING_LOOKBACK_DAYS
    ) -> Sequence[LeaveApplication]:
        return self._applications.list_applications(
            applicant_id=applicant_id,
            status=LeaveStatus.APPROVED,
            processed=False,
            since=self._since(lookback_days),
            limit=DEFAULT_LIST_LIMIT,
        )

    def used_leave_summary(self, *, applicant_id: str, year: Optional[int] = None) -> LeaveQuota:
        """Approved days per leave type submitted in ``year``; informational only."""
        year = year or self._clock().year
        used = {lt.value: 0 for lt in LeaveType}
        apps = self._applications.list_applications(
            applicant_id=applicant_id,
            status=LeaveStatus.APPROVED,
            since=datetime(year, 1, 1),
            limit=DEFAULT_LIST_LIMIT,
        )
        for app in apps:
            if app.created_at.year == year:
                used[app.leave_type.value] += int(app.duration)
        return LeaveQuota(**used)
