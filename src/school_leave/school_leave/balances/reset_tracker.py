from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.enums import Role
from ..database.unit_of_work import LedgerTransaction, UnitOfWork
from ..quotas.model import LeaveBalance
from ..quotas.service import QuotaService, require_applicant_role

logger = logging.getLogger(__name__)


class ResetTracker:
    """Restores an applicant's balance to the role quota once per calendar year.

    The reset replaces the balance outright; leave used earlier is not carried over.
    Submission and processing call ``reset_within`` inside their own transaction,
    so a new year's deduction is never made against last year's balance.
    """

    def __init__(self, uow: UnitOfWork, quotas: QuotaService, *, clock: Callable[[], datetime] = now_local):
        self._uow = uow
        self._quotas = quotas
        self._clock = clock

    def reset_within(
        self, tx: LedgerTransaction, *, applicant_id: str, role: Role, now: datetime
    ) -> Optional[LeaveBalance]:
        """Reset inside ``tx`` when due; returns the new balance, or None if already reset this year."""
        role = require_applicant_role(role)
        last_year = tx.get_reset_year(applicant_id)
        if last_year is not None and last_year >= now.year:
            return None

        default = self._quotas.get_default_quota(role)
        tx.put_balance(applicant_id=applicant_id, applicant_type=role, balance=default)
        tx.put_reset_record(applicant_id=applicant_id, year=now.year, reset_at=now)
        logger.info("Reset %s leave balance of %s for %s: %s", role.value, applicant_id, now.year, default.to_dict())
        return default

    def check_and_reset(self, *, applicant_id: str, role: Role, current_balance: LeaveBalance) -> LeaveBalance:
        now = self._clock()
        reset = self._uow.run(lambda tx: self.reset_within(tx, applicant_id=applicant_id, role=role, now=now))
        return current_balance if reset is None else reset
