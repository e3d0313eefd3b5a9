from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping

from ..common.datetime_utils import now_local
from ..core.enums import Role
from ..database.unit_of_work import LedgerTransaction, UnitOfWork
from ..quotas.model import LeaveBalance
from ..quotas.service import QuotaService, require_applicant_role
from .repository import BalanceRepository

logger = logging.getLogger(__name__)


def repair_balance(
    raw: Mapping[str, Any], *, applicant_id: str, default: LeaveBalance
) -> LeaveBalance:
    """Coerce a stored balance row, filling invalid fields from ``default``."""
    bad = LeaveBalance.invalid_fields(raw)
    if bad:
        logger.warning("Balance of %s has invalid fields %s, repairing from defaults", applicant_id, bad)
    return LeaveBalance.from_mapping(raw, fallback=default)


class BalanceService:
    """Remaining leave per applicant, lazily initialised from the role default.

    The initial row and the current year's reset record are written together,
    so a freshly initialised balance is never reset again in the same year.
    """

    def __init__(
        self,
        balances: BalanceRepository,
        quotas: QuotaService,
        uow: UnitOfWork,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._balances = balances
        self._quotas = quotas
        self._uow = uow
        self._clock = clock

    def get_balance(self, *, applicant_id: str, role: Role) -> LeaveBalance:
        role = require_applicant_role(role)
        raw = self._balances.get(applicant_id)
        if raw:
            return repair_balance(raw, applicant_id=applicant_id, default=self._quotas.get_default_quota(role))

        initial = self._quotas.get_default_quota(role)
        now = self._clock()

        def _tx(tx: LedgerTransaction) -> bool:
            if not tx.create_balance(applicant_id=applicant_id, applicant_type=role, balance=initial):
                return False
            tx.put_reset_record(applicant_id=applicant_id, year=now.year, reset_at=now)
            return True

        if self._uow.run(_tx):
            logger.info("Initialised %s leave balance for %s: %s", role.value, applicant_id, initial.to_dict())
            return initial

        # Someone else initialised it between our read and insert.
        raw = self._balances.get(applicant_id) or {}
        return repair_balance(raw, applicant_id=applicant_id, default=initial)

    def set_balance(self, *, applicant_id: str, role: Role, balance: LeaveBalance) -> None:
        self._balances.save(applicant_id=applicant_id, applicant_type=require_applicant_role(role), balance=balance)

    def default_for(self, role: Role) -> LeaveBalance:
        return self._quotas.get_default_quota(role)
