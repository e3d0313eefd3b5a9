from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..applications.model import LeaveApplication
from ..applications.service import ApplicationRef, LeaveApplicationService
from ..balances.cache import BalanceCache
from ..balances.reset_tracker import ResetTracker
from ..balances.service import BalanceService, repair_balance
from ..common.datetime_utils import now_local
from ..core.enums import LeaveStatus, ProcessOutcome, Role
from ..core.exceptions import ValidationError
from ..database.unit_of_work import LedgerTransaction, UnitOfWork
from ..quotas.model import LeaveBalance

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    applicant_id: str
    balance: Optional[LeaveBalance] = None
    processed: List[ApplicationRef] = field(default_factory=list)
    skipped: List[Tuple[ApplicationRef, ProcessOutcome]] = field(default_factory=list)


def _ref(app: LeaveApplication) -> ApplicationRef:
    return ApplicationRef(application_id=app.application_id, date_bucket=app.date_bucket)


def _check_processable(fresh: Optional[LeaveApplication]) -> Optional[ProcessOutcome]:
    if fresh is None:
        return ProcessOutcome.SKIPPED_MISSING
    if fresh.processed:
        return ProcessOutcome.SKIPPED_ALREADY_PROCESSED
    if fresh.status != LeaveStatus.APPROVED:
        return ProcessOutcome.SKIPPED_NOT_APPROVED
    return None


class LeaveProcessingEngine:
    """Turns approved, unprocessed applications into balance deductions.

    Every deduction re-reads the application and the balance inside the
    transaction that writes them, so an application is deducted at most once.
    A yearly reset that is due runs first, in that same transaction.
    A deduction that would take a leave type below zero is skipped and the
    application stays approved but unprocessed.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        applications: LeaveApplicationService,
        balances: BalanceService,
        reset_tracker: ResetTracker,
        *,
        cache: Optional[BalanceCache] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._uow = uow
        self._applications = applications
        self._balances = balances
        self._reset_tracker = reset_tracker
        self._cache = cache or BalanceCache()
        self._clock = clock

    @property
    def cache(self) -> BalanceCache:
        return self._cache

    def process_one(self, application: LeaveApplication) -> ProcessOutcome:
        applicant_id = application.applicant_id
        role = Role(application.applicant_type)
        default = self._balances.default_for(role)
        now = self._clock()

        def _tx(tx: LedgerTransaction) -> Tuple[ProcessOutcome, Optional[LeaveBalance]]:
            fresh = tx.get_application(application_id=application.application_id, date_bucket=application.date_bucket)
            skip = _check_processable(fresh)
            if skip:
                return skip, None

            self._reset_tracker.reset_within(tx, applicant_id=applicant_id, role=role, now=now)
            current = repair_balance(tx.get_balance(applicant_id) or default.to_dict(), applicant_id=applicant_id, default=default)
            new_balance = current.with_deduction(fresh.leave_type, fresh.duration)
            if new_balance.get(fresh.leave_type) < 0:
                return ProcessOutcome.SKIPPED_INSUFFICIENT, current

            tx.mark_processed(
                application_id=fresh.application_id,
                date_bucket=fresh.date_bucket,
                balance_after=new_balance,
                updated_at=now,
            )
            tx.put_balance(applicant_id=applicant_id, applicant_type=role, balance=new_balance)
            return ProcessOutcome.PROCESSED, new_balance

        outcome, new_balance = self._uow.run(_tx)
        if new_balance is not None:
            self._cache.store(applicant_id, new_balance)
        if outcome == ProcessOutcome.PROCESSED:
            logger.info(
                "Processed leave %s/%s for %s: %s -> %s",
                application.date_bucket, application.application_id, applicant_id,
                application.leave_type.value, new_balance.to_dict(),
            )
        elif outcome == ProcessOutcome.SKIPPED_INSUFFICIENT:
            logger.warning(
                "Leave %s/%s left unprocessed: would make %s balance of %s negative",
                application.date_bucket, application.application_id, application.leave_type.value, applicant_id,
            )
        else:
            logger.info("Leave %s/%s not processed: %s", application.date_bucket, application.application_id, outcome.value)
        return outcome

    def process_batch(self, applications: Sequence[LeaveApplication]) -> BatchResult:
        """Process several applications of ONE applicant with a single balance write."""
        if not applications:
            raise ValidationError("Nothing to process")
        applicant_ids = {a.applicant_id for a in applications}
        if len(applicant_ids) != 1:
            raise ValidationError("A batch must belong to a single applicant")

        applicant_id = applications[0].applicant_id
        role = Role(applications[0].applicant_type)
        ordered = sorted(applications, key=lambda a: a.created_at)
        now = self._clock()

        try:
            default = self._balances.default_for(role)

            def _tx(tx: LedgerTransaction) -> BatchResult:
                result = BatchResult(applicant_id=applicant_id)
                self._reset_tracker.reset_within(tx, applicant_id=applicant_id, role=role, now=now)
                running = repair_balance(tx.get_balance(applicant_id) or default.to_dict(), applicant_id=applicant_id, default=default)
                accepted: List[Tuple[LeaveApplication, LeaveBalance]] = []

                for app in ordered:
                    fresh = tx.get_application(application_id=app.application_id, date_bucket=app.date_bucket)
                    skip = _check_processable(fresh)
                    if skip is None:
                        candidate = running.with_deduction(fresh.leave_type, fresh.duration)
                        if candidate.get(fresh.leave_type) < 0:
                            skip = ProcessOutcome.SKIPPED_INSUFFICIENT
                    if skip:
                        result.skipped.append((_ref(app), skip))
                        continue
                    running = candidate
                    accepted.append((fresh, running))

                for fresh, balance_after in accepted:
                    tx.mark_processed(
                        application_id=fresh.application_id,
                        date_bucket=fresh.date_bucket,
                        balance_after=balance_after,
                        updated_at=now,
                    )
                    result.processed.append(_ref(fresh))
                if accepted:
                    tx.put_balance(applicant_id=applicant_id, applicant_type=role, balance=running)

                result.balance = running
                return result

            result = self._uow.run(_tx)
        except Exception:
            logger.exception("Batch processing failed for %s, reloading balance", applicant_id)
            self._reload(applicant_id, role)
            raise

        self._cache.store(applicant_id, result.balance)
        for ref, outcome in result.skipped:
            if outcome == ProcessOutcome.SKIPPED_INSUFFICIENT:
                logger.warning(
                    "Leave %s/%s left unprocessed: would make balance of %s negative",
                    ref.date_bucket, ref.application_id, applicant_id,
                )
        if result.processed:
            logger.info("Processed %s leaves for %s, balance now %s", len(result.processed), applicant_id, result.balance.to_dict())
        return result

    def process_pending_for_applicant(self, *, applicant_id: str, role: Role) -> BatchResult:
        pending = self._applications.list_awaiting_processing(applicant_id=applicant_id)
        if not pending:
            balance = self._reset_tracker.check_and_reset(
                applicant_id=applicant_id,
                role=role,
                current_balance=self._balances.get_balance(applicant_id=applicant_id, role=role),
            )
            self._cache.store(applicant_id, balance)
            return BatchResult(applicant_id=applicant_id, balance=balance)
        return self.process_batch(pending)

    def process_discovered(self, applications: Sequence[LeaveApplication]) -> Dict[str, BatchResult]:
        """Run one batch per applicant; one applicant failing does not stop the rest."""
        groups: "OrderedDict[str, List[LeaveApplication]]" = OrderedDict()
        for app in applications:
            if app.awaiting_processing:
                groups.setdefault(app.applicant_id, []).append(app)

        results: Dict[str, BatchResult] = {}
        for applicant_id, apps in groups.items():
            try:
                results[applicant_id] = self.process_batch(apps)
            except Exception:
                # Already logged by process_batch; retried on the next discovery cycle.
                continue
        return results

    def _reload(self, applicant_id: str, role: Role) -> None:
        try:
            self._cache.store(applicant_id, self._balances.get_balance(applicant_id=applicant_id, role=role))
        except Exception:
            self._cache.invalidate(applicant_id)
            logger.exception("Could not reload balance of %s", applicant_id)
