from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from ..applications.model import LeaveApplication
from ..balances.reset_tracker import ResetTracker
from ..balances.service import BalanceService
from ..core.enums import Role
from ..quotas.model import LeaveBalance
from ..quotas.service import require_applicant_role
from .service import LeaveProcessingEngine
from .watcher import ApprovedLeaveWatcher

logger = logging.getLogger(__name__)


class LeaveSession:
    """One applicant's leave view: load, yearly reset, catch up, then watch.

    ``close()`` must be called (or use it as a context manager) so the
    watcher subscription does not outlive the session.
    """

    def __init__(
        self,
        *,
        applicant_id: str,
        role: Role,
        balances: BalanceService,
        reset_tracker: ResetTracker,
        engine: LeaveProcessingEngine,
        watcher: Optional[ApprovedLeaveWatcher] = None,
    ):
        self.applicant_id = applicant_id
        self.role = require_applicant_role(role)
        self._balances = balances
        self._reset_tracker = reset_tracker
        self._engine = engine
        self._watcher = watcher
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._reset_checked = False

    @property
    def balance(self) -> Optional[LeaveBalance]:
        return self._engine.cache.get(self.applicant_id)

    def open(self) -> LeaveBalance:
        balance = self._balances.get_balance(applicant_id=self.applicant_id, role=self.role)
        if not self._reset_checked:
            balance = self._reset_tracker.check_and_reset(
                applicant_id=self.applicant_id, role=self.role, current_balance=balance
            )
            self._reset_checked = True
        self._engine.cache.store(self.applicant_id, balance)

        self.refresh()

        if self._watcher is not None and self._unsubscribe is None:
            self._unsubscribe = self._watcher.subscribe(self.applicant_id, self._on_approved)
        return self.balance or balance

    def refresh(self) -> None:
        """Process whatever was approved since the last look."""
        try:
            self._engine.process_pending_for_applicant(applicant_id=self.applicant_id, role=self.role)
        except Exception:
            # Left approved-unprocessed; the next discovery cycle retries.
            logger.warning("Processing approved leaves of %s failed", self.applicant_id)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "LeaveSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_approved(self, applications: Sequence[LeaveApplication]) -> None:
        self._engine.process_batch(applications)
