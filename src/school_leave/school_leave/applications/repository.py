from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import LeaveStatus
from .model import LeaveApplication


class ApplicationRepository(Protocol):
    def get(self, *, application_id: str, date_bucket: str) -> Optional[LeaveApplication]:
        raise NotImplementedError

    def list_applications(
        self,
        *,
        applicant_id: Optional[str] = None,
        status: Optional[LeaveStatus] = None,
        processed: Optional[bool] = None,
        since: Optional[datetime] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[LeaveApplication]:
        """Newest first; ``since`` filters on created_at."""

        raise NotImplementedError

    def decide(
        self,
        *,
        application_id: str,
        date_bucket: str,
        status: LeaveStatus,
        reviewed_by: str,
        reviewed_at: datetime,
    ) -> bool:
        """Set the review decision; only a pending application is updated."""

        raise NotImplementedError
