from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import LeaveStatus, LeaveType, Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json_column
from ..quotas.model import LeaveBalance
from .model import LeaveApplication
from .repository import ApplicationRepository

APPLICATION_COLUMNS = """
    application_id, date_bucket, applicant_id, applicant_type, applicant_name,
    leave_type, start_date, end_date, duration, reason, status,
    created_at, updated_at, balance_before, balance_after, processed,
    reviewed_by, reviewed_at
"""


def _balance(value: Any) -> Optional[LeaveBalance]:
    raw = load_json_column(value)
    if raw is None:
        return None
    return LeaveBalance.from_mapping(raw, fallback=LeaveBalance())


def row_to_application(r: Dict[str, Any]) -> LeaveApplication:
    return LeaveApplication(
        application_id=str(r["application_id"]),
        date_bucket=str(r["date_bucket"]),
        applicant_id=str(r["applicant_id"]),
        applicant_type=Role(r["applicant_type"]),
        leave_type=LeaveType(r["leave_type"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        duration=int(r["duration"]),
        reason=r["reason"],
        status=LeaveStatus(r["status"]),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        balance_before=_balance(r["balance_before"]) or LeaveBalance(),
        processed=bool(r["processed"]),
        balance_after=_balance(r.get("balance_after")),
        reviewed_by=r.get("reviewed_by"),
        reviewed_at=r.get("reviewed_at"),
        applicant_name=r.get("applicant_name"),
    )


class MySQLApplicationRepository(ApplicationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, application_id: str, date_bucket: str) -> Optional[LeaveApplication]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {APPLICATION_COLUMNS}
                FROM leave_applications
                WHERE application_id=%s AND date_bucket=%s
                """,
                (application_id, date_bucket),
            )
            r = fetchone(cur)
            return row_to_application(r) if r else None

    def list_applications(
        self,
        *,
        applicant_id: Optional[str] = None,
        status: Optional[LeaveStatus] = None,
        processed: Optional[bool] = None,
        since: Optional[datetime] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[LeaveApplication]:
        clauses = ["1=1"]
        params: list[object] = []

        if applicant_id is not None:
            clauses.append("applicant_id=%s")
            params.append(applicant_id)
        if status is not None:
            clauses.append("status=%s")
            params.append(LeaveStatus(status).value)
        if processed is not None:
            clauses.append("processed=%s")
            params.append(1 if processed else 0)
        if since is not None:
            clauses.append("created_at>=%s")
            params.append(since)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {APPLICATION_COLUMNS}
                FROM leave_applications
                WHERE {where}
                ORDER BY created_at DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [row_to_application(r) for r in fetchall(cur)]

    def decide(
        self,
        *,
        application_id: str,
        date_bucket: str,
        status: LeaveStatus,
        reviewed_by: str,
        reviewed_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_applications
                SET status=%s, reviewed_by=%s, reviewed_at=%s, updated_at=%s
                WHERE application_id=%s AND date_bucket=%s AND status=%s
                """,
                (
                    LeaveStatus(status).value,
                    reviewed_by,
                    reviewed_at,
                    reviewed_at,
                    application_id,
                    date_bucket,
                    LeaveStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0
