from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, TypeVar

import mysql.connector
from mysql.connector import errorcode

from ..applications.model import LeaveApplication
from ..applications.mysql_application_repository import APPLICATION_COLUMNS, row_to_application
from ..core.constants import TRANSACTION_MAX_ATTEMPTS
from ..core.enums import LeaveStatus, LeaveType, Role
from ..core.exceptions import TransactionConflictError
from ..quotas.model import LeaveBalance
from .connection import DatabaseConnection
from .mysql_base import db_cursor, dump_json_column, fetchone
from .unit_of_work import LedgerTransaction, UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONFLICT_ERRNOS = {errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT}


class MySQLLedgerTransaction(LedgerTransaction):
    def __init__(self, cur):
        self._cur = cur

    def get_balance(self, applicant_id: str) -> Optional[Mapping[str, Any]]:
        self._cur.execute(
            """
            SELECT casual, medical, emergency, personal
            FROM leave_balances
            WHERE applicant_id=%s
            FOR UPDATE
            """,
            (applicant_id,),
        )
        return fetchone(self._cur)

    def put_balance(self, *, applicant_id: str, applicant_type: Role, balance: LeaveBalance) -> None:
        self._cur.execute(
            """
            INSERT INTO leave_balances(applicant_id, applicant_type, casual, medical, emergency, personal)
            VALUES(%s,%s,%s,%s,%s,%s)
            ON DUPLICATE KEY UPDATE
                applicant_type=VALUES(applicant_type),
                casual=VALUES(casual), medical=VALUES(medical),
                emergency=VALUES(emergency), personal=VALUES(personal)
            """,
            (
                applicant_id,
                Role(applicant_type).value,
                balance.casual,
                balance.medical,
                balance.emergency,
                balance.personal,
            ),
        )

    def create_balance(self, *, applicant_id: str, applicant_type: Role, balance: LeaveBalance) -> bool:
        self._cur.execute(
            """
            INSERT IGNORE INTO leave_balances(applicant_id, applicant_type, casual, medical, emergency, personal)
            VALUES(%s,%s,%s,%s,%s,%s)
            """,
            (
                applicant_id,
                Role(applicant_type).value,
                balance.casual,
                balance.medical,
                balance.emergency,
                balance.personal,
            ),
        )
        return self._cur.rowcount > 0

    def get_reset_year(self, applicant_id: str) -> Optional[int]:
        self._cur.execute(
            "SELECT year FROM leave_reset_records WHERE applicant_id=%s FOR UPDATE",
            (applicant_id,),
        )
        r = fetchone(self._cur)
        return int(r["year"]) if r else None

    def put_reset_record(self, *, applicant_id: str, year: int, reset_at: datetime) -> None:
        # GREATEST keeps the stored year from moving backwards.
        self._cur.execute(
            """
            INSERT INTO leave_reset_records(applicant_id, year, reset_at)
            VALUES(%s,%s,%s)
            ON DUPLICATE KEY UPDATE
                year=GREATEST(year, VALUES(year)), reset_at=VALUES(reset_at)
            """,
            (applicant_id, int(year), reset_at),
        )

    def get_application(self, *, application_id: str, date_bucket: str) -> Optional[LeaveApplication]:
        self._cur.execute(
            f"""
            SELECT {APPLICATION_COLUMNS}
            FROM leave_applications
            WHERE application_id=%s AND date_bucket=%s
            FOR UPDATE
            """,
            (application_id, date_bucket),
        )
        r = fetchone(self._cur)
        return row_to_application(r) if r else None

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
        application_id = uuid.uuid4().hex
        self._cur.execute(
            """
            INSERT INTO leave_applications(
                application_id, date_bucket, applicant_id, applicant_type, applicant_name,
                leave_type, start_date, end_date, duration, reason, status,
                created_at, updated_at, balance_before, processed
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,0)
            """,
            (
                application_id,
                date_bucket,
                applicant_id,
                Role(applicant_type).value,
                applicant_name,
                LeaveType(leave_type).value,
                start_date,
                end_date,
                int(duration),
                reason,
                LeaveStatus.PENDING.value,
                created_at,
                created_at,
                dump_json_column(balance_before.to_dict()),
            ),
        )
        return application_id

    def mark_processed(
        self,
        *,
        application_id: str,
        date_bucket: str,
        balance_after: LeaveBalance,
        updated_at: datetime,
    ) -> None:
        self._cur.execute(
            """
            UPDATE leave_applications
            SET processed=1, balance_after=%s, updated_at=%s
            WHERE application_id=%s AND date_bucket=%s
            """,
            (dump_json_column(balance_after.to_dict()), updated_at, application_id, date_bucket),
        )


class MySQLUnitOfWork(UnitOfWork):
    """Runs a callback in one MySQL transaction, retrying lock conflicts."""

    def __init__(self, conn_factory: DatabaseConnection, *, max_attempts: int = TRANSACTION_MAX_ATTEMPTS):
        self._conn_factory = conn_factory
        self._max_attempts = max(1, int(max_attempts))

    def run(self, fn: Callable[[LedgerTransaction], T]) -> T:
        for attempt in range(1, self._max_attempts + 1):
            try:
                with db_cursor(self._conn_factory) as (_, cur):
                    return fn(MySQLLedgerTransaction(cur))
            except mysql.connector.errors.DatabaseError as e:
                if e.errno not in _CONFLICT_ERRNOS:
                    raise
                logger.warning("Transaction conflict (attempt %s/%s): %s", attempt, self._max_attempts, e)

        raise TransactionConflictError("The update conflicted with another change, please retry")
