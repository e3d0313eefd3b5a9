from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from ..quotas.model import LeaveBalance
from .repository import BalanceRepository


class MySQLBalanceRepository(BalanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, applicant_id: str) -> Optional[Mapping[str, Any]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT casual, medical, emergency, personal
                FROM leave_balances
                WHERE applicant_id=%s
                """,
                (applicant_id,),
            )
            return fetchone(cur)

    def save(self, *, applicant_id: str, applicant_type: Role, balance: LeaveBalance) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
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

