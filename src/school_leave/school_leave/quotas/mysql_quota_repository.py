from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import LeaveQuota
from .repository import QuotaRepository


class MySQLQuotaRepository(QuotaRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, role: Role) -> Optional[Mapping[str, Any]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT casual, medical, emergency, personal
                FROM leave_quotas
                WHERE role=%s
                """,
                (Role(role).value,),
            )
            return fetchone(cur)

    def save(self, role: Role, quota: LeaveQuota) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_quotas(role, casual, medical, emergency, personal)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    casual=VALUES(casual), medical=VALUES(medical),
                    emergency=VALUES(emergency), personal=VALUES(personal)
                """,
                (Role(role).value, quota.casual, quota.medical, quota.emergency, quota.personal),
            )
