from __future__ import annotations

from dataclasses import dataclass

from .applications.mysql_application_repository import MySQLApplicationRepository
from .applications.repository import ApplicationRepository
from .applications.service import LeaveApplicationService
from .balances.cache import BalanceCache
from .balances.mysql_balance_repository import MySQLBalanceRepository
from .balances.repository import BalanceRepository
from .balances.reset_tracker import ResetTracker
from .balances.service import BalanceService
from .core.constants import DEFAULT_POLL_INTERVAL_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .database.mysql_unit_of_work import MySQLUnitOfWork
from .database.unit_of_work import UnitOfWork
from .processing.service import LeaveProcessingEngine
from .processing.session import LeaveSession
from .processing.watcher import ApprovedLeaveWatcher
from .quotas.mysql_quota_repository import MySQLQuotaRepository
from .quotas.repository import QuotaRepository
from .quotas.service import QuotaService


@dataclass(frozen=True)
class Container:
    quotas_repo: QuotaRepository
    balances_repo: BalanceRepository
    applications_repo: ApplicationRepository
    uow: UnitOfWork

    quota_service: QuotaService
    balance_service: BalanceService
    reset_tracker: ResetTracker
    application_service: LeaveApplicationService
    processing_engine: LeaveProcessingEngine
    leave_watcher: ApprovedLeaveWatcher

    def open_session(self, *, applicant_id: str, role, watch: bool = True) -> LeaveSession:
        session = LeaveSession(
            applicant_id=applicant_id,
            role=role,
            balances=self.balance_service,
            reset_tracker=self.reset_tracker,
            engine=self.processing_engine,
            watcher=self.leave_watcher if watch else None,
        )
        session.open()
        return session


def wire(
    *,
    quotas_repo: QuotaRepository,
    balances_repo: BalanceRepository,
    applications_repo: ApplicationRepository,
    uow: UnitOfWork,
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    **service_kwargs,
) -> Container:
    """Build services on top of the given stores; ``service_kwargs`` may carry ``clock``."""
    quota_service = QuotaService(quotas_repo)
    balance_service = BalanceService(balances_repo, quota_service, uow, **service_kwargs)
    reset_tracker = ResetTracker(uow, quota_service, **service_kwargs)
    application_service = LeaveApplicationService(
        applications_repo, uow, balance_service, reset_tracker, **service_kwargs
    )
    processing_engine = LeaveProcessingEngine(
        uow, application_service, balance_service, reset_tracker, cache=BalanceCache(), **service_kwargs
    )
    leave_watcher = ApprovedLeaveWatcher(application_service, interval_seconds=poll_interval_seconds)

    return Container(
        quotas_repo=quotas_repo,
        balances_repo=balances_repo,
        applications_repo=applications_repo,
        uow=uow,
        quota_service=quota_service,
        balance_service=balance_service,
        reset_tracker=reset_tracker,
        application_service=application_service,
        processing_engine=processing_engine,
        leave_watcher=leave_watcher,
    )


def build_container(*, db_config: dict, poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire(
        quotas_repo=MySQLQuotaRepository(conn),
        balances_repo=MySQLBalanceRepository(conn),
        applications_repo=MySQLApplicationRepository(conn),
        uow=MySQLUnitOfWork(conn),
        poll_interval_seconds=poll_interval_seconds,
    )
