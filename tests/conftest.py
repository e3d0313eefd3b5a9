from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from src.school_leave.school_leave.container import wire
from src.school_leave.school_leave.core.enums import LeaveStatus, Role
from src.school_leave.school_leave.core.exceptions import TransactionConflictError
from src.school_leave.school_leave.applications.model import LeaveApplication


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeStore:
    """Shared in-memory state behind the fake repositories."""

    def __init__(self):
        self.quotas: dict[str, dict] = {}
        self.balances: dict[str, dict] = {}
        self.resets: dict[str, tuple[int, datetime]] = {}
        self.applications: dict[tuple[str, str], LeaveApplication] = {}
        self.balance_inits = 0
        self.commits = 0
        self.fail_commits = 0
        self._next_id = 1

    def next_id(self) -> str:
        rid = f"app{self._next_id}"
        self._next_id += 1
        return rid

    def snapshot(self):
        return (
            {k: dict(v) for k, v in self.quotas.items()},
            {k: dict(v) for k, v in self.balances.items()},
            dict(self.resets),
            dict(self.applications),
        )

    def restore(self, snap) -> None:
        self.quotas, self.balances, self.resets, self.applications = snap

    def put_balance(self, applicant_id, applicant_type, balance) -> None:
        self.balances[applicant_id] = dict(balance.to_dict(), applicant_type=Role(applicant_type).value)


class FakeQuotaRepo:
    def __init__(self, store: FakeStore):
        self._s = store

    def get(self, role):
        return self._s.quotas.get(Role(role).value)

    def save(self, role, quota):
        self._s.quotas[Role(role).value] = quota.to_dict()


class FakeBalanceRepo:
    def __init__(self, store: FakeStore):
        self._s = store

    def get(self, applicant_id):
        return self._s.balances.get(applicant_id)

    def save(self, *, applicant_id, applicant_type, balance):
        self._s.put_balance(applicant_id, applicant_type, balance)


class FakeApplicationRepo:
    def __init__(self, store: FakeStore):
        self._s = store

    def get(self, *, application_id, date_bucket):
        return self._s.applications.get((date_bucket, application_id))

    def list_applications(self, *, applicant_id=None, status=None, processed=None, since=None, limit=500):
        out = []
        for a in self._s.applications.values():
            if applicant_id is not None and a.applicant_id != applicant_id:
                continue
            if status is not None and a.status != status:
                continue
            if processed is not None and a.processed != processed:
                continue
            if since is not None and a.created_at < since:
                continue
            out.append(a)
        out.sort(key=lambda a: a.created_at, reverse=True)
        return out[:limit]

    def decide(self, *, application_id, date_bucket, status, reviewed_by, reviewed_at):
        a = self._s.applications.get((date_bucket, application_id))
        if not a or a.status != LeaveStatus.PENDING:
            return False
        self._s.applications[(date_bucket, application_id)] = replace(
            a, status=status, reviewed_by=reviewed_by, reviewed_at=reviewed_at, updated_at=reviewed_at
        )
        return True


class FakeTx:
    def __init__(self, store: FakeStore):
        self._s = store

    def get_balance(self, applicant_id):
        return self._s.balances.get(applicant_id)

    def create_balance(self, *, applicant_id, applicant_type, balance):
        if applicant_id in self._s.balances:
            return False
        self._s.put_balance(applicant_id, applicant_type, balance)
        self._s.balance_inits += 1
        return True

    def put_balance(self, *, applicant_id, applicant_type, balance):
        self._s.put_balance(applicant_id, applicant_type, balance)

    def get_reset_year(self, applicant_id):
        rec = self._s.resets.get(applicant_id)
        return rec[0] if rec else None

    def put_reset_record(self, *, applicant_id, year, reset_at):
        old = self._s.resets.get(applicant_id)
        self._s.resets[applicant_id] = (max(year, old[0]) if old else year, reset_at)

    def get_application(self, *, application_id, date_bucket):
        return self._s.applications.get((date_bucket, application_id))

    def insert_application(self, *, date_bucket, applicant_id, applicant_type, applicant_name, leave_type,
                           start_date, end_date, duration, reason, created_at, balance_before):
        rid = self._s.next_id()
        self._s.applications[(date_bucket, rid)] = LeaveApplication(
            application_id=rid,
            date_bucket=date_bucket,
            applicant_id=applicant_id,
            applicant_type=Role(applicant_type),
            applicant_name=applicant_name,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            duration=duration,
            reason=reason,
            status=LeaveStatus.PENDING,
            created_at=created_at,
            updated_at=created_at,
            balance_before=balance_before,
        )
        return rid

    def mark_processed(self, *, application_id, date_bucket, balance_after, updated_at):
        a = self._s.applications[(date_bucket, application_id)]
        self._s.applications[(date_bucket, application_id)] = replace(
            a, processed=True, balance_after=balance_after, updated_at=updated_at
        )


class FakeUnitOfWork:
    def __init__(self, store: FakeStore):
        self._s = store

    def run(self, fn):
        snap = self._s.snapshot()
        try:
            result = fn(FakeTx(self._s))
            if self._s.fail_commits > 0:
                self._s.fail_commits -= 1
                raise TransactionConflictError("simulated conflict")
        except Exception:
            self._s.restore(snap)
            raise
        self._s.commits += 1
        return result


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 6, 10, 9, 30, 0))


@pytest.fixture
def container(store, clock):
    return wire(
        quotas_repo=FakeQuotaRepo(store),
        balances_repo=FakeBalanceRepo(store),
        applications_repo=FakeApplicationRepo(store),
        uow=FakeUnitOfWork(store),
        poll_interval_seconds=0.05,
        clock=clock,
    )
