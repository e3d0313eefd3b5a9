from __future__ import annotations

from datetime import date, datetime

from src.school_leave.school_leave.core.enums import ProcessOutcome, Role
from src.school_leave.school_leave.quotas.model import LeaveBalance


def _submit(container, *, start, end, applicant_id="s1", leave_type="casual"):
    return container.application_service.submit(
        current_role=Role.STUDENT,
        applicant_id=applicant_id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        reason="Leave",
    )


def _approve(container, ref):
    svc = container.application_service
    svc.approve(current_role=Role.ADMIN, reviewer_id="admin1", application_id=ref.application_id, date_bucket=ref.date_bucket)
    return svc.get(application_id=ref.application_id, date_bucket=ref.date_bucket)


def test_new_year_submission_is_checked_against_reset_balance(container, store, clock):
    svc = container.balance_service
    svc.get_balance(applicant_id="s1", role=Role.STUDENT)
    svc.set_balance(applicant_id="s1", role=Role.STUDENT, balance=LeaveBalance(casual=0, medical=15, emergency=5, personal=5))
    clock.advance(days=365)

    ref = _submit(container, start=date(2026, 6, 20), end=date(2026, 6, 20))

    app = container.application_service.get(application_id=ref.application_id, date_bucket=ref.date_bucket)
    assert app.balance_before.casual == 10
    assert store.balances["s1"]["casual"] == 10
    assert store.resets["s1"][0] == 2026


def test_leave_approved_last_year_is_deducted_after_the_reset(container, store, clock):
    clock.now = datetime(2025, 12, 31, 10, 0)
    app = _approve(container, _submit(container, start=date(2026, 1, 2), end=date(2026, 1, 4)))
    container.balance_service.set_balance(
        applicant_id="s1", role=Role.STUDENT, balance=LeaveBalance(casual=3, medical=15, emergency=5, personal=5)
    )
    clock.advance(days=1)

    result = container.processing_engine.process_pending_for_applicant(applicant_id="s1", role=Role.STUDENT)

    assert [r.application_id for r in result.processed] == [app.application_id]
    assert result.balance.casual == 7
    assert store.balances["s1"]["casual"] == 7
    assert store.resets["s1"][0] == 2026

    session = container.open_session(applicant_id="s1", role=Role.STUDENT, watch=False)
    try:
        assert session.balance.casual == 7
    finally:
        session.close()


def test_single_processing_resets_before_deducting(container, store, clock):
    clock.now = datetime(2025, 12, 31, 10, 0)
    app = _approve(container, _submit(container, leave_type="emergency", start=date(2026, 1, 5), end=date(2026, 1, 6)))
    container.balance_service.set_balance(
        applicant_id="s1", role=Role.STUDENT, balance=LeaveBalance(casual=10, medical=15, emergency=2, personal=5)
    )
    clock.advance(days=1)

    outcome = container.processing_engine.process_one(app)

    assert outcome == ProcessOutcome.PROCESSED
    assert store.balances["s1"]["emergency"] == 3
    assert container.processing_engine.cache.get("s1").emergency == 3


def test_nothing_pending_still_reports_the_new_year_balance(container, clock):
    svc = container.balance_service
    svc.get_balance(applicant_id="t1", role=Role.TEACHER)
    svc.set_balance(applicant_id="t1", role=Role.TEACHER, balance=LeaveBalance())
    clock.advance(days=365)

    result = container.processing_engine.process_pending_for_applicant(applicant_id="t1", role=Role.TEACHER)

    assert result.processed == []
    assert result.balance == LeaveBalance(casual=12, medical=15, emergency=5, personal=8)
