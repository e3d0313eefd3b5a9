from __future__ import annotations

from datetime import date

import pytest

from src.school_leave.school_leave.core.enums import LeaveStatus, LeaveType, ProcessOutcome, Role
from src.school_leave.school_leave.core.exceptions import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from src.school_leave.school_leave.quotas.model import LeaveBalance


def _submit(container, *, applicant_id="s1", role=Role.STUDENT, leave_type="casual",
            start=date(2025, 6, 20), end=date(2025, 6, 22), reason="Family function"):
    return container.application_service.submit(
        current_role=role,
        applicant_id=applicant_id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        reason=reason,
    )


def test_submit_creates_pending_application_in_todays_bucket(container):
    ref = _submit(container)

    app = container.application_service.get(application_id=ref.application_id, date_bucket=ref.date_bucket)
    assert ref.date_bucket == "Jun_10"
    assert app.status == LeaveStatus.PENDING
    assert app.processed is False
    assert app.duration == 3
    assert app.leave_type == LeaveType.CASUAL
    assert app.balance_before == LeaveBalance(casual=10, medical=15, emergency=5, personal=5)
    assert app.balance_after is None


def test_submit_more_than_remaining_fails_without_record(container, store):
    with pytest.raises(InsufficientBalanceError) as exc:
        _submit(container, leave_type="emergency", start=date(2025, 7, 1), end=date(2025, 7, 6))

    assert exc.value.leave_type == "emergency"
    assert exc.value.remaining == 5
    assert exc.value.requested == 6
    assert store.applications == {}


def test_submit_exactly_remaining_succeeds_and_processes_to_zero(container, store):
    svc = container.application_service
    ref = _submit(container, leave_type="personal", start=date(2025, 7, 1), end=date(2025, 7, 5))
    svc.approve(current_role=Role.ADMIN, reviewer_id="admin1", application_id=ref.application_id, date_bucket=ref.date_bucket)

    outcome = container.processing_engine.process_one(svc.get(application_id=ref.application_id, date_bucket=ref.date_bucket))

    app = svc.get(application_id=ref.application_id, date_bucket=ref.date_bucket)
    assert outcome == ProcessOutcome.PROCESSED
    assert app.balance_after.personal == 0
    assert store.balances["s1"]["personal"] == 0


def test_teacher_submission_uses_teacher_quota(container):
    ref = _submit(container, applicant_id="t1", role=Role.TEACHER, leave_type="personal",
                  start=date(2025, 7, 1), end=date(2025, 7, 8))

    app = container.application_service.get(application_id=ref.application_id, date_bucket=ref.date_bucket)
    assert app.applicant_type == Role.TEACHER
    assert app.balance_before.personal == 8


@pytest.mark.parametrize(
    "kwargs",
    [
        {"start": date(2025, 6, 22), "end": date(2025, 6, 20)},
        {"leave_type": "sabbatical"},
        {"reason": "   "},
        {"reason": 5},
        {"leave_type": 5},
    ],
)
def test_invalid_submission_is_rejected(container, kwargs):
    with pytest.raises(ValidationError):
        _submit(container, **kwargs)


def test_admin_cannot_apply_for_leave(container):
    with pytest.raises(AuthorizationError):
        _submit(container, role=Role.ADMIN)


def test_admin_approves_pending_application(container, clock):
    ref = _submit(container)
    clock.advance(hours=2)

    container.application_service.approve(
        current_role=Role.ADMIN, reviewer_id="admin1", application_id=ref.application_id, date_bucket=ref.date_bucket
    )

    app = container.application_service.get(application_id=ref.application_id, date_bucket=ref.date_bucket)
    assert app.status == LeaveStatus.APPROVED
    assert app.processed is False
    assert app.reviewed_by == "admin1"
    assert app.reviewed_at == clock.now
    assert app.updated_at == clock.now


def test_rejected_application_cannot_be_reviewed_again(container):
    ref = _submit(container)
    svc = container.application_service
    svc.reject(current_role=Role.ADMIN, reviewer_id="admin1", application_id=ref.application_id, date_bucket=ref.date_bucket)

    with pytest.raises(ValidationError):
        svc.approve(current_role=Role.ADMIN, reviewer_id="admin1", application_id=ref.application_id, date_bucket=ref.date_bucket)

    app = svc.get(application_id=ref.application_id, date_bucket=ref.date_bucket)
    assert app.status == LeaveStatus.REJECTED


def test_only_admin_can_review(container):
    ref = _submit(container)

    with pytest.raises(AuthorizationError):
        container.application_service.approve(
            current_role=Role.TEACHER, reviewer_id="t1", application_id=ref.application_id, date_bucket=ref.date_bucket
        )


def test_review_with_wrong_bucket_is_not_found(container):
    ref = _submit(container)

    with pytest.raises(NotFoundError):
        container.application_service.approve(
            current_role=Role.ADMIN, reviewer_id="admin1", application_id=ref.application_id, date_bucket="Jan_1"
        )


def test_listing_respects_applicant_and_lookback(container, clock):
    old = _submit(container)
    clock.advance(days=61)
    recent = _submit(container)
    _submit(container, applicant_id="s2")

    mine = container.application_service.list_for_applicant(applicant_id="s1")

    assert [a.application_id for a in mine] == [recent.application_id]
    assert old.application_id not in {a.application_id for a in mine}


def test_pending_list_across_applicants(container):
    a = _submit(container, applicant_id="s1")
    b = _submit(container, applicant_id="t1", role=Role.TEACHER)
    svc = container.application_service
    svc.reject(current_role=Role.ADMIN, reviewer_id="admin1", application_id=a.application_id, date_bucket=a.date_bucket)

    pending = svc.list_pending(current_role=Role.ADMIN)

    assert [p.application_id for p in pending] == [b.application_id]
    with pytest.raises(AuthorizationError):
        svc.list_pending(current_role=Role.STUDENT)


def test_used_leave_summary_counts_approved_days_this_year(container):
    svc = container.application_service
    a = _submit(container, leave_type="medical", start=date(2025, 6, 11), end=date(2025, 6, 12))
    b = _submit(container, leave_type="casual", start=date(2025, 6, 13), end=date(2025, 6, 13))
    _submit(container, leave_type="casual", start=date(2025, 6, 20), end=date(2025, 6, 21))
    for ref in (a, b):
        svc.approve(current_role=Role.ADMIN, reviewer_id="admin1", application_id=ref.application_id, date_bucket=ref.date_bucket)

    used = svc.used_leave_summary(applicant_id="s1")

    assert used.to_dict() == {"casual": 1, "medical": 2, "emergency": 0, "personal": 0}
