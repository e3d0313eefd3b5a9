from __future__ import annotations

import threading
from datetime import date

from src.school_leave.school_leave.core.enums import Role
from src.school_leave.school_leave.quotas.model import LeaveBalance


def _approved(container, *, applicant_id="s1", role=Role.STUDENT, leave_type="casual", days=3):
    ref = container.application_service.submit(
        current_role=role,
        applicant_id=applicant_id,
        leave_type=leave_type,
        start_date=date(2025, 6, 20),
        end_date=date(2025, 6, 19 + days),
        reason="Leave",
    )
    container.application_service.approve(
        current_role=Role.ADMIN, reviewer_id="admin1", application_id=ref.application_id, date_bucket=ref.date_bucket
    )
    return ref


def test_poll_fires_only_for_approved_unprocessed(container):
    watcher = container.leave_watcher
    seen = []
    unsubscribe = watcher.subscribe("s1", seen.append, autostart=False)

    assert watcher.poll_once() == 0

    ref = _approved(container)
    assert watcher.poll_once() == 1
    assert [a.application_id for a in seen[0]] == [ref.application_id]

    unsubscribe()
    assert watcher.subscription_count == 0
    assert watcher.poll_once() == 0


def test_wildcard_subscription_sees_every_applicant(container):
    watcher = container.leave_watcher
    seen = []
    watcher.subscribe(None, seen.append, autostart=False)
    _approved(container, applicant_id="s1")
    _approved(container, applicant_id="t1", role=Role.TEACHER)

    watcher.poll_once()

    assert {a.applicant_id for a in seen[0]} == {"s1", "t1"}


def test_failing_callback_does_not_break_polling(container):
    watcher = container.leave_watcher

    def boom(_apps):
        raise RuntimeError("boom")

    seen = []
    watcher.subscribe("s1", boom, autostart=False)
    watcher.subscribe("s1", seen.append, autostart=False)
    _approved(container)

    assert watcher.poll_once() == 1
    assert len(seen) == 1


def test_background_thread_processes_and_stops(container, store):
    watcher = container.leave_watcher
    engine = container.processing_engine
    done = threading.Event()

    def on_approved(apps):
        engine.process_discovered(apps)
        done.set()

    _approved(container)
    unsubscribe = watcher.subscribe(None, on_approved)
    try:
        assert watcher.running
        assert done.wait(timeout=5)
    finally:
        unsubscribe()

    assert not watcher.running
    assert store.balances["s1"]["casual"] == 7


def test_session_open_resets_processes_and_subscribes(container, store):
    _approved(container)

    session = container.open_session(applicant_id="s1", role=Role.STUDENT)
    try:
        assert store.resets["s1"][0] == 2025
        assert session.balance == LeaveBalance(casual=7, medical=15, emergency=5, personal=5)
        assert container.leave_watcher.subscription_count == 1
    finally:
        session.close()

    assert container.leave_watcher.subscription_count == 0
    assert not container.leave_watcher.running


def test_session_watch_callback_processes_new_approvals(container, store):
    session = container.open_session(applicant_id="t1", role=Role.TEACHER, watch=False)
    container.leave_watcher.subscribe("t1", session._on_approved, autostart=False)
    _approved(container, applicant_id="t1", role=Role.TEACHER, leave_type="personal", days=2)

    container.leave_watcher.poll_once()

    assert session.balance.personal == 6
    assert store.balances["t1"]["personal"] == 6


def test_session_as_context_manager_closes_subscription(container):
    from src.school_leave.school_leave.processing.session import LeaveSession

    with LeaveSession(
        applicant_id="s9",
        role=Role.STUDENT,
        balances=container.balance_service,
        reset_tracker=container.reset_tracker,
        engine=container.processing_engine,
        watcher=container.leave_watcher,
    ) as session:
        assert session.balance.casual == 10
        assert container.leave_watcher.subscription_count == 1

    assert container.leave_watcher.subscription_count == 0


def test_cancelling_one_subscription_keeps_the_thread_for_the_others(container):
    watcher = container.leave_watcher
    first = watcher.subscribe("s1", lambda apps: None)
    second = watcher.subscribe("s2", lambda apps: None)

    first()
    assert watcher.running

    second()
    assert not watcher.running


def test_idle_stop_is_skipped_once_a_new_subscription_exists(container):
    watcher = container.leave_watcher
    unsubscribe = watcher.subscribe("s1", lambda apps: None)

    # An idle check that lost the race with a new subscriber.
    watcher._halt(only_if_idle=True)

    assert watcher.running
    unsubscribe()
    assert not watcher.running
