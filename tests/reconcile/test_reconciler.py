import logging
from contextlib import contextmanager, nullcontext
from datetime import timedelta

import pytest

from src.student_groups.student_groups.core.enums import GroupRunState, ReconcileStatus
from src.student_groups.student_groups.core.exceptions import ReconcileInProgressError
from src.student_groups.student_groups.filters.aggregator import IncidentAggregator
from src.student_groups.student_groups.groups.model import GroupStudent
from src.student_groups.student_groups.reconcile.service import MembershipReconciler


def _late_group(groups_repo, **overrides):
    fields = dict(name="Late", number_of_weeks=2, roll_states="late", incidents=0, ltmt=">")
    fields.update(overrides)
    return groups_repo.add(**fields)


@pytest.fixture
def three_lates_for_student_one(rolls_repo, now):
    for days_ago in (1, 3, 6):
        rolls_repo.mark(1, rolls_repo.add_roll(now - timedelta(days=days_ago)), "late")
    rolls_repo.mark(2, rolls_repo.add_roll(now - timedelta(days=2)), "present")
    return rolls_repo


def test_late_scenario_matches_only_student_with_incidents(
    reconciler, groups_repo, memberships_repo, three_lates_for_student_one, now
):
    group = _late_group(groups_repo)

    report = reconciler.reconcile_all()

    assert report.status == ReconcileStatus.COMPLETED
    assert memberships_repo.snapshot() == {group.group_id: {1: 3}}
    updated = groups_repo.get_by_id(group.group_id)
    assert updated.student_count == 1
    assert updated.run_at == now
    assert [o.state for o in report.outcomes] == [GroupRunState.RECONCILED]


def test_no_groups_reports_missing_filters(reconciler, memberships_repo):
    memberships_repo.rows = [GroupStudent(99, 1, 4)]

    report = reconciler.reconcile_all()

    assert report.status == ReconcileStatus.NO_GROUPS
    assert report.cleared == 1
    assert memberships_repo.rows == []


def test_running_twice_gives_identical_memberships(
    reconciler, groups_repo, memberships_repo, three_lates_for_student_one
):
    _late_group(groups_repo)
    _late_group(groups_repo, name="Any", roll_states="late,present", incidents=1, ltmt=">=")

    reconciler.reconcile_all()
    first = memberships_repo.snapshot()
    reconciler.reconcile_all()

    assert memberships_repo.snapshot() == first
    assert len(memberships_repo.rows) == 3


def test_stale_rows_from_previous_pass_are_removed(
    reconciler, groups_repo, memberships_repo, three_lates_for_student_one
):
    group = _late_group(groups_repo)
    memberships_repo.rows = [GroupStudent(group.group_id, 3, 7), GroupStudent(12345, 2, 1)]

    reconciler.reconcile_all()

    assert memberships_repo.snapshot() == {group.group_id: {1: 3}}
    assert all(groups_repo.get_by_id(row.group_id) for row in memberships_repo.rows)


def test_empty_roll_states_give_empty_group(reconciler, groups_repo, memberships_repo, three_lates_for_student_one):
    group = _late_group(groups_repo, roll_states="", ltmt=">=")

    report = reconciler.reconcile_all()

    assert memberships_repo.snapshot() == {}
    assert report.outcomes[0].state == GroupRunState.RECONCILED
    assert groups_repo.get_by_id(group.group_id).student_count == 0


def test_bad_comparator_fails_only_that_group(reconciler, groups_repo, memberships_repo, three_lates_for_student_one):
    broken = _late_group(groups_repo, name="Broken", ltmt="<>")
    good = _late_group(groups_repo)

    report = reconciler.reconcile_all()

    by_id = {o.group_id: o for o in report.outcomes}
    assert by_id[broken.group_id].state == GroupRunState.FAILED
    assert "<>" in by_id[broken.group_id].reason
    assert by_id[good.group_id].state == GroupRunState.RECONCILED
    assert memberships_repo.snapshot() == {good.group_id: {1: 3}}
    assert groups_repo.get_by_id(broken.group_id).run_at is None


def test_store_failure_is_reported_without_internal_details(reconciler, groups_repo, rolls_repo):
    _late_group(groups_repo)
    rolls_repo.fail = True

    report = reconciler.reconcile_all()

    assert report.status == ReconcileStatus.COMPLETED
    assert report.failed[0].reason == "Something went wrong. Please try again"


def test_write_failure_leaves_group_without_members(
    reconciler, groups_repo, memberships_repo, three_lates_for_student_one
):
    failing = _late_group(groups_repo, name="Fails on write")
    ok = _late_group(groups_repo)
    memberships_repo.fail_for_group_ids = {failing.group_id}

    report = reconciler.reconcile_all()

    assert [o.state for o in report.outcomes] == [GroupRunState.FAILED, GroupRunState.RECONCILED]
    assert memberships_repo.snapshot() == {ok.group_id: {1: 3}}
    assert groups_repo.get_by_id(failing.group_id).student_count == 0


def test_window_uses_group_number_of_weeks(reconciler, groups_repo, memberships_repo, rolls_repo, now):
    rolls_repo.mark(1, rolls_repo.add_roll(now - timedelta(days=10)), "absent")
    one_week = _late_group(groups_repo, number_of_weeks=1, roll_states="absent")
    two_weeks = _late_group(groups_repo, number_of_weeks=2, roll_states="absent")

    reconciler.reconcile_all()

    assert memberships_repo.snapshot() == {two_weeks.group_id: {1: 1}}
    assert groups_repo.get_by_id(one_week.group_id).run_at == now


def test_report_serializes_outcomes(reconciler, groups_repo, three_lates_for_student_one):
    _late_group(groups_repo)

    data = reconciler.reconcile_all().to_dict()

    assert data["status"] == "COMPLETED"
    assert data["run_at"] == "2022-04-04T10:30:00"
    assert data["reconciled"] == 1 and data["failed"] == 0
    assert data["groups"][0]["student_count"] == 1


def test_group_with_huge_lookback_is_reconciled(
    reconciler, groups_repo, memberships_repo, three_lates_for_student_one
):
    group = _late_group(groups_repo, number_of_weeks=200000)

    report = reconciler.reconcile_all()

    assert [o.state for o in report.outcomes] == [GroupRunState.RECONCILED]
    assert memberships_repo.snapshot() == {group.group_id: {1: 3}}


def test_group_states_move_through_evaluation(reconciler, groups_repo, three_lates_for_student_one, caplog):
    ok = _late_group(groups_repo)
    bad = _late_group(groups_repo, ltmt="<>")

    with caplog.at_level(logging.DEBUG, logger="src.student_groups.student_groups.reconcile.service"):
        reconciler.reconcile_all()

    messages = caplog.messages
    assert f"Group {ok.group_id}: PENDING -> EVALUATING" in messages
    assert f"Group {ok.group_id}: EVALUATING -> RECONCILED" in messages
    assert f"Group {bad.group_id}: PENDING -> EVALUATING" in messages
    assert f"Group {bad.group_id}: EVALUATING -> FAILED" in messages


def test_pass_runs_inside_the_pass_lock(groups_repo, memberships_repo, rolls_repo, now):
    events = []

    @contextmanager
    def pass_lock():
        events.append("acquired")
        yield
        events.append("released")

    class RecordingMemberships(type(memberships_repo)):
        def delete_all(self):
            events.append("delete_all")
            return super().delete_all()

    memberships = RecordingMemberships(groups_repo, memberships_repo._students)
    reconciler = MembershipReconciler(
        groups_repo, memberships, IncidentAggregator(rolls_repo), clock=lambda: now, pass_lock=pass_lock
    )
    _late_group(groups_repo)

    reconciler.reconcile_all()

    assert events == ["acquired", "delete_all", "released"]


def test_pass_lock_held_elsewhere_leaves_memberships_untouched(groups_repo, memberships_repo, rolls_repo, now):
    @contextmanager
    def held_elsewhere():
        raise ReconcileInProgressError("Another group filter run is still in progress")
        yield

    reconciler = MembershipReconciler(
        groups_repo, memberships_repo, IncidentAggregator(rolls_repo), clock=lambda: now, pass_lock=held_elsewhere
    )
    group = _late_group(groups_repo)
    memberships_repo.rows = [GroupStudent(group.group_id, 1, 4)]

    with pytest.raises(ReconcileInProgressError):
        reconciler.reconcile_all()

    assert memberships_repo.snapshot() == {group.group_id: {1: 4}}
    assert groups_repo.get_by_id(group.group_id).run_at is None
    # The in-process lock is released for the next caller.
    reconciler._pass_lock = nullcontext
    assert reconciler.reconcile_all().status == ReconcileStatus.COMPLETED
