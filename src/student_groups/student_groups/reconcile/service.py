from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from datetime import datetime
from typing import Callable, ContextManager, Dict, Optional, Sequence, Union

from ..common.datetime_utils import utc_now
from ..core.constants import (
    DEFAULT_RECONCILE_LOCK_TIMEOUT_SECONDS,
    DEFAULT_RECONCILE_MAX_WORKERS,
    REASON_GENERIC_FAILURE,
)
from ..core.enums import GroupRunState, ReconcileStatus
from ..core.exceptions import ConfigurationError, ReconcileInProgressError
from ..filters.aggregator import IncidentAggregator
from ..filters.parser import parse_comparator, parse_roll_states
from ..filters.window import compute_window
from ..groups.model import Group
from ..groups.repository import GroupRepository, GroupStudentRepository
from .model import GroupOutcome, ReconcileReport

logger = logging.getLogger(__name__)

Evaluation = Union[Dict[int, int], Exception]


class MembershipReconciler:
    """Rebuilds every group's membership snapshot from current roll data.

    A pass clears all memberships first, evaluates each group's filter and
    then writes each group's rows together with its run metadata. Only one
    pass runs at a time per reconciler; a second caller waits for the lock.
    pass_lock, when given, is entered inside that lock to keep passes from
    other processes out as well.
    """

    def __init__(
        self,
        groups: GroupRepository,
        memberships: GroupStudentRepository,
        aggregator: IncidentAggregator,
        *,
        clock: Callable[[], datetime] = utc_now,
        max_workers: int = DEFAULT_RECONCILE_MAX_WORKERS,
        lock_timeout: float = DEFAULT_RECONCILE_LOCK_TIMEOUT_SECONDS,
        pass_lock: Optional[Callable[[], ContextManager[None]]] = None,
    ):
        self._groups = groups
        self._memberships = memberships
        self._aggregator = aggregator
        self._clock = clock
        self._max_workers = max(1, int(max_workers))
        self._lock_timeout = float(lock_timeout)
        self._lock = threading.Lock()
        self._pass_lock = pass_lock or nullcontext

    def reconcile_all(self) -> ReconcileReport:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise ReconcileInProgressError("Another group filter run is still in progress")
        try:
            with self._pass_lock():
                return self._run_pass()
        finally:
            self._lock.release()

    def evaluate_group(self, group: Group, now: datetime) -> Dict[int, int]:
        """Return {student_id: incident_count} for students matching group's filter."""

        comparator = parse_comparator(group.ltmt)
        roll_states = parse_roll_states(group.roll_states)
        window = compute_window(group.number_of_weeks, now)
        return self._aggregator.count_incidents(window, roll_states, group.incidents, comparator)

    def _run_pass(self) -> ReconcileReport:
        run_at = self._clock()
        cleared = self._memberships.delete_all()
        logger.info("Group filter run started at %s; cleared %d membership rows", run_at.isoformat(), cleared)

        groups = list(self._groups.list_all())
        if not groups:
            logger.info("No group filters configured")
            return ReconcileReport(status=ReconcileStatus.NO_GROUPS, run_at=run_at, cleared=cleared)

        states = {group.group_id: GroupRunState.PENDING for group in groups}
        evaluations = self._evaluate_all(groups, run_at, states)

        # Writes stay sequential and only start once every evaluation has finished.
        outcomes = []
        for group in groups:
            outcome = self._write_group(group, evaluations[group.group_id], run_at)
            _transition(states, group, outcome.state)
            outcomes.append(outcome)

        report = ReconcileReport(
            status=ReconcileStatus.COMPLETED,
            run_at=run_at,
            cleared=cleared,
            outcomes=tuple(outcomes),
        )
        logger.info(
            "Group filter run finished: %d reconciled, %d failed",
            len(report.reconciled),
            len(report.failed),
        )
        return report

    def _evaluate_all(
        self, groups: Sequence[Group], now: datetime, states: Dict[int, GroupRunState]
    ) -> Dict[int, Evaluation]:
        if self._max_workers == 1 or len(groups) == 1:
            return {group.group_id: self._safe_evaluate(group, now, states) for group in groups}

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(groups))) as pool:
            futures = {group.group_id: pool.submit(self._safe_evaluate, group, now, states) for group in groups}
            return {group_id: future.result() for group_id, future in futures.items()}

    def _safe_evaluate(self, group: Group, now: datetime, states: Dict[int, GroupRunState]) -> Evaluation:
        _transition(states, group, GroupRunState.EVALUATING)
        try:
            return self.evaluate_group(group, now)
        except Exception as e:  # isolated per group
            return e

    def _write_group(self, group: Group, evaluation: Evaluation, run_at: datetime) -> GroupOutcome:
        if isinstance(evaluation, Exception):
            return self._failed(group, evaluation)

        try:
            self._memberships.record_group_result(
                group_id=group.group_id,
                incident_counts=evaluation,
                run_at=run_at,
            )
        except Exception as e:
            return self._failed(group, e)

        logger.info("Group %s (%r) reconciled with %d students", group.group_id, group.name, len(evaluation))
        return GroupOutcome(
            group_id=group.group_id,
            name=group.name,
            state=GroupRunState.RECONCILED,
            student_count=len(evaluation),
        )

    @staticmethod
    def _failed(group: Group, error: Exception) -> GroupOutcome:
        if isinstance(error, ConfigurationError):
            logger.warning("Group %s (%r) has an invalid filter: %s", group.group_id, group.name, error)
            reason = str(error)
        else:
            logger.error(
                "Group %s (%r) failed during filter run",
                group.group_id,
                group.name,
                exc_info=(type(error), error, error.__traceback__),
            )
            reason = REASON_GENERIC_FAILURE
        return GroupOutcome(group_id=group.group_id, name=group.name, state=GroupRunState.FAILED, reason=reason)


def _transition(states: Dict[int, GroupRunState], group: Group, state: GroupRunState) -> None:
    logger.debug("Group %s: %s -> %s", group.group_id, states[group.group_id].value, state.value)
    states[group.group_id] = state
