from __future__ import annotations

from dataclasses import dataclass

from .core.constants import (
    DEFAULT_RECONCILE_LOCK_TIMEOUT_SECONDS,
    DEFAULT_RECONCILE_MAX_WORKERS,
    RECONCILE_ADVISORY_LOCK_NAME,
)
from .database.advisory_lock import MySQLAdvisoryLock
from .database.connection import DBConfig, DatabaseConnection
from .filters.aggregator import IncidentAggregator
from .groups.mysql_group_repository import MySQLGroupRepository
from .groups.mysql_group_student_repository import MySQLGroupStudentRepository
from .groups.repository import GroupRepository, GroupStudentRepository
from .groups.service import GroupService
from .reconcile.service import MembershipReconciler
from .roll_records.mysql_roll_record_repository import MySQLRollRecordRepository
from .roll_records.repository import RollRecordStore


@dataclass(frozen=True)
class Container:
    groups_repo: GroupRepository
    group_students_repo: GroupStudentRepository
    rolls_repo: RollRecordStore

    group_service: GroupService
    reconciler: MembershipReconciler


def build_services(
    *,
    groups_repo: GroupRepository,
    group_students_repo: GroupStudentRepository,
    rolls_repo: RollRecordStore,
    max_workers: int = DEFAULT_RECONCILE_MAX_WORKERS,
    lock_timeout: float = DEFAULT_RECONCILE_LOCK_TIMEOUT_SECONDS,
    **reconciler_options,
) -> Container:
    """Wire services over any repository implementations (MySQL or in-memory)."""

    aggregator = IncidentAggregator(rolls_repo)
    reconciler = MembershipReconciler(
        groups_repo,
        group_students_repo,
        aggregator,
        max_workers=max_workers,
        lock_timeout=lock_timeout,
        **reconciler_options,
    )
    group_service = GroupService(groups_repo, group_students_repo)

    return Container(
        groups_repo=groups_repo,
        group_students_repo=group_students_repo,
        rolls_repo=rolls_repo,
        group_service=group_service,
        reconciler=reconciler,
    )


def build_container(
    *,
    db_config: dict,
    max_workers: int = DEFAULT_RECONCILE_MAX_WORKERS,
    lock_timeout: float = DEFAULT_RECONCILE_LOCK_TIMEOUT_SECONDS,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    pass_lock = MySQLAdvisoryLock(conn, RECONCILE_ADVISORY_LOCK_NAME, timeout=lock_timeout)

    return build_services(
        groups_repo=MySQLGroupRepository(conn),
        group_students_repo=MySQLGroupStudentRepository(conn),
        rolls_repo=MySQLRollRecordRepository(conn),
        max_workers=max_workers,
        lock_timeout=lock_timeout,
        pass_lock=pass_lock.hold,
    )
