"""Example: drive the service layer directly (no Flask).

Creates a group filter, runs one filter pass and prints the memberships.
"""

import importlib

from config import get_settings_module

from src.student_groups.student_groups.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    container.group_service.create_group(
        {"name": "Late 3+ times", "number_of_weeks": 2, "roll_states": "late", "incidents": 3, "ltmt": ">="}
    )
    report = container.reconciler.reconcile_all()
    print(report.to_dict())
    for row in container.group_service.list_group_students():
        print(row.to_dict())


if __name__ == "__main__":
    main()
