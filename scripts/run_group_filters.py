"""Run one group filter pass against the configured database.

Usage:
    python scripts/run_group_filters.py
    APP_ENV=production python scripts/run_group_filters.py --workers 4
"""
from __future__ import annotations

import argparse
import importlib
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.student_groups.student_groups.common.logging_utils import configure_logging
from src.student_groups.student_groups.container import build_container
from src.student_groups.student_groups.core.constants import REASON_NO_GROUP_FILTERS
from src.student_groups.student_groups.core.enums import ReconcileStatus


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Recompute every group's student membership")
    parser.add_argument("--workers", type=int, default=None, help="Concurrent aggregation queries")
    args = parser.parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    workers = args.workers or int(getattr(settings, "RECONCILE_MAX_WORKERS", 1))
    container = build_container(db_config=dict(settings.DB_CONFIG), max_workers=workers)

    report = container.reconciler.reconcile_all()
    if report.status == ReconcileStatus.NO_GROUPS:
        print(REASON_NO_GROUP_FILTERS, file=sys.stderr)
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    return 0 if not report.failed else 2


if __name__ == "__main__":
    sys.exit(main())
