"""End-of-day auto-checkout sweep. Meant to be run by cron shortly after the cutoff.

    python scripts/auto_checkout.py                 # cutoff from AUTO_CHECKOUT_TIME
    python scripts/auto_checkout.py --cutoff 20:00 --dry-run
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
PACKAGE_ROOT = REPO_ROOT / "src" / "track_ai"
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from dotenv import load_dotenv

from track_ai.attendance.auto_checkout import AutoCheckoutJob
from track_ai.attendance.mysql_attendance_repository import MySQLAttendanceSessionRepository
from track_ai.attendance.session_engine import AttendanceSessionEngine
from track_ai.common.datetime_utils import cutoff_for, now_local
from track_ai.config import get_settings_module
from track_ai.database.connection import DBConfig, DatabaseConnection


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Auto-close attendance sessions left open past the cutoff.")
    parser.add_argument("--cutoff", help="cutoff time HH:MM (default: AUTO_CHECKOUT_TIME setting)")
    parser.add_argument("--dry-run", action="store_true", help="list the sessions without closing them")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    cutoff = cutoff_for(now_local().date(), args.cutoff or getattr(settings, "AUTO_CHECKOUT_TIME", "22:00"))

    conn = DatabaseConnection.get_instance(
        DBConfig(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
        )
    )
    job = AutoCheckoutJob(AttendanceSessionEngine(MySQLAttendanceSessionRepository(conn)))
    report = job.run(cutoff, dry_run=args.dry_run)

    for s in report.candidates:
        print(f"  session={s.session_id} user={s.user_id} project={s.project_external_id} check_in={s.check_in_at}")
    if report.dry_run:
        print(f"Dry run: {len(report.candidates)} session(s) would be closed (cutoff {cutoff:%Y-%m-%d %H:%M}).")
    else:
        print(f"Closed {len(report.closed)} of {len(report.candidates)} session(s) (cutoff {cutoff:%Y-%m-%d %H:%M}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
