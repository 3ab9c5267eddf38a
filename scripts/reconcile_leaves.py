"""
Re-run the attendance sync for approved leaves flagged needs_reconciliation.

Same work as POST /api/v1/leaves/reconcile, for cron or manual repair when the
API is not the convenient entry point.

Usage (from the project root, with .env loaded):

    python scripts/reconcile_leaves.py
    python scripts/reconcile_leaves.py --actor hr.admin

Safe to run multiple times (idempotent).
"""
import argparse
import sys
from pathlib import Path

# Ensure hrms package is importable when script is run directly
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hrms.core.config import settings
from hrms.core.logging import setup_logging
from hrms.db.session import SessionLocal
from hrms.models.user import User
from hrms.services.reconciler import reconcile_flagged


def main() -> int:
    parser = argparse.ArgumentParser(description="Repair attendance for flagged approved leaves")
    parser.add_argument(
        "--actor",
        default=settings.INITIAL_ADMIN_USERNAME,
        help="Username recorded as the author of the repaired attendance records",
    )
    args = parser.parse_args()

    setup_logging()
    db = SessionLocal()
    try:
        actor = db.query(User).filter(User.username == args.actor).first()
        if actor is None:
            print(f"No user named '{args.actor}'")
            return 1
        result = reconcile_flagged(db, actor_id=actor.id)
    finally:
        db.close()

    print(f"Checked {result['checked']}, repaired {result['repaired']}, still failing {result['failing']}")
    return 1 if result["failing"] else 0


if __name__ == "__main__":
    sys.exit(main())
