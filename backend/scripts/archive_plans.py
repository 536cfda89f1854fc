"""
Archive generated plans whose end date has passed.
Same job the API runs periodically; meant for cron when that task is disabled.
Run: python scripts/archive_plans.py
"""

import os
import sys

# Add backend directory to path for tripplanner imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tripplanner.db.database import SessionLocal, init_db
from tripplanner.services.plan_service import PlanService


def main():
    init_db()
    db = SessionLocal()
    try:
        archived = PlanService(db).archive_expired_plans()
    finally:
        db.close()
    print(f"Archived {archived} plan(s).")


if __name__ == "__main__":
    main()
