"""
Provision a profile with a generation allowance.
Run: python scripts/create_profile.py <user_id> [--generations N]
"""

import argparse
import os
import sys

# Add backend directory to path for tripplanner imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tripplanner.core.config import settings
from tripplanner.core.errors import ConflictError
from tripplanner.db.database import SessionLocal, init_db
from tripplanner.services.profile_service import ProfileService


def main():
    parser = argparse.ArgumentParser(description="Create a user profile.")
    parser.add_argument("user_id", help="User id issued by the authentication provider")
    parser.add_argument(
        "--generations",
        type=int,
        default=settings.default_generations,
        help=f"Plan generations to grant (default {settings.default_generations})",
    )
    args = parser.parse_args()

    init_db()
    db = SessionLocal()
    try:
        profile = ProfileService(db).create_profile(args.user_id, args.generations)
        print(f"Created profile {profile.id} with {profile.generations_remaining} generations.")
    except ConflictError as e:
        print(f"{e.message} ({args.user_id})")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
