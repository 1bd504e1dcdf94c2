"""
Family data maintenance: default families and orphan-data migration

Usage:
    python migrate_family_data.py init-users
    python migrate_family_data.py orphan-data
    python migrate_family_data.py user <user_id>
    python migrate_family_data.py all
"""
import argparse
import logging

from family_ledger.infrastructure.db.session import session_scope
from family_ledger.application.family_init import FamilyInitService

logging.basicConfig(level=logging.INFO)


def main() -> None:
    parser = argparse.ArgumentParser(description="Family data maintenance")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init-users", help="Create a default family for every user without one")
    sub.add_parser("orphan-data", help="Backfill family_id on legacy assets and transactions")
    user_cmd = sub.add_parser("user", help="Create a family for one user and move their data into it")
    user_cmd.add_argument("user_id", type=int)
    sub.add_parser("all", help="init-users followed by orphan-data")
    args = parser.parse_args()

    with session_scope() as db:
        service = FamilyInitService(db)

        if args.command in ("init-users", "all"):
            print(f"Users initialized: {service.initialize_all_users()}")

        if args.command in ("orphan-data", "all"):
            print(f"Orphan data migrated: {service.migrate_orphan_data()}")

        if args.command == "user":
            print(f"User migrated: {service.migrate_user_data_to_family(args.user_id)}")


if __name__ == "__main__":
    main()
