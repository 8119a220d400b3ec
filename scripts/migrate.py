"""Script to run database migrations."""

import argparse
import sys

from alembic import command
from alembic.config import Config


def main() -> int:
    """Upgrade, downgrade or autogenerate a revision."""
    parser = argparse.ArgumentParser(description="Manage the scheduling database schema")
    sub = parser.add_subparsers(dest="action")
    sub.add_parser("upgrade", help="Upgrade to the latest revision (default)")
    down = sub.add_parser("downgrade", help="Step back to a revision")
    down.add_argument("revision", nargs="?", default="-1")
    create = sub.add_parser("create", help="Autogenerate a new revision")
    create.add_argument("message", nargs="+")
    args = parser.parse_args()

    alembic_cfg = Config("alembic.ini")

    try:
        if args.action == "downgrade":
            print(f"Downgrading to {args.revision}...")
            command.downgrade(alembic_cfg, args.revision)
        elif args.action == "create":
            message = " ".join(args.message)
            print(f"Creating migration: {message}")
            command.revision(alembic_cfg, message=message, autogenerate=True)
        else:
            print("Running database migrations...")
            command.upgrade(alembic_cfg, "head")
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        return 1

    print("✓ Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
