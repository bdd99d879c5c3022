#!/usr/bin/env python3
"""Run analytics database migrations."""

import argparse
import os

from alembic import command
from alembic.config import Config

PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _config() -> Config:
    cfg = Config(os.path.join(PACKAGE_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(PACKAGE_DIR, "migrations"))
    return cfg


def upgrade(revision: str = "head") -> None:
    """Run migrations up to ``revision``."""
    command.upgrade(_config(), revision)
    print(f"Migrations applied up to {revision}")


def downgrade(revision: str = "-1") -> None:
    """Downgrade to a specific revision."""
    command.downgrade(_config(), revision)
    print(f"Downgraded to {revision}")


def current() -> None:
    command.current(_config(), verbose=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run database migrations")
    parser.add_argument(
        "command",
        choices=["upgrade", "downgrade", "current"],
        default="upgrade",
        nargs="?",
    )
    parser.add_argument("--revision", default=None, help="Target revision")
    args = parser.parse_args()

    if args.command == "upgrade":
        upgrade(args.revision or "head")
    elif args.command == "downgrade":
        downgrade(args.revision or "-1")
    else:
        current()


if __name__ == "__main__":
    main()
