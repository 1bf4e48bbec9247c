#!/usr/bin/env python3
"""
Database migration management for the product version tables
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from alembic import command
from alembic.config import Config

from benderscore.core.database import DatabaseConfig
from benderscore.core.logging import log, setup_logging

ROOT = Path(__file__).parent.parent


def get_alembic_config() -> Config:
    """Alembic config pointed at the configured database"""
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", DatabaseConfig().async_url)
    return config


def create_migration(message: str):
    """Autogenerate a revision from the SQLModel metadata"""
    command.revision(get_alembic_config(), message=message, autogenerate=True)
    log.info("Created new migration", message=message)


def upgrade_database(revision: str = "head"):
    command.upgrade(get_alembic_config(), revision)
    log.info("Database upgraded", revision=revision)


def downgrade_database(revision: str = "-1"):
    command.downgrade(get_alembic_config(), revision)
    log.info("Database downgraded", revision=revision)


def main():
    """Main entry point"""
    setup_logging()
    parser = argparse.ArgumentParser(description="Product version table migrations")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    create_parser = subparsers.add_parser("create", help="Create a new migration")
    create_parser.add_argument("message", help="Migration message")

    upgrade_parser = subparsers.add_parser("upgrade", help="Upgrade database")
    upgrade_parser.add_argument("revision", nargs="?", default="head", help="Target revision (default: head)")

    downgrade_parser = subparsers.add_parser("downgrade", help="Downgrade database")
    downgrade_parser.add_argument("revision", nargs="?", default="-1", help="Target revision (default: -1)")

    subparsers.add_parser("current", help="Show current revision")
    subparsers.add_parser("history", help="Show migration history")

    args = parser.parse_args()

    if args.command == "create":
        create_migration(args.message)
    elif args.command == "upgrade":
        upgrade_database(args.revision)
    elif args.command == "downgrade":
        downgrade_database(args.revision)
    elif args.command == "current":
        command.current(get_alembic_config())
    elif args.command == "history":
        command.history(get_alembic_config())
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
