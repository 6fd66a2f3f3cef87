#!/usr/bin/env python3
"""
Schema migration helper for the rummy scorer database.

Usage:
    python migrate.py create "description of changes"  # Autogenerate a revision from the models
    python migrate.py upgrade                          # Apply all pending migrations
    python migrate.py downgrade                        # Roll back one migration
    python migrate.py current                          # Show the database revision
    python migrate.py history                          # Show the revision history
    python migrate.py stamp <revision>                 # Mark the database as being at a revision
"""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

backend_dir = Path(__file__).parent


def get_alembic_config() -> Config:
    alembic_ini = backend_dir / "alembic.ini"
    if not alembic_ini.exists():
        print(f"Error: alembic.ini not found at {alembic_ini}")
        sys.exit(1)

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    return cfg


def create_migration(cfg: Config, message: str):
    print(f"Creating new migration: {message}")
    command.revision(cfg, message=message, autogenerate=True)
    print("Review the generated file in alembic/versions/ before running upgrade.")


def upgrade_migrations(cfg: Config):
    print("Applying pending migrations...")
    command.upgrade(cfg, "head")
    print("Migrations applied.")


def downgrade_migration(cfg: Config):
    print("Rolling back one migration...")
    command.downgrade(cfg, "-1")
    print("Migration rolled back.")


def stamp_revision(cfg: Config, revision: str):
    print(f"Stamping database with revision: {revision}")
    command.stamp(cfg, revision)


COMMANDS = {
    "upgrade": upgrade_migrations,
    "downgrade": downgrade_migration,
    "current": command.current,
    "history": command.history,
}

COMMANDS_WITH_ARG = {
    "create": (create_migration, 'python migrate.py create "description of changes"'),
    "stamp": (stamp_revision, "python migrate.py stamp <revision>"),
}


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    cmd = sys.argv[1].lower()
    cfg = get_alembic_config()

    if cmd in COMMANDS:
        COMMANDS[cmd](cfg)
    elif cmd in COMMANDS_WITH_ARG:
        fn, usage = COMMANDS_WITH_ARG[cmd]
        if len(sys.argv) < 3:
            print(f"Usage: {usage}")
            sys.exit(1)
        fn(cfg, sys.argv[2])
    else:
        print(f"Error: Unknown command '{cmd}'")
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
