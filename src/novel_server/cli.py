"""
Command-line interface for the novel platform server.

Provides CLI commands for server management:
- init-db: Initialize the database schema
- create-admin: Create an admin account interactively or via environment variables
- seed: Load users, novels and chapters from a YAML file
- run: Start the API server

Usage:
    novel-server init-db
    novel-server create-admin
    novel-server seed config/seed.example.yaml
    novel-server run [--port PORT] [--host HOST]

Environment Variables:
    NOVEL_ADMIN_USER: Username for the admin (used by init-db if set)
    NOVEL_ADMIN_EMAIL: Email for the admin (used by init-db if set)
    NOVEL_ADMIN_PASSWORD: Password for the admin (used by init-db if set)
    NOVEL_HOST: Host to bind the API server (default: 0.0.0.0)
    NOVEL_PORT: Port for the API server (default: 8000)
"""

import argparse
import getpass
import os
import sys
from pathlib import Path

PASSWORD_MIN_LENGTH = 8


def get_admin_credentials_from_env() -> tuple[str, str, str] | None:
    """
    Get admin credentials from environment variables.

    Returns:
        Tuple of (username, email, password) if all of NOVEL_ADMIN_USER,
        NOVEL_ADMIN_EMAIL and NOVEL_ADMIN_PASSWORD are set. None otherwise.
    """
    username = os.environ.get("NOVEL_ADMIN_USER")
    email = os.environ.get("NOVEL_ADMIN_EMAIL")
    password = os.environ.get("NOVEL_ADMIN_PASSWORD")

    if username and email and password:
        return username, email, password
    return None


def prompt_for_credentials() -> tuple[str, str, str]:
    """
    Interactively prompt for admin credentials.

    Returns:
        Tuple of (username, email, password).
    """
    print("\n" + "=" * 60)
    print("CREATE ADMIN")
    print("=" * 60)

    while True:
        username = input("Username: ").strip()
        if not 3 <= len(username) <= 50:
            print("Username must be 3-50 characters.")
            continue
        break

    while True:
        email = input("Email: ").strip()
        if "@" not in email:
            print("Enter a valid email address.")
            continue
        break

    while True:
        password = getpass.getpass("Password: ")
        if len(password) < PASSWORD_MIN_LENGTH:
            print(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.\n")
            continue
        password_confirm = getpass.getpass("Confirm password: ")
        if password != password_confirm:
            print("Passwords do not match. Try again.\n")
            continue
        break

    return username, email, password


def cmd_init_db(args: argparse.Namespace) -> int:
    """
    Initialize the database schema.

    If the NOVEL_ADMIN_* environment variables are set, also creates an
    admin with those credentials.

    Returns:
        0 on success, 1 on error
    """
    from novel_server.db.database import init_database
    from novel_server.db.errors import DatabaseError

    try:
        init_database()
        print("Database initialized successfully.")
        return 0
    except (DatabaseError, OSError) as e:
        print(f"Error initializing database: {e}", file=sys.stderr)
        return 1


def cmd_create_admin(args: argparse.Namespace) -> int:
    """
    Create an admin account.

    Checks the NOVEL_ADMIN_* environment variables first. If they are not
    set, prompts interactively for credentials.

    Returns:
        0 on success, 1 on error
    """
    from novel_server.db import users_repo
    from novel_server.db.database import init_database
    from novel_server.db.types import DUPLICATE

    init_database(skip_superuser=True)

    env_creds = get_admin_credentials_from_env()
    if env_creds:
        username, email, password = env_creds
        print(f"Using credentials from environment variables for user '{username}'")
    else:
        if not sys.stdin.isatty():
            print(
                "Error: No credentials provided.\n"
                "Set NOVEL_ADMIN_USER, NOVEL_ADMIN_EMAIL and NOVEL_ADMIN_PASSWORD,\n"
                "or run interactively to be prompted for credentials.",
                file=sys.stderr,
            )
            return 1
        username, email, password = prompt_for_credentials()

    if len(password) < PASSWORD_MIN_LENGTH:
        print(
            f"Error: Password must be at least {PASSWORD_MIN_LENGTH} characters.",
            file=sys.stderr,
        )
        return 1

    outcome = users_repo.create_user(
        username, email, password, role="admin", is_email_verified=True
    )
    if outcome.status == DUPLICATE:
        print(f"Error: User '{username}' or email already exists.", file=sys.stderr)
        return 1

    print(f"\nAdmin '{username}' created successfully.")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    """
    Load seed data from a YAML file.

    Returns:
        0 on success, 1 on error
    """
    from novel_server.db.database import init_database
    from novel_server.errors import PlatformError
    from novel_server.services.seeding import seed_from_file

    init_database(skip_superuser=True)
    try:
        stats = seed_from_file(Path(args.file))
    except (FileNotFoundError, ValueError, PlatformError) as e:
        print(f"Error seeding database: {e}", file=sys.stderr)
        return 1

    print(
        f"Seeded {stats.users_created} users ({stats.users_skipped} already present), "
        f"{stats.novels_created} novels, {stats.chapters_created} chapters."
    )
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run the API server.

    Initializes the database if the file does not exist yet, configures
    logging, prints the resolved settings, then serves the app with uvicorn
    until interrupted.

    Configuration Priority:
        1. CLI arguments (--port, --host)
        2. Environment variables (NOVEL_PORT, NOVEL_HOST)
        3. Config file, then built-in defaults

    Returns:
        0 on clean shutdown (Ctrl+C), 1 on startup error
    """
    from novel_server.api.server import start_server
    from novel_server.config import print_config_summary
    from novel_server.db.database import get_db_path, init_database
    from novel_server.log_config import configure_logging

    configure_logging()

    if not get_db_path().exists():
        print("Database not found. Initializing...")
        init_database()

    print_config_summary()

    try:
        start_server(host=getattr(args, "host", None), port=getattr(args, "port", None))
        return 0
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0
    except OSError as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="novel-server",
        description="Novel Server - web-novel platform backend",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser(
        "init-db",
        help="Initialize the database schema",
        description=(
            "Initialize the database with required tables. If NOVEL_ADMIN_USER, "
            "NOVEL_ADMIN_EMAIL and NOVEL_ADMIN_PASSWORD are set, creates an admin."
        ),
    )
    init_parser.set_defaults(func=cmd_init_db)

    admin_parser = subparsers.add_parser(
        "create-admin",
        help="Create an admin account",
        description=(
            "Create an admin account. Uses the NOVEL_ADMIN_* environment variables "
            "if set, otherwise prompts interactively."
        ),
    )
    admin_parser.set_defaults(func=cmd_create_admin)

    seed_parser = subparsers.add_parser(
        "seed",
        help="Load seed data from a YAML file",
        description="Create users, novels and chapters described in a YAML seed file.",
    )
    seed_parser.add_argument("file", type=str, help="Path to the seed YAML file")
    seed_parser.set_defaults(func=cmd_seed)

    run_parser = subparsers.add_parser(
        "run",
        help="Run the API server",
        description="Start the FastAPI server with uvicorn.",
    )
    run_parser.add_argument(
        "--port",
        "-p",
        type=int,
        help="API server port (default: 8000, or NOVEL_PORT env var)",
    )
    run_parser.add_argument(
        "--host",
        type=str,
        help="Host to bind the server to (default: 0.0.0.0, or NOVEL_HOST env var)",
    )
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
