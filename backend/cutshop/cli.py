"""
Cutshop CLI - thin entrypoint for operator commands.

Commands:
- serve: run the HTTP and WebSocket server
- create-admin: create a user directly in the database

Exit Codes:
- 0: Success
- 1: Validation error (bad arguments, duplicate username)
- 4: System error (database unavailable)
"""

import argparse
import getpass
import logging
import sys
from typing import List, NoReturn, Optional

from .auth.models import UserRole
from .auth.users import UserRegistry
from .config import Settings
from .errors import CutshopError
from .persistence import PersistenceError, PersistenceManager

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_serve(args: argparse.Namespace, settings: Settings) -> NoReturn:
    """Run the server until interrupted."""
    import uvicorn

    from .main import create_app

    host = args.host or settings.host
    port = args.port or settings.port
    app = create_app(settings)

    logger.info(f"Starting Cutshop on {host}:{port}")
    if host == "0.0.0.0":
        logger.warning("LAN exposure is enabled; use a strong CUTSHOP_SESSION_SECRET")

    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    sys.exit(0)


def cmd_create_admin(args: argparse.Namespace, settings: Settings) -> NoReturn:
    """Create a user without going through the HTTP setup flow."""
    password = args.password or getpass.getpass("Password: ")
    try:
        registry = UserRegistry(PersistenceManager(db_path=settings.db_path))
        user = registry.create_user(args.username, password, email=args.email, role=args.role)
    except PersistenceError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(4)
    except CutshopError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Created {user.role.value} '{user.username}' (id {user.id})")
    sys.exit(0)


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """
    Main CLI entrypoint.

    Parses arguments and dispatches to subcommands.
    """
    parser = argparse.ArgumentParser(
        prog="cutshop",
        description="Cutshop - cutting job tracking with live sheet status",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite database path (default: CUTSHOP_DB_PATH or ./cutshop.db)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to execute")

    parser_serve = subparsers.add_parser("serve", help="Run the HTTP and WebSocket server")
    parser_serve.add_argument("--host", default=None, help="Bind host (default: CUTSHOP_HOST)")
    parser_serve.add_argument("--port", type=int, default=None, help="Bind port (default: CUTSHOP_PORT)")
    parser_serve.set_defaults(func=cmd_serve)

    parser_admin = subparsers.add_parser("create-admin", help="Create a user in the database")
    parser_admin.add_argument("username", help="Login name (stored lower-case)")
    parser_admin.add_argument("--password", default=None, help="Password (prompted if omitted)")
    parser_admin.add_argument("--email", default=None)
    parser_admin.add_argument(
        "--role",
        choices=[r.value for r in UserRole],
        default=UserRole.SUPER_ADMIN.value,
        help="Role to grant (default: super_admin)",
    )
    parser_admin.set_defaults(func=cmd_create_admin)

    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.db:
        settings.db_path = args.db
    _configure_logging(settings.log_level)

    args.func(args, settings)


if __name__ == "__main__":
    main()
