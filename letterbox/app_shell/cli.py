import argparse
import getpass
import logging
import sys
from pathlib import Path

from letterbox.adapters.auth.crypto import Argon2AuthAdapter
from letterbox.adapters.sqlite.migrator import SQLiteMigrator
from letterbox.adapters.sqlite_db import SQLiteUserRepo
from letterbox.app_shell.config import DEFAULT_CONFIG_DIR, Settings, load_settings
from letterbox.components.auth import PasswordPolicyError, validate_new_password
from letterbox.core.errors import format_error_chain
from letterbox.core.ports.db import StoreError
from letterbox.domain.entities import User

logger = logging.getLogger("cli")

DEFAULT_MIGRATIONS_DIR = Path("migrations")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def get_settings(config_dir: Path) -> Settings:
    try:
        return load_settings(config_dir)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Failed to load configuration:\n%s", format_error_chain(e))
        sys.exit(1)


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    db_path = Path(settings.database.path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    migrator = SQLiteMigrator(str(db_path), args.migrations)
    try:
        applied = migrator.run_migrations()
    except (FileNotFoundError, RuntimeError) as e:
        logger.error("%s", format_error_chain(e))
        sys.exit(1)
    print(f"Applied {len(applied)} migration(s) to {db_path}.")


def handle_create_user(settings: Settings, args: argparse.Namespace) -> None:
    username = args.username.strip()
    if not username:
        logger.error("Username must not be empty.")
        sys.exit(1)

    password = getpass.getpass("Password: ")
    password_check = getpass.getpass("Repeat password: ")
    try:
        validate_new_password(password, password_check)
    except PasswordPolicyError as e:
        logger.error("%s", e)
        sys.exit(1)

    auth = settings.auth
    hasher = Argon2AuthAdapter(
        time_cost=auth.time_cost,
        memory_cost=auth.memory_cost,
        parallelism=auth.parallelism,
        max_workers=1,
    )
    try:
        user = User(username=username, password_hash=hasher.hash_password(password))
    finally:
        hasher.shutdown()

    try:
        SQLiteUserRepo(settings.database.path).add(user)
    except StoreError as e:
        logger.error("Failed to create user %r:\n%s", username, format_error_chain(e))
        sys.exit(1)
    print(f"User '{username}' created with id {user.user_id}.")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    from letterbox.api.main import create_app
    from letterbox.app_shell.context import ServiceContext

    app = create_app(ServiceContext.create(settings))
    uvicorn.run(
        app,
        host=args.host or settings.application.host,
        port=args.port or settings.application.port,
        log_level=args.log_level.lower(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="letterbox", description="Letterbox mailing list CLI")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=DEFAULT_CONFIG_DIR,
        help="Directory holding base.yaml and <environment>.yaml",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending database migrations")
    migrate_parser.add_argument(
        "--migrations", type=Path, default=DEFAULT_MIGRATIONS_DIR, help="Migrations directory"
    )

    # create-user
    user_parser = subparsers.add_parser("create-user", help="Create an operator account")
    user_parser.add_argument("username", help="Login name of the new operator")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Bind address (default from configuration)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default from configuration)")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    settings = get_settings(args.config_dir)

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "create-user":
        handle_create_user(settings, args)
    elif args.command == "serve":
        handle_serve(settings, args)


if __name__ == "__main__":
    main()
