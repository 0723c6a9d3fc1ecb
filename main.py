#!/usr/bin/env python3
"""
CredCore -- username/password accounts with bearer-token sessions.

Usage:
  python main.py serve [--host 127.0.0.1] [--port 8000] [--reload]
  python main.py register alice
  python main.py login alice
  python main.py verify <token>

Passwords are always read from a prompt, never from argv, so they do not end
up in shell history or the process list.

Environment variables (see core/config.py):
  SECRET_KEY            Token signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL          SQLAlchemy URL for the credential store (default: SQLite file).
  TOKEN_EXPIRE_SECONDS  Token lifetime (default: 86400).
  BCRYPT_ROUNDS         bcrypt work factor (default: 10).
  LOG_LEVEL             DEBUG, INFO, WARNING, ERROR or CRITICAL (default: INFO).
  ALLOWED_HOSTS         JSON list of Host headers the API accepts. Set this when
                        serving on anything other than localhost, e.g.
                        ALLOWED_HOSTS='["auth.example.com"]'.
"""

import argparse
import getpass
import logging
import sys

from pydantic import ValidationError as SettingsError

from auth.errors import AuthError
from core.config import Settings, get_settings


def _read_password(confirm: bool = False) -> str:
    password = getpass.getpass("Password: ")
    if confirm and getpass.getpass("Repeat password: ") != password:
        print("  [!] Passwords do not match.", file=sys.stderr)
        sys.exit(2)
    return password


def _serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def _register(args: argparse.Namespace, settings: Settings) -> int:
    from api.main import build_auth_service

    service = build_auth_service(settings)
    try:
        profile = service.register(args.username, _read_password(confirm=True))
    finally:
        service.store.close()
    print(f"Created user {profile.username} (id {profile.id}).")
    return 0


def _login(args: argparse.Namespace, settings: Settings) -> int:
    from api.main import build_auth_service

    service = build_auth_service(settings)
    try:
        token = service.login(args.username, _read_password())
    finally:
        service.store.close()
    print(token)
    return 0


def _verify(args: argparse.Namespace, settings: Settings) -> int:
    from api.main import build_auth_service

    service = build_auth_service(settings)
    try:
        subject_id = service.verify(args.token)
        profile = service.get_profile(subject_id)
    finally:
        service.store.close()
    print(f"{profile.id} {profile.username}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credcore",
        description="Username/password accounts with bearer-token sessions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  DEBUG=true python main.py serve --reload
  python main.py register alice
  TOKEN=$(python main.py login alice)
  python main.py verify "$TOKEN"
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    register = sub.add_parser("register", help="Create a user (password read from prompt)")
    register.add_argument("username")
    register.set_defaults(func=_register)

    login = sub.add_parser("login", help="Check a password and print a bearer token")
    login.add_argument("username")
    login.set_defaults(func=_login)

    verify = sub.add_parser("verify", help="Verify a token and print the user it belongs to")
    verify.add_argument("token")
    verify.set_defaults(func=_verify)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    try:
        settings = get_settings()
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        return args.func(args, settings)
    except AuthError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    except SettingsError as exc:
        print(f"  [!] Invalid configuration: {exc.errors()[0]['msg']}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
