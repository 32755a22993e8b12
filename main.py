#!/usr/bin/env python3
"""
SSO -- single sign-on credential service.

Usage:
  python main.py serve
  python main.py --config prod.env serve --workers 4
  python main.py create-app web-portal
  python main.py create-app web-portal --secret "$(openssl rand -hex 32)"
  python main.py grant-admin 42
  python main.py grant-admin 42 --revoke

Applications and admin grants are provisioned here, out of band. The HTTP
API only ever reads them.

Environment variables:
  CONFIG_PATH   Env file to load settings from (overridden by --config).
  See core/config.py for every setting.
"""

import argparse
import os
import secrets
import sys

from sqlalchemy.exc import IntegrityError

from auth.store import SQLCredentialStore
from core.config import get_settings, load_settings
from core.logger import setup_logging


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        workers=args.workers,
        log_config=None,  # keep core.logger's handlers
    )
    return 0


def _cmd_create_app(args: argparse.Namespace) -> int:
    secret = args.secret or secrets.token_hex(32)
    store = SQLCredentialStore(get_settings().database_url)
    try:
        app_id = store.create_app(args.name, secret)
    except IntegrityError:
        print(f"  [!] An app named '{args.name}' already exists.")
        return 1
    except ValueError as e:
        print(f"  [!] {e}")
        return 1
    finally:
        store.close()
    print(f"  app_id: {app_id}")
    if not args.secret:
        # Shown once; the relying app needs it to verify tokens.
        print(f"  secret: {secret}")
    return 0


def _cmd_grant_admin(args: argparse.Namespace) -> int:
    store = SQLCredentialStore(get_settings().database_url)
    try:
        updated = store.set_admin(args.user_id, not args.revoke)
    finally:
        store.close()
    if not updated:
        print(f"  [!] No user with id {args.user_id}.")
        return 1
    print(f"  user {args.user_id}: is_admin={not args.revoke}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SSO credential service")
    parser.add_argument("--config", help="Path to an env file with settings (default: $CONFIG_PATH or .env)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)
    serve.add_argument("--workers", type=int, default=1)
    serve.set_defaults(func=_cmd_serve)

    create_app = sub.add_parser("create-app", help="Register a relying application")
    create_app.add_argument("name")
    create_app.add_argument("--secret", help="Signing secret (default: 32 random bytes, hex)")
    create_app.set_defaults(func=_cmd_create_app)

    grant = sub.add_parser("grant-admin", help="Grant (or revoke) admin for a user id")
    grant.add_argument("user_id", type=int)
    grant.add_argument("--revoke", action="store_true")
    grant.set_defaults(func=_cmd_grant_admin)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.config:
        # Validate early, then let every later get_settings() (including the
        # uvicorn workers' imports of api.main) pick the same file up.
        load_settings(args.config)
        os.environ["CONFIG_PATH"] = args.config
        get_settings.cache_clear()
    setup_logging(get_settings().env)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
