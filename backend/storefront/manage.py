"""Management commands.

Usage: python -m storefront.manage <command> [options]

Commands:
- migrate                         create tables and apply SQL migrations
- createsuperuser                 create or promote a staff account
- collectstatic [--clear]         copy static assets into STATIC_ROOT
- runserver [--host --port]       start a development server (uvicorn)
- startapp NAME [--directory]     scaffold a new feature app
- import_products CSV             bulk-create products from a CSV file
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import List, Optional

from sqlmodel import Session

from .config import settings

logger = logging.getLogger("storefront.manage")


def cmd_migrate(args) -> int:
    from .database import create_db_and_tables
    from .migrations import run

    applied = run() if settings.DATABASE_URL.startswith("sqlite:///") else []
    create_db_and_tables()
    print(f"Applied {len(applied)} migration(s): {', '.join(applied) or 'none pending'}")
    return 0


def cmd_createsuperuser(args) -> int:
    from .database import create_db_and_tables, engine
    from .services import AuthService

    username = args.username or input("Username: ").strip()
    password = args.password or getpass.getpass("Password: ")
    create_db_and_tables()
    with Session(engine) as session:
        try:
            user = AuthService(session).create_superuser(username, password)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    print(f"Superuser '{user.username}' ready (id {user.id}).")
    return 0


def cmd_collectstatic(args) -> int:
    from .utils.staticfiles import collect_static

    result = collect_static(settings.STATIC_ROOT, sources=args.source, clear=args.clear)
    print(f"{result['copied']} static files copied to '{result['destination']}', "
          f"{result['unmodified']} unmodified, {result['skipped']} skipped.")
    return 0


def cmd_runserver(args) -> int:
    import uvicorn

    uvicorn.run("storefront.main:app", host=args.host, port=args.port, reload=args.reload,
                log_level=settings.LOG_LEVEL.lower())
    return 0


def cmd_startapp(args) -> int:
    from .scaffold import start_app

    try:
        written = start_app(args.name, Path(args.directory))
    except (ValueError, FileExistsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Created app '{args.name}' with {len(written)} files in {Path(args.directory) / args.name}")
    return 0


def cmd_import_products(args) -> int:
    """Import products from a CSV and print a one-line summary."""
    from .database import create_db_and_tables, engine
    from .services import ProductService

    path = Path(args.csv)
    if not path.exists():
        print(f"File not found: {path}", file=sys.stderr)
        return 1
    create_db_and_tables()
    with Session(engine) as session:
        try:
            result = ProductService(session).import_csv(path.read_bytes(), deduplicate=not args.allow_duplicates,
                                                        dry_run=args.dry_run)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    for err in result['errors']:
        print(f"Row {err['index'] + 1}: {err['error']}", file=sys.stderr)
    print(f"Created {result['created']}, skipped {result['skipped']}, errors {len(result['errors'])}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storefront-manage", description="Storefront management commands")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("migrate", help="create tables and apply SQL migrations")
    p.set_defaults(func=cmd_migrate)

    p = sub.add_parser("createsuperuser", help="create or promote a staff user")
    p.add_argument("--username")
    p.add_argument("--password")
    p.set_defaults(func=cmd_createsuperuser)

    p = sub.add_parser("collectstatic", help="collect static files into STATIC_ROOT")
    p.add_argument("--clear", action="store_true", help="empty STATIC_ROOT first")
    p.add_argument("--source", action="append", default=[], help="extra static directory (repeatable)")
    p.set_defaults(func=cmd_collectstatic)

    p = sub.add_parser("runserver", help="start the development server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--reload", action="store_true")
    p.set_defaults(func=cmd_runserver)

    p = sub.add_parser("startapp", help="scaffold a new feature app")
    p.add_argument("name")
    p.add_argument("--directory", default=".")
    p.set_defaults(func=cmd_startapp)

    p = sub.add_parser("import_products", help="bulk import products from CSV")
    p.add_argument("csv")
    p.add_argument("--allow-duplicates", action="store_true", help="import rows whose name already exists")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_import_products)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
