"""Bakery management CLI.

Usage:
    bakery-manage setup-db   # Create all tables
    bakery-manage drop-db    # Drop all tables
    bakery-manage serve      # Run the API with uvicorn
"""

import argparse
import sys

from bakery.domain import bakery
from bakery.utils.db import drop_db, setup_db


def setup_databases():
    """Create database schemas for the bakery domain."""
    print("Initializing bakery domain...")
    bakery.init()
    touched = setup_db(bakery)
    if touched:
        print(f"  Schema ready for: {', '.join(touched)}")
    else:
        print("  No relational providers configured; nothing to create.")
    return touched


def drop_databases():
    """Drop database schemas for the bakery domain."""
    print("Initializing bakery domain...")
    bakery.init()
    touched = drop_db(bakery)
    if touched:
        print(f"  Schema dropped for: {', '.join(touched)}")
    else:
        print("  No relational providers configured; nothing to drop.")
    return touched


def serve(host, port, reload):
    import uvicorn

    uvicorn.run("bakery.app:create_app", factory=True, host=host, port=port, reload=reload)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Bakery database and server management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "serve":
        serve(args.host, args.port, args.reload)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
