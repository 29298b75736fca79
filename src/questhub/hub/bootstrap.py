"""Protocol bootstrap CLI — creates the hub and prints the one-time capability secrets.

Usage:
  questhub-init --admin-address 0xabc
  questhub-init --admin-address 0xabc --database-url postgresql+asyncpg://... --create-tables
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from questhub.config import get_settings
from questhub.database import close_db, create_all, get_session_factory, init_db
from questhub.errors import LedgerError
from questhub.hub.service import init_protocol

logger = logging.getLogger(__name__)


async def bootstrap(admin_address: str, database_url: str, *, create_tables: bool = False) -> tuple[str, str, str]:
    """Run init_protocol in its own transaction. Returns (hub_id, admin_token, verifier_token)."""
    await init_db(database_url)
    try:
        if create_tables:
            await create_all()
        async with get_session_factory()() as db:
            hub, admin_token, verifier_token = await init_protocol(db, admin_address)
            await db.commit()
            return hub.id, admin_token, verifier_token
    finally:
        await close_db()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Initialize the QuestHub protocol hub",
    )
    parser.add_argument(
        "--admin-address", required=True,
        help="Address that receives the hub-admin and verifier capabilities",
    )
    parser.add_argument(
        "--database-url", default=None,
        help="Override QH_DATABASE_URL",
    )
    parser.add_argument(
        "--create-tables", action="store_true",
        help="Create tables from ORM metadata first (local runs; production uses alembic)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    database_url = args.database_url or get_settings().database_url

    try:
        hub_id, admin_token, verifier_token = asyncio.run(
            bootstrap(args.admin_address, database_url, create_tables=args.create_tables)
        )
    except LedgerError as exc:
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        return 1

    print(f"hub_id={hub_id}")
    print(f"hub_admin_token={admin_token}")
    print(f"verifier_token={verifier_token}")
    print("Store these secrets now. They cannot be recovered.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
