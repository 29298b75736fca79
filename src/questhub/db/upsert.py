"""Atomic counter upserts for per-user tables (PostgreSQL and SQLite)."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.db.base import Base


async def increment(
    db: AsyncSession,
    model: type[Base],
    keys: dict[str, Any],
    increments: dict[str, int],
) -> None:
    """INSERT the row with ``increments`` as initial values, or add them to the existing row.

    ``keys`` must match a unique constraint of ``model``. Runs as one statement
    so concurrent writers never lose an increment.
    """
    insert = pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert
    table = model.__table__
    stmt = insert(table).values(**keys, **increments)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(keys),
        set_={name: table.c[name] + amount for name, amount in increments.items()},
    )
    await db.execute(stmt)
