"""Dialect-aware INSERT ... ON CONFLICT helpers (PostgreSQL in production, SQLite in tests)."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def _insert_for(db: AsyncSession, model: type) -> Any:
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    msg = f"Unsupported dialect for conflict-aware insert: {dialect}"
    raise RuntimeError(msg)


async def insert_ignore(
    db: AsyncSession,
    model: type,
    values: dict[str, Any],
    index_elements: list[str],
) -> int | None:
    """Insert a row unless it violates the given unique key.

    Returns the new row's primary key, or None when the row already existed.
    The unique constraint is the only race guard: two concurrent callers
    can both attempt the insert and exactly one gets an id back.
    """
    pk = model.__mapper__.primary_key[0]  # type: ignore[attr-defined]
    stmt = (
        _insert_for(db, model)
        .values(**values)
        .on_conflict_do_nothing(index_elements=index_elements)
        .returning(pk)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def upsert(
    db: AsyncSession,
    model: type,
    values: dict[str, Any],
    index_elements: list[str],
) -> None:
    """Insert a row or overwrite its non-key columns when the unique key exists."""
    stmt = _insert_for(db, model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={k: stmt.excluded[k] for k in values if k not in index_elements},
    )
    await db.execute(stmt)
