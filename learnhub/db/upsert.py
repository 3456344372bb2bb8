"""Dialect-aware ``INSERT ... ON CONFLICT`` statements.

PostgreSQL and SQLite both support conflict clauses but SQLAlchemy exposes
them through per-dialect ``insert`` constructs.
"""
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Upsert not supported for dialect {dialect!r}")


def upsert(db: Session, model, values: dict[str, Any], conflict_cols: list[str], update_cols: list[str]) -> None:
    insert = _insert_for(db)
    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_cols,
        set_={col: getattr(stmt.excluded, col) for col in update_cols},
    )
    db.execute(stmt)


def insert_ignore(db: Session, model, rows: list[dict[str, Any]], conflict_cols: list[str]) -> int:
    if not rows:
        return 0
    insert = _insert_for(db)
    stmt = insert(model).values(rows).on_conflict_do_nothing(index_elements=conflict_cols)
    return db.execute(stmt).rowcount or 0
