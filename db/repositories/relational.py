"""Relational store adapter — table-name CRUD over the crm schema.

Implements the store interface the data core consumes. Each call runs in its
own get_db() session: commit on success, rollback (logged) on error. Rows come
back as plain dicts keyed by column name.
"""
import logging
from typing import Any, Callable, Optional

from sqlalchemy import MetaData, Table, and_, delete, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from db.connection import get_db
from db.models import Base

logger = logging.getLogger(__name__)


class SqlAlchemyStore:
    """RelationalStore backed by async SQLAlchemy Core statements."""

    def __init__(
        self,
        session_factory: Callable = get_db,
        metadata: MetaData = Base.metadata,
        schema: str = "crm",
    ):
        self._session = session_factory
        self._metadata = metadata
        self._schema = schema

    def _table(self, name: str) -> Table:
        key = f"{self._schema}.{name}" if self._schema else name
        try:
            return self._metadata.tables[key]
        except KeyError:
            raise ValueError(f"Unknown table: {key}") from None

    @staticmethod
    def _check_columns(table: Table, data: dict) -> None:
        unknown = [k for k in data if k not in table.c]
        if unknown:
            raise ValueError(f"Unknown columns for {table.name}: {', '.join(unknown)}")

    def _where(self, table: Table, predicate: dict):
        if not predicate:
            raise ValueError(f"Refusing unfiltered write to {table.name}")
        self._check_columns(table, predicate)
        return and_(*(table.c[k] == v for k, v in predicate.items()))

    async def query(self, table: str, filters: Optional[dict] = None) -> list[dict[str, Any]]:
        """Return all rows of table, optionally filtered by column equality."""
        t = self._table(table)
        stmt = select(t)
        if filters:
            self._check_columns(t, filters)
            stmt = stmt.where(and_(*(t.c[k] == v for k, v in filters.items())))
        async with self._session() as session:
            result = await session.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

    async def insert(self, table: str, payload: dict) -> dict[str, Any]:
        t = self._table(table)
        self._check_columns(t, payload)
        async with self._session() as session:
            result = await session.execute(insert(t).values(**payload).returning(t))
            return dict(result.mappings().one())

    async def update(self, table: str, predicate: dict, payload: dict) -> int:
        """SET only the given columns on rows matching predicate; returns rowcount."""
        t = self._table(table)
        self._check_columns(t, payload)
        stmt = update(t).where(self._where(t, predicate)).values(**payload)
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.rowcount

    async def delete(self, table: str, predicate: dict) -> int:
        t = self._table(table)
        stmt = delete(t).where(self._where(t, predicate))
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.rowcount

    async def upsert(self, table: str, payload: dict, conflict_columns: list[str]) -> dict[str, Any]:
        """Insert or update by conflict_columns (ON CONFLICT DO UPDATE)."""
        t = self._table(table)
        self._check_columns(t, payload)
        stmt = (
            pg_insert(t)
            .values(**payload)
            .on_conflict_do_update(
                index_elements=conflict_columns,
                set_={k: v for k, v in payload.items() if k not in conflict_columns},
            )
            .returning(t)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return dict(result.mappings().one())
