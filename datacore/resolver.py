"""Dual-Source Resolver — relational first, legacy sheet as fallback.

The read source of an entity is fixed at wiring time:

    RelationalFirst(sql, table, legacy)  migrated entity, sheet kept as fallback
    LegacyOnly(legacy)                   not migrated yet

Both backing shapes are normalized into one DTO before anything is returned.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from datacore.reader import Record, SheetReader, SqlReader
from datacore.stores import SheetTable, SqlTable

logger = logging.getLogger(__name__)

Normalizer = Callable[[Record], Record]
Joiner = Callable[[list[Record]], Awaitable[list[Record]]]


@dataclass(frozen=True)
class LegacySource:
    reader: SheetReader
    table: SheetTable


@dataclass(frozen=True)
class RelationalFirst:
    sql: SqlReader
    table: SqlTable
    legacy: LegacySource


@dataclass(frozen=True)
class LegacyOnly:
    legacy: LegacySource


ReadSource = Union[RelationalFirst, LegacyOnly]


def _is_valid_collection(rows: Any) -> bool:
    return isinstance(rows, list) and all(isinstance(r, dict) for r in rows)


class DualSourceResolver:
    """Serve one entity type from whichever store can answer, in one shape."""

    def __init__(
        self,
        source: ReadSource,
        normalize: Normalizer,
        id_field: str,
        join: Optional[Joiner] = None,
        name: str = "entity",
    ):
        self.source = source
        self.normalize = normalize
        self.id_field = id_field
        self.join = join
        self.name = name

    async def _finish(self, records: list[Record]) -> list[Record]:
        entities = [self.normalize(r) for r in records]
        if self.join is not None:
            entities = await self.join(entities)
        return entities

    async def _read_legacy(self, strict: bool) -> list[Record]:
        legacy = self.source.legacy
        return await legacy.reader.read_table(legacy.table, strict=strict)

    async def fetch_entities(self, force_legacy: bool = False) -> list[Record]:
        """Return every entity, normalized.

        A relational error or malformed response falls back to the legacy
        store; a valid empty list is the answer. If both stores fail the
        legacy error propagates.
        """
        source = self.source
        relational_failed = False
        if isinstance(source, RelationalFirst) and not force_legacy:
            try:
                rows = await source.sql.read_table(source.table)
                if _is_valid_collection(rows):
                    return await self._finish(rows)
                logger.warning(
                    "[%s] Relational read returned %s, falling back to sheet",
                    self.name, type(rows).__name__,
                )
            except Exception as exc:
                logger.warning(
                    "[%s] Relational read failed, falling back to sheet: %s",
                    self.name, exc,
                )
            relational_failed = True
        records = await self._read_legacy(strict=relational_failed)
        return await self._finish(records)

    async def fetch_by_id(self, record_id: str, force_legacy: bool = False) -> Optional[Record]:
        """Return one entity or None.

        Unlike list reads, a relational "not found" also consults the legacy
        store, since the two stores can lag behind each other.
        """
        if not record_id:
            return None
        source = self.source
        relational_failed = False
        if isinstance(source, RelationalFirst) and not force_legacy:
            try:
                row = await source.sql.get_by_id(source.table, record_id)
                if isinstance(row, dict):
                    entities = await self._finish([row])
                    return entities[0] if entities else None
                logger.warning(
                    "[%s] %s not found in relational store, checking sheet",
                    self.name, record_id,
                )
            except Exception as exc:
                logger.warning(
                    "[%s] Relational lookup of %s failed, checking sheet: %s",
                    self.name, record_id, exc,
                )
                relational_failed = True
        records = await self._read_legacy(strict=relational_failed)
        for entity in await self._finish(records):
            if entity.get(self.id_field) == record_id:
                return entity
        return None

    def invalidate_cache(self) -> None:
        source = self.source
        if isinstance(source, RelationalFirst):
            source.sql.invalidate_cache(source.table.cache_key)
        source.legacy.reader.invalidate_cache(source.legacy.table.cache_key)
