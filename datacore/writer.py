"""Scoped Writers — one logical write against one store, then invalidation.

Each writer is bound at construction to a single store handle and to the
reader that reads the same store; after a successful write it expires the
cache keys that the static ``cache_keys`` map assigns to the touched
sheet/table. Writes are not retried and errors propagate to the caller.

Partial updates on the legacy store are read-modify-write with no lock:
concurrent updates of the same row race and the last write wins.
"""
import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from datacore.errors import NotFoundError
from datacore.reader import Record, SheetReader, SqlReader
from datacore.stores import LegacySheetStore, RelationalStore, SheetTable

logger = logging.getLogger(__name__)

CacheKeyMap = Mapping[str, Sequence[str]]
Merge = Callable[[Record, dict], dict]


def check_row_index(row_index: Any) -> int:
    try:
        value = int(row_index)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid rowIndex: {row_index!r}") from None
    if value <= 1:
        # Row 1 is the header.
        raise ValueError(f"Invalid rowIndex: {row_index!r}")
    return value


class SheetWriter:
    """Writer bound to one legacy spreadsheet."""

    def __init__(self, store: LegacySheetStore, reader: SheetReader, cache_keys: CacheKeyMap):
        if reader.store is not store:
            raise ValueError("SheetWriter must be paired with a reader of the same spreadsheet")
        self.store = store
        self.reader = reader
        self.cache_keys = cache_keys

    def _invalidate(self, sheet_name: str) -> None:
        keys = self.cache_keys.get(sheet_name, ())
        if not keys:
            logger.debug("No cache keys mapped for sheet %s", sheet_name)
        for key in keys:
            self.reader.invalidate_cache(key)

    async def append(self, table: SheetTable, values: list) -> None:
        await self.store.append_row(table.sheet_name, values)
        logger.info("Appended row to %s", table.sheet_name)
        self._invalidate(table.sheet_name)

    async def update_cells(self, table: SheetTable, row_index: Any, fields: dict) -> None:
        """Blind write of individual cells (no prior read)."""
        row_index = check_row_index(row_index)
        updates = [
            (table.cell(name, row_index), value)
            for name, value in fields.items()
            if name in table.columns
        ]
        if not updates:
            return
        await self.store.batch_update_cells(updates)
        logger.info("Updated %d cells of %s row %d", len(updates), table.sheet_name, row_index)
        self._invalidate(table.sheet_name)

    async def update_row(
        self,
        table: SheetTable,
        row_index: Any,
        fields: dict,
        merge: Optional[Merge] = None,
    ) -> list:
        """Merge fields into the current row and write the full row back.

        The current row is read directly from the store (never from cache).
        merge, when given, receives the parsed current record and the
        requested fields and returns the fields to write.
        """
        row_index = check_row_index(row_index)
        current = await self.reader.read_row(table, row_index)
        if current is None or not any(str(v).strip() for v in current):
            raise NotFoundError(f"{table.sheet_name} row {row_index} not found")
        if merge is not None:
            record = table.parse_row(current, row_index - 2) or {}
            fields = merge(record, fields)
        new_row = list(current)
        for name, value in fields.items():
            column = table.columns.get(name)
            if column is None:
                continue
            new_row[column] = value
        await self.store.update_range(table.row_range(row_index), [new_row])
        logger.info("Rewrote %s row %d", table.sheet_name, row_index)
        self._invalidate(table.sheet_name)
        return new_row

    async def delete_row(self, table: SheetTable, row_index: Any) -> None:
        row_index = check_row_index(row_index)
        sheet_id = await self.store.get_sheet_id(table.sheet_name)
        logger.info("Deleting %s row %d", table.sheet_name, row_index)
        await self.store.delete_row_range(sheet_id, row_index - 1, row_index)
        self._invalidate(table.sheet_name)


class SqlWriter:
    """Writer bound to the relational store. Updates are native partial updates."""

    def __init__(self, store: RelationalStore, reader: SqlReader, cache_keys: CacheKeyMap):
        if reader.store is not store:
            raise ValueError("SqlWriter must be paired with a reader of the same store")
        self.store = store
        self.reader = reader
        self.cache_keys = cache_keys

    def _invalidate(self, table: str) -> None:
        for key in self.cache_keys.get(table, ()):
            self.reader.invalidate_cache(key)

    async def insert(self, table: str, payload: dict) -> dict:
        row = await self.store.insert(table, payload)
        logger.info("Inserted into %s (by %s)", table, payload.get("created_by", "-"))
        self._invalidate(table)
        return row

    async def update(self, table: str, predicate: dict, payload: dict) -> int:
        count = await self.store.update(table, predicate, payload)
        logger.info("Updated %s where %s (%d rows, by %s)",
                    table, predicate, count, payload.get("updated_by", "-"))
        self._invalidate(table)
        return count

    async def delete(self, table: str, predicate: dict) -> int:
        count = await self.store.delete(table, predicate)
        logger.info("Deleted from %s where %s (%d rows)", table, predicate, count)
        self._invalidate(table)
        return count

    async def upsert(self, table: str, payload: dict, conflict_columns: list[str]) -> dict:
        row = await self.store.upsert(table, payload, conflict_columns)
        logger.info("Upserted into %s on %s", table, conflict_columns)
        self._invalidate(table)
        return row
