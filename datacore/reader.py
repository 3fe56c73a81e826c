"""Cached Reader — cache fast path, coalesced + retried fetch, row parsing.

The reader is store-agnostic: it is handed a ``source`` coroutine that returns
raw rows, and a ``parse_row(row, index)`` that turns one raw row into a record
(or None to drop it). Concrete store handles (``SheetReader``, ``SqlReader``)
instantiate it per backing store.
"""
import logging
from typing import Any, Awaitable, Callable, Optional

from datacore.backoff import BackoffExecutor
from datacore.cache import TTLCacheStore
from datacore.coalescer import RequestCoalescer
from datacore.errors import ShapeMissingError
from datacore.stores import LegacySheetStore, RelationalStore, SheetTable, SqlTable

logger = logging.getLogger(__name__)

Record = dict[str, Any]
RowParser = Callable[[Any, int], Optional[Record]]
RowSource = Callable[[], Awaitable[list]]

POSITION_FIELD = "rowIndex"


def _copy_records(records: list[Record]) -> list[Record]:
    return [dict(r) for r in records]


class CachedReader:
    """Generic cached reader bound to one cache namespace."""

    def __init__(
        self,
        cache: TTLCacheStore,
        coalescer: RequestCoalescer,
        executor: BackoffExecutor,
        namespace: str,
    ):
        self.cache = cache
        self.coalescer = coalescer
        self.executor = executor
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def fetch_and_cache(
        self,
        key: str,
        source: RowSource,
        parse_row: RowParser,
        sort: Optional[Callable[[Record], Any]] = None,
        *,
        position_origin: Optional[int] = None,
        strict: bool = False,
    ) -> list[Record]:
        """Return the records for key, fetching them upstream on a cache miss.

        position_origin: when set, records without a rowIndex get
        ``index + position_origin`` (legacy sheet coordinates).
        strict: when the fetch fails and no previous value exists, raise
        instead of returning an empty list.

        Every caller gets its own copy of the records; the cached list is
        never handed out.
        """
        full_key = self._key(key)
        value, hit = self.cache.get(full_key)
        if hit:
            return _copy_records(value)

        async def _load() -> list[Record]:
            logger.info("Reading upstream: %s", full_key)
            rows = await self.executor.execute(source)
            records = []
            for index, row in enumerate(rows or []):
                record = parse_row(row, index)
                if record is None:
                    continue
                if position_origin is not None and record.get(POSITION_FIELD) is None:
                    record[POSITION_FIELD] = index + position_origin
                records.append(record)
            if sort is not None:
                records = sorted(records, key=sort)
            self.cache.put(full_key, records)
            logger.info("Cache refreshed: %s (%d records)", full_key, len(records))
            return records

        try:
            return _copy_records(await self.coalescer.coalesce(full_key, _load))
        except ShapeMissingError:
            logger.warning("Range for %s does not exist; caching empty result", full_key)
            self.cache.put(full_key, [])
            return []
        except Exception as exc:
            stale, present = self.cache.peek(full_key)
            if present:
                logger.error("Read of %s failed, serving stale cache: %s", full_key, exc)
                return _copy_records(stale)
            if strict:
                raise
            logger.error("Read of %s failed, returning empty: %s", full_key, exc)
            return []

    def invalidate_cache(self, key: Optional[str] = None) -> None:
        """Expire one key of this namespace, or the whole namespace."""
        if key is None:
            self.cache.invalidate_prefix(f"{self.namespace}:")
        else:
            self.cache.invalidate(self._key(key))


class SheetReader:
    """Cached reader bound to one legacy spreadsheet."""

    HEADER_ROWS = 1

    def __init__(self, store: LegacySheetStore, cached: CachedReader):
        self.store = store
        self.cached = cached

    async def _read_body(self, range_spec: str) -> list:
        rows = await self.store.read_range(range_spec)
        return rows[self.HEADER_ROWS:]

    async def read_table(self, table: SheetTable, *, strict: bool = False) -> list[Record]:
        # Data row i (0-based) sits on sheet row i + 2 (1-based, after header).
        return await self.cached.fetch_and_cache(
            table.cache_key,
            lambda: self._read_body(table.range),
            table.parse_row,
            position_origin=self.HEADER_ROWS + 1,
            strict=strict,
        )

    async def scan_table(self, table: SheetTable) -> list[Record]:
        """Parse the whole sheet straight from the store, bypassing the cache."""
        rows = await self.cached.executor.execute(lambda: self._read_body(table.range))
        records = []
        for index, row in enumerate(rows or []):
            record = table.parse_row(row, index)
            if record is None:
                continue
            record.setdefault(POSITION_FIELD, index + self.HEADER_ROWS + 1)
            records.append(record)
        return records

    async def read_row(self, table: SheetTable, row_index: int) -> Optional[list]:
        """Read one row directly from the store, bypassing the cache."""
        rows = await self.cached.executor.execute(
            lambda: self.store.read_range(table.row_range(row_index))
        )
        if not rows:
            return None
        row = list(rows[0])
        return row + [""] * (table.width - len(row))

    async def find_row_by_value(
        self, table: SheetTable, field_name: str, value: Any
    ) -> Optional[tuple[list, int]]:
        """Scan the sheet (uncached) for the first row whose field equals value.

        Comparison is case-insensitive on the string form. Returns
        (row, row_index) or None.
        """
        column = table.columns[field_name]
        try:
            rows = await self.cached.executor.execute(
                lambda: self.store.read_range(table.range)
            )
        except ShapeMissingError:
            return None
        target = str(value).lower()
        for i, row in enumerate(rows[self.HEADER_ROWS:], start=self.HEADER_ROWS + 1):
            if column < len(row) and row[column] is not None:
                if str(row[column]).lower() == target:
                    return list(row), i
        return None

    def invalidate_cache(self, key: Optional[str] = None) -> None:
        self.cached.invalidate_cache(key)


class SqlReader:
    """Cached reader bound to the relational store."""

    def __init__(self, store: RelationalStore, cached: CachedReader):
        self.store = store
        self.cached = cached

    async def read_table(self, table: SqlTable, *, strict: bool = True) -> list[Record]:
        return await self.cached.fetch_and_cache(
            table.cache_key,
            lambda: self.store.query(table.name),
            lambda row, _index: table.to_record(row),
            strict=strict,
        )

    async def get_by_id(self, table: SqlTable, record_id: str) -> Optional[Record]:
        """Uncached single lookup; None when the row does not exist."""
        rows = await self.cached.executor.execute(
            lambda: self.store.query(table.name, {table.id_column: record_id})
        )
        if not rows:
            return None
        return table.to_record(rows[0])

    async def query(self, table: SqlTable, filters: dict) -> list[Record]:
        """Uncached filtered read."""
        rows = await self.cached.executor.execute(
            lambda: self.store.query(table.name, filters)
        )
        return [table.to_record(row) for row in rows]

    def invalidate_cache(self, key: Optional[str] = None) -> None:
        self.cached.invalidate_cache(key)
