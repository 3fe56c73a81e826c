"""Interfaces of the two backing stores and the table descriptors bound to them."""
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

Row = list[Any]


class LegacySheetStore(Protocol):
    """Spreadsheet-shaped store (one spreadsheet, many named sheets)."""

    spreadsheet_id: str

    async def read_range(self, range_spec: str) -> list[Row]: ...

    async def append_row(self, sheet_name: str, values: Row) -> None: ...

    async def update_range(self, range_spec: str, rows: list[Row]) -> None: ...

    async def batch_update_cells(self, updates: list[tuple[str, Any]]) -> None: ...

    async def get_sheet_id(self, sheet_name: str) -> int: ...

    async def delete_row_range(self, sheet_id: int, start_index: int, end_index: int) -> None: ...


class RelationalStore(Protocol):
    """Authoritative relational store addressed by table name."""

    async def query(self, table: str, filters: Optional[dict] = None) -> list[dict]: ...

    async def insert(self, table: str, payload: dict) -> dict: ...

    async def update(self, table: str, predicate: dict, payload: dict) -> int: ...

    async def delete(self, table: str, predicate: dict) -> int: ...

    async def upsert(self, table: str, payload: dict, conflict_columns: list[str]) -> dict: ...


def column_letter(index: int) -> str:
    """0-based column index -> A1 column letters (0 -> A, 26 -> AA)."""
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


@dataclass(frozen=True)
class SheetTable:
    """One sheet of the legacy store: where it lives and how to parse it.

    columns maps record field names to 0-based column indexes; parse_row
    receives a data row (header excluded) and its 0-based index.
    """

    sheet_name: str
    cache_key: str
    width: int
    columns: dict[str, int]
    parse_row: Callable[[Row, int], Optional[dict]]

    @property
    def last_column(self) -> str:
        return column_letter(self.width - 1)

    @property
    def range(self) -> str:
        return f"{self.sheet_name}!A:{self.last_column}"

    def row_range(self, row_index: int) -> str:
        return f"{self.sheet_name}!A{row_index}:{self.last_column}{row_index}"

    def cell(self, field_name: str, row_index: int) -> str:
        return f"{self.sheet_name}!{column_letter(self.columns[field_name])}{row_index}"


@dataclass(frozen=True)
class SqlTable:
    """One relational table: its identity column and row -> record mapper."""

    name: str
    cache_key: str
    id_column: str
    to_record: Callable[[dict], dict]
    id_field: str = "id"
