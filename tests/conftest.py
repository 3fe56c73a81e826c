"""Shared fixtures: a fully wired container over in-memory stores."""
from datetime import datetime, timezone

import pytest

from container import build_container
from sheets.layout import COMPANY_LIST, CONTACT_LIST, OPP_CONTACT_LINKS, RAW_CONTACTS
from tests.fakes import (
    RAW_HEADER,
    FakeRelationalStore,
    FakeSheetStore,
    fresh_cache,
    quiet_executor,
    raw_row,
)

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


class Harness:
    def __init__(self, raw_rows=(), core_sheets=None, tables=None, legacy_only=()):
        self.raw_store = FakeSheetStore("raw-sheet", {RAW_CONTACTS: [RAW_HEADER, *raw_rows]})
        self.core_store = FakeSheetStore("core-sheet", core_sheets or {
            CONTACT_LIST: [["contactId"]],
            COMPANY_LIST: [["companyId"]],
            OPP_CONTACT_LINKS: [["linkId"]],
        })
        self.sql_store = FakeRelationalStore(tables or {})
        self.cache, self.clock = fresh_cache()
        self.executor, self.sleep = quiet_executor(max_retries=1)
        self.app = build_container(
            self.raw_store,
            self.core_store,
            self.sql_store,
            legacy_only=legacy_only,
            cache=self.cache,
            executor=self.executor,
            clock=lambda: FIXED_NOW,
        )

    def raw_cell(self, row_index: int, field: str):
        return self.raw_store.sheets[RAW_CONTACTS][row_index - 1][RAW_HEADER.index(field)]


@pytest.fixture
def harness():
    """Factory: harness(raw_rows=[...], tables={...})."""
    return Harness


@pytest.fixture
def five_rows():
    """RAW rows 2..6; row 5 is Acme."""
    return [
        raw_row("Ann", "Alpha"),
        raw_row("Bob", "Beta"),
        raw_row("Cid", "Corp"),
        raw_row("Acme", "Acme Inc", status="Pending", position="Buyer", email="buy@acme.test"),
        raw_row("Eve", "Echo"),
    ]
