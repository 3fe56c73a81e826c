"""Process wiring: one cache, one coalescer, one executor, every service.

build_container() takes the three store handles so tests can pass fakes;
open_container() builds the production stores from settings and tears the
connection pool down on exit.

Usage:
    async with open_container() as app:
        contacts = await app.contacts.list_official()
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Collection, Optional

import settings
from datacore.backoff import BackoffExecutor
from datacore.bridge import LinkZone, OfficialZone, PotentialZone, ZoneLifecycleBridge
from datacore.cache import TTLCacheStore
from datacore.coalescer import RequestCoalescer
from datacore.reader import CachedReader, SheetReader, SqlReader
from datacore.resolver import LegacyOnly, LegacySource, ReadSource, RelationalFirst
from datacore.stores import LegacySheetStore, RelationalStore, SheetTable, SqlTable
from datacore.writer import SheetWriter, SqlWriter
from db.connection import dispose_engine
from db.repositories import SQL_CACHE_KEYS
from db.repositories import companies as company_repo
from db.repositories import contacts as contact_repo
from db.repositories import links as link_repo
from db.repositories.promotions import SqlIntentLog
from db.repositories.relational import SqlAlchemyStore
from services.companies import CompanyService
from services.contacts import ContactService
from services.links import OpportunityLinkService
from sheets import layout
from sheets.client import GoogleSheetsStore

logger = logging.getLogger(__name__)

# Entities whose read source can be switched to the legacy sheet alone
ENTITIES = ("contacts", "companies", "links")


@dataclass
class Container:
    cache: TTLCacheStore
    coalescer: RequestCoalescer
    executor: BackoffExecutor
    raw_reader: SheetReader
    raw_writer: SheetWriter
    core_reader: SheetReader
    sql_reader: SqlReader
    sql_writer: SqlWriter
    companies: CompanyService
    links: OpportunityLinkService
    contacts: ContactService
    bridge: ZoneLifecycleBridge

    def close(self) -> None:
        self.cache.clear()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_container(
    raw_store: LegacySheetStore,
    core_store: LegacySheetStore,
    relational_store: RelationalStore,
    *,
    legacy_only: Collection[str] = (),
    cache: Optional[TTLCacheStore] = None,
    executor: Optional[BackoffExecutor] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> Container:
    """Wire readers, writers and services around the given store handles.

    legacy_only names entities (see ENTITIES) that are read from the CORE
    sheet only, for entities not migrated to the relational store yet.
    """
    unknown = set(legacy_only) - set(ENTITIES)
    if unknown:
        raise ValueError(f"Unknown entities in legacy_only: {sorted(unknown)}")

    cache = cache or TTLCacheStore(settings.CACHE_TTL_SECONDS)
    coalescer = RequestCoalescer()
    executor = executor or BackoffExecutor()

    raw_reader = SheetReader(raw_store, CachedReader(cache, coalescer, executor, "raw"))
    core_reader = SheetReader(core_store, CachedReader(cache, coalescer, executor, "core"))
    sql_reader = SqlReader(relational_store, CachedReader(cache, coalescer, executor, "sql"))

    raw_writer = SheetWriter(raw_store, raw_reader, layout.SHEET_CACHE_KEYS)
    sql_writer = SqlWriter(relational_store, sql_reader, SQL_CACHE_KEYS)

    def source(entity: str, sql_table: SqlTable, sheet_table: SheetTable) -> ReadSource:
        legacy = LegacySource(core_reader, sheet_table)
        if entity in legacy_only:
            logger.info("Reading %s from the legacy sheet only", entity)
            return LegacyOnly(legacy)
        return RelationalFirst(sql_reader, sql_table, legacy)

    companies = CompanyService(
        source("companies", company_repo.COMPANIES, layout.COMPANIES),
        sql_writer,
        clock=clock,
    )
    links = OpportunityLinkService(
        source("links", link_repo.LINKS, layout.OPPORTUNITY_CONTACT_LINKS),
        sql_writer,
        clock=clock,
    )
    contacts = ContactService(
        source("contacts", contact_repo.CONTACTS, layout.OFFICIAL_CONTACTS),
        sql_reader,
        sql_writer,
        raw_reader,
        raw_writer,
        companies,
        links,
        clock=clock,
    )
    bridge = ZoneLifecycleBridge(
        PotentialZone(
            raw_reader,
            raw_writer,
            layout.POTENTIAL_CONTACTS,
            processed=layout.STATUS_PROCESSED,
            dropped=layout.STATUS_DROPPED,
        ),
        OfficialZone(sql_reader, sql_writer, contact_repo.CONTACTS, contact_repo.create_payload),
        LinkZone(sql_writer, link_repo.LINKS, link_repo.link_payload, link_repo.CONFLICT_COLUMNS),
        SqlIntentLog(sql_reader, sql_writer, clock),
        clock=clock,
    )
    return Container(
        cache=cache,
        coalescer=coalescer,
        executor=executor,
        raw_reader=raw_reader,
        raw_writer=raw_writer,
        core_reader=core_reader,
        sql_reader=sql_reader,
        sql_writer=sql_writer,
        companies=companies,
        links=links,
        contacts=contacts,
        bridge=bridge,
    )


@asynccontextmanager
async def open_container(legacy_only: Collection[str] = ()) -> AsyncIterator[Container]:
    """Production wiring: Google Sheets (RAW + CORE) and PostgreSQL."""
    container = build_container(
        GoogleSheetsStore(settings.sheets_raw_id()),
        GoogleSheetsStore(settings.sheets_core_id()),
        SqlAlchemyStore(),
        legacy_only=legacy_only,
    )
    try:
        yield container
    finally:
        container.close()
        await dispose_engine()
