"""Contact service — Official (CORE) and Potential (RAW) contacts.

Official contacts are written to the relational store only; reads go
relational first with the CORE sheet as fallback. Potential contacts live
in the RAW intake sheet and are addressed by row.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from dateutil import parser as date_parser

import settings
from datacore.errors import NotFoundError
from datacore.reader import SheetReader, SqlReader
from datacore.resolver import DualSourceResolver, ReadSource
from datacore.writer import SheetWriter, SqlWriter, check_row_index
from db.repositories import contacts as contact_repo
from schemas.contact import LinkedContact, OfficialContact, PotentialContact
from services.companies import CompanyService
from services.links import OpportunityLinkService
from sheets.layout import (
    POTENTIAL_CONTACTS,
    STATUS_DROPPED,
    STATUS_PENDING,
    STATUS_PROCESSED,
)

logger = logging.getLogger(__name__)

POTENTIAL_STATUSES = (STATUS_PENDING, STATUS_PROCESSED, STATUS_DROPPED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_key(value: Any) -> str:
    return str(value or "").lower().strip()


def _created_sort_key(record: dict) -> tuple:
    """Newest first; rows whose createdTime does not parse go last."""
    try:
        created = date_parser.parse(str(record.get("createdTime", "")))
    except (ValueError, OverflowError):
        return (1, 0.0)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (0, -created.timestamp())


class ContactService:
    def __init__(
        self,
        official_source: ReadSource,
        sql_reader: SqlReader,
        sql_writer: SqlWriter,
        raw_reader: SheetReader,
        raw_writer: SheetWriter,
        companies: CompanyService,
        links: OpportunityLinkService,
        page_size: int = settings.PAGE_SIZE,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.resolver = DualSourceResolver(
            official_source,
            OfficialContact.normalize,
            id_field="contactId",
            join=self._join_companies,
            name="contacts",
        )
        self.sql_reader = sql_reader
        self.sql_writer = sql_writer
        self.raw_reader = raw_reader
        self.raw_writer = raw_writer
        self.companies = companies
        self.links = links
        self.page_size = page_size
        self.clock = clock

    # ------------------------------------------------------------------
    # Official (CORE)
    # ------------------------------------------------------------------

    async def _join_companies(self, contacts: list[dict]) -> list[dict]:
        names = await self.companies.name_map()
        for contact in contacts:
            company_id = contact.get("companyId", "")
            contact["companyName"] = names.get(company_id) or company_id
        return contacts

    async def list_official(self, query: str = "", page: int = 1) -> dict:
        """Search by name or company name, one page at a time."""
        contacts = await self.resolver.fetch_entities()
        if query:
            term = query.lower()
            contacts = [
                c for c in contacts
                if term in c.get("name", "").lower()
                or term in c.get("companyName", "").lower()
            ]
        page = max(int(page), 1)
        start = (page - 1) * self.page_size
        return {
            "data": contacts[start:start + self.page_size],
            "pagination": {
                "current": page,
                "total": math.ceil(len(contacts) / self.page_size),
                "totalItems": len(contacts),
                "hasNext": start + self.page_size < len(contacts),
                "hasPrev": page > 1,
            },
        }

    async def list_all_official(self) -> list[dict]:
        """Every Official contact; empty list when no store can answer."""
        try:
            return await self.resolver.fetch_entities()
        except Exception as exc:
            logger.error("Official contact list unavailable: %s", exc)
            return []

    async def get_by_id(self, contact_id: str) -> Optional[dict]:
        return await self.resolver.fetch_by_id(contact_id)

    async def find_by_source(self, source_id: str) -> Optional[dict]:
        """The Official contact created from a RAW row reference, if any."""
        try:
            rows = await self.sql_reader.query(
                contact_repo.CONTACTS, {"source_id": source_id}
            )
        except Exception as exc:
            logger.warning("Relational lookup by source %s failed, checking sheet: %s",
                           source_id, exc)
            for contact in await self.resolver.fetch_entities(force_legacy=True):
                if contact.get("sourceId") == source_id:
                    return contact
            return None
        if not rows:
            return None
        return (await self._join_companies([OfficialContact.normalize(rows[0])]))[0]

    async def create(self, payload: dict, actor: str) -> dict:
        row = await self.sql_writer.insert(
            contact_repo.TABLE, contact_repo.create_payload(payload, actor, self.clock())
        )
        return {"success": True, "id": row["contact_id"]}

    async def update(self, contact_id: str, payload: dict, actor: str) -> dict:
        count = await self.sql_writer.update(
            contact_repo.TABLE,
            {"contact_id": contact_id},
            contact_repo.update_payload(payload, actor, self.clock()),
        )
        if not count:
            raise NotFoundError(f"Contact {contact_id} not found")
        return {"success": True}

    async def delete(self, contact_id: str, actor: str) -> dict:
        count = await self.sql_writer.delete(contact_repo.TABLE, {"contact_id": contact_id})
        if not count:
            raise NotFoundError(f"Contact {contact_id} not found")
        logger.info("Contact %s deleted by %s", contact_id, actor)
        return {"success": True}

    async def get_linked_contacts(self, opportunity_id: str) -> list[dict]:
        """Official contacts actively linked to an opportunity, with card images."""
        try:
            links = await self.links.list_links(opportunity_id, active_only=True)
            linked_ids = {link["contactId"] for link in links if link.get("contactId")}
            if not linked_ids:
                return []
            official = await self.resolver.fetch_entities()
            potential = await self.raw_reader.read_table(POTENTIAL_CONTACTS)
        except Exception as exc:
            logger.error("Linked contacts of %s unavailable: %s", opportunity_id, exc)
            return []

        cards: dict[str, str] = {}
        for record in potential:
            if record.get("name") and record.get("company") and record.get("driveLink"):
                key = f"{_normalize_key(record['name'])}|{_normalize_key(record['company'])}"
                cards.setdefault(key, record["driveLink"])

        linked = []
        for contact in official:
            if contact.get("contactId") not in linked_ids:
                continue
            drive_link = ""
            if contact.get("name") and contact.get("companyName"):
                key = f"{_normalize_key(contact['name'])}|{_normalize_key(contact['companyName'])}"
                drive_link = cards.get(key, "")
            linked.append(LinkedContact.normalize({**contact, "driveLink": drive_link}))
        return linked

    # ------------------------------------------------------------------
    # Potential (RAW)
    # ------------------------------------------------------------------

    async def _potential_records(self) -> list[dict]:
        records = await self.raw_reader.read_table(POTENTIAL_CONTACTS)
        return [PotentialContact.normalize(r) for r in records]

    async def list_potential(self, limit: int = 2000) -> list[dict]:
        contacts = [c for c in await self._potential_records() if c.get("name") or c.get("company")]
        contacts.sort(key=_created_sort_key)
        if limit > 0:
            contacts = contacts[:limit]
        return contacts

    async def search_potential(self, query: str = "") -> dict:
        contacts = await self.list_potential(limit=0)
        if query:
            term = query.lower()
            contacts = [
                c for c in contacts
                if term in c.get("name", "").lower() or term in c.get("company", "").lower()
            ]
        return {"data": contacts}

    async def get_potential(self, row_index: Any) -> Optional[dict]:
        row_index = check_row_index(row_index)
        for contact in await self._potential_records():
            if contact["rowIndex"] == row_index:
                return contact
        return None

    async def potential_stats(self) -> dict:
        try:
            contacts = await self.raw_reader.read_table(POTENTIAL_CONTACTS, strict=True)
        except Exception as exc:
            logger.error("Potential contact stats unavailable: %s", exc)
            return {"total": 0, "pending": 0, "processed": 0, "dropped": 0}
        statuses = [c.get("status") or STATUS_PENDING for c in contacts]
        return {
            "total": len(statuses),
            "pending": statuses.count(STATUS_PENDING),
            "processed": statuses.count(STATUS_PROCESSED),
            "dropped": statuses.count(STATUS_DROPPED),
        }

    def _append_notes(self, actor: str) -> Callable[[dict, dict], dict]:
        today = self.clock().strftime("%Y-%m-%d")

        def merge(current: dict, fields: dict) -> dict:
            note = fields.get("notes")
            if not note:
                return fields
            entry = f"[{actor} {today}] {note}"
            old = current.get("notes", "")
            return {**fields, "notes": f"{old}\n{entry}" if old else entry}

        return merge

    async def update_potential(self, row_index: Any, payload: dict, actor: str) -> dict:
        """Rewrite a RAW row with payload merged in; notes are appended, not replaced."""
        await self.raw_writer.update_row(
            POTENTIAL_CONTACTS, row_index, payload, merge=self._append_notes(actor)
        )
        logger.info("Potential contact row %s updated by %s", row_index, actor)
        return {"success": True}

    async def mark_potential(self, row_index: Any, status: str, actor: str) -> dict:
        if status not in POTENTIAL_STATUSES:
            raise ValueError(f"Unknown status {status!r}; expected one of {POTENTIAL_STATUSES}")
        await self.raw_writer.update_cells(POTENTIAL_CONTACTS, row_index, {"status": status})
        logger.info("Potential contact row %s marked %s by %s", row_index, status, actor)
        return {"success": True}

    def invalidate_cache(self, key: Optional[str] = None) -> None:
        if key is None:
            self.resolver.invalidate_cache()
            self.raw_reader.invalidate_cache(POTENTIAL_CONTACTS.cache_key)
            return
        self.raw_reader.invalidate_cache(key)
        self.sql_reader.invalidate_cache(key)
        source = self.resolver.source
        source.legacy.reader.invalidate_cache(key)
