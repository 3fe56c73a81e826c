"""Unit tests for the contact service (Official + Potential contacts)."""
import asyncio
from datetime import datetime, timezone

import pytest

from datacore.errors import NotFoundError, TransientUpstreamError
from sheets.layout import CONTACT_LIST, COMPANY_LIST, OPP_CONTACT_LINKS
from tests.fakes import raw_row

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def contact_row(contact_id, name, company_id="", **extra):
    return {
        "contact_id": contact_id,
        "source_id": "MANUAL",
        "name": name,
        "company_id": company_id,
        "department": "",
        "job_title": extra.pop("job_title", ""),
        "mobile": "",
        "phone": "",
        "email": "",
        "created_time": NOW,
        "updated_time": NOW,
        "created_by": "seed",
        "updated_by": "seed",
        **extra,
    }


def company_row(company_id, name):
    return {"company_id": company_id, "company_name": name, "created_time": NOW}


class TestOfficialContacts:
    @pytest.mark.asyncio
    async def test_list_joins_company_names_and_paginates(self, harness):
        rows = [contact_row(f"C{i}", f"Person {i}", "COMP_1") for i in range(25)]
        h = harness(tables={
            "contacts": rows,
            "companies": [company_row("COMP_1", "Acme")],
        })
        h.app.contacts.page_size = 10

        page = await h.app.contacts.list_official(page=3)

        assert [c["contactId"] for c in page["data"]] == ["C20", "C21", "C22", "C23", "C24"]
        assert page["data"][0]["companyName"] == "Acme"
        assert page["pagination"] == {
            "current": 3, "total": 3, "totalItems": 25, "hasNext": False, "hasPrev": True,
        }

    @pytest.mark.asyncio
    async def test_query_matches_name_or_company_name(self, harness):
        h = harness(tables={
            "contacts": [
                contact_row("C1", "Ann", "COMP_1"),
                contact_row("C2", "Bob", "COMP_2"),
                contact_row("C3", "Annette", "COMP_2"),
            ],
            "companies": [company_row("COMP_1", "Acme"), company_row("COMP_2", "Globex")],
        })

        by_name = await h.app.contacts.list_official("ann")
        by_company = await h.app.contacts.list_official("acme")

        assert [c["contactId"] for c in by_name["data"]] == ["C1", "C3"]
        assert [c["contactId"] for c in by_company["data"]] == ["C1"]

    @pytest.mark.asyncio
    async def test_unknown_company_id_is_shown_as_is(self, harness):
        h = harness(tables={"contacts": [contact_row("C1", "Ann", "COMP_GONE")]})

        [contact] = (await h.app.contacts.list_official())["data"]

        assert contact["companyName"] == "COMP_GONE"

    @pytest.mark.asyncio
    async def test_falls_back_to_sheet_when_relational_fails(self, harness):
        h = harness(core_sheets={
            CONTACT_LIST: [["contactId"], ["C9", "RAW:4", "Sheet Person", "COMP_1"]],
            COMPANY_LIST: [["companyId"], ["COMP_1", "Sheet Co"]],
            OPP_CONTACT_LINKS: [["linkId"]],
        })
        h.sql_store.query_errors = [
            TransientUpstreamError("connection reset", status=503),
            TransientUpstreamError("connection reset", status=503),
        ]

        [contact] = await h.app.contacts.list_all_official()

        assert contact["contactId"] == "C9"
        assert contact["sourceId"] == "RAW:4"
        assert contact["rowIndex"] == 2

    @pytest.mark.asyncio
    async def test_concurrent_lists_share_one_upstream_read(self, harness):
        h = harness(tables={"contacts": [contact_row("C1", "Ann")]})
        h.sql_store.query_delay = 0.01

        results = await asyncio.gather(*(h.app.contacts.list_official() for _ in range(5)))

        assert all(r["pagination"]["totalItems"] == 1 for r in results)
        contact_reads = [q for q in h.sql_store.queries if q == ("contacts", None)]
        assert len(contact_reads) == 1

    @pytest.mark.asyncio
    async def test_create_then_get(self, harness):
        h = harness()

        result = await h.app.contacts.create(
            {"name": "Dana", "position": "CTO", "tel": "02-1234"}, "alice"
        )
        contact = await h.app.contacts.get_by_id(result["id"])

        assert contact["name"] == "Dana"
        assert contact["position"] == "CTO"
        assert contact["phone"] == "02-1234"
        assert contact["sourceId"] == "MANUAL"
        assert contact["creator"] == "alice"

    @pytest.mark.asyncio
    async def test_update_is_partial(self, harness):
        h = harness(tables={"contacts": [contact_row("C1", "Ann", email="ann@old.test")]})

        await h.app.contacts.update("C1", {"department": "Ops"}, "bob")

        [row] = h.sql_store.tables["contacts"]
        assert row["department"] == "Ops"
        assert row["email"] == "ann@old.test"
        assert row["updated_by"] == "bob"

    @pytest.mark.asyncio
    async def test_update_and_delete_of_missing_contact(self, harness):
        h = harness(tables={"contacts": []})

        with pytest.raises(NotFoundError):
            await h.app.contacts.update("C404", {"name": "x"}, "bob")
        with pytest.raises(NotFoundError):
            await h.app.contacts.delete("C404", "bob")

    @pytest.mark.asyncio
    async def test_find_by_source(self, harness):
        row = contact_row("C1", "Ann")
        row["source_id"] = "RAW:7"
        h = harness(tables={"contacts": [row]})

        found = await h.app.contacts.find_by_source("RAW:7")

        assert found["contactId"] == "C1"
        assert await h.app.contacts.find_by_source("RAW:8") is None

    @pytest.mark.asyncio
    async def test_linked_contacts_carry_card_image(self, harness):
        h = harness(
            raw_rows=[raw_row("Ann", "Acme", driveLink="https://drive.test/ann")],
            tables={
                "contacts": [contact_row("C1", "Ann", "COMP_1"), contact_row("C2", "Bob")],
                "companies": [company_row("COMP_1", "Acme")],
                "opportunity_contact_links": [
                    {"opportunity_id": "OPP1", "contact_id": "C1", "link_status": "active"},
                    {"opportunity_id": "OPP1", "contact_id": "C2", "link_status": "removed"},
                ],
            },
        )

        linked = await h.app.contacts.get_linked_contacts("OPP1")

        assert [c["contactId"] for c in linked] == ["C1"]
        assert linked[0]["driveLink"] == "https://drive.test/ann"
        assert linked[0]["companyName"] == "Acme"
        assert await h.app.contacts.get_linked_contacts("OPP2") == []


class TestPotentialContacts:
    @pytest.mark.asyncio
    async def test_list_newest_first_and_unparseable_last(self, harness):
        h = harness(raw_rows=[
            raw_row("Old", "A", created="2025-12-01 10:00"),
            raw_row("Broken", "B", created="not a date"),
            raw_row("New", "C", created="2026-02-01T08:00:00"),
            raw_row("", ""),
        ])

        contacts = await h.app.contacts.list_potential()

        assert [c["name"] for c in contacts] == ["New", "Old", "Broken"]
        assert [c["rowIndex"] for c in contacts] == [4, 2, 3]

    @pytest.mark.asyncio
    async def test_limit_and_search(self, harness):
        h = harness(raw_rows=[
            raw_row("Ann", "Acme", created="2026-01-03"),
            raw_row("Bob", "Acme", created="2026-01-02"),
            raw_row("Cid", "Globex", created="2026-01-01"),
        ])

        assert len(await h.app.contacts.list_potential(limit=2)) == 2
        found = await h.app.contacts.search_potential("acme")
        assert [c["name"] for c in found["data"]] == ["Ann", "Bob"]

    @pytest.mark.asyncio
    async def test_get_potential(self, harness):
        h = harness(raw_rows=[raw_row("Ann", "Acme"), raw_row("Bob", "Beta")])

        contact = await h.app.contacts.get_potential("3")

        assert contact["name"] == "Bob"
        assert await h.app.contacts.get_potential(9) is None

    @pytest.mark.asyncio
    async def test_stats_count_blank_status_as_pending(self, harness):
        h = harness(raw_rows=[
            raw_row("Ann", "A"),
            raw_row("Bob", "B", status=""),
            raw_row("Cid", "C", status="Processed"),
            raw_row("Dee", "D", status="Dropped"),
        ])

        stats = await h.app.contacts.potential_stats()

        assert stats == {"total": 4, "pending": 2, "processed": 1, "dropped": 1}

    @pytest.mark.asyncio
    async def test_stats_zero_when_sheet_unreachable(self, harness):
        h = harness(raw_rows=[raw_row("Ann", "A")])
        h.raw_store.read_errors = [TransientUpstreamError("backend error", status=500)] * 2

        stats = await h.app.contacts.potential_stats()

        assert stats == {"total": 0, "pending": 0, "processed": 0, "dropped": 0}

    @pytest.mark.asyncio
    async def test_update_potential_appends_notes(self, harness):
        h = harness(raw_rows=[raw_row("Ann", "Acme", notes="met at expo")])

        await h.app.contacts.update_potential(2, {"notes": "called back", "email": "a@acme.test"}, "bob")

        assert h.raw_cell(2, "notes") == "met at expo\n[bob 2026-03-14] called back"
        assert h.raw_cell(2, "email") == "a@acme.test"
        assert h.raw_cell(2, "name") == "Ann"

    @pytest.mark.asyncio
    async def test_update_potential_first_note(self, harness):
        h = harness(raw_rows=[raw_row("Ann", "Acme")])

        await h.app.contacts.update_potential(2, {"notes": "first"}, "bob")

        assert h.raw_cell(2, "notes") == "[bob 2026-03-14] first"

    @pytest.mark.asyncio
    async def test_update_potential_missing_row(self, harness):
        h = harness(raw_rows=[raw_row("Ann", "Acme")])

        with pytest.raises(NotFoundError):
            await h.app.contacts.update_potential(8, {"notes": "x"}, "bob")

    @pytest.mark.asyncio
    async def test_list_after_update_is_fresh(self, harness):
        h = harness(raw_rows=[raw_row("Ann", "Acme")])
        await h.app.contacts.list_potential()

        await h.app.contacts.mark_potential(2, "Dropped", "bob")
        [contact] = await h.app.contacts.list_potential()

        assert contact["status"] == "Dropped"

    @pytest.mark.asyncio
    async def test_mark_potential_rejects_unknown_status(self, harness):
        h = harness(raw_rows=[raw_row("Ann", "Acme")])

        with pytest.raises(ValueError):
            await h.app.contacts.mark_potential(2, "Archived", "bob")
        assert h.raw_store.writes == []
