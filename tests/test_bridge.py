"""Unit tests for RAW -> CORE promotion (Zone Lifecycle Bridge)."""
from unittest.mock import patch

import pytest

from datacore.bridge import parse_source_reference, source_reference
from datacore.errors import FatalUpstreamError, NotFoundError
from sheets.layout import RAW_CONTACTS
from tests.fakes import RAW_HEADER


def test_source_reference_round_trip():
    assert source_reference(5) == "RAW:5"
    assert parse_source_reference("RAW:5") == 5
    assert parse_source_reference("MANUAL") is None
    assert parse_source_reference("RAW:x") is None


class TestUpgrade:
    @pytest.mark.asyncio
    async def test_upgrade_row_five_then_get_by_id(self, harness, five_rows):
        h = harness(raw_rows=five_rows)

        result = await h.app.bridge.upgrade(5, {"department": "Sales"}, "alice")

        assert result["success"] is True
        assert result["id"].startswith("C")
        assert result["id"] != "5"
        assert result["sourceId"] == "RAW:5"
        assert result["warnings"] == []

        contact = await h.app.contacts.get_by_id(result["id"])
        assert contact["name"] == "Acme"
        assert contact["department"] == "Sales"
        assert contact["sourceId"] == "RAW:5"
        assert contact["position"] == "Buyer"
        assert contact["email"] == "buy@acme.test"

    @pytest.mark.asyncio
    async def test_upgrade_marks_raw_row_and_completes_intent(self, harness, five_rows):
        h = harness(raw_rows=five_rows)

        result = await h.app.bridge.upgrade(5, {}, "alice")

        assert h.raw_cell(5, "status") == "Processed"
        [intent] = h.sql_store.tables["promotion_intents"]
        assert intent["status"] == "completed"
        assert intent["official_id"] == result["id"]
        assert intent["source_ref"] == "RAW:5"
        [row] = h.sql_store.tables["contacts"]
        assert row["created_by"] == "alice"

    @pytest.mark.asyncio
    async def test_overrides_take_precedence(self, harness, five_rows):
        h = harness(raw_rows=five_rows)

        await h.app.bridge.upgrade(5, {"name": "Acme Corrected", "email": "ceo@acme.test"}, "alice")

        [row] = h.sql_store.tables["contacts"]
        assert row["name"] == "Acme Corrected"
        assert row["email"] == "ceo@acme.test"

    @pytest.mark.asyncio
    async def test_unknown_row_fails(self, harness, five_rows):
        h = harness(raw_rows=five_rows)

        with pytest.raises(NotFoundError):
            await h.app.bridge.upgrade(40, {}, "alice")
        assert "contacts" not in h.sql_store.tables

    @pytest.mark.asyncio
    async def test_relational_write_failure_propagates(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        h.sql_store.write_errors["contacts"] = FatalUpstreamError("permission denied")

        with pytest.raises(FatalUpstreamError):
            await h.app.bridge.upgrade(5, {}, "alice")
        assert h.raw_cell(5, "status") == "Pending"

    @pytest.mark.asyncio
    async def test_flag_failure_is_partial_success(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        h.raw_store.write_error = FatalUpstreamError("sheet is protected", status=403)

        result = await h.app.bridge.upgrade(5, {}, "alice")

        assert result["success"] is True
        assert len(result["warnings"]) == 1
        assert "not marked Processed" in result["warnings"][0]
        [intent] = h.sql_store.tables["promotion_intents"]
        assert intent["status"] == "pending"
        assert intent["attempts"] == 1
        assert "protected" in intent["last_error"]

    @pytest.mark.asyncio
    async def test_retry_pending_completes_intent(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        h.raw_store.write_error = FatalUpstreamError("sheet is protected", status=403)
        await h.app.bridge.upgrade(5, {}, "alice")

        h.raw_store.write_error = None
        completed = await h.app.bridge.retry_pending("ops")

        assert completed == 1
        assert h.raw_cell(5, "status") == "Processed"
        assert h.sql_store.tables["promotion_intents"][0]["status"] == "completed"
        assert await h.app.bridge.retry_pending("ops") == 0

    @pytest.mark.asyncio
    async def test_retry_follows_row_shifted_by_delete(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        h.raw_store.write_error = FatalUpstreamError("sheet is protected", status=403)
        await h.app.bridge.upgrade(5, {}, "alice")
        h.raw_store.write_error = None
        # Bob (row 3) is deleted: Acme moves up to row 4, Eve to row 5
        del h.raw_store.sheets[RAW_CONTACTS][2]

        completed = await h.app.bridge.retry_pending("ops")

        assert completed == 1
        assert (h.raw_cell(4, "name"), h.raw_cell(4, "status")) == ("Acme", "Processed")
        assert (h.raw_cell(5, "name"), h.raw_cell(5, "status")) == ("Eve", "Pending")
        [intent] = h.sql_store.tables["promotion_intents"]
        assert intent["status"] == "completed"
        assert intent["source_fingerprint"] == "acme|acme inc|2026-01-01t09:00:00"

    @pytest.mark.asyncio
    async def test_retry_leaves_intent_pending_when_record_is_gone(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        h.raw_store.write_error = FatalUpstreamError("sheet is protected", status=403)
        await h.app.bridge.upgrade(5, {}, "alice")
        h.raw_store.write_error = None
        del h.raw_store.sheets[RAW_CONTACTS][4]

        assert await h.app.bridge.retry_pending("ops") == 0

        assert [row[RAW_HEADER.index("status")] for row in h.raw_store.sheets[RAW_CONTACTS][1:]] == [
            "Pending", "Pending", "Pending", "Pending",
        ]
        [intent] = h.sql_store.tables["promotion_intents"]
        assert intent["status"] == "pending"
        assert intent["attempts"] == 2
        assert "no longer exists" in intent["last_error"]

    @pytest.mark.asyncio
    async def test_intent_failure_still_flags_row(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        h.sql_store.write_errors["promotion_intents"] = FatalUpstreamError("no such table")

        result = await h.app.bridge.upgrade(5, {}, "alice")

        assert result["success"] is True
        assert any("intent" in w for w in result["warnings"])
        assert h.raw_cell(5, "status") == "Processed"

    @pytest.mark.asyncio
    async def test_same_row_can_be_promoted_twice(self, harness, five_rows):
        h = harness(raw_rows=five_rows)

        with patch("db.repositories.contacts.time.time", return_value=1_700_000_000.0):
            first = await h.app.bridge.upgrade(5, {}, "alice")
            second = await h.app.bridge.upgrade(5, {}, "alice")

        assert first["id"] != second["id"]
        assert int(second["id"][1:]) > int(first["id"][1:])
        assert len(h.sql_store.tables["contacts"]) == 2
        assert first["sourceId"] == second["sourceId"] == "RAW:5"


class TestLink:
    @pytest.mark.asyncio
    async def test_link_creates_minimal_official_and_link(self, harness, five_rows):
        h = harness(raw_rows=five_rows)

        result = await h.app.bridge.link(5, "OPP1", "alice")

        assert result["reused"] is False
        [contact] = h.sql_store.tables["contacts"]
        assert contact["contact_id"] == result["id"]
        assert contact["name"] == "Acme"
        assert contact["job_title"] == "Buyer"
        assert contact["source_id"] == "RAW:5"
        [link] = h.sql_store.tables["opportunity_contact_links"]
        assert (link["opportunity_id"], link["contact_id"], link["link_status"]) == (
            "OPP1", result["id"], "active",
        )
        assert h.raw_cell(5, "status") == "Processed"

    @pytest.mark.asyncio
    async def test_link_reuses_promoted_contact(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        upgraded = await h.app.bridge.upgrade(5, {}, "alice")

        result = await h.app.bridge.link(5, "OPP2", "bob")

        assert result["reused"] is True
        assert result["id"] == upgraded["id"]
        assert len(h.sql_store.tables["contacts"]) == 1

        linked = await h.app.contacts.get_linked_contacts("OPP2")
        assert [c["contactId"] for c in linked] == [upgraded["id"]]

    @pytest.mark.asyncio
    async def test_link_requires_aggregate(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        with pytest.raises(ValueError):
            await h.app.bridge.link(5, "", "alice")


class TestFile:
    @pytest.mark.asyncio
    async def test_file_marks_dropped(self, harness, five_rows):
        h = harness(raw_rows=five_rows)

        result = await h.app.bridge.file(3, "alice")

        assert result == {"success": True, "rowIndex": 3, "status": "Dropped"}
        assert h.raw_cell(3, "status") == "Dropped"
        assert "contacts" not in h.sql_store.tables

    @pytest.mark.asyncio
    async def test_file_errors_propagate(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        h.raw_store.write_error = FatalUpstreamError("sheet is protected", status=403)

        with pytest.raises(FatalUpstreamError):
            await h.app.bridge.file(3, "alice")

    @pytest.mark.asyncio
    async def test_invalid_row(self, harness, five_rows):
        h = harness(raw_rows=five_rows)
        with pytest.raises(ValueError):
            await h.app.bridge.file(1, "alice")
