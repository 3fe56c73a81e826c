"""Promotion intent repository — crm.promotion_intents saga records."""
import uuid
from datetime import datetime
from typing import Callable

from datacore.reader import SqlReader
from datacore.stores import SqlTable
from datacore.writer import SqlWriter

TABLE = "promotion_intents"

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"


def to_record(row: dict) -> dict:
    return {
        "intentId": row.get("intent_id"),
        "sourceRef": row.get("source_ref"),
        "sourceFingerprint": row.get("source_fingerprint"),
        "officialId": row.get("official_id"),
        "action": row.get("action"),
        "status": row.get("status"),
        "attempts": row.get("attempts") or 0,
        "lastError": row.get("last_error"),
        "createdBy": row.get("created_by"),
        "createdTime": row.get("created_time"),
        "updatedTime": row.get("updated_time"),
    }


PROMOTION_INTENTS = SqlTable(
    name=TABLE,
    cache_key="promotionIntents",
    id_column="intent_id",
    to_record=to_record,
    id_field="intentId",
)


def intent_payload(source_ref: str, fingerprint: str, official_id: str, action: str,
                   actor: str, now: datetime) -> dict:
    return {
        "intent_id": uuid.uuid4().hex,
        "source_ref": source_ref,
        "source_fingerprint": fingerprint,
        "official_id": official_id,
        "action": action,
        "status": STATUS_PENDING,
        "attempts": 0,
        "created_by": actor,
        "created_time": now,
        "updated_time": now,
    }


class SqlIntentLog:
    """Promotion intent log kept in the relational store."""

    def __init__(self, reader: SqlReader, writer: SqlWriter, clock: Callable[[], datetime]):
        self.reader = reader
        self.writer = writer
        self.clock = clock

    async def open(self, source_ref: str, fingerprint: str, official_id: str,
                   action: str, actor: str) -> str:
        payload = intent_payload(source_ref, fingerprint, official_id, action, actor, self.clock())
        await self.writer.insert(TABLE, payload)
        return payload["intent_id"]

    async def complete(self, intent_id: str) -> None:
        await self.writer.update(
            TABLE,
            {"intent_id": intent_id},
            {"status": STATUS_COMPLETED, "last_error": None, "updated_time": self.clock()},
        )

    async def record_failure(self, intent_id: str, error: str) -> None:
        rows = await self.reader.query(PROMOTION_INTENTS, {"intent_id": intent_id})
        attempts = rows[0]["attempts"] + 1 if rows else 1
        await self.writer.update(
            TABLE,
            {"intent_id": intent_id},
            {"attempts": attempts, "last_error": error[:500], "updated_time": self.clock()},
        )

    async def pending(self) -> list[dict]:
        return await self.reader.query(PROMOTION_INTENTS, {"status": STATUS_PENDING})
