"""Zone Lifecycle Bridge — RAW (Potential) to CORE (Official) promotion.

A Potential record lives in the legacy sheet and is identified by its row;
an Official record lives in the relational store under a generated id.
Promotion copies data across, it never moves it:

    1. resolve the Potential row through the cached reader
    2. create the Official record (relational store, errors propagate)
    3. persist a promotion intent (status pending)
    4. flag the RAW row, then complete the intent

Steps 3 and 4 are best effort. When they fail the caller still gets the new
id, with a warning; pending intents are re-applied by retry_pending().
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from datacore.errors import NotFoundError
from datacore.reader import POSITION_FIELD, Record, SheetReader, SqlReader
from datacore.stores import SheetTable, SqlTable
from datacore.writer import SheetWriter, SqlWriter, check_row_index

logger = logging.getLogger(__name__)

SOURCE_PREFIX = "RAW:"

ACTION_UPGRADE = "upgrade"
ACTION_LINK = "link"


def source_reference(row_index: int) -> str:
    """Audit reference from an Official record back to its RAW row."""
    return f"{SOURCE_PREFIX}{row_index}"


def parse_source_reference(ref: Any) -> Optional[int]:
    if not isinstance(ref, str) or not ref.startswith(SOURCE_PREFIX):
        return None
    try:
        return int(ref[len(SOURCE_PREFIX):])
    except ValueError:
        return None


class IntentLog(Protocol):
    """Persisted record of promotions whose RAW flag write is outstanding."""

    async def open(self, source_ref: str, fingerprint: str, official_id: str,
                   action: str, actor: str) -> str: ...

    async def complete(self, intent_id: str) -> None: ...

    async def record_failure(self, intent_id: str, error: str) -> None: ...

    async def pending(self) -> list[Record]: ...


@dataclass(frozen=True)
class PotentialZone:
    reader: SheetReader
    writer: SheetWriter
    table: SheetTable
    status_field: str = "status"
    processed: str = "Processed"
    dropped: str = "Dropped"
    # Row numbers shift when rows above are deleted; these fields do not.
    identity_fields: tuple = ("name", "company", "createdTime")

    def fingerprint(self, record: dict) -> str:
        return "|".join(
            str(record.get(name) or "").strip().lower() for name in self.identity_fields
        )


@dataclass(frozen=True)
class OfficialZone:
    """Where Official records are created.

    build_payload(fields, actor, now) turns merged record fields into column
    values; minimal_fields are copied when link() has to create a record.
    """

    reader: SqlReader
    writer: SqlWriter
    table: SqlTable
    build_payload: Callable[[dict, str, datetime], dict]
    source_field: str = "sourceId"
    source_column: str = "source_id"
    minimal_fields: tuple = ("name", "company", "position", "phone", "mobile", "email")


@dataclass(frozen=True)
class LinkZone:
    writer: SqlWriter
    table: SqlTable
    build_payload: Callable[[str, str, str, datetime], dict]
    conflict_columns: list = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ZoneLifecycleBridge:
    """Potential -> Official state machine for one promotable entity."""

    def __init__(
        self,
        potential: PotentialZone,
        official: OfficialZone,
        links: LinkZone,
        intents: IntentLog,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.potential = potential
        self.official = official
        self.links = links
        self.intents = intents
        self.clock = clock

    async def _resolve(self, row_index: int) -> Record:
        records = await self.potential.reader.read_table(self.potential.table, strict=True)
        for record in records:
            if record.get(POSITION_FIELD) == row_index:
                return record
        raise NotFoundError(f"Potential record at row {row_index} not found")

    async def _create_official(self, fields: dict, actor: str) -> str:
        payload = self.official.build_payload(fields, actor, self.clock())
        row = await self.official.writer.insert(self.official.table.name, payload)
        return row[self.official.table.id_column]

    async def _open_intent(self, source_ref: str, fingerprint: str, official_id: str,
                           action: str, actor: str, warnings: list) -> Optional[str]:
        try:
            return await self.intents.open(source_ref, fingerprint, official_id, action, actor)
        except Exception as exc:
            logger.warning("Promotion intent for %s -> %s not recorded: %s",
                           source_ref, official_id, exc)
            warnings.append(f"promotion intent not recorded: {exc}")
            return None

    async def _flag_processed(self, row_index: int, intent_id: Optional[str],
                              warnings: list) -> None:
        zone = self.potential
        try:
            await zone.writer.update_cells(zone.table, row_index, {zone.status_field: zone.processed})
        except Exception as exc:
            logger.warning(
                "CrossStoreInconsistency: RAW row %d not flagged %s (intent %s): %s",
                row_index, zone.processed, intent_id or "-", exc,
            )
            warnings.append(f"RAW row {row_index} was not marked {zone.processed}: {exc}")
            if intent_id:
                await self._note_failure(intent_id, exc)
            return
        if intent_id:
            try:
                await self.intents.complete(intent_id)
            except Exception as exc:
                logger.warning("Promotion intent %s not completed: %s", intent_id, exc)
                warnings.append(f"promotion intent {intent_id} left pending: {exc}")

    async def _note_failure(self, intent_id: str, exc: Exception) -> None:
        try:
            await self.intents.record_failure(intent_id, str(exc))
        except Exception as log_exc:
            logger.warning("Could not record failure on intent %s: %s", intent_id, log_exc)

    async def upgrade(self, row_index: Any, overrides: Optional[dict], actor: str) -> dict:
        """Promote a Potential record to a new Official record.

        overrides take precedence over the RAW fields. Promoting the same row
        again creates another Official record.
        """
        row_index = check_row_index(row_index)
        potential = await self._resolve(row_index)
        source_ref = source_reference(row_index)

        fields = {k: v for k, v in potential.items() if k != POSITION_FIELD}
        fields.update(overrides or {})
        fields[self.official.source_field] = source_ref
        official_id = await self._create_official(fields, actor)
        logger.info("Upgraded %s to %s (by %s)", source_ref, official_id, actor)

        warnings: list[str] = []
        intent_id = await self._open_intent(
            source_ref, self.potential.fingerprint(potential), official_id,
            ACTION_UPGRADE, actor, warnings,
        )
        await self._flag_processed(row_index, intent_id, warnings)
        return {
            "success": True,
            "id": official_id,
            "sourceId": source_ref,
            "warnings": warnings,
        }

    async def link(self, row_index: Any, aggregate_id: str, actor: str) -> dict:
        """Attach a Potential record to an aggregate (e.g. an opportunity).

        An Official record already carrying this row's source reference is
        reused; otherwise a minimal one is created for the link to point at.
        """
        if not aggregate_id:
            raise ValueError("aggregate_id is required")
        row_index = check_row_index(row_index)
        potential = await self._resolve(row_index)
        source_ref = source_reference(row_index)
        official = self.official

        existing = await official.reader.query(official.table, {official.source_column: source_ref})
        if existing:
            official_id = existing[0][official.table.id_field]
            reused = True
        else:
            fields = {k: potential.get(k) for k in official.minimal_fields if potential.get(k)}
            fields[official.source_field] = source_ref
            official_id = await self._create_official(fields, actor)
            reused = False

        payload = self.links.build_payload(aggregate_id, official_id, actor, self.clock())
        await self.links.writer.upsert(self.links.table.name, payload, self.links.conflict_columns)
        logger.info("Linked %s (%s) to %s (by %s)", source_ref, official_id, aggregate_id, actor)

        warnings: list[str] = []
        intent_id = await self._open_intent(
            source_ref, self.potential.fingerprint(potential), official_id,
            ACTION_LINK, actor, warnings,
        )
        await self._flag_processed(row_index, intent_id, warnings)
        return {
            "success": True,
            "id": official_id,
            "sourceId": source_ref,
            "aggregateId": aggregate_id,
            "reused": reused,
            "warnings": warnings,
        }

    async def file(self, row_index: Any, actor: str) -> dict:
        """Archive a Potential record without promoting it."""
        row_index = check_row_index(row_index)
        await self._resolve(row_index)
        zone = self.potential
        await zone.writer.update_cells(zone.table, row_index, {zone.status_field: zone.dropped})
        logger.info("Filed RAW row %d as %s (by %s)", row_index, zone.dropped, actor)
        return {"success": True, "rowIndex": row_index, "status": zone.dropped}

    def _locate(self, records: list[Record], row_index: int, fingerprint: Optional[str]) -> int:
        """Current row of the promoted record: its original row if it still
        matches, else the one row carrying the same fingerprint."""
        if not fingerprint:
            raise NotFoundError(f"RAW row {row_index} cannot be verified (no fingerprint)")
        matches = [
            r[POSITION_FIELD] for r in records if self.potential.fingerprint(r) == fingerprint
        ]
        if row_index in matches:
            return row_index
        if len(matches) == 1:
            logger.info("RAW record moved from row %d to row %d", row_index, matches[0])
            return matches[0]
        if matches:
            raise NotFoundError(f"RAW record of row {row_index} is ambiguous (rows {matches})")
        raise NotFoundError(f"RAW record of row {row_index} no longer exists")

    async def retry_pending(self, actor: str) -> int:
        """Re-apply the RAW flag write of every pending intent; returns how many completed.

        Rows are matched by fingerprint, since deleting a row above the
        promoted one shifts it up.
        """
        zone = self.potential
        pending = await self.intents.pending()
        if not pending:
            return 0
        records = await zone.reader.scan_table(zone.table)
        completed = 0
        for intent in pending:
            intent_id = intent["intentId"]
            row_index = parse_source_reference(intent.get("sourceRef"))
            if row_index is None:
                logger.warning("Intent %s has unusable source %r", intent_id, intent.get("sourceRef"))
                continue
            try:
                current = self._locate(records, row_index, intent.get("sourceFingerprint"))
                await zone.writer.update_cells(zone.table, current, {zone.status_field: zone.processed})
                await self.intents.complete(intent_id)
            except Exception as exc:
                logger.warning("Retry of promotion intent %s failed: %s", intent_id, exc)
                await self._note_failure(intent_id, exc)
                continue
            completed += 1
        logger.info("Retried promotion intents: %d completed (by %s)", completed, actor)
        return completed
