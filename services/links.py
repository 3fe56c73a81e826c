"""Opportunity-contact link service."""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from datacore.resolver import DualSourceResolver, ReadSource
from datacore.writer import SqlWriter
from db.repositories import links as link_repo
from schemas.link import ContactLink

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OpportunityLinkService:
    def __init__(
        self,
        source: ReadSource,
        sql_writer: SqlWriter,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.resolver = DualSourceResolver(
            source, ContactLink.normalize, id_field="linkId", name="opportunity-links"
        )
        self.sql_writer = sql_writer
        self.clock = clock

    async def list_links(
        self, opportunity_id: Optional[str] = None, active_only: bool = False
    ) -> list[dict]:
        links = await self.resolver.fetch_entities()
        if opportunity_id is not None:
            links = [item for item in links if item.get("opportunityId") == opportunity_id]
        if active_only:
            links = [item for item in links if item.get("status") == link_repo.STATUS_ACTIVE]
        return links

    async def link(self, opportunity_id: str, contact_id: str, actor: str) -> dict:
        """Create or re-activate the link (upsert on the pair)."""
        if not opportunity_id or not contact_id:
            raise ValueError("opportunity_id and contact_id are required")
        await self.sql_writer.upsert(
            link_repo.TABLE,
            link_repo.link_payload(opportunity_id, contact_id, actor, self.clock()),
            link_repo.CONFLICT_COLUMNS,
        )
        return {"success": True}

    async def unlink(self, opportunity_id: str, contact_id: str, actor: str) -> dict:
        """Remove the link row entirely."""
        count = await self.sql_writer.delete(
            link_repo.TABLE,
            {"opportunity_id": opportunity_id, "contact_id": contact_id},
        )
        logger.info("Unlinked %s <-> %s by %s (%d rows)", opportunity_id, contact_id, actor, count)
        return {"success": True, "removed": count}

    def invalidate_cache(self) -> None:
        self.resolver.invalidate_cache()
