"""Company service — Official companies (relational first, sheet fallback)."""
import logging
import re
from datetime import datetime, timezone
from typing import Callable, Optional

from datacore.errors import ConflictError, NotFoundError
from datacore.resolver import DualSourceResolver, ReadSource
from datacore.writer import SqlWriter
from db.repositories import companies as company_repo
from schemas.company import Company

logger = logging.getLogger(__name__)

_LEGAL_SUFFIXES = re.compile(r"股份有限公司|有限公司|公司")
_PARENTHESIZED = re.compile(r"\(.*\)")


def normalize_company_name(name: Optional[str]) -> str:
    """Comparison key for company names: case, legal suffix and (...) are ignored."""
    if not name:
        return ""
    key = _LEGAL_SUFFIXES.sub("", name.lower().strip())
    return _PARENTHESIZED.sub("", key).strip()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompanyService:
    def __init__(
        self,
        source: ReadSource,
        sql_writer: SqlWriter,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.resolver = DualSourceResolver(
            source, Company.normalize, id_field="companyId", name="companies"
        )
        self.sql_writer = sql_writer
        self.clock = clock

    async def list(self) -> list[dict]:
        return await self.resolver.fetch_entities()

    async def get_by_id(self, company_id: str) -> Optional[dict]:
        return await self.resolver.fetch_by_id(company_id)

    async def find_by_name(self, name: str) -> Optional[dict]:
        target = normalize_company_name(name)
        if not target:
            return None
        for company in await self.list():
            if normalize_company_name(company.get("companyName")) == target:
                return company
        return None

    async def name_map(self) -> dict[str, str]:
        """companyId -> companyName, for joins."""
        return {
            c["companyId"]: c.get("companyName", "")
            for c in await self.list()
            if c.get("companyId")
        }

    async def create(self, name: str, payload: Optional[dict], actor: str) -> dict:
        """Create a company, or return the existing one with the same normalized name."""
        name = (name or "").strip()
        if not name:
            raise ValueError("Company name is required")
        existing = await self.find_by_name(name)
        if existing:
            logger.info("Company %r already exists as %s", name, existing["companyId"])
            return {
                "success": True,
                "id": existing["companyId"],
                "companyName": existing.get("companyName", ""),
                "existed": True,
                "data": existing,
            }

        company_id = company_repo.new_company_id()
        data = {**(payload or {}), "companyId": company_id, "companyName": name}
        await self.sql_writer.insert(
            company_repo.TABLE, company_repo.create_payload(data, actor, self.clock())
        )
        return {"success": True, "id": company_id, "companyName": name, "existed": False}

    async def update(self, company_id: str, payload: dict, actor: str) -> dict:
        current = await self.get_by_id(company_id)
        if current is None:
            raise NotFoundError(f"Company {company_id} not found")
        new_name = payload.get("companyName")
        if new_name is not None:
            clash = await self.find_by_name(new_name)
            if clash and clash["companyId"] != company_id:
                raise ConflictError(
                    f"Company name {new_name!r} is already used by {clash['companyId']}"
                )
        await self.sql_writer.update(
            company_repo.TABLE,
            {"company_id": company_id},
            company_repo.update_payload(payload, actor, self.clock()),
        )
        return {"success": True}

    async def delete(self, company_id: str, actor: str) -> dict:
        current = await self.get_by_id(company_id)
        if current is None:
            raise NotFoundError(f"Company {company_id} not found")
        await self.sql_writer.delete(company_repo.TABLE, {"company_id": company_id})
        logger.info("Company %s deleted by %s", company_id, actor)
        return {"success": True}

    def invalidate_cache(self) -> None:
        self.resolver.invalidate_cache()
