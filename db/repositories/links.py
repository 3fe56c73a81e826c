"""Opportunity-contact link repository — crm.opportunity_contact_links."""
from datetime import datetime

from datacore.stores import SqlTable

TABLE = "opportunity_contact_links"
CONFLICT_COLUMNS = ["opportunity_id", "contact_id"]

STATUS_ACTIVE = "active"
STATUS_REMOVED = "removed"


def to_record(row: dict) -> dict:
    opportunity_id = row.get("opportunity_id")
    contact_id = row.get("contact_id")
    return {
        "linkId": f"{opportunity_id}:{contact_id}",
        "opportunityId": opportunity_id,
        "contactId": contact_id,
        "status": row.get("link_status"),
        "createTime": row.get("created_time"),
        "creator": row.get("created_by"),
        "updatedTime": row.get("updated_time"),
        "updatedBy": row.get("updated_by"),
    }


LINKS = SqlTable(
    name=TABLE,
    cache_key="oppContactLinks",
    id_column="opportunity_id",
    to_record=to_record,
    id_field="linkId",
)


def link_payload(opportunity_id: str, contact_id: str, actor: str, now: datetime) -> dict:
    """Upsert values: re-linking a removed pair makes it active again."""
    return {
        "opportunity_id": opportunity_id,
        "contact_id": contact_id,
        "link_status": STATUS_ACTIVE,
        "updated_time": now,
        "updated_by": actor,
    }
