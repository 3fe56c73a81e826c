"""Company repository — crm.companies column mapping."""
import random
import time
from datetime import datetime

from datacore.stores import SqlTable

TABLE = "companies"


def to_record(row: dict) -> dict:
    return {
        "companyId": row.get("company_id"),
        "companyName": row.get("company_name"),
        "phone": row.get("phone"),
        "address": row.get("address"),
        "city": row.get("city"),
        "description": row.get("description"),
        "companyType": row.get("company_type"),
        "customerStage": row.get("customer_stage"),
        "interactionRating": row.get("interaction_rating"),
        "createdTime": row.get("created_time"),
        "updatedTime": row.get("updated_time"),
        "createdBy": row.get("created_by"),
        "updatedBy": row.get("updated_by"),
    }


COMPANIES = SqlTable(
    name=TABLE,
    cache_key="companies",
    id_column="company_id",
    to_record=to_record,
    id_field="companyId",
)


def new_company_id() -> str:
    """COMP_<epoch millis>_<0-999>."""
    return f"COMP_{int(time.time() * 1000)}_{random.randint(0, 999)}"


def create_payload(data: dict, actor: str, now: datetime) -> dict:
    """Column values for a new company; data carries the sheet-style field names."""
    if not data.get("companyId"):
        raise ValueError("companyId is required to create a company")
    return {
        "company_id": data["companyId"],
        "company_name": data.get("companyName"),
        "phone": data.get("phone") or "",
        "address": data.get("address") or "",
        "city": data.get("county") or data.get("city") or "",
        "description": data.get("introduction") or data.get("description") or "",
        "company_type": data.get("companyType") or "",
        "customer_stage": data.get("customerStage") or "New",
        "interaction_rating": data.get("engagementRating") or data.get("interactionRating") or "C",
        "created_by": actor,
        "updated_by": actor,
        "created_time": now,
        "updated_time": now,
    }


_UPDATE_FIELDS = (
    (("companyName",), "company_name"),
    (("phone",), "phone"),
    (("address",), "address"),
    (("county", "city"), "city"),
    (("introduction", "description"), "description"),
    (("companyType",), "company_type"),
    (("customerStage",), "customer_stage"),
    (("engagementRating", "interactionRating"), "interaction_rating"),
)


def update_payload(data: dict, actor: str, now: datetime) -> dict:
    payload = {"updated_time": now, "updated_by": actor}
    for aliases, column in _UPDATE_FIELDS:
        for alias in aliases:
            if alias in data:
                payload[column] = data[alias]
                break
    return payload
