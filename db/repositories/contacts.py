"""Contact repository — crm.contacts column mapping."""
import threading
import time
from datetime import datetime
from typing import Optional

from datacore.stores import SqlTable


TABLE = "contacts"

# Used when a contact was typed in rather than promoted from the RAW pool
MANUAL_SOURCE = "MANUAL"


def to_record(row: dict) -> dict:
    """Map a crm.contacts row (snake_case) to the contact record shape."""
    return {
        "contactId": row.get("contact_id"),
        "sourceId": row.get("source_id"),
        "name": row.get("name"),
        "companyId": row.get("company_id"),
        "department": row.get("department"),
        "jobTitle": row.get("job_title"),
        "mobile": row.get("mobile"),
        "phone": row.get("phone"),
        "email": row.get("email"),
        "createdTime": row.get("created_time"),
        "updatedTime": row.get("updated_time"),
        "createdBy": row.get("created_by"),
        "updatedBy": row.get("updated_by"),
    }


CONTACTS = SqlTable(
    name=TABLE,
    cache_key="contacts",
    id_column="contact_id",
    to_record=to_record,
    id_field="contactId",
)


_id_lock = threading.Lock()
_last_id_ms = 0


def new_contact_id(now_ms: Optional[int] = None) -> str:
    """C + epoch milliseconds, strictly increasing within the process.

    Two ids requested in the same millisecond get consecutive values.
    """
    global _last_id_ms
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    with _id_lock:
        _last_id_ms = max(now_ms, _last_id_ms + 1)
        return f"C{_last_id_ms}"


def create_payload(data: dict, actor: str, now: datetime) -> dict:
    """Column values for a new contact.

    data keys: contactId|id, sourceId, name, companyId|company, department,
    jobTitle|position, mobile, phone|tel, email
    """
    return {
        "contact_id": data.get("contactId") or data.get("id") or new_contact_id(),
        "source_id": data.get("sourceId") or MANUAL_SOURCE,
        "name": data.get("name"),
        "company_id": data.get("companyId") or data.get("company") or None,
        "department": data.get("department") or "",
        "job_title": data.get("jobTitle") or data.get("position") or "",
        "mobile": data.get("mobile") or "",
        "phone": data.get("phone") or data.get("tel") or "",
        "email": data.get("email") or "",
        "created_by": actor,
        "updated_by": actor,
        "created_time": now,
        "updated_time": now,
    }


# field -> column, first alias present wins
_UPDATE_FIELDS = (
    (("name",), "name"),
    (("companyId", "company"), "company_id"),
    (("department",), "department"),
    (("jobTitle", "position"), "job_title"),
    (("mobile",), "mobile"),
    (("phone", "tel"), "phone"),
    (("email",), "email"),
)


def update_payload(data: dict, actor: str, now: datetime) -> dict:
    """Only the columns present in data, plus audit columns."""
    payload = {"updated_time": now, "updated_by": actor}
    for aliases, column in _UPDATE_FIELDS:
        for alias in aliases:
            if alias in data:
                payload[column] = data[alias]
                break
    return payload
