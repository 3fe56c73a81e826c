"""Legacy spreadsheet layouts: sheet names, column positions, row parsers.

All sheets have one header row, so data row i (0-based) is sheet row i + 2.
"""
from datacore.stores import Row, SheetTable

# ---------------------------------------------------------------------------
# Sheet names
# ---------------------------------------------------------------------------

RAW_CONTACTS = "Raw_Data"
CONTACT_LIST = "Contact_List"
COMPANY_LIST = "Company_List"
OPP_CONTACT_LINKS = "Opportunity_Contact_Link"
OPPORTUNITIES = "Opportunities"
WEEKLY_BUSINESS = "Weekly_Business"
EVENT_LOG_SHEETS = (
    "Event_Logs_General",
    "Event_Logs_IOT",
    "Event_Logs_DT",
    "Event_Logs_DX",
    "Event_Logs_Summary",
)

# RAW contact status flags
STATUS_PENDING = "Pending"
STATUS_PROCESSED = "Processed"
STATUS_DROPPED = "Dropped"


def _cell(row: Row, index: int) -> str:
    if index < len(row) and row[index] is not None:
        return row[index]
    return ""


def _is_blank(row: Row) -> bool:
    return not any(str(v).strip() for v in row if v is not None)


def _parser(columns: dict[str, int], with_position: bool):
    def parse(row: Row, index: int):
        if _is_blank(row):
            return None
        record = {name: _cell(row, col) for name, col in columns.items()}
        if with_position:
            record["rowIndex"] = index + 2
        return record

    return parse


# ---------------------------------------------------------------------------
# RAW zone: potential contacts (business-card intake), A:Y
# ---------------------------------------------------------------------------

RAW_CONTACT_COLUMNS = {
    "createdTime": 0,
    "name": 1,
    "company": 2,
    "position": 3,
    "department": 4,
    "phone": 5,
    "mobile": 6,
    "email": 7,
    "website": 8,
    "address": 9,
    "confidence": 10,
    "driveLink": 11,
    "status": 12,
    "notes": 13,
    "lineUserId": 14,
    "userNickname": 15,
}

_parse_raw_contact_base = _parser(RAW_CONTACT_COLUMNS, with_position=True)


def parse_raw_contact(row: Row, index: int):
    record = _parse_raw_contact_base(row, index)
    if record is not None:
        record["cardImage"] = record["driveLink"]
    return record


POTENTIAL_CONTACTS = SheetTable(
    sheet_name=RAW_CONTACTS,
    cache_key="contacts",
    width=25,
    columns=RAW_CONTACT_COLUMNS,
    parse_row=parse_raw_contact,
)

# ---------------------------------------------------------------------------
# CORE zone, legacy copies (read fallback only)
# ---------------------------------------------------------------------------

CONTACT_LIST_COLUMNS = {
    "contactId": 0,
    "sourceId": 1,
    "name": 2,
    "companyId": 3,
    "department": 4,
    "position": 5,
    "mobile": 6,
    "phone": 7,
    "email": 8,
    "createdTime": 9,
    "lastUpdateTime": 10,
    "creator": 11,
    "lastModifier": 12,
}

OFFICIAL_CONTACTS = SheetTable(
    sheet_name=CONTACT_LIST,
    cache_key="contactList",
    width=13,
    columns=CONTACT_LIST_COLUMNS,
    parse_row=_parser(CONTACT_LIST_COLUMNS, with_position=True),
)

COMPANY_LIST_COLUMNS = {
    "companyId": 0,
    "companyName": 1,
    "phone": 2,
    "address": 3,
    "createdTime": 4,
    "lastUpdateTime": 5,
    "county": 6,
    "creator": 7,
    "lastModifier": 8,
    "introduction": 9,
    "companyType": 10,
    "customerStage": 11,
    "engagementRating": 12,
}

COMPANIES = SheetTable(
    sheet_name=COMPANY_LIST,
    cache_key="companyList",
    width=13,
    columns=COMPANY_LIST_COLUMNS,
    parse_row=_parser(COMPANY_LIST_COLUMNS, with_position=True),
)

OPP_CONTACT_LINK_COLUMNS = {
    "linkId": 0,
    "opportunityId": 1,
    "contactId": 2,
    "createTime": 3,
    "status": 4,
    "creator": 5,
}

OPPORTUNITY_CONTACT_LINKS = SheetTable(
    sheet_name=OPP_CONTACT_LINKS,
    cache_key="oppContactLinks",
    width=6,
    columns=OPP_CONTACT_LINK_COLUMNS,
    parse_row=_parser(OPP_CONTACT_LINK_COLUMNS, with_position=False),
)

# ---------------------------------------------------------------------------
# Sheet -> reader cache keys. Several sheets may share one key.
# ---------------------------------------------------------------------------

SHEET_CACHE_KEYS = {
    RAW_CONTACTS: ("contacts",),
    CONTACT_LIST: ("contactList",),
    COMPANY_LIST: ("companyList",),
    OPP_CONTACT_LINKS: ("oppContactLinks",),
    OPPORTUNITIES: ("opportunities",),
    WEEKLY_BUSINESS: ("weeklyBusiness", "weeklyBusinessSummary"),
    **{name: ("eventLogs",) for name in EVENT_LOG_SHEETS},
}
