"""Runtime configuration for the CRM data-access core.

Values come from the environment (a local .env is loaded on import).

Usage:
    import settings
    ttl = settings.CACHE_TTL_SECONDS
    raw_id = settings.sheets_raw_id()
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Cache / retry tuning
CACHE_TTL_SECONDS = float(os.environ.get("CACHE_TTL_SECONDS", "30"))
RETRY_MAX_RETRIES = int(os.environ.get("RETRY_MAX_RETRIES", "3"))
RETRY_BASE = float(os.environ.get("RETRY_BASE", "2"))
RETRY_UNIT_SECONDS = float(os.environ.get("RETRY_UNIT_SECONDS", "1.0"))
RETRY_JITTER_SECONDS = float(os.environ.get("RETRY_JITTER_SECONDS", "0.5"))

PAGE_SIZE = int(os.environ.get("CONTACTS_PAGE_SIZE", "20"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


def _required(name: str, hint: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(
            f"{name} environment variable is not set. {hint}"
        )
    return value


def sheets_raw_id() -> str:
    """Spreadsheet holding the RAW (potential) intake rows."""
    return _required(
        "SHEETS_RAW_ID",
        "Set it to the id of the spreadsheet that receives business-card intake.",
    )


def sheets_core_id() -> str:
    """Spreadsheet holding the legacy copy of CORE (official) tables."""
    return _required(
        "SHEETS_CORE_ID",
        "Set it to the id of the legacy CRM spreadsheet.",
    )


def google_credentials_path() -> str:
    return _required(
        "GOOGLE_APPLICATION_CREDENTIALS",
        "Point it at a service-account JSON file with Sheets access.",
    )
