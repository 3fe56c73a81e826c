"""Google Sheets v4 adapter implementing the legacy store interface.

The Google client is synchronous; every call runs in a worker thread so the
event loop keeps serving other requests while the API call is in flight.
The client and its httplib2 transport are not thread-safe, so each store
runs one request at a time (building the request included).
HttpError is translated into the data-core error taxonomy.
"""
import asyncio
import logging
import threading
from typing import Any, Callable

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

import settings
from datacore.errors import (
    FatalUpstreamError,
    ShapeMissingError,
    TransientUpstreamError,
    UpstreamError,
    is_rate_limited,
)

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
VALUE_INPUT_OPTION = "USER_ENTERED"


def _service():
    creds = service_account.Credentials.from_service_account_file(
        settings.google_credentials_path(), scopes=SCOPES
    )
    return build("sheets", "v4", credentials=creds, cache_discovery=False)


def translate_http_error(exc: HttpError) -> UpstreamError:
    status = getattr(exc.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None
    message = str(exc)
    if status == 400 and "Unable to parse range" in message:
        return ShapeMissingError(message, status=status)
    probe = UpstreamError(message, status=status)
    if is_rate_limited(probe) or (status is not None and 500 <= status < 600):
        return TransientUpstreamError(message, status=status)
    return FatalUpstreamError(message, status=status)


class GoogleSheetsStore:
    """Legacy store bound to exactly one spreadsheet."""

    def __init__(self, spreadsheet_id: str, service=None):
        if not spreadsheet_id:
            raise ValueError(
                "GoogleSheetsStore requires a spreadsheet id; check the container wiring."
            )
        self.spreadsheet_id = spreadsheet_id
        self._service = service
        self._sheet_ids: dict[str, int] = {}
        self._lock = threading.Lock()

    def _sheets(self):
        if self._service is None:
            self._service = _service()
        return self._service.spreadsheets()

    async def _call(self, request_fn: Callable[[], Any]) -> Any:
        def run():
            with self._lock:
                return request_fn().execute()

        try:
            return await asyncio.to_thread(run)
        except HttpError as exc:
            raise translate_http_error(exc) from exc

    async def read_range(self, range_spec: str) -> list[list]:
        response = await self._call(
            lambda: self._sheets().values().get(
                spreadsheetId=self.spreadsheet_id, range=range_spec
            )
        )
        return response.get("values", [])

    async def append_row(self, sheet_name: str, values: list) -> None:
        await self._call(
            lambda: self._sheets().values().append(
                spreadsheetId=self.spreadsheet_id,
                range=sheet_name,
                valueInputOption=VALUE_INPUT_OPTION,
                body={"values": [values]},
            )
        )

    async def update_range(self, range_spec: str, rows: list[list]) -> None:
        await self._call(
            lambda: self._sheets().values().update(
                spreadsheetId=self.spreadsheet_id,
                range=range_spec,
                valueInputOption=VALUE_INPUT_OPTION,
                body={"values": rows},
            )
        )

    async def batch_update_cells(self, updates: list[tuple[str, Any]]) -> None:
        if not updates:
            return
        data = [{"range": rng, "values": [[value]]} for rng, value in updates]
        await self._call(
            lambda: self._sheets().values().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={"valueInputOption": VALUE_INPUT_OPTION, "data": data},
            )
        )

    async def get_sheet_id(self, sheet_name: str) -> int:
        """Return the numeric sheet id for a sheet title (cached per instance)."""
        if sheet_name in self._sheet_ids:
            return self._sheet_ids[sheet_name]
        logger.info("Looking up sheet id for %s (...%s)", sheet_name, self.spreadsheet_id[-6:])
        response = await self._call(
            lambda: self._sheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="sheets.properties.title,sheets.properties.sheetId",
            )
        )
        for sheet in response.get("sheets", []):
            props = sheet.get("properties", {})
            if props.get("title") == sheet_name:
                self._sheet_ids[sheet_name] = props["sheetId"]
                return props["sheetId"]
        raise ShapeMissingError(f'Sheet "{sheet_name}" not found', status=404)

    async def delete_row_range(self, sheet_id: int, start_index: int, end_index: int) -> None:
        """Delete rows [start_index, end_index) (0-based) of one sheet."""
        await self._call(
            lambda: self._sheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={
                    "requests": [{
                        "deleteDimension": {
                            "range": {
                                "sheetId": sheet_id,
                                "dimension": "ROWS",
                                "startIndex": start_index,
                                "endIndex": end_index,
                            }
                        }
                    }]
                },
            )
        )
