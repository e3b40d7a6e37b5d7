from typing import List

import httpx
import structlog

from boxtracker.core.exceptions import InternalError

logger = structlog.get_logger()


class SpreadsheetSource:
    """
    Reads raw cell values from a Google Sheets range (API v4, values endpoint).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        spreadsheet_id: str,
        sheet_name: str,
        sheet_range: str,
        base_url: str = "https://sheets.googleapis.com/v4/spreadsheets",
        timeout: float = 10.0,
    ):
        self.client = client
        self.api_key = api_key
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.sheet_range = sheet_range
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def a1_range(self) -> str:
        return f"{self.sheet_name}!{self.sheet_range}"

    async def fetch_rows(self) -> List[List[str]]:
        """
        Return every row in the range, header included.
        Raises InternalError on any failure so the caller can abort the sync.
        """
        if not self.api_key or not self.spreadsheet_id:
            logger.error("spreadsheet_not_configured")
            raise InternalError("Spreadsheet access is not configured.")

        url = f"{self.base_url}/{self.spreadsheet_id}/values/{self.a1_range}"
        try:
            resp = await self.client.get(url, params={"key": self.api_key}, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("spreadsheet_read_failed", range=self.a1_range, error=str(e))
            raise InternalError("Failed to read the location spreadsheet.") from e

        rows = data.get("values") or []
        logger.info("spreadsheet_read", range=self.a1_range, rows=len(rows))
        return rows
