"""Google Sheets reader for the Import and Feed Control List tabs.

This is NOT a parser - it only returns raw cell values. Interpretation of
those values happens in ``marketfeed.feed``.
"""

import json
from typing import List, Optional, Tuple

import gspread
from gspread.exceptions import SpreadsheetNotFound, WorksheetNotFound, APIError
import structlog

from marketfeed.config import settings
from marketfeed.errors.exceptions import SheetsReadError

logger = structlog.get_logger(__name__)

READONLY_SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


class SpreadsheetReader:
    """
    Reads worksheet values from the catalog spreadsheet.

    Authenticates with a service account: an inline JSON key
    (GOOGLE_SERVICE_ACCOUNT_KEY) wins over a credentials file path.
    """

    def __init__(
        self,
        spreadsheet_id: Optional[str] = None,
        credentials_path: Optional[str] = None,
        service_account_key: Optional[str] = None,
        import_sheet_name: Optional[str] = None,
        control_sheet_name: Optional[str] = None,
        delivery_sheet_name: Optional[str] = None,
    ):
        """
        Initialize the reader with authentication.

        Args:
            spreadsheet_id: Spreadsheet key (defaults to config)
            credentials_path: Path to service account credentials JSON file
            service_account_key: Service account JSON as a string
            import_sheet_name: Import tab title (defaults to config)
            control_sheet_name: Feed Control List tab title (defaults to config)
            delivery_sheet_name: Delivery tab title (defaults to config)

        Raises:
            SheetsReadError: If authentication fails
        """
        self.spreadsheet_id = spreadsheet_id or settings.spreadsheet_id
        self.credentials_path = credentials_path or settings.google_credentials_path
        self.import_sheet_name = import_sheet_name or settings.import_sheet_name
        self.control_sheet_name = control_sheet_name or settings.control_sheet_name
        self.delivery_sheet_name = delivery_sheet_name or settings.delivery_sheet_name
        service_account_key = service_account_key or settings.google_service_account_key
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None

        if not self.spreadsheet_id:
            raise SheetsReadError("SPREADSHEET_ID is required")

        try:
            if service_account_key:
                self._client = gspread.service_account_from_dict(
                    json.loads(service_account_key),
                    scopes=READONLY_SCOPES,
                )
            else:
                self._client = gspread.service_account(
                    filename=self.credentials_path,
                    scopes=READONLY_SCOPES,
                )
            logger.info(
                "spreadsheet_reader_initialized",
                spreadsheet_id=self.spreadsheet_id,
                inline_key=bool(service_account_key),
            )
        except FileNotFoundError as e:
            raise SheetsReadError(
                f"Google credentials file not found: {self.credentials_path}"
            ) from e
        except json.JSONDecodeError as e:
            raise SheetsReadError(
                f"GOOGLE_SERVICE_ACCOUNT_KEY is not valid JSON: {e}"
            ) from e
        except Exception as e:
            raise SheetsReadError(
                f"Failed to authenticate with Google Sheets API: {e}"
            ) from e

    def _open_spreadsheet(self) -> gspread.Spreadsheet:
        """Open (and memoize) the spreadsheet by key."""
        if self._spreadsheet is None:
            self._spreadsheet = self._client.open_by_key(self.spreadsheet_id)
            logger.debug(
                "spreadsheet_opened",
                spreadsheet_id=self.spreadsheet_id,
                title=self._spreadsheet.title,
            )
        return self._spreadsheet

    def read_values(self, sheet_name: str) -> List[List[str]]:
        """
        Read every value of one worksheet.

        Args:
            sheet_name: Worksheet tab title

        Returns:
            Ragged list of rows (gspread's get_all_values output)

        Raises:
            SheetsReadError: If the spreadsheet or worksheet cannot be read
        """
        log = logger.bind(spreadsheet_id=self.spreadsheet_id, sheet_name=sheet_name)

        try:
            worksheet = self._open_spreadsheet().worksheet(sheet_name)
            values = worksheet.get_all_values()
            log.info("worksheet_read", rows=len(values))
            return values
        except (SpreadsheetNotFound, WorksheetNotFound) as e:
            raise SheetsReadError(f"Sheet not found: {sheet_name}: {e}") from e
        except APIError as e:
            raise SheetsReadError(f"Google Sheets API error reading {sheet_name}: {e}") from e
        except Exception as e:
            raise SheetsReadError(f"Failed to read {sheet_name}: {e}") from e

    def read_feed_tables(self) -> Tuple[List[List[str]], List[List[str]]]:
        """Read the Import and Feed Control List tabs.

        Returns:
            Tuple of (import_values, control_values)
        """
        import_values = self.read_values(self.import_sheet_name)
        control_values = self.read_values(self.control_sheet_name)
        return import_values, control_values

    def read_delivery_values(self) -> List[List[str]]:
        """Read the Delivery tab (method | active | price)."""
        return self.read_values(self.delivery_sheet_name)
