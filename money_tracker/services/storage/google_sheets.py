"""
Remote Document Storage on Google Sheets

DESIGN DECISION: A spreadsheet stands in for a per-user document
database. The owner can open it and read every ledger as JSON, and
there is no server to run.

Each identity's document is one row of the Users worksheet. Every
top-level document field has its own JSON column, so a merge-write of
`transactions` never touches the `profile` cell and vice versa.

TRADEOFFS:
- Every read scans the whole Users sheet; fine for a handful of users
- No transactions: concurrent writers are last-writer-wins per cell
- A cell holds at most 50,000 characters, which caps one ledger at
  roughly six hundred entries; larger writes fail with
  DocumentTooLargeError instead of being sent
"""

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from money_tracker.config import GoogleSheetsSettings, get_settings
from money_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from money_tracker.services.storage.interface import (
    AuditStorageInterface,
    BackendReadError,
    BackendWriteError,
    ConnectionError,
    DocumentStorageInterface,
    DocumentTooLargeError,
    StorageError,
    merge_document_fields,
)


logger = structlog.get_logger(__name__)


# Column mappings for Users sheet
USER_COLUMNS = [
    "uid",
    "updated_at",
    "profile_json",
    "transactions_json",
]

# Document field -> zero-based column index
DOCUMENT_FIELD_COLUMNS = {
    "profile": 2,
    "transactions": 3,
}

# Google Sheets rejects longer cell values
CELL_CHARACTER_LIMIT = 50_000

# AuditLog worksheet header, in AuditEvent.to_sheets_row() order
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "identity_uid",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Opens the configured spreadsheet with a service account and
    hands out its Users and AuditLog worksheets.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Authorize with the service account file (retried; cached after success).
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Open the spreadsheet named by GOOGLE_SHEETS_SPREADSHEET_ID."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # First use: create it with its header row
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_users_sheet(self) -> gspread.Worksheet:
        """Get or create the Users worksheet."""
        return self._get_or_create_sheet(
            self._settings.users_sheet_name, USER_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the AuditLog worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsDocumentStorage(DocumentStorageInterface):
    """
    Google Sheets implementation of the per-identity document store.

    One row per uid. Only the fields in DOCUMENT_FIELD_COLUMNS are
    supported; each is stored as JSON in its own column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _row_to_document(row: list) -> dict[str, Any]:
        """Convert a spreadsheet row to document fields (empty cells are absent)."""
        document: dict[str, Any] = {}
        for field, index in DOCUMENT_FIELD_COLUMNS.items():
            cell = row[index] if index < len(row) else ""
            if cell:
                document[field] = json.loads(cell)
        return document

    @staticmethod
    def _document_to_row(uid: str, document: Mapping[str, Any]) -> list:
        """Convert document fields to a full spreadsheet row."""
        row = [""] * len(USER_COLUMNS)
        row[0] = uid
        row[1] = datetime.utcnow().isoformat()
        for field, index in DOCUMENT_FIELD_COLUMNS.items():
            if field in document:
                cell = json.dumps(document[field], default=str)
                if len(cell) > CELL_CHARACTER_LIMIT:
                    raise DocumentTooLargeError(
                        f"'{field}' for {uid} serializes to {len(cell):,} characters; "
                        f"a Sheets cell holds at most {CELL_CHARACTER_LIMIT:,}"
                    )
                row[index] = cell
        return row

    @staticmethod
    def _find_row(all_rows: list[list], uid: str) -> tuple[Optional[int], Optional[list]]:
        """Find a uid's row. Returns (1-based sheet row number, row values)."""
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == uid:
                return idx, row
        return None, None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get_document(self, uid: str) -> Optional[dict[str, Any]]:
        """Fetch a user's document from the Users sheet."""
        try:
            sheet = self._client.get_users_sheet()
            _, row = self._find_row(sheet.get_all_values(), uid)
            if row is None:
                return None
            return self._row_to_document(row)
        except Exception as e:
            raise BackendReadError(f"Failed to read document for {uid}: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((ValueError, DocumentTooLargeError)),
        reraise=True,
    )
    async def set_document(
        self,
        uid: str,
        fields: Mapping[str, Any],
        merge: bool = True,
    ) -> None:
        """Write document fields; merge-writes leave other columns untouched."""
        unsupported = set(fields) - set(DOCUMENT_FIELD_COLUMNS)
        if unsupported:
            raise ValueError(f"Unsupported document field(s): {sorted(unsupported)}")

        try:
            sheet = self._client.get_users_sheet()
            row_number, row = self._find_row(sheet.get_all_values(), uid)

            if row_number is None:
                sheet.append_row(self._document_to_row(uid, fields), value_input_option="RAW")
                return

            if merge:
                document = merge_document_fields(self._row_to_document(row), fields)
                changed = fields.keys()
            else:
                document = dict(fields)
                changed = DOCUMENT_FIELD_COLUMNS.keys()

            new_row = self._document_to_row(uid, document)
            columns = [1] + [DOCUMENT_FIELD_COLUMNS[field] for field in changed]
            sheet.batch_update(
                [
                    {
                        "range": rowcol_to_a1(row_number, col_idx + 1),
                        "values": [[new_row[col_idx]]],
                    }
                    for col_idx in columns
                ],
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise BackendWriteError(f"Failed to write document for {uid}: {e}") from e


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit trail kept as one row per event in the AuditLog worksheet.

    Rows are only ever appended.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Parse one AuditLog row; missing trailing cells read as empty."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            identity_uid=safe_get(4) or None,
            correlation_id=UUID(safe_get(5)) if safe_get(5) else None,
            description=safe_get(6),
            details=json.loads(safe_get(7)) if safe_get(7) else {},
            error_message=safe_get(8) or None,
            is_user_action=safe_get(9).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception:
                continue  # hand-edited or truncated row
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append one row. Failures are logged and reported as False."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events from one user action, oldest first."""
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise BackendReadError(f"Failed to get audit events: {e}") from e
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_identity(
        self,
        uid: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events for one identity."""
        try:
            events = [e for e in self._all_events() if e.identity_uid == uid]
        except Exception as e:
            raise BackendReadError(f"Failed to get audit events: {e}") from e
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._all_events()
        except Exception as e:
            raise BackendReadError(f"Failed to get audit events: {e}") from e
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
