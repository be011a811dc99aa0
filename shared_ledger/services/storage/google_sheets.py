"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the shared backend because:
1. Both owners can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for one household)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

Amounts are written with value_input_option="RAW" so the text the user typed
is stored verbatim. A malformed amount is NOT dropped here; it is passed on
and reported by the engine. Rows whose structure is broken (bad date, unknown
type) are skipped with a warning.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared_ledger.config import GoogleSheetsSettings, get_settings
from shared_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from shared_ledger.models.ledger import (
    Budget,
    BudgetOwner,
    Owner,
    SplitType,
    Transaction,
    TransactionType,
    parse_local_date,
)
from shared_ledger.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
    sort_newest_first,
)

logger = structlog.get_logger(__name__)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "amount",
    "category",
    "date",
    "type",
    "owner",
    "split",
    "from",
    "to",
    "note",
    "created_at",
]

# Column mappings for Budgets sheet
BUDGET_COLUMNS = [
    "category",
    "owner",
    "amount",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
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
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
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
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise NotFoundError(
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
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, 2000
        )

    def get_budgets_sheet(self) -> gspread.Worksheet:
        """Get or create the Budgets worksheet."""
        return self._get_or_create_sheet(
            self._settings.budgets_sheet_name, BUDGET_COLUMNS, 100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000
        )


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    One transaction per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, txn: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        return [
            txn.id,
            txn.amount,
            txn.category,
            txn.date.isoformat(),
            txn.type.value,
            txn.owner.value,
            txn.split.value if txn.split else "",
            txn.from_owner.value if txn.from_owner else "",
            txn.to_owner.value if txn.to_owner else "",
            txn.note,
            txn.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        split = _safe_get(row, 6)
        payer = _safe_get(row, 7)
        payee = _safe_get(row, 8)
        created_at = _safe_get(row, 10)

        fields = dict(
            id=_safe_get(row, 0),
            amount=_safe_get(row, 1),
            category=_safe_get(row, 2),
            date=parse_local_date(_safe_get(row, 3)),
            type=TransactionType(_safe_get(row, 4)),
            owner=Owner(_safe_get(row, 5)),
            split=SplitType(split) if split else None,
            from_owner=Owner(payer) if payer else None,
            to_owner=Owner(payee) if payee else None,
            note=_safe_get(row, 9),
        )
        if created_at:
            fields["created_at"] = datetime.fromisoformat(created_at)
        return Transaction(**fields)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def save_transaction(self, txn: Transaction) -> bool:
        """Append a transaction row."""
        try:
            sheet = self._client.get_transactions_sheet()
            ids = sheet.col_values(1)[1:]
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

        if txn.id in ids:
            raise DuplicateError(f"Transaction already exists: {txn.id}")

        try:
            sheet.append_row(self._transaction_to_row(txn), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def get_transaction_by_id(self, transaction_id: str) -> Optional[Transaction]:
        """Retrieve a transaction by its ID."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

        for row in all_rows:
            if row and row[0] == transaction_id:
                return self._row_to_transaction(row)
        return None

    async def delete_transaction(self, transaction_id: str) -> bool:
        """Delete a transaction row by ID."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if row and row[0] == transaction_id:
                    sheet.delete_rows(idx)
                    return True

            return False
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """List transactions, skipping structurally broken rows."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        transactions = []
        for row_number, row in enumerate(all_rows, start=2):
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                txn = self._row_to_transaction(row)
            except ValueError as e:
                logger.warning(
                    "sheet_row_skipped",
                    sheet="transactions",
                    row=row_number,
                    error=str(e),
                )
                continue

            if date_from and txn.date < date_from:
                continue
            if date_to and txn.date > date_to:
                continue
            transactions.append(txn)

        return sort_newest_first(transactions)


class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """Google Sheets implementation of budget storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_budget(self, row: list) -> Budget:
        return Budget(
            category=_safe_get(row, 0),
            owner=BudgetOwner(_safe_get(row, 1, BudgetOwner.JOINT.value)),
            amount=Decimal(_safe_get(row, 2, "0")),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def upsert_budget(self, budget: Budget) -> bool:
        """Update the matching (category, owner) row, or append one."""
        try:
            sheet = self._client.get_budgets_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                owner = _safe_get(row, 1, BudgetOwner.JOINT.value)
                if row and row[0] == budget.category and owner == budget.owner.value:
                    sheet.update_cell(idx, 3, str(budget.amount))
                    return True

            sheet.append_row(
                [budget.category, budget.owner.value, str(budget.amount)],
                value_input_option="RAW",
            )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")

    async def list_budgets(self) -> list[Budget]:
        try:
            sheet = self._client.get_budgets_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list budgets: {e}")

        budgets = []
        for row_number, row in enumerate(all_rows, start=2):
            if not row or not row[0]:
                continue
            try:
                budgets.append(self._row_to_budget(row))
            except (ValueError, ArithmeticError) as e:
                logger.warning(
                    "sheet_row_skipped",
                    sheet="budgets",
                    row=row_number,
                    error=str(e),
                )
        return budgets


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_event_write_failed", error=str(e))
            return False

    def _read_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
