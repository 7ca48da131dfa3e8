"""Shared test fixtures for the invoice test suite."""

import os
import threading
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from itertools import count
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env")

from core.actors import ActorResolver
from core.audit import AuditLogger
from core.config import InvoiceConfig
from core.exceptions import (
    DuplicateResourceError,
    InvoiceNumberGenerationError,
    ResourceNotFoundError,
)
from core.invoice_numbers import InvoiceNumberGenerator
from core.invoice_store import WRITABLE_COLUMNS, InvoiceFilter, InvoiceSort
from core.models import InvoiceStatus
from core.services.invoice_service import InvoiceService
from utils.user_context import user_context, clear_current_user_id


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_NAME = "Test Accountant"


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Run the test as an authenticated user."""
    with user_context(test_user_id):
        yield test_user_id


# =============================================================================
# IN-MEMORY STORE
# =============================================================================


class InMemoryInvoiceStore:
    """
    Test double with the same operations and semantics as InvoiceStore.

    Rows are kept as dicts of column values, exactly as the SQL store
    returns them, so the service's encode/decode path is exercised.
    """

    def __init__(self, user_names: dict[UUID, str]):
        self.rows: dict[UUID, dict] = {}
        self.user_names = dict(user_names)
        self.fail_sequence = False
        self._sequence = count(1)
        self._lock = threading.Lock()
        self._tx_lock = threading.RLock()

    def _out(self, row: dict) -> dict:
        out = dict(row)
        out["created_by_name"] = self.user_names.get(row.get("created_by"))
        return out

    @contextmanager
    def transaction(self):
        """Snapshot rows; restore them if the block raises."""
        with self._tx_lock:
            snapshot = {k: dict(v) for k, v in self.rows.items()}
            try:
                yield
            except Exception:
                self.rows = snapshot
                raise

    def next_invoice_sequence(self) -> int:
        if self.fail_sequence:
            raise InvoiceNumberGenerationError("Invoice number sequence unavailable")
        with self._lock:
            return next(self._sequence)

    def save(self, invoice_id: UUID, values: dict) -> dict:
        with self._lock:
            if any(r["invoice_number"] == values["invoice_number"] for r in self.rows.values()):
                raise DuplicateResourceError(values["invoice_number"])
            if values.get("created_by") not in self.user_names:
                raise ResourceNotFoundError("User", values.get("created_by"))
            row = {"id": invoice_id, "created_at": values["updated_at"]}
            row.update({column: values.get(column) for column in WRITABLE_COLUMNS})
            self.rows[invoice_id] = row
            return self._out(row)

    def update(self, invoice_id: UUID, values: dict) -> dict | None:
        with self._lock:
            row = self.rows.get(invoice_id)
            if row is None:
                return None
            row.update({k: v for k, v in values.items() if k in WRITABLE_COLUMNS})
            return self._out(row)

    def find_by_id(self, invoice_id: UUID) -> dict | None:
        row = self.rows.get(invoice_id)
        return self._out(row) if row else None

    def find_by_number(self, invoice_number: str) -> dict | None:
        for row in self.rows.values():
            if row["invoice_number"] == invoice_number:
                return self._out(row)
        return None

    def exists_by_number(self, invoice_number: str) -> bool:
        return self.find_by_number(invoice_number) is not None

    def find_page(self, invoice_filter: InvoiceFilter, sort: InvoiceSort, page: int, size: int):
        rows = list(self.rows.values())
        if invoice_filter.status is not None:
            rows = [r for r in rows if r["status"] == invoice_filter.status.value]
        if invoice_filter.invoice_type is not None:
            rows = [r for r in rows if r["invoice_type"] == invoice_filter.invoice_type.value]
        if invoice_filter.search:
            needle = invoice_filter.search.lower()
            rows = [
                r for r in rows
                if needle in r["customer_name"].lower() or needle in r["invoice_number"].lower()
            ]
        rows.sort(key=lambda r: str(r["id"]), reverse=sort.descending)
        rows.sort(key=lambda r: r[sort.column], reverse=sort.descending)
        start = page * size
        return [self._out(r) for r in rows[start:start + size]], len(rows)

    def find_by_invoice_date_between(self, start: date, end: date) -> list[dict]:
        rows = [r for r in self.rows.values() if start <= r["invoice_date"] <= end]
        return [self._out(r) for r in sorted(rows, key=lambda r: (r["invoice_date"], r["created_at"]))]

    def find_overdue(self, today: date) -> list[dict]:
        rows = [
            r for r in self.rows.values()
            if r["due_date"] < today and r["status"] != InvoiceStatus.PAID.value
        ]
        return [self._out(r) for r in sorted(rows, key=lambda r: (r["due_date"], r["created_at"]))]

    def delete(self, invoice_id: UUID) -> bool:
        with self._lock:
            return self.rows.pop(invoice_id, None) is not None

    def sum_total_amount_by_status(self, status: InvoiceStatus) -> Decimal:
        return sum(
            (r["total_amount"] for r in self.rows.values() if r["status"] == status.value),
            Decimal("0"),
        )

    def count_by_status(self, status: InvoiceStatus) -> int:
        return sum(1 for r in self.rows.values() if r["status"] == status.value)

    def count_all(self) -> int:
        return len(self.rows)

    def count_overdue(self, today: date) -> int:
        return len(self.find_overdue(today))


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def invoice_config() -> InvoiceConfig:
    return InvoiceConfig()


@pytest.fixture
def store(invoice_config) -> InMemoryInvoiceStore:
    return InMemoryInvoiceStore({
        invoice_config.system_account_id: invoice_config.system_account_name,
        TEST_USER_ID: TEST_USER_NAME,
    })


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def invoice_service(store, audit, invoice_config) -> InvoiceService:
    return InvoiceService(
        store=store,
        audit=audit,
        numbers=InvoiceNumberGenerator(store, invoice_config),
        actors=ActorResolver(invoice_config),
        config=invoice_config,
    )


@pytest.fixture
def invoice_payload():
    """Factory for a valid create payload (camelCase, as the frontend sends it)."""

    def make(**overrides) -> dict:
        payload = {
            "customerName": "Ravi Kumar",
            "projectName": "Green Meadows Phase 2",
            "customerPhone": "9876543210",
            "leadSource": "Referral",
            "amount": "100.00",
            "status": "PENDING",
            "invoiceType": "PROJECT",
            "invoiceDate": "2026-10-01",
            "dueDate": "2026-10-31",
            "lineItems": [
                {"description": "Plot 14", "plotNo": "14", "cents": 5, "pricePerCent": 20, "finalAmount": 100}
            ],
        }
        payload.update(overrides)
        return {k: v for k, v in payload.items() if v is not ...}

    return make


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db():
    """Session-scoped PostgresClient; skips unless TEST_DATABASE_URL is set."""
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL not set")

    from clients.postgres_client import PostgresClient
    from clients.schema import apply_schema

    client = PostgresClient(url)
    apply_schema(client)
    yield client
    client.close()


@pytest.fixture
def clean_db(db):
    """Empty invoice tables before the test."""
    db.execute("TRUNCATE invoices, audit_log")
    yield db
