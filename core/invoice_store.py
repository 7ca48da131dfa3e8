"""Database operations for invoices.

Every method is a single SQL statement. Outside transaction() each call
commits or fails as a whole; inside it, calls commit together. Rows come back
as dicts with the stored (encoded) sub-documents and the creator's display
name joined in as created_by_name.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

import psycopg2.errors

from clients.postgres_client import PostgresClient
from core.exceptions import DuplicateResourceError, InvoiceNumberGenerationError, ResourceNotFoundError
from core.models import InvoiceStatus, InvoiceType

logger = logging.getLogger(__name__)

# Columns callers may write; id and created_at are set once on insert
WRITABLE_COLUMNS = (
    "invoice_number", "project_name", "customer_name", "customer_phone",
    "reference", "lead_source",
    "amount", "tax", "total_amount",
    "token_amount", "agreement_amount", "registration_amount",
    "agreement_due_date", "agreement_due_amount",
    "registration_due_date", "registration_due_amount",
    "status", "invoice_type", "invoice_date", "due_date",
    "notes", "line_items", "attachments",
    "created_by", "updated_at",
)

# Accepted sort keys (camelCase and snake_case) -> column
SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "invoiceDate": "invoice_date",
    "dueDate": "due_date",
    "invoiceNumber": "invoice_number",
    "customerName": "customer_name",
    "amount": "amount",
    "totalAmount": "total_amount",
    "status": "status",
    "invoiceType": "invoice_type",
}
SORTABLE_FIELDS.update({column: column for column in list(SORTABLE_FIELDS.values())})

_SELECT = """
    SELECT i.*, u.name AS created_by_name
    FROM invoices i
    LEFT JOIN users u ON u.id = i.created_by
"""


@dataclass(frozen=True)
class InvoiceFilter:
    """Optional predicates for paged listing. Unset fields do not filter."""

    status: InvoiceStatus | None = None
    invoice_type: InvoiceType | None = None
    search: str | None = None


@dataclass(frozen=True)
class InvoiceSort:
    """Validated sort column and direction."""

    column: str = "created_at"
    descending: bool = True


def _like_pattern(query: str) -> str:
    """Substring pattern with LIKE wildcards in the query escaped."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _with_creator(statement: str) -> str:
    """Wrap a data-modifying RETURNING statement so the creator name is joined."""
    return f"""
        WITH changed AS ({statement})
        SELECT changed.*, u.name AS created_by_name
        FROM changed
        LEFT JOIN users u ON u.id = changed.created_by
    """


class InvoiceStore:
    """Database operations for invoices."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def transaction(self):
        """
        Unit of work for several writes.

        Everything run on this store's PostgresClient inside the block, including
        AuditLogger writes sharing the client, commits or rolls back together.
        """
        return self._db.transaction()

    def next_invoice_sequence(self) -> int:
        """Atomically draw the next invoice number sequence value."""
        try:
            value = self._db.execute_scalar("SELECT nextval('invoice_number_seq')")
        except psycopg2.Error as e:
            logger.error(f"Invoice number sequence unavailable: {e}")
            raise InvoiceNumberGenerationError(f"Invoice number sequence unavailable: {e}") from e
        if value is None:
            raise InvoiceNumberGenerationError("Invoice number sequence returned no value")
        return int(value)

    def save(self, invoice_id: UUID, values: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new invoice.

        Raises:
            DuplicateResourceError: invoice_number already exists
            ResourceNotFoundError: created_by is not a row in users
        """
        columns = ["id", "created_at", *WRITABLE_COLUMNS]
        params = [invoice_id, values["updated_at"], *(values.get(c) for c in WRITABLE_COLUMNS)]
        placeholders = ", ".join(["%s"] * len(columns))

        try:
            rows = self._db.execute_returning(
                _with_creator(
                    f"INSERT INTO invoices ({', '.join(columns)}) "
                    f"VALUES ({placeholders}) RETURNING *"
                ),
                tuple(params),
            )
        except psycopg2.errors.UniqueViolation as e:
            logger.warning(f"Duplicate invoice number rejected: {values['invoice_number']}")
            raise DuplicateResourceError(values["invoice_number"]) from e
        except psycopg2.errors.ForeignKeyViolation as e:
            logger.warning(f"Invoice creator is not a known user: {values['created_by']}")
            raise ResourceNotFoundError("User", values["created_by"]) from e
        return rows[0]

    def update(self, invoice_id: UUID, values: dict[str, Any]) -> dict[str, Any] | None:
        """
        Overwrite the given columns. Unknown columns are ignored.

        Returns:
            Updated row, or None if the invoice does not exist.
        """
        updates = {k: v for k, v in values.items() if k in WRITABLE_COLUMNS}
        if not updates:
            return self.find_by_id(invoice_id)

        set_clause = ", ".join(f"{column} = %s" for column in updates)
        rows = self._db.execute_returning(
            _with_creator(f"UPDATE invoices SET {set_clause} WHERE id = %s RETURNING *"),
            (*updates.values(), invoice_id),
        )
        return rows[0] if rows else None

    def find_by_id(self, invoice_id: UUID) -> dict[str, Any] | None:
        """Find invoice by ID."""
        return self._db.execute_single(f"{_SELECT} WHERE i.id = %s", (invoice_id,))

    def find_by_number(self, invoice_number: str) -> dict[str, Any] | None:
        """Find invoice by its human-facing number."""
        return self._db.execute_single(
            f"{_SELECT} WHERE i.invoice_number = %s", (invoice_number,)
        )

    def exists_by_number(self, invoice_number: str) -> bool:
        """Whether an invoice already carries this number."""
        return bool(self._db.execute_scalar(
            "SELECT EXISTS (SELECT 1 FROM invoices WHERE invoice_number = %s)",
            (invoice_number,),
        ))

    def find_page(
        self,
        invoice_filter: InvoiceFilter,
        sort: InvoiceSort,
        page: int,
        size: int,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        One page of invoices matching the filter.

        Returns:
            Tuple of (rows, total matching rows)
        """
        where = []
        params: list[Any] = []
        if invoice_filter.status is not None:
            where.append("i.status = %s")
            params.append(invoice_filter.status.value)
        if invoice_filter.invoice_type is not None:
            where.append("i.invoice_type = %s")
            params.append(invoice_filter.invoice_type.value)
        if invoice_filter.search:
            pattern = _like_pattern(invoice_filter.search)
            where.append("(i.customer_name ILIKE %s OR i.invoice_number ILIKE %s)")
            params.extend([pattern, pattern])

        where_clause = f"WHERE {' AND '.join(where)}" if where else ""
        direction = "DESC" if sort.descending else "ASC"

        total = self._db.execute_scalar(
            f"SELECT COUNT(*) FROM invoices i {where_clause}", tuple(params)
        )
        rows = self._db.execute(
            f"""
            {_SELECT}
            {where_clause}
            ORDER BY i.{sort.column} {direction}, i.id {direction}
            LIMIT %s OFFSET %s
            """,
            (*params, size, page * size),
        )
        return rows, int(total or 0)

    def find_by_invoice_date_between(self, start: date, end: date) -> list[dict[str, Any]]:
        """Invoices dated within [start, end], oldest first."""
        return self._db.execute(
            f"""
            {_SELECT}
            WHERE i.invoice_date BETWEEN %s AND %s
            ORDER BY i.invoice_date ASC, i.created_at ASC
            """,
            (start, end),
        )

    def find_overdue(self, today: date) -> list[dict[str, Any]]:
        """Invoices past due and not paid, most overdue first."""
        return self._db.execute(
            f"""
            {_SELECT}
            WHERE i.due_date < %s AND i.status <> %s
            ORDER BY i.due_date ASC, i.created_at ASC
            """,
            (today, InvoiceStatus.PAID.value),
        )

    def delete(self, invoice_id: UUID) -> bool:
        """
        Permanently delete an invoice.

        Returns:
            True if the invoice existed and was deleted.
        """
        rows = self._db.execute_returning(
            "DELETE FROM invoices WHERE id = %s RETURNING id", (invoice_id,)
        )
        return len(rows) > 0

    def sum_total_amount_by_status(self, status: InvoiceStatus) -> Decimal:
        """Sum of total_amount for a status; zero when none match."""
        total = self._db.execute_scalar(
            "SELECT COALESCE(SUM(total_amount), 0) FROM invoices WHERE status = %s",
            (status.value,),
        )
        return Decimal(total) if total is not None else Decimal("0")

    def count_by_status(self, status: InvoiceStatus) -> int:
        """Number of invoices with a status."""
        return int(self._db.execute_scalar(
            "SELECT COUNT(*) FROM invoices WHERE status = %s", (status.value,)
        ) or 0)

    def count_all(self) -> int:
        """Number of invoices."""
        return int(self._db.execute_scalar("SELECT COUNT(*) FROM invoices") or 0)

    def count_overdue(self, today: date) -> int:
        """Number of invoices past due and not paid."""
        return int(self._db.execute_scalar(
            "SELECT COUNT(*) FROM invoices WHERE due_date < %s AND status <> %s",
            (today, InvoiceStatus.PAID.value),
        ) or 0)
