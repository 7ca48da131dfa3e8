"""
Invoice lifecycle service.

Creates, updates, reads, lists and deletes invoices. On the way in it
validates the payload, assigns a generated number, credits the acting user,
reconciles amount/tax/total and encodes the free-form sub-documents; on the
way out it decodes them again so callers only ever see JSON values.
"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ValidationError

from core import flexible_field
from core.actors import ActorResolver
from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import InvoiceConfig
from core.exceptions import DuplicateResourceError, InvoiceValidationError, ResourceNotFoundError
from core.invoice_numbers import InvoiceNumberGenerator
from core.invoice_store import InvoiceFilter, InvoiceSort, InvoiceStore, SORTABLE_FIELDS
from core.models import (
    AuditEntry,
    Invoice,
    InvoiceCreate,
    InvoicePatch,
    InvoiceStats,
    InvoiceStatus,
    InvoiceType,
    Page,
)
from core.reconciliation import FinancialTotals, reconcile, reconcile_update
from utils.timezone import now_utc, today_utc

logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)
_EnumT = TypeVar("_EnumT", bound=Enum)

_FINANCIAL_FIELDS = ("amount", "tax", "total_amount")
_DOCUMENT_FIELDS = ("line_items", "attachments")


def _describe(error: ValidationError) -> str:
    """One-line summary of a pydantic validation error."""
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(parts)


def _validate(model: type[_ModelT], data: _ModelT | dict[str, Any]) -> _ModelT:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvoiceValidationError(_describe(e)) from e


def _parse_enum(enum_cls: type[_EnumT], value: _EnumT | str) -> _EnumT:
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise InvoiceValidationError(
            f"Invalid {enum_cls.__name__}: {value}. Valid values are: {valid}"
        )


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    """Model field values -> store column values."""
    columns = {}
    for name, value in fields.items():
        if name in _DOCUMENT_FIELDS:
            columns[name] = flexible_field.encode(value)
        elif isinstance(value, Enum):
            columns[name] = value.value
        elif name == "customer_name" and value is not None:
            columns[name] = value.strip()
        else:
            columns[name] = value
    return columns


def _to_invoice(row: dict[str, Any]) -> Invoice:
    """Store row -> caller-facing invoice with decoded sub-documents."""
    data = dict(row)
    data["created_by_id"] = data.pop("created_by", None)
    for name in _DOCUMENT_FIELDS:
        data[name] = flexible_field.decode(data.get(name))
    return Invoice.model_validate(data)


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        store: InvoiceStore,
        audit: AuditLogger,
        numbers: InvoiceNumberGenerator,
        actors: ActorResolver,
        config: InvoiceConfig | None = None,
    ):
        self.store = store
        self.audit = audit
        self.numbers = numbers
        self.actors = actors
        self.config = config or InvoiceConfig()

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create(self, data: InvoiceCreate | dict[str, Any]) -> Invoice:
        """
        Create an invoice.

        Args:
            data: Invoice payload; a dict is validated first

        Returns:
            Created invoice with generated number and reconciled totals

        Raises:
            InvoiceValidationError: Required fields missing or malformed
            InvoiceNumberGenerationError: No number could be drawn
            DuplicateResourceError: Generated number already taken
            ResourceNotFoundError: Acting user has no users row
        """
        data = _validate(InvoiceCreate, data)
        actor = self.actors.resolve()

        invoice_number = self.numbers.generate()
        logger.info(f"Creating invoice {invoice_number}")

        totals = reconcile(data.amount, data.tax, data.total_amount)
        fields = data.model_dump(exclude=set(_FINANCIAL_FIELDS))
        fields.update(totals._asdict())

        values = _to_columns(fields)
        values["invoice_number"] = invoice_number
        values["created_by"] = actor.id
        values["updated_at"] = now_utc()

        with self.store.transaction():
            if self.store.exists_by_number(invoice_number):
                logger.warning(f"Generated invoice number already in use: {invoice_number}")
                raise DuplicateResourceError(invoice_number)

            invoice = _to_invoice(self.store.save(uuid4(), values))
            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice.id,
                action=AuditAction.CREATE,
                changes={"created": invoice.model_dump(mode="json")},
                user_id=actor.id,
            )

        logger.info(f"Invoice created: {invoice.invoice_number} ({invoice.id})")
        return invoice

    def update(self, invoice_id: UUID, data: InvoicePatch | dict[str, Any]) -> Invoice:
        """
        Apply a partial update.

        Fields absent from the patch are left untouched; optional fields sent
        as null are cleared. The total is re-derived when amount or tax
        changes and no explicit total is sent. The write and its audit entry
        commit together.

        Raises:
            ResourceNotFoundError: If invoice not found
            InvoiceValidationError: Patch malformed or clears a required field
        """
        patch = _validate(InvoicePatch, data)
        logger.info(f"Updating invoice {invoice_id}")
        actor = self.actors.resolve()

        with self.store.transaction():
            current_row = self.store.find_by_id(invoice_id)
            if current_row is None:
                raise ResourceNotFoundError("Invoice", invoice_id)
            current = _to_invoice(current_row)

            supplied = patch.supplied()
            if not supplied:
                return current

            totals = reconcile_update(
                FinancialTotals(current.amount, current.tax, current.total_amount),
                {name: supplied[name] for name in _FINANCIAL_FIELDS if name in supplied},
            )
            supplied.update(totals._asdict())

            values = _to_columns(supplied)
            values["updated_at"] = now_utc()

            row = self.store.update(invoice_id, values)
            if row is None:
                raise ResourceNotFoundError("Invoice", invoice_id)
            updated = _to_invoice(row)

            changes = compute_changes(
                current.model_dump(mode="json"),
                updated.model_dump(mode="json"),
            )
            if changes:
                self.audit.log_change(
                    entity_type="invoice",
                    entity_id=invoice_id,
                    action=AuditAction.UPDATE,
                    changes=changes,
                    user_id=actor.id,
                )

        logger.info(f"Invoice updated: {updated.invoice_number} ({invoice_id})")
        return updated

    def delete(self, invoice_id: UUID) -> None:
        """
        Permanently delete an invoice. Its audit history is kept.

        Raises:
            ResourceNotFoundError: If invoice not found
        """
        logger.info(f"Deleting invoice {invoice_id}")
        actor = self.actors.resolve()

        with self.store.transaction():
            current_row = self.store.find_by_id(invoice_id)
            if current_row is None:
                raise ResourceNotFoundError("Invoice", invoice_id)
            current = _to_invoice(current_row)

            if not self.store.delete(invoice_id):
                raise ResourceNotFoundError("Invoice", invoice_id)

            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.DELETE,
                changes={"deleted": current.model_dump(mode="json")},
                user_id=actor.id,
            )

        logger.info(f"Invoice deleted: {current.invoice_number} ({invoice_id})")

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_by_id(self, invoice_id: UUID) -> Invoice:
        """
        Get invoice by ID.

        Raises:
            ResourceNotFoundError: If invoice not found
        """
        row = self.store.find_by_id(invoice_id)
        if row is None:
            raise ResourceNotFoundError("Invoice", invoice_id)
        return _to_invoice(row)

    def get_by_number(self, invoice_number: str) -> Invoice:
        """
        Get invoice by its human-facing number.

        Raises:
            ResourceNotFoundError: If no invoice carries the number
        """
        row = self.store.find_by_number(invoice_number)
        if row is None:
            raise ResourceNotFoundError("Invoice", invoice_number)
        return _to_invoice(row)

    def get_history(self, invoice_id: UUID) -> list[AuditEntry]:
        """
        Audit trail of an invoice, newest first.

        History outlives the invoice, so a deleted invoice still has one.

        Raises:
            ResourceNotFoundError: No invoice and no history under this ID
        """
        rows = self.audit.get_entity_history("invoice", invoice_id)
        if not rows and self.store.find_by_id(invoice_id) is None:
            raise ResourceNotFoundError("Invoice", invoice_id)
        return [AuditEntry.model_validate(row) for row in rows]

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list_all(
        self,
        page: int = 0,
        size: int | None = None,
        sort_field: str = "createdAt",
        sort_direction: str = "desc",
    ) -> Page[Invoice]:
        """
        List all invoices, one page at a time.

        Args:
            page: Zero-based page number
            size: Page size (defaults to config.default_page_size)
            sort_field: Field name, camelCase or snake_case
            sort_direction: "asc" or "desc"
        """
        sort = self._resolve_sort(sort_field, sort_direction)
        return self._page(InvoiceFilter(), sort, page, size)

    def list_by_status(
        self, status: InvoiceStatus | str, page: int = 0, size: int | None = None
    ) -> Page[Invoice]:
        """Invoices with a status, newest first."""
        status = _parse_enum(InvoiceStatus, status)
        return self._page(InvoiceFilter(status=status), InvoiceSort(), page, size)

    def list_by_type(
        self, invoice_type: InvoiceType | str, page: int = 0, size: int | None = None
    ) -> Page[Invoice]:
        """Invoices of a type, newest first."""
        invoice_type = _parse_enum(InvoiceType, invoice_type)
        return self._page(InvoiceFilter(invoice_type=invoice_type), InvoiceSort(), page, size)

    def search(self, query: str, page: int = 0, size: int | None = None) -> Page[Invoice]:
        """
        Case-insensitive substring search over customer name and invoice number.

        An empty query matches every invoice.
        """
        return self._page(InvoiceFilter(search=query.strip()), InvoiceSort(), page, size)

    def list_by_date_range(self, start: date, end: date) -> list[Invoice]:
        """
        Invoices whose invoice date falls within [start, end].

        Raises:
            InvoiceValidationError: If start is after end
        """
        if start > end:
            raise InvoiceValidationError(f"Start date {start} is after end date {end}")
        return [_to_invoice(row) for row in self.store.find_by_invoice_date_between(start, end)]

    def list_overdue(self, today: date | None = None) -> list[Invoice]:
        """Invoices due before today that are not paid."""
        today = today or today_utc()
        return [_to_invoice(row) for row in self.store.find_overdue(today)]

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def sum_total_amount_by_status(self, status: InvoiceStatus | str) -> Decimal:
        """Sum of total_amount for a status; zero when none match."""
        status = _parse_enum(InvoiceStatus, status)
        return self.store.sum_total_amount_by_status(status)

    def count_by_status(self, status: InvoiceStatus | str) -> int:
        """Number of invoices with a status."""
        status = _parse_enum(InvoiceStatus, status)
        return self.store.count_by_status(status)

    def get_stats(self, today: date | None = None) -> InvoiceStats:
        """Invoice count, overdue count and per-status totals."""
        today = today or today_utc()
        by_status = {
            status: self.store.sum_total_amount_by_status(status)
            for status in InvoiceStatus
        }
        return InvoiceStats(
            invoice_count=self.store.count_all(),
            overdue_count=self.store.count_overdue(today),
            total_amount=sum(by_status.values(), Decimal("0")),
            total_by_status=by_status,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _resolve_sort(self, sort_field: str, sort_direction: str) -> InvoiceSort:
        column = SORTABLE_FIELDS.get(sort_field)
        if column is None:
            raise InvoiceValidationError(
                f"Cannot sort by '{sort_field}'. Valid fields: {', '.join(sorted(SORTABLE_FIELDS))}"
            )
        direction = sort_direction.strip().lower()
        if direction not in ("asc", "desc"):
            raise InvoiceValidationError(
                f"Invalid sort direction '{sort_direction}'. Use 'asc' or 'desc'"
            )
        return InvoiceSort(column=column, descending=direction == "desc")

    def _page(
        self,
        invoice_filter: InvoiceFilter,
        sort: InvoiceSort,
        page: int,
        size: int | None,
    ) -> Page[Invoice]:
        size = self.config.default_page_size if size is None else size
        if page < 0:
            raise InvoiceValidationError("Page number must not be negative")
        if not 1 <= size <= self.config.max_page_size:
            raise InvoiceValidationError(
                f"Page size must be between 1 and {self.config.max_page_size}"
            )

        rows, total = self.store.find_page(invoice_filter, sort, page, size)
        return Page[Invoice].of([_to_invoice(row) for row in rows], page, size, total)
