"""Core domain models."""

from core.models.actor import Actor
from core.models.audit_entry import AuditEntry
from core.models.invoice import (
    Invoice,
    InvoiceCreate,
    InvoicePatch,
    InvoiceStats,
    InvoiceStatus,
    InvoiceType,
    LeadSource,
)
from core.models.page import Page

__all__ = [
    # Actor
    "Actor",
    # Audit
    "AuditEntry",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoicePatch", "InvoiceStats",
    "InvoiceStatus", "InvoiceType", "LeadSource",
    # Paging
    "Page",
]
