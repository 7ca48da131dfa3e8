"""Invoice domain models.

Amounts are Decimal end to end (numeric(15,2) in PostgreSQL) so repeated
additions never drift. Python names are snake_case; every model also reads
and writes the camelCase names used by the frontend (customerName, totalAmount).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def _coerce_enum(enum_cls: type[Enum]):
    """Before-validator that routes strings through the enum's lenient lookup."""

    def coerce(value: Any) -> Any:
        if isinstance(value, str):
            return enum_cls(value)
        return value

    return BeforeValidator(coerce)


class InvoiceStatus(str, Enum):
    """Invoice payment status. Values are the storage keys."""

    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    PARTIAL = "PARTIAL"

    @classmethod
    def _missing_(cls, value: object) -> "InvoiceStatus | None":
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


class InvoiceType(str, Enum):
    """What the invoice bills for."""

    PROJECT = "PROJECT"
    CUSTOMER = "CUSTOMER"
    EXPENSE = "EXPENSE"

    @classmethod
    def _missing_(cls, value: object) -> "InvoiceType | None":
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


class LeadSource(str, Enum):
    """How the customer found us. Stored by key, displayed by label."""

    MARKETING_DATA = "MARKETING_DATA"
    OLD_DATA = "OLD_DATA"
    DIRECT_LEAD = "DIRECT_LEAD"
    REFERRAL = "REFERRAL"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    OTHERS = "OTHERS"

    @property
    def label(self) -> str:
        """Human-readable name for display."""
        return _LEAD_SOURCE_LABELS[self]

    @classmethod
    def _missing_(cls, value: object) -> "LeadSource | None":
        # Accept "Social Media", "social_media", "SOCIAL_MEDIA"
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        for source in cls:
            if wanted in (source.value.lower(), source.label.lower()):
                return source
        return None


_LEAD_SOURCE_LABELS = {
    LeadSource.MARKETING_DATA: "Marketing Data",
    LeadSource.OLD_DATA: "Old Data",
    LeadSource.DIRECT_LEAD: "Direct Lead",
    LeadSource.REFERRAL: "Referral",
    LeadSource.SOCIAL_MEDIA: "Social Media",
    LeadSource.OTHERS: "Others",
}

Status = Annotated[InvoiceStatus, _coerce_enum(InvoiceStatus)]
Kind = Annotated[InvoiceType, _coerce_enum(InvoiceType)]
Source = Annotated[LeadSource, _coerce_enum(LeadSource)]
Money = Annotated[Decimal, Field(ge=0, max_digits=15, decimal_places=2)]

_MODEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}

# Fields an update may not clear
REQUIRED_FIELDS = frozenset({
    "customer_name", "status", "invoice_type",
    "invoice_date", "due_date", "amount", "total_amount",
})


class InvoiceCreate(BaseModel):
    """
    Data required to create an invoice.

    The invoice number is generated by the service; one supplied by the
    caller is ignored. Missing amount/total are derived by reconciliation.
    """

    # Customer
    project_name: str | None = Field(None, max_length=200)
    customer_name: str = Field(..., max_length=200)
    customer_phone: str | None = Field(None, max_length=20)
    reference: str | None = Field(None, max_length=255)
    lead_source: Source | None = None

    # Financial triple
    amount: Money | None = None
    tax: Money | None = None
    total_amount: Money | None = None

    # Payment breakdown for property sales
    token_amount: Money | None = None
    agreement_amount: Money | None = None
    registration_amount: Money | None = None
    agreement_due_date: date | None = None
    agreement_due_amount: Money | None = None
    registration_due_date: date | None = None
    registration_due_amount: Money | None = None

    status: Status
    invoice_type: Kind
    invoice_date: date
    due_date: date

    notes: str | None = Field(None, max_length=10000)
    line_items: Any = None
    attachments: Any = None

    model_config = _MODEL_CONFIG

    @field_validator("customer_name")
    @classmethod
    def customer_name_not_blank(cls, value: str) -> str:
        """Customer name is required and may not be whitespace."""
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value


class InvoicePatch(BaseModel):
    """
    Partial update of an invoice.

    Only fields the caller actually sent are applied (model_fields_set).
    Sending null clears an optional field; required fields cannot be cleared.
    """

    project_name: str | None = Field(None, max_length=200)
    customer_name: str | None = Field(None, max_length=200)
    customer_phone: str | None = Field(None, max_length=20)
    reference: str | None = Field(None, max_length=255)
    lead_source: Source | None = None

    amount: Money | None = None
    tax: Money | None = None
    total_amount: Money | None = None

    token_amount: Money | None = None
    agreement_amount: Money | None = None
    registration_amount: Money | None = None
    agreement_due_date: date | None = None
    agreement_due_amount: Money | None = None
    registration_due_date: date | None = None
    registration_due_amount: Money | None = None

    status: Status | None = None
    invoice_type: Kind | None = None
    invoice_date: date | None = None
    due_date: date | None = None

    notes: str | None = Field(None, max_length=10000)
    line_items: Any = None
    attachments: Any = None

    model_config = _MODEL_CONFIG

    @model_validator(mode="after")
    def required_fields_not_cleared(self) -> "InvoicePatch":
        """Reject explicit nulls on fields every invoice must have."""
        cleared = sorted(
            name for name in self.model_fields_set & REQUIRED_FIELDS
            if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Required fields cannot be cleared: {', '.join(cleared)}")
        if self.customer_name is not None and not self.customer_name.strip():
            raise ValueError("Customer name is required")
        return self

    def supplied(self) -> dict[str, Any]:
        """Fields the caller sent, including explicit nulls."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class Invoice(BaseModel):
    """Full invoice as returned to callers, sub-documents decoded."""

    id: UUID
    invoice_number: str

    project_name: str | None = None
    customer_name: str
    customer_phone: str | None = None
    reference: str | None = None
    lead_source: LeadSource | None = None

    amount: Decimal
    tax: Decimal | None = None
    total_amount: Decimal

    token_amount: Decimal | None = None
    agreement_amount: Decimal | None = None
    registration_amount: Decimal | None = None
    agreement_due_date: date | None = None
    agreement_due_amount: Decimal | None = None
    registration_due_date: date | None = None
    registration_due_amount: Decimal | None = None

    status: InvoiceStatus
    invoice_type: InvoiceType
    invoice_date: date
    due_date: date

    notes: str | None = None
    line_items: Any = None
    attachments: Any = None

    created_by_id: UUID | None = None
    created_by_name: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {**_MODEL_CONFIG, "from_attributes": True}

    @computed_field(alias="leadSourceLabel")
    @property
    def lead_source_label(self) -> str | None:
        """Display label of the lead source."""
        return self.lead_source.label if self.lead_source else None

    def is_overdue(self, today: date) -> bool:
        """Due date has passed and the invoice is not paid."""
        return self.due_date < today and self.status != InvoiceStatus.PAID


class InvoiceStats(BaseModel):
    """Invoice figures for the dashboard."""

    invoice_count: int
    overdue_count: int
    total_amount: Decimal
    total_by_status: dict[InvoiceStatus, Decimal]

    model_config = _MODEL_CONFIG
