"""Invoice subsystem configuration."""

from uuid import UUID

from pydantic import BaseModel, Field

# Fixed identity of the non-human actor credited with invoices created
# outside an authenticated request.
SYSTEM_ACCOUNT_ID = UUID("00000000-0000-0000-0000-00000000a5a5")

# Not a valid password hash, so no login can ever match it.
SYSTEM_ACCOUNT_CREDENTIAL = "!"


class InvoiceConfig(BaseModel):
    """
    Invoice configuration.

    Defaults match production; tests override individual fields.
    """

    # Numbering
    number_prefix: str = Field(
        default="INV",
        description="Prefix of generated invoice numbers",
        min_length=1,
        max_length=10,
        pattern="^[A-Z0-9]+$",
    )

    # Paging
    default_page_size: int = Field(
        default=20,
        description="Page size when the caller does not specify one",
        ge=1,
        le=500,
    )
    max_page_size: int = Field(
        default=500,
        description="Largest page a caller may request",
        ge=1,
        le=5000,
    )

    # System account
    system_account_id: UUID = Field(
        default=SYSTEM_ACCOUNT_ID,
        description="User ID attributed when no caller is authenticated",
    )
    system_account_name: str = Field(
        default="System",
        description="Display name of the system account",
    )
    system_account_email: str = Field(
        default="system@arpay.local",
        description="Email of the system account",
    )
