"""
Database schema bootstrap.

Idempotent: safe to run on every start. Creates the tables the invoice
subsystem reads and writes, the invoice number sequence, and the system
account row.
"""

import logging

from clients.postgres_client import PostgresClient
from core.config import InvoiceConfig, SYSTEM_ACCOUNT_CREDENTIAL

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY,
    email VARCHAR(255) NOT NULL UNIQUE,
    name VARCHAR(200) NOT NULL,
    password_hash VARCHAR(255) NOT NULL,
    is_active BOOLEAN NOT NULL DEFAULT true,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS invoice_number_seq START 1;

CREATE TABLE IF NOT EXISTS invoices (
    id UUID PRIMARY KEY,
    invoice_number VARCHAR(50) NOT NULL,
    project_name VARCHAR(200),
    customer_name VARCHAR(200) NOT NULL,
    customer_phone VARCHAR(20),
    reference VARCHAR(255),
    lead_source VARCHAR(50),
    amount NUMERIC(15, 2) NOT NULL,
    tax NUMERIC(15, 2),
    total_amount NUMERIC(15, 2) NOT NULL,
    token_amount NUMERIC(15, 2),
    agreement_amount NUMERIC(15, 2),
    registration_amount NUMERIC(15, 2),
    agreement_due_date DATE,
    agreement_due_amount NUMERIC(15, 2),
    registration_due_date DATE,
    registration_due_amount NUMERIC(15, 2),
    status VARCHAR(20) NOT NULL,
    invoice_type VARCHAR(20) NOT NULL,
    invoice_date DATE NOT NULL,
    due_date DATE NOT NULL,
    notes TEXT,
    line_items TEXT,
    attachments TEXT,
    created_by UUID REFERENCES users (id),
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL,
    CONSTRAINT invoices_invoice_number_key UNIQUE (invoice_number)
);

CREATE INDEX IF NOT EXISTS invoices_status_idx ON invoices (status);
CREATE INDEX IF NOT EXISTS invoices_invoice_type_idx ON invoices (invoice_type);
CREATE INDEX IF NOT EXISTS invoices_due_date_idx ON invoices (due_date);
CREATE INDEX IF NOT EXISTS invoices_invoice_date_idx ON invoices (invoice_date);

CREATE TABLE IF NOT EXISTS audit_log (
    id UUID PRIMARY KEY,
    user_id UUID NOT NULL,
    entity_type VARCHAR(50) NOT NULL,
    entity_id UUID NOT NULL,
    action VARCHAR(20) NOT NULL,
    changes JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS audit_log_entity_idx ON audit_log (entity_type, entity_id);
"""


def apply_schema(postgres: PostgresClient, config: InvoiceConfig | None = None) -> None:
    """Create tables and provision the system account."""
    config = config or InvoiceConfig()

    postgres.execute(SCHEMA_SQL)
    postgres.execute(
        """
        INSERT INTO users (id, email, name, password_hash, is_active)
        VALUES (%s, %s, %s, %s, true)
        ON CONFLICT (id) DO NOTHING
        """,
        (
            config.system_account_id,
            config.system_account_email,
            config.system_account_name,
            SYSTEM_ACCOUNT_CREDENTIAL,
        ),
    )
    logger.info("Schema applied")
