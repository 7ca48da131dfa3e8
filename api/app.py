"""Application assembly: wires clients, services and routes."""

import logging

from fastapi import FastAPI

from api.errors import register_error_handlers
from api.invoices import create_invoices_router
from api.middleware import RequestIDMiddleware
from clients.postgres_client import PostgresClient
from core.actors import ActorResolver
from core.audit import AuditLogger
from core.config import InvoiceConfig
from core.invoice_numbers import InvoiceNumberGenerator
from core.invoice_store import InvoiceStore
from core.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)


def build_invoice_service(postgres: PostgresClient, config: InvoiceConfig | None = None) -> InvoiceService:
    """InvoiceService backed by PostgreSQL."""
    config = config or InvoiceConfig()
    store = InvoiceStore(postgres)
    return InvoiceService(
        store=store,
        audit=AuditLogger(postgres),
        numbers=InvoiceNumberGenerator(store, config),
        actors=ActorResolver(config),
        config=config,
    )


def create_app(invoice_service: InvoiceService) -> FastAPI:
    """FastAPI app with request IDs, error handlers and invoice routes."""
    app = FastAPI(title="ARPay Invoices")
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_invoices_router(invoice_service), prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def create_production_app(config: InvoiceConfig | None = None) -> FastAPI:
    """
    App connected to the database named in Vault.

    Applies the schema (idempotent) before serving.
    """
    from clients.schema import apply_schema
    from clients.vault_client import get_database_url

    config = config or InvoiceConfig()
    postgres = PostgresClient(get_database_url())
    apply_schema(postgres, config)
    logger.info("Invoice service ready")
    return create_app(build_invoice_service(postgres, config))
