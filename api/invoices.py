"""Invoice lifecycle endpoints under /api/invoices."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from api.middleware import request_id_of
from core.models import Invoice, InvoiceCreate, InvoicePatch, Page
from core.services.invoice_service import InvoiceService


def _invoice(invoice: Invoice) -> dict:
    return invoice.model_dump(mode="json", by_alias=True)


def _page(page: Page[Invoice]) -> dict:
    return page.model_dump(mode="json", by_alias=True)


def create_invoices_router(invoice_service: InvoiceService) -> APIRouter:
    router = APIRouter(prefix="/invoices", tags=["invoices"])

    def respond(request: Request, data) -> dict:
        return success_response(data, request_id_of(request)).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Collection routes (registered before /{invoice_id})
    # -------------------------------------------------------------------------

    @router.post("", status_code=201)
    def create_invoice(request: Request, payload: InvoiceCreate):
        return respond(request, _invoice(invoice_service.create(payload)))

    @router.get("")
    def list_invoices(
        request: Request,
        page: int = Query(0, ge=0),
        size: int | None = Query(None, ge=1),
        sort_by: str = Query("createdAt", alias="sortBy"),
        sort_dir: str = Query("desc", alias="sortDir"),
    ):
        return respond(request, _page(invoice_service.list_all(page, size, sort_by, sort_dir)))

    @router.get("/status/{status}")
    def list_by_status(
        request: Request,
        status: str,
        page: int = Query(0, ge=0),
        size: int | None = Query(None, ge=1),
    ):
        return respond(request, _page(invoice_service.list_by_status(status, page, size)))

    @router.get("/type/{invoice_type}")
    def list_by_type(
        request: Request,
        invoice_type: str,
        page: int = Query(0, ge=0),
        size: int | None = Query(None, ge=1),
    ):
        return respond(request, _page(invoice_service.list_by_type(invoice_type, page, size)))

    @router.get("/search")
    def search_invoices(
        request: Request,
        query: str = Query(...),
        page: int = Query(0, ge=0),
        size: int | None = Query(None, ge=1),
    ):
        return respond(request, _page(invoice_service.search(query, page, size)))

    @router.get("/date-range")
    def list_by_date_range(
        request: Request,
        start_date: date = Query(..., alias="startDate"),
        end_date: date = Query(..., alias="endDate"),
    ):
        invoices = invoice_service.list_by_date_range(start_date, end_date)
        return respond(request, [_invoice(i) for i in invoices])

    @router.get("/overdue")
    def list_overdue(request: Request):
        return respond(request, [_invoice(i) for i in invoice_service.list_overdue()])

    @router.get("/number/{invoice_number}")
    def get_by_number(request: Request, invoice_number: str):
        return respond(request, _invoice(invoice_service.get_by_number(invoice_number)))

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    @router.get("/stats")
    def stats(request: Request):
        return respond(request, invoice_service.get_stats().model_dump(mode="json", by_alias=True))

    @router.get("/stats/total")
    def total_by_status(request: Request, status: str = Query(...)):
        return respond(request, str(invoice_service.sum_total_amount_by_status(status)))

    @router.get("/stats/count")
    def count_by_status(request: Request, status: str = Query(...)):
        return respond(request, invoice_service.count_by_status(status))

    # -------------------------------------------------------------------------
    # Single invoice
    # -------------------------------------------------------------------------

    @router.get("/{invoice_id}")
    def get_invoice(request: Request, invoice_id: UUID):
        return respond(request, _invoice(invoice_service.get_by_id(invoice_id)))

    @router.get("/{invoice_id}/history")
    def get_history(request: Request, invoice_id: UUID):
        entries = invoice_service.get_history(invoice_id)
        return respond(request, [e.model_dump(mode="json", by_alias=True) for e in entries])

    @router.put("/{invoice_id}")
    @router.patch("/{invoice_id}")
    def update_invoice(request: Request, invoice_id: UUID, patch: InvoicePatch):
        return respond(request, _invoice(invoice_service.update(invoice_id, patch)))

    @router.delete("/{invoice_id}")
    def delete_invoice(request: Request, invoice_id: UUID):
        invoice_service.delete(invoice_id)
        return respond(request, {"deleted": str(invoice_id)})

    return router
