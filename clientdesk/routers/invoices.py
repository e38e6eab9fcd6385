"""
Invoices API Endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_repos, page_size
from ..models import InvoiceStatus
from ..repositories import Repositories, paginate
from ..schemas import InvoiceCreate, InvoiceStatusUpdate, InvoiceUpdate
from ..stats import invoice_overview

router = APIRouter()


@router.get("")
def list_invoices(
    search: str = "",
    status: Optional[InvoiceStatus] = None,
    client_id: Optional[str] = Query(None, alias="clientId"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=500),
    repos: Repositories = Depends(get_repos),
    default_limit: int = Depends(page_size),
):
    """List invoices with client and project names, newest first"""
    rows = repos.invoices.search(search, status.value if status else None, client_id)
    rows, pagination = paginate(rows, page, limit or default_limit, "totalInvoices")
    return {"invoices": rows, "pagination": pagination}


@router.get("/stats/overview")
def invoices_overview(repos: Repositories = Depends(get_repos)):
    return invoice_overview(repos.invoices.all(), repos.clock.now())


@router.get("/{invoice_id}")
def get_invoice(invoice_id: str, repos: Repositories = Depends(get_repos)):
    return {"invoice": repos.invoices.detail(invoice_id)}


@router.post("", status_code=201)
def create_invoice(body: InvoiceCreate, repos: Repositories = Depends(get_repos)):
    invoice = repos.invoices.create(body)
    return {"message": "Invoice created successfully", "invoice": invoice.to_record()}


@router.put("/{invoice_id}")
def update_invoice(
    invoice_id: str, body: InvoiceUpdate, repos: Repositories = Depends(get_repos)
):
    invoice = repos.invoices.update(invoice_id, body)
    return {"message": "Invoice updated successfully", "invoice": invoice.to_record()}


@router.put("/{invoice_id}/status")
def update_invoice_status(
    invoice_id: str, body: InvoiceStatusUpdate, repos: Repositories = Depends(get_repos)
):
    invoice = repos.invoices.change_status(invoice_id, body.status)
    return {"message": "Invoice status updated successfully", "invoice": invoice.to_record()}


@router.delete("/{invoice_id}")
def delete_invoice(invoice_id: str, repos: Repositories = Depends(get_repos)):
    repos.invoices.delete(invoice_id)
    return {"message": "Invoice deleted successfully"}
