"""
Order routes - list, create, read, document view, preview, PDF download, email.

Stored orders are raw input for the document pipeline; an ``order`` in the
request body replaces the stored record for rendering.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from api.auth.dependencies import get_current_user, get_mail_transport, get_order_db, get_pdf_renderer
from api.auth.models import ErrorResponse
from database.order_db import RecordNotFoundError
from order_normalization.errors import OrderNotFoundError, OrderValidationError
from order_normalization.orchestrator import OrderDocumentService
from utils.logger import get_logger

router = APIRouter()
logger = get_logger()

# ── Pydantic models ──────────────────────────────────────────────

class OrderCreateRequest(BaseModel):
    """New order: customer, lines and optional notes."""
    model_config = ConfigDict(populate_by_name=True)

    customer_id: Optional[str] = Field(None, alias="customerId")
    items: List[Dict[str, Any]] = Field(default_factory=list)
    notes: Optional[str] = None


class OrderOverrideRequest(BaseModel):
    """Optional client-side order that replaces the stored record."""
    order: Optional[Dict[str, Any]] = None


class OrderEmailRequest(BaseModel):
    """Email options; every field is optional."""
    model_config = ConfigDict(populate_by_name=True)

    to: Optional[str] = None
    subject: Optional[str] = None
    order: Optional[Dict[str, Any]] = None
    attach_pdf: bool = Field(False, alias="attachPdf")


# ── Helpers ──────────────────────────────────────────────────────

def _stored_order(db, order_id: str) -> Dict[str, Any]:
    order = db.get_order(order_id)
    if not order:
        raise OrderNotFoundError(order_id)
    return order


# ── Endpoints ────────────────────────────────────────────────────

@router.get("", summary="List orders")
async def list_orders(user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    """Orders newest first, with customer and items."""
    return db.list_orders()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create an order",
)
async def create_order(body: OrderCreateRequest, user: dict = Depends(get_current_user),
                       db=Depends(get_order_db)):
    """
    Create an order with the next sequential number.

    Lines without a unit price use the customer's special price, falling
    back to the product price. The total is the sum of the line totals.
    """
    if not body.customer_id:
        raise OrderValidationError("Cliente é obrigatório.")

    try:
        created = db.create_order(body.customer_id, body.items, notes=body.notes)
    except RecordNotFoundError as e:
        raise OrderValidationError(f"{e.entity.capitalize()} inexistente.", detail=str(e)) from e

    logger.info(f"Order #{created['number']} created ({len(created['items'])} items)", "Orders")
    return created


@router.post(
    "/preview",
    summary="Render a draft order",
)
async def preview_order(body: Optional[Dict[str, Any]] = Body(None), user: dict = Depends(get_current_user)):
    """
    Render an unsaved order (``{"order": {...}}`` or the order itself):
    canonical view, subject, plain text, summary and print HTML.
    """
    body = body or {}
    raw = body["order"] if isinstance(body.get("order"), dict) else body
    return OrderDocumentService().preview(raw)


@router.get(
    "/{order_id}",
    responses={404: {"model": ErrorResponse}},
    summary="Get an order",
)
async def get_order(order_id: str, user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    return _stored_order(db, order_id)


@router.get(
    "/{order_id}/document",
    responses={404: {"model": ErrorResponse}},
    summary="Canonical order with subject and text",
)
async def get_order_document(order_id: str, user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    return OrderDocumentService().document(_stored_order(db, order_id))


@router.post(
    "/{order_id}/pdf",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Download the order PDF",
)
def download_order_pdf(
    order_id: str,
    body: Optional[OrderOverrideRequest] = None,
    user: dict = Depends(get_current_user),
    db=Depends(get_order_db),
    pdf_renderer=Depends(get_pdf_renderer),
):
    """
    Render the dual-copy print document to PDF.

    Runs in the worker threadpool; the headless browser blocks.
    """
    raw = body.order if body and body.order else _stored_order(db, order_id)
    filename, pdf = OrderDocumentService(pdf_renderer=pdf_renderer).generate_pdf(raw)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )


@router.post(
    "/{order_id}/email",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Email the order",
)
def email_order(
    order_id: str,
    body: Optional[OrderEmailRequest] = None,
    user: dict = Depends(get_current_user),
    db=Depends(get_order_db),
    pdf_renderer=Depends(get_pdf_renderer),
    mail_transport=Depends(get_mail_transport),
):
    """
    Send the order by email.

    Recipient: ``to``, else the customer's email, else the configured
    sender. The PDF is attached when ``attachPdf`` is true.
    """
    body = body or OrderEmailRequest()
    stored = _stored_order(db, order_id)
    raw = body.order or stored

    service = OrderDocumentService(pdf_renderer=pdf_renderer, mail_transport=mail_transport)
    service.send_order_email(raw, to=body.to, subject=body.subject, attach_pdf=body.attach_pdf)
    return {"ok": True}
