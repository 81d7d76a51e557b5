# =========================================================
# INVOICES ROUTER
#
# One invoice per order. An invoice starts Unpaid and is
# closed by paying it, or by returning / cancelling it,
# which also cancels the order and restocks the product.
# =========================================================

import logging
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from math import ceil

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import String, cast, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.availability import today_utc
from backoffice.core.config import settings
from backoffice.core.fulfilment import cancel_order
from backoffice.core.identifiers import (
    generate_invoice_id,
    generate_reference_number,
    unique_identifier,
)
from backoffice.database import get_db
from backoffice.models.invoices import Invoice
from backoffice.models.orders import Order
from backoffice.models.products import Product
from backoffice.schemas.invoice import (
    InvoiceCreate,
    InvoicePayment,
    InvoiceResponse,
    InvoiceReturn,
)

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])

logger = logging.getLogger("backoffice")

STATS_WINDOW_DAYS = 7

CLOSED_STATUSES = ("Cancelled", "Returned")

CENT = Decimal("0.01")


def _get_invoice_or_404(db: Session, invoice_id: str, for_update: bool = False) -> Invoice:
    query = db.query(Invoice).filter(Invoice.invoice_id == invoice_id)
    if for_update:
        query = query.with_for_update()

    invoice = query.first()

    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")

    return invoice


def _search_filter(term: str):
    pattern = f"%{term}%"

    return or_(
        Invoice.invoice_id.ilike(pattern),
        Invoice.reference_number.ilike(pattern),
        Invoice.order_id.ilike(pattern),
        Invoice.product_id.ilike(pattern),
        Invoice.product_name.ilike(pattern),
        Invoice.customer_name.ilike(pattern),
        Invoice.customer_email.ilike(pattern),
        Invoice.customer_phone.ilike(pattern),
        Invoice.status.ilike(pattern),
        Invoice.notes.ilike(pattern),
        cast(Invoice.quantity_ordered, String).ilike(pattern),
        cast(Invoice.price_per_unit, String).ilike(pattern),
        cast(Invoice.total_amount, String).ilike(pattern),
    )


def _money(value) -> float:
    return float(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


# =========================================================
# LIST & SEARCH
# =========================================================
@router.get("")
def list_invoices(
    status: str | None = Query(None),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(Invoice)

    if status:
        query = query.filter(Invoice.status == status)

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Invoice.invoice_id.ilike(pattern),
                Invoice.reference_number.ilike(pattern),
                Invoice.product_name.ilike(pattern),
                Invoice.customer_name.ilike(pattern),
            )
        )

    invoices = query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()

    return {
        "invoices": [InvoiceResponse.model_validate(invoice) for invoice in invoices],
        "total_invoices": len(invoices),
    }


@router.get("/search")
def search_invoices(
    query: str = Query(""),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: str | None = Query(None),
    db: Session = Depends(get_db),
):
    term = query.strip()
    if not term:
        raise HTTPException(status_code=400, detail="Search query is required")

    conditions = [_search_filter(term)]
    if status and status != "all":
        conditions.append(Invoice.status == status)

    base_query = db.query(Invoice).filter(*conditions)

    total_invoices = base_query.count()

    invoices = (
        base_query
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    by_status = dict(
        db.query(Invoice.status, func.count(Invoice.id))
        .filter(*conditions)
        .group_by(Invoice.status)
        .all()
    )

    total_pages = ceil(total_invoices / limit)

    return {
        "query": term,
        "results": {
            "invoices": [InvoiceResponse.model_validate(invoice) for invoice in invoices],
            "statistics": {
                "total_found": total_invoices,
                "by_status": by_status,
            },
            "pagination": {
                "current_page": page,
                "total_pages": total_pages,
                "total_invoices": total_invoices,
                "invoices_per_page": limit,
                "has_next": page < total_pages,
                "has_previous": page > 1,
            },
        },
    }


# =========================================================
# STATS & REPORTS
# =========================================================
@router.get("/stats")
def invoice_stats(db: Session = Depends(get_db)):
    since = datetime.now(timezone.utc) - timedelta(days=STATS_WINDOW_DAYS)
    period = f"Last {STATS_WINDOW_DAYS} days"

    recent_count = db.query(func.count(Invoice.id)).filter(Invoice.created_at >= since).scalar()
    total_count = db.query(func.count(Invoice.id)).scalar()

    processed_count = (
        db.query(func.count(Invoice.id))
        .filter(Invoice.status.in_(("Paid",) + CLOSED_STATUSES))
        .scalar()
    )

    paid_amount, paid_customers = (
        db.query(func.coalesce(func.sum(Invoice.total_amount), 0), func.count(Invoice.id))
        .filter(Invoice.status == "Paid", Invoice.created_at >= since)
        .one()
    )

    unpaid_amount, unpaid_count = (
        db.query(func.coalesce(func.sum(Invoice.total_amount), 0), func.count(Invoice.id))
        .filter(Invoice.status == "Unpaid")
        .one()
    )

    overdue_count = (
        db.query(func.count(Invoice.id))
        .filter(Invoice.status == "Unpaid", Invoice.due_date < today_utc())
        .scalar()
    )

    return {
        "period": period,
        "recent_transactions": {
            "count": recent_count,
            "period": period,
        },
        "total_invoices": {
            "total": total_count,
            "processed": processed_count,
        },
        "paid_amount": {
            "amount": float(paid_amount),
            "customers": paid_customers,
            "period": period,
        },
        "unpaid_amount": {
            "amount": float(unpaid_amount),
            "count": unpaid_count,
            "pending_payments": overdue_count,
        },
    }


@router.get("/reports/overdue")
def overdue_invoices(db: Session = Depends(get_db)):
    invoices = (
        db.query(Invoice)
        .filter(Invoice.status == "Unpaid", Invoice.due_date < today_utc())
        .order_by(Invoice.due_date.asc())
        .all()
    )

    total_overdue = sum((Decimal(invoice.total_amount) for invoice in invoices), Decimal("0"))

    return {
        "overdue_invoices": [InvoiceResponse.model_validate(invoice) for invoice in invoices],
        "total_overdue_amount": float(total_overdue),
        "count": len(invoices),
    }


# =========================================================
# READ SINGLE INVOICE
# =========================================================
@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: str, db: Session = Depends(get_db)):
    return _get_invoice_or_404(db, invoice_id)


@router.get("/{invoice_id}/view")
def view_invoice(invoice_id: str, db: Session = Depends(get_db)):
    invoice = _get_invoice_or_404(db, invoice_id)

    product = db.query(Product).filter(Product.product_id == invoice.product_id).first()
    order = db.query(Order).filter(Order.order_id == invoice.order_id).first()

    tax_rate = Decimal(str(settings.INVOICE_TAX_RATE))
    subtotal = Decimal(invoice.total_amount)

    return {
        "invoice_info": {
            "invoice_id": invoice.invoice_id,
            "reference_number": invoice.reference_number,
            "invoice_date": invoice.order_date,
            "due_date": invoice.due_date,
            "status": invoice.status,
        },
        "business_info": {
            "name": settings.BUSINESS_NAME,
            "address": settings.BUSINESS_ADDRESS,
            "tax_id": settings.BUSINESS_TAX_ID,
            "contact": {
                "phone": settings.BUSINESS_PHONE,
                "email": settings.BUSINESS_EMAIL,
            },
        },
        "customer_info": {
            "name": invoice.customer_name or "Guest Customer",
            "email": invoice.customer_email,
            "phone": invoice.customer_phone,
            "address": order.customer_address if order else "",
        },
        "products": [
            {
                "name": invoice.product_name,
                "product_id": invoice.product_id,
                "quantity": invoice.quantity_ordered,
                "price_per_unit": float(invoice.price_per_unit),
                "total_amount": float(invoice.total_amount),
                "unit": product.unit if product else "pcs",
            }
        ],
        "calculations": {
            "subtotal": _money(subtotal),
            "tax_rate": settings.INVOICE_TAX_RATE,
            "tax_amount": _money(subtotal * tax_rate),
            "total_due": _money(subtotal * (1 + tax_rate)),
        },
        "payment_info": {
            "status": invoice.status,
            "paid_date": invoice.paid_date,
            "notes": invoice.notes,
        },
        "metadata": {
            "created_at": invoice.created_at,
            "updated_at": invoice.updated_at,
            "order_date": invoice.order_date,
        },
        "payment_terms": (
            f"Please pay within {settings.INVOICE_DUE_DAYS} days of receiving this invoice."
        ),
    }


# =========================================================
# CREATE FROM ORDER
# =========================================================
@router.post(
    "/create-from-order",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_invoice_from_order(payload: InvoiceCreate, db: Session = Depends(get_db)):
    if not payload.order_id:
        raise HTTPException(status_code=400, detail="Order ID is required")

    existing = db.query(Invoice).filter(Invoice.order_id == payload.order_id).first()
    if existing:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Invoice already exists for this order",
                "invoice_id": existing.invoice_id,
            },
        )

    order = db.query(Order).filter(Order.order_id == payload.order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    if order.order_status == "cancelled":
        raise HTTPException(status_code=400, detail="Cannot invoice a cancelled order")

    invoice = Invoice(
        invoice_id=unique_identifier(db, Invoice.invoice_id, generate_invoice_id),
        reference_number=unique_identifier(db, Invoice.reference_number, generate_reference_number),
        order_id=order.order_id,
        product_id=order.product_id,
        product_name=order.product_name,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        quantity_ordered=order.quantity_ordered,
        price_per_unit=order.price_per_unit,
        total_amount=order.total_amount,
        order_date=order.order_date,
        due_date=order.order_date.date() + timedelta(days=settings.INVOICE_DUE_DAYS),
        status="Unpaid",
    )

    try:
        db.add(invoice)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Unable to create invoice for order {payload.order_id}")
        raise HTTPException(status_code=500, detail="Failed to create invoice")

    db.refresh(invoice)

    logger.info(f"Invoice {invoice.invoice_id} created for order {order.order_id}")

    return invoice


# =========================================================
# PAY / RETURN
# =========================================================
@router.patch("/{invoice_id}/pay", response_model=InvoiceResponse)
def pay_invoice(
    invoice_id: str,
    payload: InvoicePayment,
    db: Session = Depends(get_db),
):
    invoice = _get_invoice_or_404(db, invoice_id, for_update=True)

    if invoice.status == "Paid":
        raise HTTPException(status_code=400, detail="Invoice is already paid")

    if invoice.status in CLOSED_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot pay a {invoice.status.lower()} invoice",
        )

    invoice.status = "Paid"
    invoice.paid_date = datetime.now(timezone.utc)
    if payload.notes:
        invoice.notes = payload.notes

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Unable to mark invoice {invoice_id} as paid")
        raise HTTPException(status_code=500, detail="Failed to mark invoice as paid")

    db.refresh(invoice)

    return invoice


@router.patch("/{invoice_id}/return")
def return_invoice(
    invoice_id: str,
    payload: InvoiceReturn,
    db: Session = Depends(get_db),
):
    invoice = _get_invoice_or_404(db, invoice_id, for_update=True)

    if invoice.status == "Paid":
        raise HTTPException(status_code=400, detail="Cannot return/cancel a paid invoice")

    if invoice.status in CLOSED_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invoice is already {invoice.status.lower()}",
        )

    returned = payload.action == "return"

    invoice.status = "Returned" if returned else "Cancelled"
    if payload.notes:
        invoice.notes = payload.notes

    try:
        order = db.query(Order).filter(Order.order_id == invoice.order_id).first()
        if order:
            cancel_order(db, order)

        db.commit()

    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Unable to process return of invoice {invoice_id}")
        raise HTTPException(status_code=500, detail="Failed to process invoice return/cancel")

    db.refresh(invoice)

    return {
        "message": f"Invoice {'returned' if returned else 'cancelled'} successfully",
        "invoice": InvoiceResponse.model_validate(invoice),
    }
