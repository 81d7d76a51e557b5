# backoffice/routers/monitor.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from backoffice.core.availability import (
    IN_STOCK,
    LOW_STOCK,
    OUT_OF_STOCK,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
)
from backoffice.core.status_monitor import status_monitor
from backoffice.database import get_db
from backoffice.models.products import Product
from backoffice.schemas.product import PublicProductResponse

router = APIRouter(prefix="/api/monitor", tags=["Status Monitor"])

STATUS_FILTERS = {
    "expired": (Product.status == STATUS_EXPIRED,),
    "low-stock": (Product.status == STATUS_ACTIVE, Product.availability == LOW_STOCK),
    "out-of-stock": (Product.status == STATUS_ACTIVE, Product.availability == OUT_OF_STOCK),
    "in-stock": (Product.status == STATUS_ACTIVE, Product.availability == IN_STOCK),
}


@router.get("/status")
def monitor_status():
    return {"status_monitor": status_monitor.get_status()}


@router.post("/trigger")
def trigger_status_check(db: Session = Depends(get_db)):
    summary = status_monitor.trigger(db)

    return {
        "message": "Product status check triggered successfully",
        "summary": summary,
    }


@router.get("/products/{status}")
def products_by_status(status: str, db: Session = Depends(get_db)):
    conditions = STATUS_FILTERS.get(status.lower())

    if conditions is None:
        raise HTTPException(
            status_code=400,
            detail="Invalid status. Use: expired, low-stock, out-of-stock, or in-stock",
        )

    products = (
        db.query(Product)
        .filter(*conditions)
        .order_by(Product.last_status_check.desc(), Product.id.desc())
        .all()
    )

    return {
        "count": len(products),
        "status": status,
        "products": [PublicProductResponse.model_validate(product) for product in products],
    }


@router.get("/summary")
def monitor_summary(db: Session = Depends(get_db)):
    def _count(*conditions) -> int:
        return db.query(func.count(Product.id)).filter(*conditions).scalar()

    recently_expired = (
        db.query(Product)
        .filter(Product.status == STATUS_EXPIRED)
        .order_by(Product.last_status_check.desc(), Product.id.desc())
        .limit(5)
        .all()
    )

    low_stock_items = (
        db.query(Product)
        .filter(*STATUS_FILTERS["low-stock"])
        .order_by(Product.quantity.asc(), Product.id.asc())
        .limit(10)
        .all()
    )

    return {
        "summary": {
            "total": _count(),
            "active": _count(Product.status == STATUS_ACTIVE),
            "expired": _count(*STATUS_FILTERS["expired"]),
            "out_of_stock": _count(*STATUS_FILTERS["out-of-stock"]),
            "low_stock": _count(*STATUS_FILTERS["low-stock"]),
            "in_stock": _count(*STATUS_FILTERS["in-stock"]),
        },
        "alerts": {
            "recently_expired": [
                {
                    "product_id": product.product_id,
                    "name": product.name,
                    "expiry_date": product.expiry_date,
                    "last_status_check": product.last_status_check,
                }
                for product in recently_expired
            ],
            "low_stock_items": [
                {
                    "product_id": product.product_id,
                    "name": product.name,
                    "quantity": product.quantity,
                    "threshold_value": product.threshold_value,
                }
                for product in low_stock_items
            ],
        },
        "status_monitor": status_monitor.get_status(),
    }
