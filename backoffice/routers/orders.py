# =========================================================
# ORDERS ROUTER
#
# - Product lookup and availability check before ordering
# - Placing an order locks the product row, snapshots
#   name and price, takes the stock and records the sale
# - Cancelling puts the stock back and drops the sale
# =========================================================

import logging
from math import ceil

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.availability import (
    EXPIRED,
    OUT_OF_STOCK,
    STATUS_ACTIVE,
    is_orderable,
)
from backoffice.core.fulfilment import cancel_order, lock_product
from backoffice.core.identifiers import generate_order_id, unique_identifier
from backoffice.core.ledger import record_sale
from backoffice.core.rate_limiter import limiter
from backoffice.database import get_db
from backoffice.models.orders import ORDER_STATUSES, Order
from backoffice.models.products import Product
from backoffice.schemas.order import (
    AvailabilityCheck,
    OrderResponse,
    OrderStatusUpdate,
    PlaceOrderRequest,
)

router = APIRouter(prefix="/api/orders", tags=["Orders"])

logger = logging.getLogger("backoffice")


def _availability_problem(product: Product, requested_quantity: int) -> dict | None:
    if product.status != STATUS_ACTIVE:
        return {"message": "Product is not available for ordering", "available_quantity": 0}

    if product.availability == EXPIRED:
        return {"message": "Product has expired and cannot be ordered", "available_quantity": 0}

    if product.availability == OUT_OF_STOCK or product.quantity == 0:
        return {"message": "Product is out of stock", "available_quantity": 0}

    if requested_quantity > product.quantity:
        return {
            "message": f"Only {product.quantity} units available. Please order accordingly.",
            "available_quantity": product.quantity,
            "requested_quantity": requested_quantity,
        }

    return None


# =========================================================
# PRODUCT DETAILS FOR ORDERING
# =========================================================
@router.get("/product/{product_id}")
def get_product_for_order(product_id: str, db: Session = Depends(get_db)):
    product = db.query(Product).filter(Product.product_id == product_id).first()

    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    return {
        "product": {
            "product_id": product.product_id,
            "name": product.name,
            "category": product.category,
            "description": product.description or "Description not available",
            "selling_price": float(product.selling_price),
            "quantity": product.quantity,
            "unit": product.unit,
            "image_url": product.image_url,
            "availability": product.availability,
            "status": product.status,
            "is_available": is_orderable(product),
            "expiry_date": product.expiry_date,
        }
    }


# =========================================================
# AVAILABILITY CHECK
# =========================================================
@router.post("/check-availability")
def check_availability(payload: AvailabilityCheck, db: Session = Depends(get_db)):
    if not payload.product_id or not payload.requested_quantity or payload.requested_quantity < 1:
        raise HTTPException(
            status_code=400,
            detail="Product ID and valid quantity are required",
        )

    product = db.query(Product).filter(Product.product_id == payload.product_id).first()

    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    problem = _availability_problem(product, payload.requested_quantity)
    if problem:
        raise HTTPException(status_code=400, detail=problem)

    return {
        "message": "Product is available for ordering",
        "available_quantity": product.quantity,
        "requested_quantity": payload.requested_quantity,
        "can_order": True,
    }


# =========================================================
# PLACE ORDER
# =========================================================
@router.post("/place-order", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def place_order(
    request: Request,
    payload: PlaceOrderRequest,
    db: Session = Depends(get_db),
):
    if not payload.product_id or not payload.quantity_ordered:
        raise HTTPException(status_code=400, detail="Product ID and quantity are required")

    if payload.quantity_ordered < 1:
        raise HTTPException(status_code=400, detail="Quantity must be at least 1")

    if payload.rating is None:
        raise HTTPException(status_code=400, detail="Rating is required")

    if not 1 <= payload.rating <= 5:
        raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")

    try:
        product = lock_product(db, payload.product_id)

        if not product:
            raise HTTPException(status_code=404, detail="Product not found")

        problem = _availability_problem(product, payload.quantity_ordered)
        if problem:
            raise HTTPException(status_code=400, detail=problem)

        price_per_unit = product.selling_price
        customer = payload.customer_info

        order = Order(
            order_id=unique_identifier(db, Order.order_id, generate_order_id),
            product_id=product.product_id,
            product_name=product.name,
            price_per_unit=price_per_unit,
            quantity_ordered=payload.quantity_ordered,
            total_amount=price_per_unit * payload.quantity_ordered,
            customer_name=customer.name or "Guest Customer",
            customer_email=customer.email,
            customer_phone=customer.phone,
            customer_address=customer.address,
            notes=payload.notes,
            rating=payload.rating,
            review=payload.review,
        )
        db.add(order)
        db.flush()

        product.quantity -= payload.quantity_ordered
        product.refresh_status()
        product.add_rating(payload.rating)

        record_sale(db, order)

        db.commit()

    except HTTPException:
        db.rollback()
        raise

    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Unable to place order for {payload.product_id}")
        raise HTTPException(status_code=500, detail="Failed to place order")

    db.refresh(order)
    db.refresh(product)

    logger.info(f"Order {order.order_id} placed: {order.quantity_ordered} x {order.product_name}")

    return {
        "message": "Order placed successfully",
        "order": OrderResponse.model_validate(order),
        "updated_product": {
            "product_id": product.product_id,
            "name": product.name,
            "remaining_quantity": product.quantity,
            "availability": product.availability,
            "average_rating": product.average_rating,
            "total_ratings": product.total_ratings,
        },
    }


# =========================================================
# READ ORDERS
# =========================================================
@router.get("/order/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, db: Session = Depends(get_db)):
    order = db.query(Order).filter(Order.order_id == order_id).first()

    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    return order


@router.get("/orders")
def list_orders(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(Order)
    if status:
        query = query.filter(Order.order_status == status)

    total_orders = query.count()

    orders = (
        query
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "orders": [OrderResponse.model_validate(order) for order in orders],
        "pagination": {
            "current_page": page,
            "total_pages": ceil(total_orders / limit),
            "total_orders": total_orders,
            "limit": limit,
        },
    }


# =========================================================
# UPDATE ORDER STATUS
# =========================================================
@router.patch("/order/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
):
    if not payload.status or payload.status not in ORDER_STATUSES:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Valid status is required",
                "valid_statuses": list(ORDER_STATUSES),
            },
        )

    order = db.query(Order).filter(Order.order_id == order_id).first()

    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    # cancelled is final; its stock is already back on the shelf
    if order.order_status == "cancelled" and payload.status != "cancelled":
        raise HTTPException(status_code=400, detail="Cancelled orders cannot be reopened")

    try:
        if payload.status == "cancelled":
            cancel_order(db, order)
        else:
            order.order_status = payload.status

        db.commit()

    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Unable to update status of order {order_id}")
        raise HTTPException(status_code=500, detail="Failed to update order status")

    db.refresh(order)

    return {
        "message": "Order status updated successfully",
        "order": {
            "order_id": order.order_id,
            "order_status": order.order_status,
            "updated_at": order.updated_at,
        },
    }
