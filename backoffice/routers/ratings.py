# backoffice/routers/ratings.py

import logging
from math import ceil

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.availability import STATUS_ACTIVE
from backoffice.database import get_db
from backoffice.models.orders import Order
from backoffice.models.products import Product
from backoffice.schemas.rating import RateProduct

router = APIRouter(prefix="/api/ratings", tags=["Ratings"])

logger = logging.getLogger("backoffice")

TOP_PRODUCTS_LIMIT = 6
TOP_RATED_THRESHOLD = 4.0


def rating_stars(average_rating: float) -> str:
    filled = int(average_rating + 0.5)
    return "★" * filled + "☆" * (5 - filled)


def popularity_score(average_rating: float, total_ratings: int) -> float:
    return average_rating * 0.7 + min(total_ratings / 10, 1) * 0.3


def _rated_product(product: Product) -> dict:
    return {
        "product_id": product.product_id,
        "name": product.name,
        "category": product.category,
        "selling_price": float(product.selling_price),
        "quantity": product.quantity,
        "unit": product.unit,
        "availability": product.availability,
        "image_url": product.image_url,
        "average_rating": product.average_rating,
        "total_ratings": product.total_ratings,
    }


# =========================================================
# RATE PRODUCT
# =========================================================
@router.post("/rate-product")
def rate_product(payload: RateProduct, db: Session = Depends(get_db)):
    if not payload.product_id or payload.rating is None or not 1 <= payload.rating <= 5:
        raise HTTPException(
            status_code=400,
            detail="Product ID and rating (1-5) are required",
        )

    product = (
        db.query(Product)
        .filter(Product.product_id == payload.product_id)
        .with_for_update()
        .first()
    )

    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    product.add_rating(payload.rating)

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Unable to rate product {payload.product_id}")
        raise HTTPException(status_code=500, detail="Failed to submit rating")

    db.refresh(product)

    return {
        "message": "Rating submitted successfully",
        "product_rating": {
            "average_rating": product.average_rating,
            "total_ratings": product.total_ratings,
        },
    }


# =========================================================
# TOP RATED
# =========================================================
@router.get("/top-products")
def top_rated_products(db: Session = Depends(get_db)):
    products = (
        db.query(Product)
        .filter(Product.status == STATUS_ACTIVE, Product.average_rating > 0)
        .order_by(Product.average_rating.desc(), Product.total_ratings.desc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )

    enhanced = []
    for product in products:
        item = _rated_product(product)
        item.update({
            "rating_stars": rating_stars(product.average_rating),
            "rating_percentage": round(product.average_rating / 5 * 100, 1),
            "is_top_rated": product.average_rating >= TOP_RATED_THRESHOLD,
            "popularity_score": round(
                popularity_score(product.average_rating, product.total_ratings), 2
            ),
        })
        enhanced.append(item)

    if enhanced:
        average_across_top = round(
            sum(item["average_rating"] for item in enhanced) / len(enhanced), 2
        )
        highest = enhanced[0]["average_rating"]
        lowest = enhanced[-1]["average_rating"]
    else:
        average_across_top = highest = lowest = 0

    return {
        "message": "Top products retrieved successfully",
        "products": enhanced,
        "metadata": {
            "total_products": len(enhanced),
            "average_rating_across_top": average_across_top,
            "highest_rating": highest,
            "lowest_rating": lowest,
        },
    }


@router.get("/products-by-rating")
def products_by_rating(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    min_rating: float = Query(0, ge=0, le=5),
    db: Session = Depends(get_db),
):
    query = db.query(Product).filter(
        Product.status == STATUS_ACTIVE,
        Product.average_rating >= min_rating,
    )

    total_products = query.count()

    products = (
        query
        .order_by(Product.average_rating.desc(), Product.total_ratings.desc(), Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "products": [_rated_product(product) for product in products],
        "pagination": {
            "current_page": page,
            "total_pages": ceil(total_products / limit),
            "total_products": total_products,
            "has_next": page * limit < total_products,
            "has_prev": page > 1,
        },
    }


# =========================================================
# PER-PRODUCT RATINGS
# =========================================================
@router.get("/product/{product_id}")
def product_ratings(product_id: str, db: Session = Depends(get_db)):
    product = db.query(Product).filter(Product.product_id == product_id).first()

    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    counts = dict(
        db.query(Order.rating, func.count(Order.id))
        .filter(Order.product_id == product_id)
        .group_by(Order.rating)
        .all()
    )
    distribution = {star: counts.get(star, 0) for star in range(1, 6)}

    return {
        "product": {
            "product_id": product.product_id,
            "name": product.name,
            "average_rating": product.average_rating,
            "total_ratings": product.total_ratings,
            "rating_sum": product.rating_sum,
        },
        "rating_distribution": distribution,
        "rating_breakdown": {
            "five_stars": distribution[5],
            "four_stars": distribution[4],
            "three_stars": distribution[3],
            "two_stars": distribution[2],
            "one_star": distribution[1],
        },
    }


@router.get("/product/{product_id}/reviews")
def product_reviews(
    product_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    if not db.query(Product.id).filter(Product.product_id == product_id).first():
        raise HTTPException(status_code=404, detail="Product not found")

    query = db.query(Order).filter(Order.product_id == product_id, Order.review != "")

    total_reviews = query.count()

    orders = (
        query
        .order_by(Order.order_date.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "reviews": [
            {
                "order_id": order.order_id,
                "customer_name": order.customer_name,
                "rating": order.rating,
                "review": order.review,
                "order_date": order.order_date,
            }
            for order in orders
        ],
        "pagination": {
            "current_page": page,
            "total_pages": ceil(total_reviews / limit),
            "total_reviews": total_reviews,
            "has_next": page * limit < total_reviews,
            "has_prev": page > 1,
        },
    }
