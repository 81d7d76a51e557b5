# =========================================================
# STATISTICS ROUTER
#
# Rollups over the sales / purchase ledger:
# - weekly   -> Sunday to Saturday, one bucket per day
# - monthly  -> January to December, one bucket per month
# - yearly   -> the whole year as one bucket
#
# Every endpoint takes an optional as_of date (default today)
# =========================================================

from datetime import date, timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from backoffice.core.availability import STATUS_ACTIVE, today_utc
from backoffice.core.periods import (
    DAY_NAMES,
    day_bounds,
    percentage_change,
    previous_month,
    week_number,
    week_range,
)
from backoffice.database import get_db
from backoffice.models.orders import Order
from backoffice.models.products import Product
from backoffice.models.transactions import PURCHASE, SALE, Transaction

router = APIRouter(prefix="/api/statistics", tags=["Statistics"])

CHART_PERIODS = ("weekly", "monthly", "yearly")
TOP_PRODUCT_SORTS = ("rating", "sales", "revenue")

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def _to_decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def _ledger_totals(db: Session, *conditions) -> dict:
    """Sum amount and count rows per transaction type under ``conditions``."""
    rows = (
        db.query(
            Transaction.type,
            func.coalesce(func.sum(Transaction.amount), 0),
            func.count(Transaction.id),
        )
        .filter(*conditions)
        .group_by(Transaction.type)
        .all()
    )

    totals = {
        PURCHASE: (Decimal("0"), 0),
        SALE: (Decimal("0"), 0),
    }
    for transaction_type, amount, count in rows:
        totals[transaction_type] = (_to_decimal(amount), count)

    return totals


def _bucket(db: Session, label: str, *conditions) -> dict:
    totals = _ledger_totals(db, *conditions)
    purchases, purchase_count = totals[PURCHASE]
    sales, sale_count = totals[SALE]

    return {
        "label": label,
        "purchases": float(purchases),
        "sales": float(sales),
        "profit": float(sales - purchases),
        "transactions": {
            "purchases": purchase_count,
            "sales": sale_count,
        },
    }


def _on_day(day: date) -> tuple:
    return (
        Transaction.year == day.year,
        Transaction.month == day.month,
        Transaction.day == day.day,
    )


def _summary(buckets: list[dict]) -> dict:
    total_purchases = sum(_to_decimal(bucket["purchases"]) for bucket in buckets)
    total_sales = sum(_to_decimal(bucket["sales"]) for bucket in buckets)

    return {
        "total_purchases": float(total_purchases),
        "total_sales": float(total_sales),
        "total_profit": float(total_sales - total_purchases),
        "total_transactions": sum(
            bucket["transactions"]["purchases"] + bucket["transactions"]["sales"]
            for bucket in buckets
        ),
    }


# =========================================================
# CHART DATA
# =========================================================
@router.get("/chart-data")
def chart_data(
    period: str = Query("weekly"),
    as_of: date | None = Query(None),
    db: Session = Depends(get_db),
):
    if period not in CHART_PERIODS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid period. Use one of: {', '.join(CHART_PERIODS)}",
        )

    as_of = as_of or today_utc()

    if period == "weekly":
        start, end = week_range(as_of)
        buckets = []
        for offset in range(7):
            day = start + timedelta(days=offset)
            bucket = _bucket(db, DAY_NAMES[offset], *_on_day(day))
            bucket["date"] = day
            buckets.append(bucket)

    elif period == "monthly":
        start, end = date(as_of.year, 1, 1), date(as_of.year, 12, 31)
        buckets = [
            _bucket(
                db,
                MONTH_NAMES[month - 1],
                Transaction.year == as_of.year,
                Transaction.month == month,
            )
            for month in range(1, 13)
        ]

    else:
        start, end = date(as_of.year, 1, 1), date(as_of.year, 12, 31)
        buckets = [_bucket(db, str(as_of.year), Transaction.year == as_of.year)]

    return {
        "period": period,
        "start_date": start,
        "end_date": end,
        "chart_data": buckets,
        "summary": _summary(buckets),
    }


@router.get("/current-week-summary")
def current_week_summary(
    as_of: date | None = Query(None),
    db: Session = Depends(get_db),
):
    as_of = as_of or today_utc()
    start, end = week_range(as_of)
    start_at, end_at = day_bounds(start, end)

    totals = _ledger_totals(db, Transaction.date >= start_at, Transaction.date <= end_at)
    purchases, purchase_count = totals[PURCHASE]
    sales, sale_count = totals[SALE]

    return {
        "summary": {
            "week_number": week_number(as_of),
            "year": as_of.year,
            "week_start": start,
            "week_end": end,
            "total_purchases": float(purchases),
            "total_sales": float(sales),
            "profit": float(sales - purchases),
            "transaction_counts": {
                "purchases": purchase_count,
                "sales": sale_count,
            },
        }
    }


# =========================================================
# OVERVIEW
# =========================================================
def _month_sales(db: Session, year: int, month: int) -> tuple[Decimal, int]:
    revenue, units = (
        db.query(
            func.coalesce(func.sum(Transaction.amount), 0),
            func.coalesce(func.sum(Transaction.quantity), 0),
        )
        .filter(
            Transaction.type == SALE,
            Transaction.year == year,
            Transaction.month == month,
        )
        .one()
    )
    return _to_decimal(revenue), int(units)


@router.get("/overview")
def overview(
    as_of: date | None = Query(None),
    db: Session = Depends(get_db),
):
    as_of = as_of or today_utc()
    last_year, last_month = previous_month(as_of.year, as_of.month)

    revenue, units_sold = _month_sales(db, as_of.year, as_of.month)
    last_revenue, last_units_sold = _month_sales(db, last_year, last_month)

    units_in_stock = db.query(func.coalesce(func.sum(Product.quantity), 0)).scalar()

    return {
        "month": f"{as_of.year:04d}-{as_of.month:02d}",
        "total_revenue": float(revenue),
        "last_month_revenue": float(last_revenue),
        "revenue_percent_change": float(percentage_change(revenue, last_revenue)),
        "products_sold": units_sold,
        "last_month_products_sold": last_units_sold,
        "products_sold_percent_change": float(percentage_change(units_sold, last_units_sold)),
        "products_in_stock": int(units_in_stock),
    }


# =========================================================
# TOP PRODUCTS
# =========================================================
@router.get("/top-products")
def top_products(
    sort_by: str = Query("rating"),
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
):
    if sort_by not in TOP_PRODUCT_SORTS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid sort_by. Use one of: {', '.join(TOP_PRODUCT_SORTS)}",
        )

    def _base(product: Product) -> dict:
        return {
            "product_id": product.product_id,
            "name": product.name,
            "category": product.category,
            "average_rating": product.average_rating,
            "total_ratings": product.total_ratings,
            "selling_price": float(product.selling_price),
            "quantity": product.quantity,
            "availability": product.availability,
        }

    if sort_by == "rating":
        products = (
            db.query(Product)
            .filter(Product.status == STATUS_ACTIVE, Product.average_rating > 0)
            .order_by(Product.average_rating.desc(), Product.total_ratings.desc())
            .limit(limit)
            .all()
        )
        return {"sort_by": sort_by, "products": [_base(product) for product in products]}

    total_sales = func.sum(Order.quantity_ordered).label("total_sales")
    total_revenue = func.sum(Order.total_amount).label("total_revenue")

    rows = (
        db.query(Product, total_sales, total_revenue)
        .join(Order, Order.product_id == Product.product_id)
        .filter(Product.status == STATUS_ACTIVE, Order.order_status != "cancelled")
        .group_by(Product.id)
        .order_by(desc(total_sales if sort_by == "sales" else total_revenue), Product.id)
        .limit(limit)
        .all()
    )

    products = []
    for product, sold, revenue in rows:
        item = _base(product)
        item["total_sales"] = int(sold or 0)
        item["total_revenue"] = float(_to_decimal(revenue))
        products.append(item)

    return {"sort_by": sort_by, "products": products}


# =========================================================
# DAY RECORDS
# =========================================================
@router.get("/day-records")
def day_records(
    day: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    day = day or today_utc()

    records = (
        db.query(Transaction)
        .filter(*_on_day(day))
        .order_by(Transaction.date.asc(), Transaction.id.asc())
        .all()
    )

    def _records_of(transaction_type: str) -> dict:
        selected = [record for record in records if record.type == transaction_type]
        return {
            "count": len(selected),
            "amount": float(sum((_to_decimal(record.amount) for record in selected), Decimal("0"))),
            "records": [
                {
                    "id": record.id,
                    "product_id": record.product_id,
                    "product": record.product_name,
                    "source": record.source,
                    "order_id": record.order_id,
                    "amount": float(record.amount),
                    "quantity": record.quantity,
                    "timestamp": record.date,
                }
                for record in selected
            ],
        }

    return {
        "date": day,
        "day_of_week": DAY_NAMES[(day.weekday() + 1) % 7],
        "day_records": {
            "total": len(records),
            "purchases": _records_of(PURCHASE),
            "sales": _records_of(SALE),
        },
    }
