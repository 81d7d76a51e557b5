# =========================================================
# SALES / PURCHASE LEDGER
#
# Purchases are written when stock enters the catalogue,
# sales when an order is placed. Cancelling an order drops
# its sale rows. Rollups in the statistics router read
# only from this table.
# =========================================================

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from backoffice.models.transactions import (
    PURCHASE,
    SALE,
    SOURCE_ORDER,
    SOURCE_SINGLE_PRODUCT,
    Transaction,
)

logger = logging.getLogger("backoffice")


def _new_transaction(when: datetime | None, **fields) -> Transaction:
    when = when or datetime.now(timezone.utc)

    return Transaction(
        date=when,
        year=when.year,
        month=when.month,
        day=when.day,
        **fields,
    )


def record_purchase(
    db: Session,
    product,
    source: str = SOURCE_SINGLE_PRODUCT,
    when: datetime | None = None,
) -> Transaction:
    amount = Decimal(product.cost_price) * product.quantity

    transaction = _new_transaction(
        when,
        type=PURCHASE,
        source=source,
        amount=amount,
        product_id=product.product_id,
        product_name=product.name,
        quantity=product.quantity,
        unit_price=product.cost_price,
    )
    db.add(transaction)

    logger.info(f"Purchase tracked: {product.name} - {amount}")

    return transaction


def record_sale(db: Session, order, when: datetime | None = None) -> Transaction:
    transaction = _new_transaction(
        when or order.order_date,
        type=SALE,
        source=SOURCE_ORDER,
        amount=order.total_amount,
        product_id=order.product_id,
        product_name=order.product_name,
        quantity=order.quantity_ordered,
        unit_price=order.price_per_unit,
        order_id=order.order_id,
    )
    db.add(transaction)

    logger.info(f"Sale tracked: {order.product_name} - {order.total_amount}")

    return transaction


def remove_sale(db: Session, order_id: str) -> int:
    removed = (
        db.query(Transaction)
        .filter(Transaction.type == SALE, Transaction.order_id == order_id)
        .delete(synchronize_session=False)
    )

    if removed:
        logger.info(f"Removed {removed} sale record(s) for cancelled order {order_id}")

    return removed
