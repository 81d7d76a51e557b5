# backoffice/core/fulfilment.py

import logging

from sqlalchemy.orm import Session

from backoffice.core.ledger import remove_sale
from backoffice.models.products import Product

logger = logging.getLogger("backoffice")


def lock_product(db: Session, product_id: str) -> Product | None:
    # SELECT ... FOR UPDATE; ignored by SQLite
    return (
        db.query(Product)
        .filter(Product.product_id == product_id)
        .with_for_update()
        .first()
    )


def cancel_order(db: Session, order) -> Product | None:
    """Mark ``order`` cancelled, put its stock back and drop its sale rows.

    Does nothing for an order that is already cancelled. The caller commits.
    """
    if order.order_status == "cancelled":
        return None

    product = lock_product(db, order.product_id)
    if product:
        product.quantity += order.quantity_ordered
        product.refresh_status()
    else:
        logger.warning(f"Product {order.product_id} of order {order.order_id} no longer exists")

    order.order_status = "cancelled"
    remove_sale(db, order.order_id)

    return product
