# backoffice/models/orders.py

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from backoffice.database import Base

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, unique=True, index=True, nullable=False)

    # Snapshot of the product at order time
    product_id = Column(String, nullable=False, index=True)
    product_name = Column(String, nullable=False)
    price_per_unit = Column(Numeric(10, 2), nullable=False)

    quantity_ordered = Column(Integer, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)

    order_status = Column(String, nullable=False, default="pending", index=True)

    customer_name = Column(String, nullable=False, default="Guest Customer")
    customer_email = Column(String, nullable=False, default="")
    customer_phone = Column(String, nullable=False, default="")
    customer_address = Column(String, nullable=False, default="")

    order_date = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    notes = Column(Text, nullable=False, default="")

    rating = Column(Integer, nullable=False)
    review = Column(Text, nullable=False, default="")

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_orders_product_status", "product_id", "order_status"),
        CheckConstraint("quantity_ordered >= 1", name="ck_quantity_ordered_positive"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_order_rating_range"),
        CheckConstraint(
            "order_status IN ('pending', 'confirmed', 'shipped', 'delivered', 'cancelled')",
            name="ck_order_status_valid",
        ),
    )

    @property
    def customer_info(self):
        return {
            "name": self.customer_name,
            "email": self.customer_email,
            "phone": self.customer_phone,
            "address": self.customer_address,
        }
