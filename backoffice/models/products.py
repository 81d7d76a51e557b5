# backoffice/models/products.py

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.sql import func

from backoffice.core.availability import STATUS_ACTIVE, IN_STOCK, derive_status
from backoffice.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")

    cost_price = Column(Numeric(10, 2), nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)

    quantity = Column(Integer, nullable=False)
    unit = Column(String, nullable=False)
    expiry_date = Column(Date, nullable=False)
    threshold_value = Column(Integer, nullable=False)

    # Derived on every write, see refresh_status()
    availability = Column(String, nullable=False, default=IN_STOCK)
    status = Column(String, nullable=False, default=STATUS_ACTIVE, index=True)
    last_status_check = Column(DateTime(timezone=True), nullable=True)

    image_url = Column(String, nullable=True)

    average_rating = Column(Float, nullable=False, default=0)
    total_ratings = Column(Integer, nullable=False, default=0)
    rating_sum = Column(Integer, nullable=False, default=0)

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
        Index("ix_products_status_availability", "status", "availability"),
        CheckConstraint("cost_price >= 0", name="ck_cost_price_non_negative"),
        CheckConstraint("selling_price >= 0", name="ck_selling_price_non_negative"),
        CheckConstraint("quantity >= 0", name="ck_product_quantity_non_negative"),
        CheckConstraint("threshold_value >= 0", name="ck_threshold_non_negative"),
        CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5",
            name="ck_average_rating_range",
        ),
    )

    def refresh_status(self, today=None):
        self.status, self.availability = derive_status(
            self.quantity,
            self.threshold_value,
            self.expiry_date,
            today,
        )
        self.last_status_check = datetime.now(timezone.utc)

    def add_rating(self, rating: int):
        self.rating_sum = (self.rating_sum or 0) + rating
        self.total_ratings = (self.total_ratings or 0) + 1
        self.average_rating = round(self.rating_sum / self.total_ratings, 1)


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def _refresh_product_status(mapper, connection, target):
    target.refresh_status()
