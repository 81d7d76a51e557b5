# backoffice/models/transactions.py

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Numeric, String
from sqlalchemy.sql import func

from backoffice.database import Base

PURCHASE = "purchase"
SALE = "sale"

SOURCE_SINGLE_PRODUCT = "single_product"
SOURCE_BULK_UPLOAD = "bulk_upload"
SOURCE_ORDER = "order"


class Transaction(Base):
    """One purchase or sale in the sales/purchase ledger."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)

    date = Column(DateTime(timezone=True), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    day = Column(Integer, nullable=False)

    type = Column(String, nullable=False)
    source = Column(String, nullable=False, default=SOURCE_SINGLE_PRODUCT)

    amount = Column(Numeric(12, 2), nullable=False, default=0)

    product_id = Column(String, nullable=True, index=True)
    product_name = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(10, 2), nullable=False, default=0)

    order_id = Column(String, nullable=True, index=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_transactions_date_type", "date", "type"),
        Index("ix_transactions_year_month_type", "year", "month", "type"),
        CheckConstraint("type IN ('purchase', 'sale')", name="ck_transaction_type_valid"),
    )
