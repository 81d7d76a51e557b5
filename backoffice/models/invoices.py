# backoffice/models/invoices.py

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from backoffice.database import Base

INVOICE_STATUSES = ("Paid", "Unpaid", "Cancelled", "Returned")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(String, unique=True, index=True, nullable=False)
    reference_number = Column(String, unique=True, nullable=False)

    order_id = Column(String, unique=True, index=True, nullable=False)
    product_id = Column(String, nullable=False)
    product_name = Column(String, nullable=False)

    customer_name = Column(String, nullable=False, default="Guest Customer")
    customer_email = Column(String, nullable=False, default="")
    customer_phone = Column(String, nullable=False, default="")

    quantity_ordered = Column(Integer, nullable=False)
    price_per_unit = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)

    status = Column(String, nullable=False, default="Unpaid", index=True)

    order_date = Column(DateTime(timezone=True), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=False, default="")

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("quantity_ordered >= 1", name="ck_invoice_quantity_positive"),
        CheckConstraint(
            "status IN ('Paid', 'Unpaid', 'Cancelled', 'Returned')",
            name="ck_invoice_status_valid",
        ),
    )

    @property
    def customer_info(self):
        return {
            "name": self.customer_name,
            "email": self.customer_email,
            "phone": self.customer_phone,
        }
