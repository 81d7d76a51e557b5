from datetime import date, datetime

from pydantic import BaseModel


class InvoiceCustomer(BaseModel):
    name: str
    email: str
    phone: str


class InvoiceCreate(BaseModel):
    order_id: str | None = None


class InvoicePayment(BaseModel):
    notes: str | None = None


class InvoiceReturn(BaseModel):
    # "return" marks the invoice Returned, anything else Cancelled
    action: str = "cancel"
    notes: str | None = None


class InvoiceResponse(BaseModel):
    id: int
    invoice_id: str
    reference_number: str
    order_id: str
    product_id: str
    product_name: str
    customer_info: InvoiceCustomer
    quantity_ordered: int
    price_per_unit: float
    total_amount: float
    status: str
    order_date: datetime
    due_date: date
    paid_date: datetime | None
    notes: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
