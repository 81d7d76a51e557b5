from datetime import datetime

from pydantic import BaseModel


class CustomerInfo(BaseModel):
    name: str = "Guest Customer"
    email: str = ""
    phone: str = ""
    address: str = ""


class AvailabilityCheck(BaseModel):
    product_id: str | None = None
    requested_quantity: int | None = None


class PlaceOrderRequest(BaseModel):
    product_id: str | None = None
    quantity_ordered: int | None = None
    rating: int | None = None
    review: str = ""
    customer_info: CustomerInfo = CustomerInfo()
    notes: str = ""


class OrderStatusUpdate(BaseModel):
    status: str | None = None


class OrderResponse(BaseModel):
    id: int
    order_id: str
    product_id: str
    product_name: str
    quantity_ordered: int
    price_per_unit: float
    total_amount: float
    order_status: str
    customer_info: CustomerInfo
    order_date: datetime
    notes: str
    rating: int
    review: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
