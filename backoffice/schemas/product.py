from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    product_id: str | None = Field(None, description="Leave empty to auto-generate")
    category: str = Field(..., min_length=1)
    description: str = ""

    cost_price: Decimal = Field(..., lt=100_000_000)
    selling_price: Decimal = Field(..., lt=100_000_000)

    quantity: int = 1
    unit: str = Field(..., min_length=1)
    expiry_date: date
    threshold_value: int

    image_url: str | None = None


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    category: str | None = None
    description: str | None = None
    cost_price: Decimal | None = Field(None, lt=100_000_000)
    selling_price: Decimal | None = Field(None, lt=100_000_000)
    quantity: int | None = None
    unit: str | None = None
    expiry_date: date | None = None
    threshold_value: int | None = None
    image_url: str | None = None


class ProductResponse(BaseModel):
    id: int
    product_id: str
    name: str
    category: str
    description: str
    cost_price: float
    selling_price: float
    quantity: int
    unit: str
    expiry_date: date
    threshold_value: int
    availability: str
    status: str
    last_status_check: datetime | None
    image_url: str | None
    average_rating: float
    total_ratings: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PublicProductResponse(BaseModel):
    # cost price stays internal
    id: int
    product_id: str
    name: str
    category: str
    selling_price: float
    quantity: int
    unit: str
    expiry_date: date
    threshold_value: int
    availability: str
    status: str
    last_status_check: datetime | None
    image_url: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
