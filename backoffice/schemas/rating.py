from pydantic import BaseModel


class RateProduct(BaseModel):
    product_id: str | None = None
    rating: int | None = None
