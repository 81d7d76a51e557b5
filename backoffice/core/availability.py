# =========================================================
# PRODUCT AVAILABILITY
#
# Derived stock state of a product:
# - Expired       -> expiry date is before today
# - Out of stock  -> quantity is zero
# - Low stock     -> quantity at or below the threshold
# - In stock      -> everything else
#
# Applied on every product write and by the status monitor
# =========================================================

from datetime import date, datetime, timezone

IN_STOCK = "In stock"
LOW_STOCK = "Low stock"
OUT_OF_STOCK = "Out of stock"
EXPIRED = "Expired"

AVAILABILITY_VALUES = (IN_STOCK, LOW_STOCK, OUT_OF_STOCK, EXPIRED)

STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def derive_availability(quantity: int, threshold_value: int) -> str:
    if quantity == 0:
        return OUT_OF_STOCK
    if quantity <= threshold_value:
        return LOW_STOCK
    return IN_STOCK


def is_expired(expiry_date: date, today: date | None = None) -> bool:
    today = today or today_utc()

    if isinstance(expiry_date, datetime):
        expiry_date = expiry_date.date()

    return expiry_date < today


def derive_status(
    quantity: int,
    threshold_value: int,
    expiry_date: date,
    today: date | None = None,
) -> tuple[str, str]:
    """Return ``(status, availability)`` for the given stock figures."""
    if is_expired(expiry_date, today):
        return STATUS_EXPIRED, EXPIRED

    return STATUS_ACTIVE, derive_availability(quantity, threshold_value)


def is_orderable(product) -> bool:
    return (
        product.status == STATUS_ACTIVE
        and product.availability not in (OUT_OF_STOCK, EXPIRED)
        and product.quantity > 0
    )
