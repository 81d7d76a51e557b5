from datetime import date, timedelta
from types import SimpleNamespace

from backoffice.core.availability import (
    EXPIRED,
    IN_STOCK,
    LOW_STOCK,
    OUT_OF_STOCK,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    derive_availability,
    derive_status,
    is_orderable,
)

TODAY = date(2026, 6, 15)


def test_zero_quantity_is_out_of_stock():
    assert derive_availability(0, 5) == OUT_OF_STOCK
    assert derive_availability(0, 0) == OUT_OF_STOCK


def test_quantity_at_or_below_threshold_is_low_stock():
    assert derive_availability(5, 5) == LOW_STOCK
    assert derive_availability(1, 5) == LOW_STOCK


def test_quantity_above_threshold_is_in_stock():
    assert derive_availability(6, 5) == IN_STOCK


def test_past_expiry_wins_over_quantity():
    assert derive_status(100, 5, TODAY - timedelta(days=1), TODAY) == (STATUS_EXPIRED, EXPIRED)


def test_expiry_today_is_still_active():
    assert derive_status(100, 5, TODAY, TODAY) == (STATUS_ACTIVE, IN_STOCK)


def test_active_status_carries_stock_level():
    assert derive_status(3, 5, TODAY + timedelta(days=30), TODAY) == (STATUS_ACTIVE, LOW_STOCK)
    assert derive_status(0, 5, TODAY + timedelta(days=30), TODAY) == (STATUS_ACTIVE, OUT_OF_STOCK)


def test_is_orderable():
    def product(**fields):
        values = {"status": STATUS_ACTIVE, "availability": IN_STOCK, "quantity": 10}
        values.update(fields)
        return SimpleNamespace(**values)

    assert is_orderable(product())
    assert is_orderable(product(availability=LOW_STOCK, quantity=2))
    assert not is_orderable(product(availability=OUT_OF_STOCK, quantity=0))
    assert not is_orderable(product(status=STATUS_EXPIRED, availability=EXPIRED))
    assert not is_orderable(product(quantity=0))
