import asyncio
import logging
from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

from backoffice.core.availability import (
    EXPIRED,
    IN_STOCK,
    LOW_STOCK,
    OUT_OF_STOCK,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    today_utc,
)
from backoffice.core.status_monitor import StatusMonitor
from backoffice.models.products import Product


def _force_state(db_session, product, **values):
    # Core UPDATE skips the ORM hooks, leaving the derived fields stale
    db_session.execute(
        update(Product).where(Product.id == product.id).values(**values)
    )
    db_session.commit()
    db_session.expire_all()


def test_product_write_derives_status(make_product):
    product = make_product(quantity=3, threshold_value=5)

    assert product.status == STATUS_ACTIVE
    assert product.availability == LOW_STOCK
    assert product.last_status_check is not None


def test_expired_product_is_marked_on_insert(make_product):
    product = make_product(expiry_date=today_utc() - timedelta(days=1))

    assert product.status == STATUS_EXPIRED
    assert product.availability == EXPIRED


def test_scan_leaves_consistent_products_alone(db_session, make_product):
    make_product(quantity=50, threshold_value=5)
    make_product(quantity=2, threshold_value=5)

    summary = StatusMonitor(60).check_product_status(db_session)

    assert summary["checked"] == 2
    assert summary["updated"] == 0


def test_scan_marks_expired_products(db_session, make_product):
    product = make_product()
    _force_state(db_session, product, expiry_date=today_utc() - timedelta(days=3))

    summary = StatusMonitor(60).check_product_status(db_session)

    refreshed = db_session.get(Product, product.id)
    assert summary["expired"] == 1
    assert summary["updated"] == 1
    assert refreshed.status == STATUS_EXPIRED
    assert refreshed.availability == EXPIRED


def test_scan_recomputes_stock_levels(db_session, make_product):
    empty = make_product()
    low = make_product()
    _force_state(db_session, empty, quantity=0, availability=IN_STOCK)
    _force_state(db_session, low, quantity=4, threshold_value=5, availability=IN_STOCK)

    summary = StatusMonitor(60).check_product_status(db_session)

    assert summary["out_of_stock"] == 1
    assert summary["low_stock"] == 1
    assert summary["updated"] == 2
    assert db_session.get(Product, empty.id).availability == OUT_OF_STOCK
    assert db_session.get(Product, low.id).availability == LOW_STOCK


def test_scan_skips_products_already_expired(db_session, make_product):
    make_product(expiry_date=today_utc() - timedelta(days=10))

    summary = StatusMonitor(60).check_product_status(db_session)

    assert summary["checked"] == 0


def test_monitor_status_before_start():
    monitor = StatusMonitor(3600)

    status = monitor.get_status()

    assert status["is_running"] is False
    assert status["has_interval"] is False
    assert status["interval_seconds"] == 3600
    assert status["last_run_at"] is None


def test_monitor_records_last_run(db_session, make_product):
    make_product()
    monitor = StatusMonitor(3600)

    monitor.trigger(db_session)

    assert monitor.get_status()["last_run_at"] is not None
    assert monitor.last_summary["checked"] == 1


def test_monitor_loop_survives_failed_run(db_session, make_product, caplog):
    make_product()
    sessions = sessionmaker(bind=db_session.get_bind())
    calls = {"n": 0}

    def flaky_session_factory():
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("database unavailable")
        return sessions()

    monitor = StatusMonitor(0.01, session_factory=flaky_session_factory)

    async def run_until_second_scan():
        monitor.start()
        assert monitor.get_status()["is_running"] is True
        assert monitor.get_status()["has_interval"] is True

        for _ in range(500):
            if monitor.last_summary is not None:
                break
            await asyncio.sleep(0.01)

        await monitor.stop()

    with caplog.at_level(logging.ERROR, logger="backoffice"):
        asyncio.run(run_until_second_scan())

    assert calls["n"] >= 2
    assert monitor.last_summary["checked"] == 1
    assert "Error in product status check" in caplog.text

    status = monitor.get_status()
    assert status["is_running"] is False
    assert status["has_interval"] is False
    assert status["last_run_at"] is not None


def test_monitor_runs_once_on_start(db_session):
    sessions = sessionmaker(bind=db_session.get_bind())
    monitor = StatusMonitor(3600, session_factory=sessions)

    async def start_and_wait():
        monitor.start()
        for _ in range(500):
            if monitor.last_run_at is not None:
                break
            await asyncio.sleep(0.01)
        await monitor.stop()

    asyncio.run(start_and_wait())

    assert monitor.last_summary["checked"] == 0
    assert monitor.get_status()["is_running"] is False


def test_monitor_stop_without_start():
    monitor = StatusMonitor(60)

    asyncio.run(monitor.stop())

    assert monitor.get_status()["is_running"] is False
