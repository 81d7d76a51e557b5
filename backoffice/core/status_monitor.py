# =========================================================
# PRODUCT STATUS MONITOR
#
# Periodically re-scans every active product:
# - past its expiry date -> status "expired", availability "Expired"
# - otherwise availability is re-derived from quantity/threshold
# Only products whose state changed are written back.
# =========================================================

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from backoffice.core.availability import (
    EXPIRED,
    LOW_STOCK,
    OUT_OF_STOCK,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    derive_availability,
    is_expired,
)
from backoffice.core.config import settings
from backoffice.database import SessionLocal
from backoffice.models.products import Product

logger = logging.getLogger("backoffice")


class StatusMonitor:
    def __init__(self, interval_seconds: int, session_factory=SessionLocal):
        self.interval_seconds = interval_seconds
        self.session_factory = session_factory
        self.is_running = False
        self.last_run_at = None
        self.last_summary = None
        self._task = None

    # ----------------------------
    # Scan
    # ----------------------------
    def check_product_status(self, db: Session) -> dict:
        checked_at = datetime.now(timezone.utc)

        products = db.query(Product).filter(Product.status == STATUS_ACTIVE).all()

        summary = {
            "checked": len(products),
            "updated": 0,
            "expired": 0,
            "out_of_stock": 0,
            "low_stock": 0,
            "checked_at": checked_at,
        }

        for product in products:
            old_availability = product.availability

            if is_expired(product.expiry_date):
                product.status = STATUS_EXPIRED
                product.availability = EXPIRED
                summary["expired"] += 1
                logger.warning(
                    f"EXPIRED: {product.name} (ID: {product.product_id}) - expired on {product.expiry_date}"
                )
            else:
                new_availability = derive_availability(product.quantity, product.threshold_value)
                if new_availability == old_availability:
                    continue

                product.availability = new_availability

                if new_availability == OUT_OF_STOCK:
                    summary["out_of_stock"] += 1
                elif new_availability == LOW_STOCK:
                    summary["low_stock"] += 1

                logger.info(
                    f"{new_availability.upper()}: {product.name} (ID: {product.product_id}) "
                    f"- quantity {product.quantity}, threshold {product.threshold_value}"
                )

            product.last_status_check = checked_at
            summary["updated"] += 1
            logger.info(f"Updated {product.product_id}: {old_availability} -> {product.availability}")

        if summary["updated"]:
            db.commit()

        self.last_run_at = checked_at
        self.last_summary = summary

        logger.info(
            f"Status check: {summary['checked']} checked, {summary['updated']} updated, "
            f"{summary['expired']} expired, {summary['out_of_stock']} out of stock, "
            f"{summary['low_stock']} low stock"
        )

        return summary

    def _run_once(self):
        db = self.session_factory()
        try:
            return self.check_product_status(db)
        finally:
            db.close()

    # ----------------------------
    # Scheduling
    # ----------------------------
    async def _loop(self):
        while True:
            try:
                await run_in_threadpool(self._run_once)
            except Exception:
                logger.exception("Error in product status check")

            await asyncio.sleep(self.interval_seconds)

    def start(self):
        if self._task is not None and not self._task.done():
            return

        logger.info(f"Starting product status monitor (every {self.interval_seconds}s)")
        self._task = asyncio.get_running_loop().create_task(self._loop())
        self.is_running = True

    async def stop(self):
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

        self._task = None
        self.is_running = False
        logger.info("Product status monitor stopped")

    def trigger(self, db: Session) -> dict:
        logger.info("Manually triggering product status check")
        return self.check_product_status(db)

    def get_status(self) -> dict:
        return {
            "is_running": self.is_running,
            "has_interval": self._task is not None,
            "interval_seconds": self.interval_seconds,
            "last_run_at": self.last_run_at,
            "message": "Status monitor is running" if self.is_running else "Status monitor is stopped",
        }


status_monitor = StatusMonitor(settings.STATUS_CHECK_INTERVAL_SECONDS)
