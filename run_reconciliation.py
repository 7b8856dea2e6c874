#!/usr/bin/env python
"""
Script to settle checkouts interrupted between writes
"""
import logging
import sys

from marketplace.config import settings
from marketplace.database import SessionLocal
from marketplace.services.order_service import build_catalog
from marketplace.services.reconciliation import Reconciler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger("reconciliation")


def main() -> int:
    db = SessionLocal()
    try:
        catalog, _ = build_catalog(db)
        report = Reconciler(db, catalog).run()
    except Exception:
        logger.exception("Reconciliation failed")
        return 1
    finally:
        db.close()

    logger.info(
        "Committed %s, cancelled %s, released %s, intents completed %s, incomplete %s",
        report.stock_committed, report.orders_cancelled, report.stock_released,
        report.intents_completed, report.intents_incomplete
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
