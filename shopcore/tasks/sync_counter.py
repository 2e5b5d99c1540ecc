# shopcore/tasks/sync_counter.py
"""
Naprawa licznika numerow zamowien.
Uruchamiane recznie: python -m shopcore.tasks.sync_counter
albo jako task celery / endpoint admina.
"""
import sys

from shopcore.celery_worker import celery_app
from shopcore.data.database import SessionLocal
from shopcore.services.sequence_service import SequenceService
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="shopcore.tasks.sync_counter.sync_order_counter_task")
def sync_order_counter_task(name: str | None = None) -> int:
    db = SessionLocal()
    try:
        return SequenceService(db).sync_counter(name)
    finally:
        db.close()


def main() -> int:
    try:
        value = sync_order_counter_task.run()
    except Exception:
        logger.exception("Error syncing counter")
        return 1
    logger.info(f"Counter updated to: {value}, next order sequence will be {value + 1}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
