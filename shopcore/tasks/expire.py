# shopcore/tasks/expire.py
from datetime import datetime, timezone

from shopcore.celery_worker import celery_app
from shopcore.data.database import SessionLocal
from shopcore.repos.cart_repo import CartRepo
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


def expire_carts(db, now: datetime | None = None) -> int:
    # wygasly koszyk po prostu przestaje istniec, get_or_create zalozy nowy
    now = now or datetime.now(timezone.utc)
    repo = CartRepo(db)
    try:
        deleted = repo.delete_expired(now)
        repo.commit()
    except Exception:
        repo.rollback()
        raise
    logger.info(f"Deleted {deleted} expired carts")
    return deleted


@celery_app.task(name="shopcore.tasks.expire.expire_carts_task")
def expire_carts_task():
    logger.info("Expire carts task started")

    db = SessionLocal()
    try:
        return expire_carts(db)
    finally:
        db.close()
