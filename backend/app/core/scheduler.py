"""
Background scheduler for periodic tasks.

- Sweep orphaned profile pictures: files in the upload directory that no
  user row references. Deleting a user removes its picture only after the
  row is gone, and a failed removal leaves an orphan behind; this job
  collects those. Files younger than the grace period are skipped so an
  upload whose row is still being written is never touched.
"""

import logging
import time
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.database import SessionLocal
from app.models.user import User
from app.storage.local_storage import LocalStorage, storage

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def sweep_orphaned_pictures(db: Session, media: LocalStorage, grace_seconds: float) -> list[str]:
    """Delete unreferenced pictures older than grace_seconds; return their names"""
    referenced = {
        name for (name,) in db.query(User.profile_picture).filter(User.profile_picture.isnot(None))
    }
    cutoff = time.time() - grace_seconds

    deleted = []
    for path in media.list_files():
        name = path.name
        if name in referenced or name == media.default_picture:
            continue
        if path.stat().st_mtime > cutoff:
            continue
        try:
            if media.remove(name):
                deleted.append(name)
        except OSError as e:
            logger.error(f"Error deleting orphaned picture {name}: {str(e)}")
    return deleted


def cleanup_orphaned_pictures_job():
    """Scheduled entry point; owns its own session"""
    db = SessionLocal()
    try:
        deleted = sweep_orphaned_pictures(db, storage, settings.ORPHAN_GRACE_PERIOD_MINUTES * 60)
        if deleted:
            logger.info(f"Cleanup job completed: Deleted {len(deleted)} orphaned pictures")
        else:
            logger.info("Cleanup job completed: No orphaned pictures found")
    except Exception as e:
        logger.error(f"Error in cleanup_orphaned_pictures_job: {str(e)}")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler. Called on app startup."""
    if not settings.ORPHAN_CLEANUP_ENABLED:
        logger.info("Orphaned picture cleanup disabled")
        return
    if not scheduler.running:
        scheduler.add_job(
            cleanup_orphaned_pictures_job,
            trigger=IntervalTrigger(hours=settings.ORPHAN_CLEANUP_INTERVAL_HOURS),
            id="cleanup_orphaned_pictures",
            name="Cleanup orphaned profile pictures",
            replace_existing=True
        )

        scheduler.start()
        logger.info(
            "Background scheduler started. Cleanup job scheduled to run every "
            f"{settings.ORPHAN_CLEANUP_INTERVAL_HOURS} hours."
        )


def stop_scheduler():
    """Stop the background scheduler. Called on app shutdown."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
