"""
Background worker that runs the donation expiry sweep on a fixed interval.
The sweep itself is synchronous SQLAlchemy work, so each run happens in a
worker thread to keep the event loop free.
"""
import asyncio
import logging
from typing import Optional

from app.core.config import settings
from app.database.database import SessionLocal
from app.services.expiry_service import expire_donations

logger = logging.getLogger(__name__)


class ExpiryWorker:
    """Periodic expiry sweep."""

    def __init__(self):
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.interval_seconds = settings.EXPIRY_SWEEP_INTERVAL_HOURS * 3600

    async def start(self):
        """Run the sweep loop until stopped or cancelled."""
        if not settings.EXPIRY_SWEEP_ENABLED:
            logger.info("Expiry sweep is disabled in configuration")
            return

        self.running = True
        logger.info(f"Starting expiry worker (interval={settings.EXPIRY_SWEEP_INTERVAL_HOURS}h)")

        try:
            while self.running:
                await self.run_once()
                await asyncio.sleep(self.interval_seconds)
        except asyncio.CancelledError:
            logger.info("Expiry worker cancelled, shutting down...")
        finally:
            self.running = False
            logger.info("Expiry worker stopped")

    async def stop(self):
        """Stop the loop and wait for the current sweep to finish."""
        self.running = False
        if self.task and not self.task.done():
            self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)
        self.task = None

    async def run_once(self) -> Optional[dict]:
        try:
            return await asyncio.to_thread(self._sweep)
        except Exception as e:
            logger.error(f"Expiry sweep failed: {e}", exc_info=True)
            return None

    def _sweep(self) -> dict:
        db = SessionLocal()
        try:
            return expire_donations(db)
        finally:
            db.close()


# Global worker instance
expiry_worker = ExpiryWorker()


async def start_worker():
    """Start the expiry worker (called from FastAPI startup)."""
    if settings.EXPIRY_SWEEP_ENABLED:
        expiry_worker.task = asyncio.create_task(expiry_worker.start())
        logger.info("Expiry worker started")
    else:
        logger.info("Expiry worker is disabled")


async def stop_worker():
    await expiry_worker.stop()
