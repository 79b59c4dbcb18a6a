"""
Scheduler Service.

Wraps APScheduler's AsyncIOScheduler. Jobs are registered in code at
startup; nothing is persisted, so a restart simply re-registers them.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class SchedulerService:
    """
    Runs periodic jobs that need a database session.

    Each run gets a fresh session from the factory, closed afterwards.
    Synchronous callables run in a worker thread so the event loop keeps
    serving requests.
    """

    def __init__(self, db_session_factory: Callable[[], Session]):
        self.scheduler = AsyncIOScheduler(
            job_defaults={
                'coalesce': True,           # Combine missed runs into one
                'max_instances': 1,          # Don't overlap same job
                'misfire_grace_time': 300    # 5 min grace for missed jobs
            }
        )
        self._db_factory = db_session_factory
        self._started = False
        self.last_runs: Dict[str, Dict[str, Any]] = {}

    def start(self):
        if self._started:
            logger.warning("Scheduler already started")
            return
        self.scheduler.start()
        self._started = True
        logger.info("Scheduler service started")

    def shutdown(self):
        """Gracefully shutdown the scheduler."""
        if not self._started:
            return
        self.scheduler.shutdown(wait=False)
        self._started = False
        logger.info("Scheduler service stopped")

    @property
    def running(self) -> bool:
        return self._started

    def register_interval_job(self, job_id: str, func: Callable[[Session], Any], minutes: int):
        """Run func(db) every `minutes` minutes."""
        self.scheduler.add_job(
            self._execute_job,
            trigger=IntervalTrigger(minutes=minutes),
            id=job_id,
            replace_existing=True,
            kwargs={'job_id': job_id, 'func': func},
        )
        logger.info(f"Registered job: {job_id} (every {minutes} min)")

    async def _execute_job(self, job_id: str, func: Callable[[Session], Any]):
        started_at = datetime.utcnow()
        try:
            result = await asyncio.to_thread(self.run_job, func)
            self.last_runs[job_id] = {"status": "success", "started_at": started_at, "result": result}
            logger.info(f"Job {job_id} completed: {result}")
        except Exception as e:
            self.last_runs[job_id] = {"status": "failed", "started_at": started_at, "error": str(e)}
            logger.exception(f"Job {job_id} failed: {e}")

    def run_job(self, func: Callable[[Session], Any]) -> Optional[Any]:
        db = self._db_factory()
        try:
            return func(db)
        finally:
            db.close()
