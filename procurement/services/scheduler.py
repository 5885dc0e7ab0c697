# procurement/services/scheduler.py

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..errors import Unavailable
from ..models import db

logger = logging.getLogger(__name__)


class AutoSelectionScheduler:
    """
    Daily trigger for the auto-selection sweep.

    Owned by the application: ``start()`` when the process boots and
    ``stop()`` when it exits. Runs are coalesced and never overlap; a run
    that fails discovery is logged and simply tried again at the next tick.
    """

    JOB_ID = 'auto-select-lowest-offers'

    def __init__(self, app, hour=None, minute=None, engine_factory=None):
        self.app = app
        self.hour = app.config.get('AUTO_SELECT_HOUR', 0) if hour is None else hour
        self.minute = app.config.get('AUTO_SELECT_MINUTE', 0) if minute is None else minute
        if engine_factory is None:
            from .factory import selection_engine
            engine_factory = selection_engine
        self.engine_factory = engine_factory
        self._scheduler = None

    @property
    def running(self):
        return self._scheduler is not None and self._scheduler.running

    def start(self):
        if self.running:
            return
        self._scheduler = BackgroundScheduler(timezone='UTC')
        self._scheduler.add_job(
            self._tick,
            trigger=CronTrigger(hour=self.hour, minute=self.minute, timezone='UTC'),
            id=self.JOB_ID,
            name='Auto-select lowest offers',
            coalesce=True,
            max_instances=1,
            misfire_grace_time=3600,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Auto-selection scheduled daily at {self.hour:02d}:{self.minute:02d} UTC")

    def stop(self, wait=False):
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Auto-selection scheduler stopped")
        self._scheduler = None

    def next_run_time(self):
        if not self.running:
            return None
        job = self._scheduler.get_job(self.JOB_ID)
        return job.next_run_time if job else None

    def run_once(self):
        """Run one sweep synchronously in a fresh app context."""
        with self.app.app_context():
            try:
                return self.engine_factory().run_auto_selection()
            finally:
                db.session.remove()

    def _tick(self):
        try:
            self.run_once()
        except Unavailable as e:
            logger.error(f"Auto-selection run aborted, will retry at the next scheduled run: {e}")
        except Exception:
            logger.exception("Auto-selection run crashed")
