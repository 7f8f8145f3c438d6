import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from database import session_scope
from services import AccountService, UserService


logger = logging.getLogger(__name__)


def reconcile_balances() -> int:
    """Recompute every stored account balance from its transactions."""
    changed = 0
    with session_scope() as session:
        for user_id in UserService(session).all_ids():
            changed += AccountService(session, user_id).recalculate_all()
    return changed


class SchedulerManager:
    def __init__(self) -> None:
        settings = get_settings()
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def _run_job(self, source: str = "manual") -> None:
        logger.info(f"reconcile_run: source={source}")
        changed = reconcile_balances()
        logger.info(f"reconcile_run: source={source} balances_changed={changed}")

    def start(self) -> None:
        self._run_job("startup")

        self.scheduler.add_job(
            self._run_job,
            CronTrigger(hour=3, minute=15),
            args=["daily_03:15"],
            id="reconcile_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )
        self.scheduler.add_job(
            self._run_job,
            IntervalTrigger(hours=1),
            args=["hourly_safety_net"],
            id="reconcile_hourly_safety",
            replace_existing=True,
            misfire_grace_time=300,
        )

        self.scheduler.start()
        logger.info("Scheduler started with daily 03:15 and hourly safety net")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
