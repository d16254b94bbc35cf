import datetime as dt
import logging, threading
from typing import Callable, Optional
from apscheduler.schedulers.background import BackgroundScheduler
from . import display
from .billing import BillingService
from .config import WatcherSettings, suggest_project_id
from .errors import BillingError
from .schemas import StatusView

LOG = logging.getLogger(__name__)

JOB_ID = "billing-refresh"
CONSOLE_URL = "https://console.cloud.google.com/billing/reports?project={project_id}"


class BillingWatcher:
    """Owns one BillingService and the timer that refreshes it."""

    def __init__(self, settings: WatcherSettings,
                 service_factory: Callable[..., BillingService] = BillingService,
                 scheduler_factory: Callable[[], BackgroundScheduler] = BackgroundScheduler):
        self.settings = settings
        self.service_factory = service_factory
        self.scheduler_factory = scheduler_factory
        self.service: Optional[BillingService] = None
        self.scheduler: Optional[BackgroundScheduler] = None
        self.last_success: Optional[bool] = None
        self._lock = threading.Lock()
        self._view = display.not_configured_view(settings.language)

    def start(self, schedule: bool = True) -> StatusView:
        config = self.settings.client_config()
        if config is None:
            LOG.warning("GCP project ID is not configured")
            suggestion = suggest_project_id()
            if suggestion:
                LOG.info(f"gcloud reports active project {suggestion}; set GCP_BQ_PROJECT_ID={suggestion} to use it")
            self.service = None
            self._view = display.not_configured_view(self.settings.language)
            return self._view

        self.service = self.service_factory(config)
        LOG.info(f"Project ID: {config.project_id}")
        LOG.info(f"Dataset ID: {config.dataset_id}")
        LOG.info(f"Refresh interval: {self.settings.refresh_interval_minutes} min")

        if not schedule:
            return self.refresh()
        # First fetch runs on the scheduler thread; a hung request must not block the caller.
        self._view = display.loading_view(self.settings.language, project_id=config.project_id)
        self.scheduler = self.scheduler_factory()
        self.scheduler.add_job(self._scheduled_refresh, "interval",
                               minutes=self.settings.refresh_interval_minutes,
                               next_run_time=dt.datetime.now(dt.timezone.utc),
                               id=JOB_ID, max_instances=1, coalesce=True)
        self.scheduler.start()
        return self._view

    def _scheduled_refresh(self) -> None:
        LOG.info("Running scheduled refresh")
        self.refresh()

    def refresh(self) -> StatusView:
        if self.service is None:
            self._view = display.not_configured_view(self.settings.language)
            return self._view
        with self._lock:
            language = self.settings.language
            project_id = self.service.project_id
            cached = self.service.get_cached_summary()
            self._view = display.loading_view(language, summary=cached, project_id=project_id)
            try:
                summary = self.service.fetch_cost_summary()
            except BillingError as e:
                LOG.error(f"Error: {e}")
                self.last_success = False
                self._view = display.error_view(str(e), language, summary=cached, project_id=project_id)
                return self._view
            except Exception as e:
                self.last_success = False
                self._view = display.error_view(str(e), language, summary=cached, project_id=project_id)
                raise
            self.last_success = True
            self._view = display.summary_view(summary, self.settings.monthly_budget, language,
                                              project_id=project_id)
            return self._view

    def status(self) -> StatusView:
        return self._view

    def cached_summary(self):
        return self.service.get_cached_summary() if self.service else None

    def console_url(self) -> Optional[str]:
        if self.service is None:
            return None
        return CONSOLE_URL.format(project_id=self.service.project_id)

    def reconfigure(self, settings: WatcherSettings) -> StatusView:
        LOG.info("Settings changed, reinitializing")
        self.shutdown()
        self.service = None
        self.last_success = None
        self.settings = settings
        return self.start()

    def shutdown(self) -> None:
        if self.scheduler is not None:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            self.scheduler = None
