"""
Automatic Trigger Scheduler
Recurring low-stock detection that seeds purchase requests
"""
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from stockflow.core.config import Settings, settings as default_settings
from stockflow.core.database import SessionLocal
from stockflow.core.events import EventBus, GrnApproved, event_bus as default_event_bus
from stockflow.core.logging import get_logger
from stockflow.core.notifications import Notifier
from stockflow.core.security import Identity
from stockflow.services.purchase_requests import PurchaseRequestService


class AutomaticTriggerScheduler:
    """
    Runs the purchase request auto-creation on an interval

    The scheduler owns a daemon thread and opens a fresh session per run.
    Overlapping runs are harmless: the duplicate guard lives in
    PurchaseRequestService.auto_create, not here.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        interval_minutes: Optional[float] = None,
        recheck_delay_seconds: Optional[float] = None,
        event_bus: Optional[EventBus] = None,
        notifier: Optional[Notifier] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.session_factory = session_factory
        self.interval_minutes = (
            config.AUTO_TRIGGER_INTERVAL_MINUTES if interval_minutes is None else interval_minutes
        )
        self.recheck_delay_seconds = (
            config.AUTO_TRIGGER_RECHECK_DELAY_SECONDS if recheck_delay_seconds is None else recheck_delay_seconds
        )
        self.event_bus = event_bus or default_event_bus
        self.notifier = notifier
        self.logger = get_logger("business.scheduler")

        self.scheduler_running = False
        self.scheduler_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._rechecks: List[threading.Timer] = []

        self.run_count = 0
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[Dict[str, Any]] = None
        self.last_error: Optional[str] = None
        self.next_run_at: Optional[datetime] = None

        self.event_bus.subscribe(GrnApproved, self.handle_grn_approved)

    def start(self) -> bool:
        """Start the interval loop; a second start is a no-op"""
        with self._state_lock:
            if self.scheduler_running:
                self.logger.info("Automatic trigger already running")
                return False
            self._stop_event.clear()
            self.scheduler_running = True
            self.scheduler_thread = threading.Thread(
                target=self._scheduler_loop, daemon=True, name="stockflow-auto-trigger"
            )
            self.scheduler_thread.start()
        self.logger.info(f"Automatic trigger started, interval {self.interval_minutes} minutes")
        return True

    def stop(self) -> bool:
        with self._state_lock:
            if not self.scheduler_running:
                return False
            self.scheduler_running = False
            self._stop_event.set()
            thread = self.scheduler_thread
            self.scheduler_thread = None
            self.next_run_at = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)
        for timer in self._drain_rechecks():
            timer.cancel()
        self.logger.info("Automatic trigger stopped")
        return True

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.scheduler_running,
            "interval_minutes": self.interval_minutes,
            "run_count": self.run_count,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_result": self.last_result,
            "last_error": self.last_error,
        }

    def run_now(self) -> Optional[Dict[str, Any]]:
        """
        Run one detection pass immediately

        Errors are logged and recorded in status, never raised.
        """
        started = datetime.now(timezone.utc)
        db = self.session_factory()
        try:
            service = PurchaseRequestService(db, Identity.system(), notifier=self.notifier)
            result = service.auto_create().to_dict()
            self.last_result = result
            self.last_error = None
            return result
        except Exception as e:
            db.rollback()
            self.last_error = str(e)
            self.logger.error(f"Automatic trigger run failed: {e}", exc_info=True)
            return None
        finally:
            db.close()
            with self._state_lock:
                self.run_count += 1
                self.last_run_at = started

    def handle_grn_approved(self, event: GrnApproved) -> None:
        """Schedule an advisory re-check shortly after a receipt is approved"""
        self.logger.info(
            f"GRN {event.grn_id} approved, re-checking stock in {self.recheck_delay_seconds}s"
        )
        timer = threading.Timer(self.recheck_delay_seconds, self.run_now)
        timer.daemon = True
        with self._state_lock:
            self._rechecks = [t for t in self._rechecks if t.is_alive()]
            self._rechecks.append(timer)
        timer.start()

    def wait_for_rechecks(self, timeout: Optional[float] = None) -> None:
        """Block until scheduled re-checks have finished"""
        for timer in self._drain_rechecks():
            timer.join(timeout)

    def close(self) -> None:
        self.stop()
        self.event_bus.unsubscribe(GrnApproved, self.handle_grn_approved)

    def _drain_rechecks(self) -> List[threading.Timer]:
        with self._state_lock:
            timers, self._rechecks = self._rechecks, []
        return timers

    def _scheduler_loop(self):
        """Main scheduler loop"""
        interval = timedelta(minutes=self.interval_minutes).total_seconds()
        while not self._stop_event.is_set():
            self.run_now()
            with self._state_lock:
                if self._stop_event.is_set():
                    break
                self.next_run_at = datetime.now(timezone.utc) + timedelta(seconds=interval)
            if self._stop_event.wait(interval):
                break


_scheduler: Optional[AutomaticTriggerScheduler] = None


def get_scheduler() -> AutomaticTriggerScheduler:
    """Process-wide scheduler bound to the application session factory"""
    global _scheduler
    if _scheduler is None:
        _scheduler = AutomaticTriggerScheduler(SessionLocal)
    return _scheduler
