"""Periodic sync scheduling.

The cadence functions are pure and take the current time as an argument.
SyncScheduler wraps them with the little state a sync loop needs: whether a
sync is in flight and when the last one succeeded.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from .config import DEFAULT_BUSINESS_TIMEZONE, DEFAULT_SYNC_INTERVAL_MINUTES
from .models import PullRequestRecord
from .records import ensure_utc, utc_now


TICK_INTERVAL_SECONDS = 60
STARTUP_SETTLE_DELAY_SECONDS = 1.0
STARTUP_STALE_AFTER = timedelta(minutes=5)
ACCELERATED_CADENCE = timedelta(minutes=5)
BUSINESS_HOURS = (9, 18)  # [start, end) in local hours


def is_accelerated_window(now_utc: datetime, tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> bool:
    """Check whether a moment falls on weekday business hours in tz_name.

    Args:
        now_utc: Current time; naive values are taken as UTC
        tz_name: IANA time zone the business hours are defined in

    Returns:
        True Monday to Friday between 09:00 and 18:00 local time
    """
    local = ensure_utc(now_utc).astimezone(ZoneInfo(tz_name))
    start_hour, end_hour = BUSINESS_HOURS
    return local.weekday() < 5 and start_hour <= local.hour < end_hour


def required_cadence(now_utc: datetime, sync_interval_minutes: Optional[int] = None,
                     tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> timedelta:
    """Minimum time between automatic syncs at the given moment."""
    if is_accelerated_window(now_utc, tz_name):
        return ACCELERATED_CADENCE
    return timedelta(minutes=sync_interval_minutes or DEFAULT_SYNC_INTERVAL_MINUTES)


def should_sync(last_sync_time: Optional[datetime], now: datetime, cadence: timedelta) -> bool:
    if last_sync_time is None:
        return True
    return ensure_utc(now) - ensure_utc(last_sync_time) >= cadence


def needs_startup_sync(last_sync_time: Optional[datetime], now: datetime) -> bool:
    """A sync is due at start-up when none happened or the last one is stale."""
    if last_sync_time is None:
        return True
    return ensure_utc(now) - ensure_utc(last_sync_time) > STARTUP_STALE_AFTER


class SyncScheduler:
    """Runs fetch-and-recompute cycles, never more than one at a time."""

    def __init__(
        self,
        fetch: Callable[[], Dict[str, PullRequestRecord]],
        recompute: Callable[[Dict[str, PullRequestRecord]], None],
        sync_interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES,
        business_timezone: str = DEFAULT_BUSINESS_TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        settle_delay: float = STARTUP_SETTLE_DELAY_SECONDS,
        last_sync_time: Optional[datetime] = None
    ):
        """Initialize the scheduler.

        Args:
            fetch: Returns the full record collection; may raise
            recompute: Receives the fetched records and rebuilds derived state
            sync_interval_minutes: Cadence outside business hours
            business_timezone: Time zone that defines business hours
            clock: Source of the current UTC time
            tick_interval: Seconds between periodic checks
            settle_delay: Seconds to wait before the start-up sync
            last_sync_time: Time of a sync completed before this run, if known
        """
        self.fetch = fetch
        self.recompute = recompute
        self.sync_interval_minutes = sync_interval_minutes
        self.business_timezone = business_timezone
        self.clock = clock
        self.tick_interval = tick_interval
        self.settle_delay = settle_delay

        self.last_sync_time: Optional[datetime] = last_sync_time
        self.last_error: Optional[Exception] = None
        self.sync_count = 0

        self._lock = threading.Lock()
        self._is_syncing = False
        self._sync_thread: Optional[threading.Thread] = None
        self._startup_timer: Optional[threading.Timer] = None
        self._tick_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def is_syncing(self) -> bool:
        with self._lock:
            return self._is_syncing

    def trigger(self, reason: str = 'manual', background: bool = True) -> bool:
        """Start a sync unless one is already running.

        Args:
            reason: Why the sync was requested, for the logs
            background: Run on a worker thread instead of the calling thread

        Returns:
            True if a sync was started, False if one was already in flight
        """
        with self._lock:
            if self._is_syncing:
                logging.debug(f"Sync already in progress, ignoring {reason} trigger")
                return False
            self._is_syncing = True

        if not background:
            self._run_sync(reason)
            return True

        try:
            thread = threading.Thread(target=self._run_sync, args=(reason,),
                                      name=f"pr-stats-sync-{reason}", daemon=True)
            with self._lock:
                self._sync_thread = thread
            thread.start()
        except RuntimeError:
            with self._lock:
                self._is_syncing = False
            raise
        return True

    def _run_sync(self, reason: str):
        started = self.clock()
        logging.info(f"Sync started (reason: {reason})")
        try:
            records = self.fetch()
            self.recompute(records)
        except Exception as e:
            self.last_error = e
            logging.error(f"Sync failed (reason: {reason}): {e}", exc_info=True)
        else:
            finished = self.clock()
            with self._lock:
                self.last_sync_time = finished
                self.last_error = None
                self.sync_count += 1
            elapsed = (finished - started).total_seconds()
            logging.info(f"Sync completed in {elapsed:.1f}s ({len(records)} pull requests)")
        finally:
            with self._lock:
                self._is_syncing = False

    def on_authenticated(self, now: datetime = None) -> bool:
        """Schedule the start-up sync after authentication, if one is due.

        Returns:
            True if a start-up sync was scheduled
        """
        now = now or self.clock()
        if not needs_startup_sync(self.last_sync_time, now):
            age = (ensure_utc(now) - ensure_utc(self.last_sync_time)).total_seconds()
            logging.info(f"Skipping initial sync (last sync was {round(age)}s ago)")
            return False

        last = self.last_sync_time.isoformat() if self.last_sync_time else 'never'
        logging.info(f"Triggering initial sync (last sync: {last})")
        timer = threading.Timer(self.settle_delay, self.trigger, args=('startup',))
        timer.daemon = True
        self._startup_timer = timer
        timer.start()
        return True

    def tick(self, now: datetime = None) -> bool:
        """Run one periodic check and start a sync if the cadence allows it.

        Returns:
            True if a sync was started
        """
        now = now or self.clock()
        cadence = required_cadence(now, self.sync_interval_minutes, self.business_timezone)
        if not should_sync(self.last_sync_time, now, cadence):
            return False

        if self.last_sync_time is None:
            elapsed = 'never synced'
        else:
            elapsed = f"{(ensure_utc(now) - ensure_utc(self.last_sync_time)).total_seconds():.0f}s since last sync"
        logging.info(f"Periodic sync due ({elapsed}, cadence: {cadence.total_seconds() / 60:.0f}m)")
        return self.trigger('periodic')

    def _tick_loop(self):
        while not self._stop_event.wait(self.tick_interval):
            try:
                self.tick()
            except Exception as e:
                logging.error(f"Periodic sync check failed: {e}", exc_info=True)

    def start(self):
        """Start the periodic check loop on a daemon thread."""
        if self._tick_thread is not None and self._tick_thread.is_alive():
            return
        self._stop_event.clear()
        self._tick_thread = threading.Thread(target=self._tick_loop, name='pr-stats-ticker', daemon=True)
        self._tick_thread.start()
        logging.info(f"Periodic sync checks every {self.tick_interval:.0f}s")

    def stop(self, timeout: float = None):
        """Stop the check loop and a pending start-up sync.

        An in-flight sync is not cancelled.
        """
        self._stop_event.set()
        if self._startup_timer is not None:
            self._startup_timer.cancel()
        if self._tick_thread is not None:
            self._tick_thread.join(timeout)
            self._tick_thread = None

    def wait_idle(self, timeout: float = None) -> bool:
        """Wait for the in-flight sync, if any.

        Returns:
            True if no sync is running afterwards
        """
        with self._lock:
            thread = self._sync_thread
        if thread is not None:
            thread.join(timeout)
        return not self.is_syncing
