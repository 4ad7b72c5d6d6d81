import asyncio
import threading
import time
from typing import Callable

import structlog

from quotabar.combiner import combine
from quotabar.config import SecondaryConfig, validate_poll_interval
from quotabar.credentials import CredentialReader, is_expired
from quotabar.errors import CredentialError, QuotabarError
from quotabar.events import (
    SECONDARY_ONLY_UPDATE,
    TOKEN_STATUS,
    USAGE_UPDATE,
    EventEmitter,
)
from quotabar.metrics import MetricsUpdater
from quotabar.models import SecondarySnapshot, TokenStatus, UsageSnapshot
from quotabar.provider.base import PrimaryUsageFetcher, SecondaryUsageFetcher
from quotabar.state import SharedState

logger = structlog.get_logger()

TRIGGER_STARTUP = "startup"
TRIGGER_TIMER = "timer"
TRIGGER_MANUAL = "manual"

# wake-ups that do not start a fetch cycle
_INTERVAL_CHANGED = "interval_changed"
_STOPPED = "stopped"


def _no_secondary_config() -> "SecondaryConfig | None":
    return None


class PollingCoordinator:
    """
    PollingCoordinator decides when usage is fetched. It performs one
    fetch at startup and then waits for the first of three triggers:
    the polling timer, a manual refresh request, or a change of the
    polling interval (which only restarts the wait).

    request_immediate_refresh() and set_polling_interval() may be called
    from any thread. Refresh requests are a single-slot signal: any
    number of requests made before the loop consumes the signal result
    in one fetch cycle. At most one cycle runs at a time and no cycle
    ever raises, every failure becomes a token-status event.
    """

    def __init__(
        self,
        credential_reader: "CredentialReader",
        primary: "PrimaryUsageFetcher",
        secondary: "SecondaryUsageFetcher | None",
        emitter: "EventEmitter",
        state: "SharedState",
        metrics_updater: "MetricsUpdater",
        secondary_config_loader: "Callable[[], SecondaryConfig | None]" = (
            _no_secondary_config
        ),
        interval_seconds: "int" = 60,
    ) -> "None":
        self._credential_reader = credential_reader
        self._primary = primary
        self._secondary = secondary
        self._emitter = emitter
        self._state = state
        self._metrics = metrics_updater
        self._load_secondary_config = secondary_config_loader

        self._interval_lock: "threading.Lock" = threading.Lock()
        self._interval: "int" = validate_poll_interval(interval_seconds)
        self._refresh_requested: "asyncio.Event" = asyncio.Event()
        self._interval_changed: "asyncio.Event" = asyncio.Event()
        self._stop_event: "asyncio.Event" = asyncio.Event()
        self._loop: "asyncio.AbstractEventLoop | None" = None

        self._metrics.set_poll_interval(self._interval)

    @property
    def interval_seconds(self) -> "int":
        with self._interval_lock:
            return self._interval

    def set_polling_interval(self, seconds: "int") -> "None":
        """
        validates and stores the new interval. Raises IntervalOutOfRange
        and keeps the previous value when seconds is out of bounds. The
        current wait is restarted with the new value, no fetch is made.
        """
        seconds = validate_poll_interval(seconds)
        with self._interval_lock:
            changed = seconds != self._interval
            self._interval = seconds

        self._metrics.set_poll_interval(seconds)
        logger.info("poll_interval_set", interval_seconds=seconds)
        if changed:
            self._signal(self._interval_changed)

    def request_immediate_refresh(self) -> "None":
        """
        asks the loop to fetch now. Never fails and never queues more
        than one pending cycle.
        """
        logger.debug("refresh_requested")
        self._signal(self._refresh_requested)

    def get_latest_snapshot(self) -> "UsageSnapshot":
        return self._state.get_latest()

    def stop(self) -> "None":
        """
        signals the loop to stop after the current cycle.
        """
        self._signal(self._stop_event)

    def _signal(self, event: "asyncio.Event") -> "None":
        """
        sets an event owned by the coordinator's loop. asyncio.Event is
        not thread-safe, calls from other threads are handed to the loop.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            event.set()
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            event.set()
        else:
            loop.call_soon_threadsafe(event.set)

    async def run(self) -> "None":
        """
        runs the polling loop until stop() is called.
        """
        self._loop = asyncio.get_running_loop()
        logger.info("coordinator_started", interval_seconds=self.interval_seconds)

        await self.fetch_once(TRIGGER_STARTUP)

        while not self._stop_event.is_set():
            trigger = await self._wait_for_trigger()
            if trigger == _STOPPED:
                break
            if trigger == _INTERVAL_CHANGED:
                logger.info(
                    "poll_wait_restarted", interval_seconds=self.interval_seconds
                )
                continue

            await self.fetch_once(trigger)

        logger.info("coordinator_stopped")

    async def _wait_for_trigger(self) -> "str":
        # clear before reading the interval so a change made after the
        # read wakes this wait up again
        self._interval_changed.clear()
        interval = self.interval_seconds

        waiters = {
            asyncio.ensure_future(self._refresh_requested.wait()),
            asyncio.ensure_future(self._interval_changed.wait()),
            asyncio.ensure_future(self._stop_event.wait()),
        }
        try:
            await asyncio.wait(
                waiters, timeout=interval, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                waiter.cancel()

        if self._stop_event.is_set():
            return _STOPPED
        if self._refresh_requested.is_set():
            self._refresh_requested.clear()
            return TRIGGER_MANUAL
        if self._interval_changed.is_set():
            return _INTERVAL_CHANGED
        return TRIGGER_TIMER

    async def fetch_once(self, trigger: "str" = TRIGGER_MANUAL) -> "TokenStatus":
        """
        runs one fetch cycle and returns the token status it emitted.
        """
        cycle_start = time.monotonic()
        status = await self._do_fetch(trigger)
        self._metrics.observe_cycle(
            trigger, status.value, time.monotonic() - cycle_start
        )
        return status

    async def _do_fetch(self, trigger: "str") -> "TokenStatus":
        log = logger.bind(trigger=trigger)
        log.info("fetch_cycle_start")

        try:
            credential = self._credential_reader.read()
        except CredentialError as e:
            log.error("credential_error", error=str(e))
            self._metrics.inc_fetch_error("credentials")
            return self._emit_status(TokenStatus.ERROR)
        except Exception:
            log.exception("credential_error")
            self._metrics.inc_fetch_error("credentials")
            return self._emit_status(TokenStatus.ERROR)

        if is_expired(credential):
            log.warning(
                "token_expired",
                expires_at=credential.expires_at,
                hint="run the Claude CLI to refresh the token",
            )
            return self._emit_status(TokenStatus.EXPIRED)

        secondary_config = self._secondary_config()

        # both fetches run concurrently, only the primary decides the
        # outcome of the cycle
        primary_result, secondary_result = await asyncio.gather(
            self._primary.fetch(credential.access_token),
            self._fetch_secondary(secondary_config),
            return_exceptions=True,
        )
        if isinstance(secondary_result, BaseException):
            secondary_result = None

        if isinstance(primary_result, BaseException):
            if not isinstance(primary_result, Exception):
                raise primary_result

            if isinstance(primary_result, QuotabarError):
                log.error(
                    "primary_fetch_error",
                    provider=self._primary.name,
                    error=str(primary_result),
                )
            else:
                log.error(
                    "primary_fetch_error",
                    provider=self._primary.name,
                    exc_info=primary_result,
                )
            self._metrics.inc_fetch_error(self._primary.name)
            status = self._emit_status(TokenStatus.FETCH_ERROR)

            # keep the presentation layer fed with whatever is available
            if secondary_result is not None:
                self._emitter.emit(SECONDARY_ONLY_UPDATE, secondary_result)
            return status

        combined = combine(primary_result, secondary_result)
        self._state.update(primary_result)
        self._metrics.update_primary(self._primary.name, primary_result)
        self._metrics.set_last_success(time.time())

        self._emitter.emit(USAGE_UPDATE, combined)
        log.info(
            "fetch_cycle_done",
            five_hour=primary_result.five_hour.utilization,
            seven_day=primary_result.seven_day.utilization,
            secondary=secondary_result is not None,
        )
        return self._emit_status(TokenStatus.OK)

    def _secondary_config(self) -> "SecondaryConfig | None":
        if self._secondary is None:
            return None
        try:
            return self._load_secondary_config()
        except QuotabarError as e:
            logger.error("secondary_config_error", error=str(e))
        except Exception:
            logger.exception("secondary_config_error")
        return None

    async def _fetch_secondary(
        self, config: "SecondaryConfig | None"
    ) -> "SecondarySnapshot | None":
        if self._secondary is None or config is None:
            return None

        try:
            snapshot = await self._secondary.fetch(config)
        except QuotabarError as e:
            logger.warning(
                "secondary_fetch_error", provider=self._secondary.name, error=str(e)
            )
            self._metrics.inc_fetch_error(self._secondary.name)
            return None
        except Exception:
            logger.exception("secondary_fetch_error", provider=self._secondary.name)
            self._metrics.inc_fetch_error(self._secondary.name)
            return None

        self._metrics.update_secondary(self._secondary.name, snapshot)
        return snapshot

    def _emit_status(self, status: "TokenStatus") -> "TokenStatus":
        self._emitter.emit(TOKEN_STATUS, status)
        return status
