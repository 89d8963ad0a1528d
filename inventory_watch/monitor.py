"""
Poll-cycle controller.

One cycle: build the fulfillment URL, fetch it, parse the stores, keep the
available parts, publish the result, then hand a notification to the sink.

- Published state (`available_parts`, `is_loading`) is swapped under a lock
  at the end of a cycle; readers never see a half-built result.
- A failed cycle logs the error and leaves the last good result in place.
- Only one cycle runs at a time; a poll request during a cycle is ignored.
- `cancel()` abandons the running cycle; its result is discarded.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, List, Optional

import requests

from . import scraper
from .catalog import SkuData, sku_data_for_country
from .config import BASE_URL, FETCH_TIMEOUT, NOTIFY_ON_EMPTY, Preferences
from .notifier import Sink, compose_notification, log_sink
from .scraper import AvailabilityResult, InventoryError
from .utils import get_fulfillment_session

logger = logging.getLogger(__name__)

Observer = Callable[[AvailabilityResult], None]


class PollState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


class PollingController:
    def __init__(
        self,
        sku_data: SkuData,
        preferences: Preferences,
        *,
        sink: Sink = log_sink,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
        is_test: bool = False,
        notify_on_empty: bool = NOTIFY_ON_EMPTY,
        timeout: float = FETCH_TIMEOUT,
    ):
        self.sku_data = sku_data
        self.preferences = preferences
        self.sink = sink
        self.base_url = base_url
        self.is_test = is_test
        self.notify_on_empty = notify_on_empty
        self.timeout = timeout

        self._owns_session = session is None
        self._session = session

        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._cancelled = threading.Event()

        self._available_parts: AvailabilityResult = []
        self._is_loading = False
        self._state = PollState.IDLE
        self._last_outcome: Optional[PollState] = None
        self._last_error: Optional[BaseException] = None
        self._observers: List[Observer] = []

    @classmethod
    def with_sample_data(cls) -> "PollingController":
        """Test-mode controller preloaded with three Colorado stores."""
        controller = cls(sku_data_for_country("US"), Preferences(), is_test=True)
        controller._available_parts = scraper.filter_available(scraper.SAMPLE_STORES)
        return controller

    # ---- published state -------------------------------------------------

    @property
    def available_parts(self) -> AvailabilityResult:
        with self._state_lock:
            return list(self._available_parts)

    @property
    def is_loading(self) -> bool:
        with self._state_lock:
            return self._is_loading

    @property
    def state(self) -> PollState:
        with self._state_lock:
            return self._state

    @property
    def last_outcome(self) -> Optional[PollState]:
        with self._state_lock:
            return self._last_outcome

    @property
    def last_error(self) -> Optional[BaseException]:
        with self._state_lock:
            return self._last_error

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Call `observer` with every newly published result. Returns an unsubscribe function."""
        with self._state_lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._state_lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def product_name(self, sku: str) -> str:
        return self.sku_data.product_name(sku) or sku

    # ---- cycle -----------------------------------------------------------

    def poll(self) -> PollState:
        """Run one poll cycle. Never raises; returns the cycle outcome.

        Returns IDLE without doing anything in test mode, while another
        cycle is running, or when the cycle was cancelled.
        """
        if self.is_test:
            return PollState.IDLE
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("Poll already in progress; ignoring request")
            return PollState.IDLE

        try:
            self._cancelled.clear()
            self._begin()
            try:
                result = self._fetch_available()
            except InventoryError as e:
                return self._fail(e, expected=True)
            except Exception as e:
                return self._fail(e, expected=False)

            if self._cancelled.is_set():
                logger.info("Poll cycle cancelled; discarding %d store(s)", len(result))
                self._end(None)
                return PollState.IDLE

            self._publish(result)
            self._dispatch(result)
            return PollState.SUCCESS
        finally:
            self._cycle_lock.release()

    def cancel(self) -> None:
        """Abandon the running cycle, if any. An owned session is closed; the next cycle opens a new one."""
        self._cancelled.set()
        self.close()

    def close(self) -> None:
        if self._owns_session and self._session is not None:
            session, self._session = self._session, None
            session.close()

    def _http(self) -> requests.Session:
        if self._session is None:
            self._session = get_fulfillment_session(
                self.base_url, scraper.country_path_element(self.preferences.preferred_country)
            )
        return self._session

    def _fetch_available(self) -> AvailabilityResult:
        url = scraper.build_fulfillment_url(self.sku_data, self.preferences, base_url=self.base_url)
        body = scraper.fetch_fulfillment(url, session=self._http(), timeout=self.timeout)
        stores = scraper.parse_store_response(body)
        result = scraper.filter_available(stores)
        logger.info(
            "Parsed %d store(s); %d with parts available for pickup", len(stores), len(result)
        )
        return result

    def _begin(self) -> None:
        with self._state_lock:
            self._is_loading = True
            self._state = PollState.LOADING

    def _end(self, outcome: Optional[PollState], error: Optional[BaseException] = None) -> None:
        with self._state_lock:
            self._is_loading = False
            self._state = PollState.IDLE
            if outcome is not None:
                self._last_outcome = outcome
                self._last_error = error

    def _fail(self, error: BaseException, *, expected: bool) -> PollState:
        if self._cancelled.is_set():
            logger.info("Poll cycle cancelled (%s)", error)
            self._end(None)
            return PollState.IDLE
        if expected:
            logger.warning("Poll cycle failed: %s: %s", type(error).__name__, error)
        else:
            logger.exception("Unexpected error during poll cycle")
        self._end(PollState.FAILED, error)
        return PollState.FAILED

    def _publish(self, result: AvailabilityResult) -> None:
        with self._state_lock:
            self._available_parts = result
            self._is_loading = False
            self._state = PollState.IDLE
            self._last_outcome = PollState.SUCCESS
            self._last_error = None
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(list(result))
            except Exception:
                logger.exception("Availability observer failed")

    def _dispatch(self, result: AvailabilityResult) -> None:
        if not result and not self.notify_on_empty:
            logger.info("Nothing available for pickup; notification suppressed")
            return

        message = compose_notification(result, self.preferences, self.sku_data)
        try:
            self.sink(message.title, message.body)
        except Exception:
            logger.exception("Failed to deliver notification %r", message.title)


__all__ = ["PollState", "PollingController", "Observer"]
