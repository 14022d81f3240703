import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta

from domain.exceptions.rates import ConfigurationError
from domain.models.rates import CacheEntry, ExchangeRates, LatestFetch, utc_from_timestamp
from infrastructure.providers.base import RateProvider

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_RATE = timedelta(minutes=1)
DEFAULT_VALIDITY_TIME = timedelta(minutes=5)

# Floor between two loop iterations once a value is cached
_MIN_LOOP_DELAY = 1.0


def validate_refresh_policy(refresh_rate: timedelta, validity_time: timedelta) -> None:
    if refresh_rate <= timedelta(0):
        raise ConfigurationError(f"refresh_rate must be positive, got {refresh_rate}")
    if refresh_rate >= validity_time:
        raise ConfigurationError(
            f"refresh_rate ({refresh_rate}) must be shorter than validity_time ({validity_time})"
        )


class BackgroundFetcherRateProvider:
    """Keeps the rates of one source warm so requests almost never wait on I/O.

    Depending on the age of the last successful fetch:

    * no value yet: fetch on the caller, errors propagate
    * younger than ``refresh_rate``: serve the cached value
    * younger than ``validity_time``: serve the cached value and refresh in
      the background, one refresh at a time
    * older: fetch on the caller again (or wait for the running refresh)

    ``start()`` additionally runs a loop refreshing the value every
    ``refresh_rate`` until ``aclose()``.
    """

    def __init__(
        self,
        exchange_name: str,
        inner: RateProvider,
        refresh_rate: timedelta = DEFAULT_REFRESH_RATE,
        validity_time: timedelta = DEFAULT_VALIDITY_TIME,
        clock: Callable[[], float] = time.time,
    ):
        validate_refresh_policy(refresh_rate, validity_time)
        self.exchange_name = exchange_name
        self.inner = inner
        self._refresh_rate = refresh_rate
        self._validity_time = validity_time
        self._clock = clock

        self._cache: CacheEntry | None = None
        self._latest_fetch: LatestFetch | None = None
        self._generation = 0
        self._fetch_lock = asyncio.Lock()
        self._refresh_task: asyncio.Task | None = None
        self._loop_task: asyncio.Task | None = None

    @property
    def refresh_rate(self) -> timedelta:
        return self._refresh_rate

    @property
    def validity_time(self) -> timedelta:
        return self._validity_time

    def set_refresh_policy(self, refresh_rate: timedelta, validity_time: timedelta) -> None:
        validate_refresh_policy(refresh_rate, validity_time)
        self._refresh_rate, self._validity_time = refresh_rate, validity_time

    @property
    def latest_fetch(self) -> LatestFetch | None:
        return self._latest_fetch

    @property
    def last_exception(self) -> Exception | None:
        latest = self._latest_fetch
        return latest.exception if latest else None

    @property
    def next_update(self) -> datetime | None:
        entry = self._cache
        if entry is None:
            return None
        return utc_from_timestamp(entry.fetched_at + self._refresh_rate.total_seconds())

    @property
    def expiration(self) -> datetime | None:
        entry = self._cache
        if entry is None:
            return None
        return utc_from_timestamp(entry.fetched_at + self._validity_time.total_seconds())

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def invalidate_cache(self) -> None:
        """Forget the cached value; a refresh already running will not restore it"""
        self._generation += 1
        self._cache = None

    async def get_rates(self) -> ExchangeRates:
        entry = self._cache
        if entry is not None:
            age = entry.age(self._clock())
            if age < self._refresh_rate.total_seconds():
                return entry.rates
            if age < self._validity_time.total_seconds():
                self._schedule_refresh()
                return entry.rates
        return await self._fetch()

    async def update_if_necessary(self) -> LatestFetch | None:
        """Refresh when nothing is cached or the cached value is due.

        Failures are recorded in ``latest_fetch`` and never raised.
        """
        entry = self._cache
        if entry is not None and entry.age(self._clock()) < self._refresh_rate.total_seconds():
            return self._latest_fetch
        try:
            await self._fetch()
        except Exception as e:
            logger.warning(f"Scheduled refresh of {self.exchange_name} failed: {e}")
        return self._latest_fetch

    def start(self) -> None:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(
                self._run_refresh_loop(), name=f"rates-refresh-loop-{self.exchange_name}"
            )

    async def aclose(self) -> None:
        tasks = [t for t in (self._loop_task, self._refresh_task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._refresh_task = None

    def _schedule_refresh(self) -> None:
        # No await between the check and the assignment: one refresh at most
        if self.is_refreshing:
            return
        latest = self._latest_fetch
        if (
            latest is not None
            and not latest.is_successful
            and self._clock() - latest.fetched_at < self._refresh_rate.total_seconds()
        ):
            # Last attempt failed recently, leave the retry to the loop
            return
        self._refresh_task = asyncio.create_task(
            self._refresh(), name=f"rates-refresh-{self.exchange_name}"
        )

    async def _refresh(self) -> None:
        try:
            await self._fetch()
        except Exception as e:
            logger.warning(
                f"Background refresh of {self.exchange_name} failed, keeping cached rates: {e}"
            )

    async def _fetch(self) -> ExchangeRates:
        async with self._fetch_lock:
            entry = self._cache
            if entry is not None and entry.age(self._clock()) < self._refresh_rate.total_seconds():
                # Someone else refreshed while we were waiting
                return entry.rates

            generation = self._generation
            started = time.perf_counter()
            try:
                rates = await self.inner.get_rates()
            except Exception as e:
                self._latest_fetch = LatestFetch(
                    rates=ExchangeRates(),
                    fetched_at=self._clock(),
                    latency=timedelta(seconds=time.perf_counter() - started),
                    exception=e,
                )
                raise

            now = self._clock()
            self._latest_fetch = LatestFetch(
                rates=rates,
                fetched_at=now,
                latency=timedelta(seconds=time.perf_counter() - started),
            )
            if generation == self._generation:
                self._cache = CacheEntry(rates=rates, fetched_at=now)
            return rates

    async def _run_refresh_loop(self) -> None:
        logger.debug(f"Starting refresh loop for {self.exchange_name} every {self._refresh_rate}")
        while True:
            await self.update_if_necessary()
            await asyncio.sleep(self._next_loop_delay())

    def _next_loop_delay(self) -> float:
        entry = self._cache
        latest = self._latest_fetch
        if entry is None or latest is None or not latest.is_successful:
            return self._refresh_rate.total_seconds()
        due_at = entry.fetched_at + self._refresh_rate.total_seconds()
        return max(due_at - self._clock(), _MIN_LOOP_DELAY)

    def __repr__(self):
        return (
            f"<BackgroundFetcherRateProvider(exchange={self.exchange_name}, "
            f"refresh_rate={self._refresh_rate}, validity_time={self._validity_time})>"
        )
