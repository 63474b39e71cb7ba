"""Device state cache for the FRITZ!Box Gateway integration.

Reads are answered from memory right away and trigger a background refresh
through the request queue. Writes update the cache optimistically before the
backend confirms them. Observers are notified whenever a cached value
changes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from .api import FritzApiClientError
from .metrics import METRICS, MetricDescription
from .models import CacheEntry

if TYPE_CHECKING:
    from .request_queue import RequestQueue

_LOGGER = logging.getLogger(__name__)

Observer = Callable[[Any], None]


class DeviceStateCache:
    """Per-device, per-metric cache of the last known values."""

    def __init__(
        self,
        queue: RequestQueue,
        metrics: Mapping[str, MetricDescription] = METRICS,
        *,
        min_refresh_age: float = 0.0,
    ) -> None:
        """Initialize the cache.

        Args:
            queue: Request queue used for refreshes and writes.
            metrics: Metric definitions keyed by metric key.
            min_refresh_age: Reads of an entry updated less than this many
                seconds ago do not schedule a refresh (0 = always refresh).

        """
        self._queue = queue
        self._metrics = metrics
        self.min_refresh_age = min_refresh_age
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._observers: defaultdict[tuple[str, str], list[Observer]] = defaultdict(
            list
        )
        self._tasks: set[asyncio.Task[Any]] = set()

    def _get_current_time(self) -> float:
        return time.monotonic()

    def _description(self, metric: str) -> MetricDescription:
        try:
            return self._metrics[metric]
        except KeyError:
            error_msg = f"Unknown metric: {metric}"
            raise FritzApiClientError(error_msg) from None

    def entry(self, device_id: str, metric: str) -> CacheEntry | None:
        """Return the raw cache entry, if it exists."""
        return self._entries.get((device_id, metric))

    def seed(self, device_id: str, metric: str, default: Any = None) -> CacheEntry:  # noqa: ANN401
        """Create the entry with the given default unless it already exists."""
        self._description(metric)
        key = (device_id, metric)
        if key not in self._entries:
            self._entries[key] = CacheEntry(device_id, metric, default)
        return self._entries[key]

    def get(self, device_id: str, metric: str, default: Any = None) -> Any:  # noqa: ANN401
        """Return the cached value without scheduling a refresh."""
        entry = self._entries.get((device_id, metric))
        return default if entry is None else entry.value

    def read(
        self,
        device_id: str,
        metric: str,
        default: Any = None,  # noqa: ANN401
        *,
        force: bool = False,
    ) -> Any:  # noqa: ANN401
        """Return the cached value and schedule a background refresh.

        The entry is created with ``default`` if absent. No refresh is
        scheduled while one is already in flight for the same key.
        """
        entry = self.seed(device_id, metric, default)
        if not entry.refresh_in_flight and (force or self._is_stale(entry)):
            self._schedule(self._async_refresh_entry(entry), entry)
        return entry.value

    def _is_stale(self, entry: CacheEntry) -> bool:
        if entry.last_updated is None or self.min_refresh_age <= 0:
            return True
        return self._get_current_time() - entry.last_updated >= self.min_refresh_age

    def _schedule(self, coro: Any, entry: CacheEntry | None = None) -> asyncio.Task[Any]:  # noqa: ANN401
        if entry is not None:
            entry.refresh_in_flight = True
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def async_refresh(self, device_id: str, metric: str) -> Any:  # noqa: ANN401
        """Refresh one entry and return its value once the refresh completed.

        If a refresh is already in flight the current value is returned.
        """
        entry = self.seed(device_id, metric)
        if entry.refresh_in_flight:
            return entry.value
        entry.refresh_in_flight = True
        await self._async_refresh_entry(entry)
        return entry.value

    async def _async_refresh_entry(self, entry: CacheEntry) -> None:
        description = self._description(entry.metric)
        try:
            raw = await self._queue.async_invoke(
                description.function, *description.args(entry.device_id)
            )
        except FritzApiClientError as err:
            _LOGGER.debug(
                "Refreshing %s of %s failed: %s", entry.metric, entry.device_id, err
            )
        else:
            self._apply(entry, description.convert(raw))
        finally:
            entry.refresh_in_flight = False

    def write(self, device_id: str, metric: str, value: Any) -> asyncio.Task[None]:  # noqa: ANN401
        """Update the cache optimistically and send the value to the backend.

        Returns:
            The task carrying the backend mutation.

        """
        description = self._description(metric)
        entry = self.seed(device_id, metric, value)
        self._apply(entry, value)
        return self._schedule(self._async_write(entry, description, value))

    async def _async_write(
        self,
        entry: CacheEntry,
        description: MetricDescription,
        value: Any,  # noqa: ANN401
    ) -> None:
        command = description.command(value) if description.command else None
        if command is None:
            return
        function, args = command
        try:
            result = await self._queue.async_invoke(
                function, *description.args(entry.device_id), *args
            )
        except FritzApiClientError as err:
            _LOGGER.warning(
                "Setting %s of %s to %s failed: %s",
                entry.metric,
                entry.device_id,
                value,
                err,
            )
            return
        self._apply(entry, description.convert(result))

    def _apply(self, entry: CacheEntry, value: Any) -> None:  # noqa: ANN401
        if value is None:
            _LOGGER.debug(
                "No value for %s of %s, keeping %s",
                entry.metric,
                entry.device_id,
                entry.value,
            )
            return
        changed = entry.value != value
        entry.value = value
        entry.last_updated = self._get_current_time()
        if changed:
            self._notify(entry)

    def _notify(self, entry: CacheEntry) -> None:
        for callback in list(self._observers.get((entry.device_id, entry.metric), ())):
            callback(entry.value)

    def observe(
        self, device_id: str, metric: str, callback: Observer
    ) -> Callable[[], None]:
        """Register a callback fired with the new value whenever it changes.

        Returns:
            Function removing the callback again.

        """
        key = (device_id, metric)
        self._observers[key].append(callback)

        def _remove() -> None:
            if callback in self._observers.get(key, []):
                self._observers[key].remove(callback)

        return _remove

    async def async_wait_idle(self) -> None:
        """Wait until every scheduled refresh and write has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def async_shutdown(self) -> None:
        """Cancel all outstanding refreshes and writes."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
