"""Request queue funnelling all backend calls of the integration.

The FRITZ!Box degrades or corrupts its session state under concurrent
writes, so calls are dispatched by a fixed number of worker tasks (one by
default) in the order they were enqueued. Session renewal and retries are
handled here and nowhere else.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .api import (
    FritzAuthenticationError,
    FritzAuthExpiredError,
    FritzBackendUnavailableError,
    FritzTransportError,
)
from .const import MAX_ATTEMPTS, RETRY_DELAY
from .models import PendingCall

if TYPE_CHECKING:
    from .api import FritzBoxApi
    from .session import SessionManager

_LOGGER = logging.getLogger(__name__)


class RequestQueue:
    """Serializes (or bounds) the calls issued to the FRITZ!Box.

    Attributes:
        max_concurrent: Number of calls that may be in flight at once.
        retry_delay: Seconds to wait before retrying after a transport error.
        max_attempts: Transport failures tolerated before giving up.

    """

    def __init__(
        self,
        api: FritzBoxApi,
        session_manager: SessionManager,
        *,
        max_concurrent: int = 1,
        retry_delay: float = RETRY_DELAY,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        """Initialize the request queue.

        Args:
            api: Remote procedure surface receiving the calls.
            session_manager: Source of session tokens.
            max_concurrent: 1 for strict FIFO dispatch, more for bounded
                concurrent dispatch.
            retry_delay: Seconds to wait before retrying a failed call.
            max_attempts: Transport failures tolerated per call.

        """
        self._api = api
        self._session_manager = session_manager
        self.max_concurrent = max(1, max_concurrent)
        self.retry_delay = retry_delay
        self.max_attempts = max(1, max_attempts)
        self._queue: asyncio.Queue[tuple[PendingCall, asyncio.Future[Any]]] = (
            asyncio.Queue()
        )
        self._workers: list[asyncio.Task[None]] = []

    @property
    def pending(self) -> int:
        """Return the number of calls waiting for a worker."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker tasks if they are not running yet."""
        if self._workers:
            return
        _LOGGER.debug("Starting request queue with %d worker(s)", self.max_concurrent)
        self._workers = [
            asyncio.create_task(self._async_worker(), name=f"fritz_gateway_worker_{i}")
            for i in range(self.max_concurrent)
        ]

    async def async_stop(self) -> None:
        """Stop the workers and cancel every call still waiting."""
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            future.cancel()
            self._queue.task_done()

    async def async_invoke(self, function_name: str, *args: Any) -> Any:  # noqa: ANN401
        """Enqueue a backend call and wait for its result.

        Raises:
            FritzAuthenticationError: If no valid session can be obtained.
            FritzBackendUnavailableError: If the backend stays unreachable.
            FritzApiClientError: For any other refused request.

        """
        self.start()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        call = PendingCall(function_name=function_name, args=args)
        self._queue.put_nowait((call, future))
        if self._queue.qsize() > 1:
            _LOGGER.debug("%d pending api calls", self._queue.qsize())
        return await future

    async def _async_worker(self) -> None:
        while True:
            call, future = await self._queue.get()
            try:
                if future.done():
                    # Caller lost interest before the call was dispatched
                    continue
                try:
                    result = await self._async_execute(call)
                except asyncio.CancelledError:
                    future.cancel()
                    raise
                except Exception as err:  # noqa: BLE001
                    _LOGGER.debug("< %s failed: %s", call.function_name, err)
                    if not future.done():
                        future.set_exception(err)
                else:
                    _LOGGER.debug("< %s %s", call.function_name, result)
                    if not future.done():
                        future.set_result(result)
            finally:
                self._queue.task_done()

    async def _async_execute(self, call: PendingCall) -> Any:  # noqa: ANN401
        renewed = False
        failures = 0
        while True:
            token = await self._session_manager.async_get_token()
            call.attempt += 1
            _LOGGER.debug(
                "> %s %s (attempt %d)", call.function_name, call.args, call.attempt
            )
            try:
                return await self._api.async_call(call.function_name, token, *call.args)
            except FritzAuthExpiredError as err:
                if renewed:
                    error_msg = f"{call.function_name}: session rejected after renewal"
                    raise FritzAuthenticationError(error_msg) from err
                renewed = True
                _LOGGER.debug("Session expired during %s, renewing", call.function_name)
                self._session_manager.invalidate(token)
                await self._session_manager.async_renew(token)
            except FritzTransportError as err:
                failures += 1
                if failures >= self.max_attempts:
                    error_msg = (
                        f"{call.function_name} failed after {failures} attempts: {err}"
                    )
                    raise FritzBackendUnavailableError(error_msg) from err
                _LOGGER.warning(
                    "%s failed (%s), retrying in %.0fs",
                    call.function_name,
                    err,
                    self.retry_delay,
                )
                await asyncio.sleep(self.retry_delay)
