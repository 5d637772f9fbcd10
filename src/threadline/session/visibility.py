"""Background reconciliation while the view is hidden.

While hidden, the job-status endpoint is polled on a fixed interval and the
active session is re-hydrated whenever a job is still running. Becoming
visible triggers exactly one immediate check and stops the interval.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from ..backend.base import SessionBackend
from ..config import DEFAULT_POLL_INTERVAL
from ..errors import ThreadlineError
from .binder import SessionBinder

logger = logging.getLogger(__name__)


class VisibilityPoller:
    """Polls job status for the active session while hidden."""

    def __init__(
        self,
        binder: SessionBinder,
        backend: SessionBackend,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """Initialize the poller.

        Args:
            binder: Provides the active session and re-hydration
            backend: Job-status source
            interval: Seconds between polls (no backoff)
            sleep: Awaitable used between ticks
        """
        self._binder = binder
        self._backend = backend
        self._interval = interval
        self._sleep = sleep
        self._hidden = False
        self._task: asyncio.Task[None] | None = None

    @property
    def hidden(self) -> bool:
        return self._hidden

    @property
    def polling(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check_background_jobs(self) -> bool:
        """Re-hydrate the active session if it has a running job.

        Failures are logged; the next tick simply tries again.

        Returns:
            True if a reload was triggered
        """
        session_id = self._binder.current_session_id
        if not session_id:
            return False
        try:
            status = await self._backend.fetch_job_status(session_id)
            if not status.has_running_jobs:
                return False
            logger.info("Background job detected for %s, reloading session", session_id)
            await self._binder.load_session_tree(session_id)
            return True
        except ThreadlineError as e:
            logger.warning("Failed to check background status: %s", e)
            return False

    async def _poll(self) -> None:
        while True:
            await self._sleep(self._interval)
            try:
                await self.check_background_jobs()
            except Exception:
                logger.exception("Background status check failed; retrying next tick")

    def set_hidden(self) -> None:
        """Start interval polling. Must be called from a running event loop."""
        self._hidden = True
        if not self.polling:
            self._task = asyncio.get_running_loop().create_task(self._poll())

    async def set_visible(self) -> None:
        """Stop interval polling and run one immediate check."""
        if not self._hidden:
            return
        self._hidden = False
        await self._stop()
        await self.check_background_jobs()

    async def set_visibility(self, visible: bool) -> None:
        if visible:
            await self.set_visible()
        else:
            self.set_hidden()

    async def _stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def close(self) -> None:
        """Stop polling without a final check."""
        self._hidden = False
        await self._stop()
