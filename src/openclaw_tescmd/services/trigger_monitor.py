"""Background poller that drains fired trigger notifications from the node.

Calls ``trigger.poll`` through the :class:`~openclaw_tescmd.dispatcher.Dispatcher`
on a fixed interval.  A tick is skipped while the previous poll is still
in flight.  Failures never stop the loop; "no node connected" failures
are only logged at debug level when *debug* is set, since they are
expected whenever the vehicle node is not serving.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

from openclaw_tescmd.models import Failure, FailureKind, Success

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from openclaw_tescmd.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

POLL_METHOD = "trigger.poll"


class TriggerMonitor:
    """Poll the node for trigger notifications.

    Parameters
    ----------
    dispatcher:
        Used to send ``trigger.poll``.
    interval:
        Seconds between polls.
    debug:
        Log "no node connected" poll failures instead of suppressing them.
    on_notifications:
        Optional async callback receiving each non-empty batch.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        interval: float = 30.0,
        debug: bool = False,
        on_notifications: Callable[[list[dict[str, Any]]], Awaitable[None]] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._interval = interval
        self._debug = debug
        self._on_notifications = on_notifications
        self._polling = False
        self._task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[list[dict[str, Any]]]] = set()
        self._poll_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def poll_count(self) -> int:
        return self._poll_count

    async def poll_once(self) -> list[dict[str, Any]]:
        """Run one poll and return the notifications received.

        Returns an empty list if a poll is already in progress or the
        poll failed.
        """
        if self._polling:
            return []
        self._polling = True
        try:
            self._poll_count += 1
            outcome = await self._dispatcher.invoke(POLL_METHOD)
            if isinstance(outcome, Failure):
                self._log_failure(outcome)
                return []
            if not isinstance(outcome, Success):
                return []
            value = outcome.value
            notifications = value.get("notifications") if isinstance(value, dict) else None
            if not notifications:
                return []
            logger.info("Received %d trigger notification(s)", len(notifications))
            for note in notifications:
                logger.debug("Trigger notification: %s", note)
            if self._on_notifications is not None:
                await self._on_notifications(list(notifications))
            return list(notifications)
        except Exception:
            logger.warning("Trigger poll failed", exc_info=True)
            return []
        finally:
            self._polling = False

    def _log_failure(self, failure: Failure) -> None:
        if failure.kind == FailureKind.NO_NODE_CONNECTED and not self._debug:
            return
        logger.debug("Trigger poll failed: %s", failure.message)

    async def _run(self) -> None:
        while True:
            # Don't block the loop on a slow poll; the next tick skips instead.
            poll = asyncio.create_task(self.poll_once())
            self._inflight.add(poll)
            poll.add_done_callback(self._inflight.discard)
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        """Start polling in the background (initial poll is immediate)."""
        if self.is_running:
            return
        logger.info("Starting trigger monitor (interval: %.0fs)", self._interval)
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        logger.info("Stopping trigger monitor")
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        for poll in list(self._inflight):
            poll.cancel()
        self._inflight.clear()
