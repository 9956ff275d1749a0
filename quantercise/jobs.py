from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from .storage import StorageError

logger = logging.getLogger(__name__)


class BackgroundJobs:
    """Fire-and-forget runner for persistence coroutines.

    Jobs are queued on a private event loop and only make progress when
    :meth:`drain` is called, so the single-threaded drill loop never blocks on
    storage. A job that fails with ``StorageError`` is logged once and dropped;
    its ``on_result`` callback is not called and nothing is retried.
    """

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._pending: list[asyncio.Task[None]] = []
        self._failures = 0

    @property
    def failures(self) -> int:
        return self._failures

    def pending(self) -> int:
        return sum(1 for t in self._pending if not t.done())

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        label: str,
        on_result: Callable[[Any], None] | None = None,
    ) -> None:
        task = self._loop.create_task(self._guard(coro, label=label, on_result=on_result))
        self._pending.append(task)

    def drain(self) -> int:
        """Run every queued job to completion; return how many ran."""

        ran = 0
        while self._pending:
            batch = self._pending
            self._pending = []
            # Let every job in the batch finish before surfacing a bug in one.
            outcomes = self._loop.run_until_complete(asyncio.gather(*batch, return_exceptions=True))
            ran += len(batch)
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
        return ran

    def close(self) -> None:
        self.drain()
        self._loop.close()

    async def _guard(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        label: str,
        on_result: Callable[[Any], None] | None,
    ) -> None:
        try:
            result = await coro
        except StorageError:
            self._failures += 1
            logger.warning("persistence job %s failed", label, exc_info=True)
            return
        if on_result is not None:
            on_result(result)
