"""
Debounced, coalescing draft writer.

Edits land in memory first; this class gets the settled result to the store.
Only the newest scheduled payload is ever written: a payload scheduled while
an older one is still waiting replaces it, and a payload scheduled while a
write is in flight is written right after that write returns. A payload
whose write failed is kept and written again by the next flush().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from layout_engine.kernel.errors import PersistenceError
from layout_engine.utils.snapshot_hash import hash_snapshot

logger = logging.getLogger(__name__)


class DraftSaver:
    """
    One saver per editor session.

    schedule() never blocks and never raises for IO. Failures are retried,
    then logged, kept in `error` and passed to `on_error`. The next flush()
    writes the failed payload again and raises only if that also fails.
    """

    def __init__(
        self,
        save: Callable[[dict[str, Any]], Awaitable[Any]],
        *,
        delay: float = 0.5,
        retries: int = 1,
        label: str = "",
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._save = save
        self._delay = delay
        self._retries = max(0, retries)
        self._label = label
        self._on_error = on_error

        self._pending: tuple[dict[str, Any], str] | None = None
        self._failed: tuple[dict[str, Any], str] | None = None
        self._wake = asyncio.Event()
        self._flushing = False
        self._task: asyncio.Task[None] | None = None

        self.saved_hash: str | None = None
        self.error: BaseException | None = None
        self.writes = 0

    @property
    def pending(self) -> bool:
        """True while a payload is waiting or being written."""
        return self._pending is not None or (self._task is not None and not self._task.done())

    def mark_saved(self, payload: dict[str, Any]) -> None:
        """Record that `payload` already matches the store (e.g. just loaded)."""
        self.saved_hash = hash_snapshot(payload)

    def schedule(self, payload: dict[str, Any]) -> None:
        """
        Queue `payload` as the next draft to write, replacing anything queued.
        Raises RuntimeError, with nothing queued, when no event loop is running.
        """
        loop = asyncio.get_running_loop()
        self._pending = (payload, hash_snapshot(payload))
        self._wake.set()
        if self._task is None or self._task.done():
            self._task = loop.create_task(self._run())

    async def flush(self) -> None:
        """
        Write whatever is queued now, skipping the debounce wait. A payload
        whose earlier write failed is written again first.

        Raises PersistenceError if the most recent write failed.
        """
        idle = self._task is None or self._task.done()
        if idle and self._pending is None and self._failed is not None:
            self._pending = self._failed
            self._task = asyncio.get_running_loop().create_task(self._run())
        task = self._task
        if task is not None and not task.done():
            self._flushing = True
            self._wake.set()
            try:
                await task
            finally:
                self._flushing = False
        if self.error is not None:
            raise PersistenceError(f"draft {self._label} not saved: {self.error}") from self.error

    def cancel(self) -> None:
        """Drop anything queued and stop the background task."""
        self._pending = None
        self._failed = None
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def discard(self) -> None:
        """Drop queued and failed payloads and wait until no write is running."""
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.wait([task])
        self.error = None

    # -- internals --

    async def _run(self) -> None:
        while self._pending is not None:
            await self._debounce()
            if self._pending is None:
                break
            payload, digest = self._pending
            self._pending = None
            if digest == self.saved_hash:
                # The store already holds this payload
                self._failed = None
                self.error = None
                continue
            await self._write(payload, digest)

    async def _debounce(self) -> None:
        """Wait until no new payload has arrived for `delay` seconds."""
        while not self._flushing:
            self._wake.clear()
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._delay)
            except TimeoutError:
                return

    async def _write(self, payload: dict[str, Any], digest: str) -> None:
        attempts = self._retries + 1
        last_error: BaseException | None = None
        for attempt in range(1, attempts + 1):
            try:
                await self._save(payload)
            except Exception as e:
                last_error = e
                logger.warning(
                    "DraftSaver[%s]: save attempt %d/%d failed: %s", self._label, attempt, attempts, e
                )
                continue
            self.saved_hash = digest
            self._failed = None
            self.error = None
            self.writes += 1
            return

        self._failed = (payload, digest)
        self.error = last_error
        logger.error("DraftSaver[%s]: giving up on draft save", self._label, exc_info=last_error)
        if self._on_error is not None and last_error is not None:
            self._on_error(last_error)
