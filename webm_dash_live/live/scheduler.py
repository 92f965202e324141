"""
Periodic cutter loop.

Every interval the scheduler produces the initialization fragment if it does
not exist yet (retrying on later ticks until a Cluster has been flushed), then
cuts and publishes the next media fragment. Cuts run in the default executor
so file I/O never blocks the event loop; the loop awaits each cut before
sleeping again, so at most one cut is in flight.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from webm_dash_live.live.session import LiveSession

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


@dataclass
class TickResult:
    init_produced: bool = False
    identity: Optional[int] = None
    size: int = 0

    @property
    def published(self) -> bool:
        return self.identity is not None


class SegmentingScheduler:
    def __init__(self, session: "LiveSession", interval_sec: float):
        self._session = session
        self.interval_sec = interval_sec
        self._task: Optional[asyncio.Task] = None
        self._tick_lock = threading.Lock()
        # Bytes cut from the container whose publication failed; prepended to the next fragment
        self._carry = b""
        self.ticks = 0
        self.failed_ticks = 0

    @property
    def state(self) -> SchedulerState:
        if self._task is not None and not self._task.done():
            return SchedulerState.RECORDING
        return SchedulerState.IDLE

    def start(self) -> None:
        """Start ticking. Must be called from a running event loop."""
        if self.state is SchedulerState.RECORDING:
            return
        self._task = asyncio.create_task(self._run(), name="segmenting-scheduler")
        logger.info(f"Segmenting scheduler started (interval {self.interval_sec}s)")

    async def stop(self) -> None:
        """Cancel the loop and wait for a cut already in progress to finish."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Segmenting scheduler stopped")
        # A cancelled await does not stop a cut running in the executor thread.
        await asyncio.get_running_loop().run_in_executor(None, self._wait_for_tick)

    def reset(self) -> None:
        self._carry = b""
        self.ticks = 0
        self.failed_ticks = 0

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self.interval_sec)
            try:
                await loop.run_in_executor(None, self.tick)
            except asyncio.CancelledError:
                raise
            except Exception:
                self.failed_ticks += 1
                logger.exception("Segmenting tick failed; continuing on next interval")

    def tick(self) -> TickResult:
        """Perform one cut cycle synchronously."""
        with self._tick_lock:
            self.ticks += 1
            result = TickResult()
            cutter = self._session.cutter
            catalog = self._session.catalog

            if not cutter.init_produced:
                if cutter.cut_initialization_fragment(catalog.init_path) is None:
                    logger.debug(f"Tick {self.ticks}: container has no cluster yet, retrying next tick")
                    return result
                result.init_produced = True

            data = self._carry + cutter.cut_media_fragment()
            self._carry = b""
            identity = catalog.next_identity()
            try:
                catalog.publish(identity, data)
            except Exception:
                self._carry = data
                raise

            result.identity = identity
            result.size = len(data)
            return result

    def _wait_for_tick(self) -> None:
        with self._tick_lock:
            pass
