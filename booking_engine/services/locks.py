import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager

from booking_engine.core.exceptions import SlotUnavailable

logger = logging.getLogger(__name__)


class StaffLockRegistry:
    """
    One asyncio lock per key, usually a staff member id.

    Booking and rescheduling hold the target staff member's lock across the
    read-check-write sequence, so two overlapping requests for the same staff
    member cannot both pass the conflict check. Acquisition is bounded; a
    timeout surfaces as a retryable SlotUnavailable.
    """

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._lock_for(key)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Timed out waiting for booking lock %s", key)
            raise SlotUnavailable(
                "Staff member is busy with another booking, please retry",
                retryable=True,
            )
        try:
            yield
        finally:
            lock.release()

    @asynccontextmanager
    async def hold_many(self, *keys: str):
        """Hold several locks, always taken in sorted order."""
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self.hold(key))
            yield
