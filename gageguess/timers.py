# gageguess/timers.py
"""Idle-expiry timers, one per room code."""

import asyncio
from typing import Any, Callable, Awaitable, Dict, Optional

from gageguess.events import RoomEvent, RoomEventType


class TimerManager:
    """Keeps at most one pending timer per key and reports expiry as a RoomEvent.

    Restarting a key replaces its timer, which is how room activity pushes
    the idle deadline back.
    """

    def __init__(self, event_callback: Callable[[RoomEvent], Awaitable[None]]):
        self._on_expired = event_callback
        self._timers: Dict[str, asyncio.Task] = {}

    def start_timer(
        self,
        timer_id: str,
        duration_seconds: float,
        event_type: RoomEventType,
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        """Arm ``timer_id`` to fire ``event_type`` after ``duration_seconds``.

        Any timer already pending under the same id is discarded.
        """
        self.cancel_timer(timer_id)

        async def expire():
            try:
                await asyncio.sleep(duration_seconds)
            except asyncio.CancelledError:
                return
            # Drop our own reference before firing so the callback may
            # cancel or restart this id without cancelling itself.
            if self._timers.get(timer_id) is task:
                del self._timers[timer_id]
            await self._on_expired(RoomEvent(type=event_type, data=data or {}))

        task = asyncio.create_task(expire())
        self._timers[timer_id] = task

    def cancel_timer(self, timer_id: str) -> bool:
        """Disarm ``timer_id``; False when nothing was pending."""
        task = self._timers.pop(timer_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        for task in self._timers.values():
            task.cancel()
        self._timers.clear()

    def is_active(self, timer_id: str) -> bool:
        """True while ``timer_id`` is armed and has not fired."""
        return timer_id in self._timers
