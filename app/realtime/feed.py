# FILE: app/realtime/feed.py
"""
Refresh-and-notify channel for project updates.

A ProjectFeed owns one fetch callable and fans changed payloads out to
subscribers. Refreshes never overlap: a refresh requested while one is in
flight is skipped. Failures of background refreshes are logged and swallowed
so subscribers only ever see good data; initial and user-requested refreshes
raise.
"""
import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

_NOTHING = object()


class ProjectFeed:
    def __init__(self, fetch: Callable[[], Awaitable[Any]], interval: float = 3.0):
        self._fetch = fetch
        self.interval = interval
        self._refreshing = False
        self._latest = _NOTHING
        self._subscribers: List[asyncio.Queue] = []

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    @property
    def latest(self) -> Any:
        return None if self._latest is _NOTHING else self._latest

    async def refresh(self, background: bool = False) -> bool:
        """
        Fetch once and publish the payload if it changed.

        Returns False when skipped (another refresh in flight) or when a
        background refresh failed.
        """
        if self._refreshing:
            logger.debug("[realtime] Refresh already in progress, skipping")
            return False

        self._refreshing = True
        try:
            payload = await self._fetch()
        except Exception as e:
            if not background:
                raise
            logger.warning(f"[realtime] Background refresh failed (silent): {e}")
            return False
        finally:
            self._refreshing = False

        if self._latest is _NOTHING or payload != self._latest:
            self._latest = payload
            for queue in list(self._subscribers):
                queue.put_nowait(payload)
        return True

    async def poll(self) -> None:
        """Background refresh every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(self.interval)
            await self.refresh(background=True)

    async def run(self) -> None:
        """Initial (raising) refresh, then background polling."""
        await self.refresh(background=False)
        await self.poll()

    async def subscribe(self) -> AsyncIterator[Any]:
        """Yield the current payload (if any), then every change after it."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        last = self._latest
        try:
            if last is not _NOTHING:
                yield last
            while True:
                payload = await queue.get()
                if last is not _NOTHING and payload == last:
                    continue
                last = payload
                yield payload
        finally:
            self._subscribers.remove(queue)


def format_sse(payload: Any, event: Optional[str] = None) -> str:
    """Serialize one server-sent event."""
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(payload, default=str)}")
    return "\n".join(lines) + "\n\n"
