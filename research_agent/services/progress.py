from __future__ import annotations

import asyncio
from typing import AsyncIterator

from research_agent.models.events import ProgressUpdate


class ProgressChannel:
    """Latest-value broadcast of a run's progress.

    Each ``publish`` replaces the held update; it is not a queue. A reader
    sees whatever is current when it looks, so a slow subscriber skips
    intermediate updates and only ever observes the newest one.
    """

    def __init__(self, initial: ProgressUpdate):
        self._value = initial
        self._version = 0
        self._changed = asyncio.Event()

    @property
    def value(self) -> ProgressUpdate:
        return self._value

    @property
    def version(self) -> int:
        return self._version

    def publish(self, update: ProgressUpdate) -> None:
        self._value = update
        self._version += 1
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

    async def subscribe(self) -> AsyncIterator[ProgressUpdate]:
        """Yield the current update, then the latest one after each change.

        Ends after yielding a terminal update.
        """
        seen = -1
        while True:
            if self._version != seen:
                seen = self._version
                update = self._value
                yield update
                if update.is_complete:
                    return
                continue
            await self._changed.wait()
