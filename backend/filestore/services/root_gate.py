"""Shared/exclusive gate around a storage root.

Regular operations hold the shared side and run concurrently. ``clear()``
holds the exclusive side: it waits for in-flight operations to finish, and
operations that arrive while a clear is pending wait until it completes.
Not reentrant: code already inside ``shared()`` must not enter it again.
"""
import asyncio
from contextlib import asynccontextmanager


class RootGate:
    def __init__(self):
        self._cond = asyncio.Condition()
        self._active = 0
        self._exclusive = False
        self._waiting_exclusive = 0

    @asynccontextmanager
    async def shared(self):
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._exclusive and self._waiting_exclusive == 0
            )
            self._active += 1
        try:
            yield
        finally:
            async with self._cond:
                self._active -= 1
                if self._active == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def exclusive(self):
        async with self._cond:
            self._waiting_exclusive += 1
            try:
                await self._cond.wait_for(lambda: not self._exclusive and self._active == 0)
            except BaseException:
                self._waiting_exclusive -= 1
                self._cond.notify_all()
                raise
            self._waiting_exclusive -= 1
            self._exclusive = True
        try:
            yield
        finally:
            async with self._cond:
                self._exclusive = False
                self._cond.notify_all()

    @property
    def busy(self) -> bool:
        return self._active > 0 or self._exclusive
