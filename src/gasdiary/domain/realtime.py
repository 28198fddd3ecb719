"""Debounced realtime synchronization of the diary streams.

Each logical stream (sales, expenses) runs a small state machine::

    IDLE -> PENDING_DEBOUNCE -> FETCHING -> IDLE

Every table feeding a stream restarts the same debounce timer, so a burst of
writes across several tables costs one fetch. Timers go through an injected
``Scheduler`` so tests can drive time by hand.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Coroutine, Iterable, Mapping, Optional, Protocol

from gasdiary.database.change_feed import ChangeFeed, Subscription

logger = logging.getLogger("gasdiary.realtime")

DEFAULT_DEBOUNCE = 1.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(ABC):
    """Timer and task primitives used by the synchronizer."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds unless cancelled."""
        pass

    @abstractmethod
    def spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Run ``coro`` to completion in the background."""
        pass


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._tasks: set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = self.loop.create_task(coro)
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for every spawned task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class StreamState(str, Enum):
    IDLE = "idle"
    PENDING_DEBOUNCE = "pending_debounce"
    FETCHING = "fetching"


class StreamDebouncer:
    """Debounce state machine for one stream.

    Args:
        name: Stream name used in log messages
        fetch: Coroutine function running the stream's full adapter set
        scheduler: Timer and task primitives
        delay: Debounce window in seconds
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[Any]],
        scheduler: Scheduler,
        delay: float = DEFAULT_DEBOUNCE,
    ):
        self.name = name
        self.fetch = fetch
        self.scheduler = scheduler
        self.delay = delay
        self.state = StreamState.IDLE
        self.fetch_count = 0
        self._timer: Optional[TimerHandle] = None
        self._dirty = False
        self._closed = False

    def notify(self, table: Optional[str] = None) -> None:
        """Record a change on one of the stream's tables."""
        if self._closed:
            return
        if self.state == StreamState.FETCHING:
            # Picked up by a fresh debounce window once the fetch completes
            self._dirty = True
            return
        if self._timer is not None:
            self._timer.cancel()
        if self.state == StreamState.IDLE:
            logger.debug(f"{self.name}: change on {table or 'source'}, debouncing")
        self.state = StreamState.PENDING_DEBOUNCE
        self._timer = self.scheduler.call_later(self.delay, self._expire)

    def _expire(self) -> None:
        self._timer = None
        if self._closed:
            return
        self.state = StreamState.FETCHING
        self.fetch_count += 1
        logger.debug(f"{self.name}: debounce expired, fetching")
        self.scheduler.spawn(self._run_fetch())

    async def _run_fetch(self) -> None:
        try:
            await self.fetch()
        except Exception:
            logger.exception(f"{self.name}: realtime fetch failed")
        finally:
            self.state = StreamState.IDLE
            logger.debug(f"{self.name}: fetch complete")
            if self._dirty and not self._closed:
                self._dirty = False
                self.notify()

    def cancel(self) -> None:
        """Cancel a pending timer and ignore any further changes.

        A fetch already running is left to finish.
        """
        self._closed = True
        self._dirty = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.state == StreamState.PENDING_DEBOUNCE:
            self.state = StreamState.IDLE


class RealtimeSynchronizer:
    """Binds change-feed subscriptions to per-stream debouncers.

    Args:
        feed: Source of table change events
        scheduler: Timer and task primitives
        streams: Stream name -> (tables, fetch coroutine function)
        delay: Debounce window in seconds
    """

    def __init__(
        self,
        feed: ChangeFeed,
        scheduler: Scheduler,
        streams: Mapping[str, tuple[Iterable[str], Callable[[], Awaitable[Any]]]],
        delay: float = DEFAULT_DEBOUNCE,
    ):
        self.feed = feed
        self.scheduler = scheduler
        self.delay = delay
        self._streams = {name: (tuple(tables), fetch) for name, (tables, fetch) in streams.items()}
        self.debouncers: dict[str, StreamDebouncer] = {}
        self._subscriptions: list[Subscription] = []

    @property
    def active(self) -> bool:
        return bool(self._subscriptions)

    def start(self) -> None:
        if self.active:
            return
        for name, (tables, fetch) in self._streams.items():
            debouncer = StreamDebouncer(name, fetch, self.scheduler, self.delay)
            self.debouncers[name] = debouncer
            self._subscriptions.append(self.feed.subscribe(tables, debouncer.notify))
        logger.debug(f"Realtime sync started for {', '.join(self._streams)}")

    def stop(self) -> None:
        """Cancel subscriptions and pending timers."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        for debouncer in self.debouncers.values():
            debouncer.cancel()
        logger.debug("Realtime sync stopped")

    def state(self, name: str) -> StreamState:
        debouncer = self.debouncers.get(name)
        return debouncer.state if debouncer else StreamState.IDLE
