# src/events/bus.py - v1
"""In-process progress bus.

Observer primitive between the orchestrator and whatever transport relays
progress (WebSocket, SSE, polling). Delivery is at-most-once per subscriber
and in publish order per channel; there is no replay, so a subscriber only
sees events published after it subscribed.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from docuforge.core.models import ProgressEvent

logger = logging.getLogger(__name__)


class Subscription:
    """Async iterator over one channel's events.

    Iteration ends after a terminal event (completed, failed, cancelled) or
    when the subscription is closed.
    """

    _CLOSED = object()

    def __init__(self, bus: ProgressBus, channel: str) -> None:
        self._bus = bus
        self.channel = channel
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, event: ProgressEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        """Stop iteration and detach from the bus."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(self._CLOSED)
        self._bus.unsubscribe(self)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> ProgressEvent:
        item = await self._queue.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        assert isinstance(item, ProgressEvent)
        if item.is_terminal:
            self.close()
        return item

    async def next_event(self, timeout: float | None = None) -> ProgressEvent | None:
        """Next event, or None when closed or ``timeout`` elapses."""
        try:
            return await asyncio.wait_for(self.__anext__(), timeout)
        except (StopAsyncIteration, asyncio.TimeoutError):
            return None


class ProgressBus:
    """Channels keyed by document (or session) id."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, channel: str) -> Subscription:
        subscription = Subscription(self, channel)
        self._subscribers[channel].append(subscription)
        logger.debug("Subscriber added to %s (%d total)", channel, len(self._subscribers[channel]))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Detach ``subscription``; unknown subscriptions are ignored."""
        subscribers = self._subscribers.get(subscription.channel)
        if not subscribers:
            return
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            del self._subscribers[subscription.channel]
        if not subscription.closed:
            subscription.close()

    def publish(self, channel: str, event: ProgressEvent) -> int:
        """Deliver ``event`` to current subscribers of ``channel``.

        Returns:
            Number of subscribers the event was delivered to.
        """
        subscribers = list(self._subscribers.get(channel, ()))
        for subscription in subscribers:
            subscription._deliver(event)
        return len(subscribers)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))
