"""
In-process notification bus.

Three channels:

- order-changed: an order was created or advanced; bar and kitchen views
  re-fetch their queue. No payload.
- data-changed: same triggers, consumed by the statistics view. No payload.
- message: free-text announcements from the admin, never throttled.

The two invalidation channels are throttled per channel: the first publish
in an idle window schedules a single emission when the window ends, further
publishes inside the window are folded into it. Delivery is best effort and
at most once; there is no replay for late subscribers.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

ORDER_CHANGED = "order-changed"
DATA_CHANGED = "data-changed"
MESSAGE = "message"
CHANNELS = (ORDER_CHANGED, DATA_CHANGED, MESSAGE)

_CLOSED = object()


class Event:
    """One notification as delivered to subscribers."""

    __slots__ = ("channel", "payload")

    def __init__(self, channel: str, payload: Optional[Dict[str, Any]] = None):
        self.channel = channel
        self.payload = payload

    def to_dict(self) -> Dict[str, Any]:
        return {"channel": self.channel, "payload": self.payload}

    def __repr__(self):
        return f"<Event(channel={self.channel}, payload={self.payload})>"


class Subscription:
    """
    Async iterator over the events of one channel for one subscriber.

    Iteration ends when the cancel token is set or close() is called;
    other subscribers are not affected.
    """

    def __init__(self, bus: "NotificationBus", channel: str, cancel: asyncio.Event):
        self.bus = bus
        self.channel = channel
        self.cancel = cancel
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    def _push(self, event: Event) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Event:
        if self.closed or self.cancel.is_set():
            self.close()
            raise StopAsyncIteration

        get_task = asyncio.ensure_future(self._queue.get())
        cancel_task = asyncio.ensure_future(self.cancel.wait())
        try:
            done, _ = await asyncio.wait({get_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            get_task.cancel()
            cancel_task.cancel()

        if cancel_task in done or get_task not in done:
            self.close()
            raise StopAsyncIteration
        item = get_task.result()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        """Stop delivery to this subscriber. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self.bus._unsubscribe(self)
        # Wakes up a consumer blocked in __anext__
        self._queue.put_nowait(_CLOSED)

    async def aclose(self) -> None:
        self.close()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class NotificationBus:
    """
    Per-channel publish/subscribe with trailing throttling.

    Args:
        order_changed_window: throttle window for order-changed in seconds
        data_changed_window: throttle window for data-changed in seconds

    A window of 0 delivers every publish immediately.
    """

    def __init__(self, order_changed_window: float = 5.0, data_changed_window: float = 10.0):
        self._windows: Dict[str, float] = {
            ORDER_CHANGED: order_changed_window,
            DATA_CHANGED: data_changed_window,
            MESSAGE: 0.0,
        }
        self._subscribers: Dict[str, Set[Subscription]] = {channel: set() for channel in CHANNELS}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._pending_payload: Dict[str, Optional[Dict[str, Any]]] = {}
        self._emissions: Dict[str, int] = {channel: 0 for channel in CHANNELS}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ---------- Subscribing ----------
    def subscribe(self, channel: str, cancel: Optional[asyncio.Event] = None) -> Subscription:
        """
        Register a subscriber on a channel.

        Must be called from the event loop. The subscription receives every
        event emitted after this call until `cancel` is set or it is closed.
        """
        self._check_channel(channel)
        self._loop = asyncio.get_running_loop()
        subscription = Subscription(self, channel, cancel if cancel is not None else asyncio.Event())
        self._subscribers[channel].add(subscription)
        logger.debug(f"[NotificationBus] Subscriber added to {channel} ({len(self._subscribers[channel])} total)")
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers[subscription.channel].discard(subscription)
        logger.debug(f"[NotificationBus] Subscriber removed from {subscription.channel}")

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers[channel])

    # ---------- Publishing ----------
    def publish(self, channel: str, payload: Optional[Dict[str, Any]] = None) -> None:
        """
        Publish on a channel, subject to the channel's throttle window.

        Callable from the event loop, from a worker thread while a loop is
        bound, or without any loop (then delivery is immediate).
        """
        self._check_channel(channel)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            if self._loop is not None and self._loop.is_running():
                self._loop.call_soon_threadsafe(self._publish_in_loop, self._loop, channel, payload)
            else:
                self._emit(channel, payload)
            return
        self._publish_in_loop(loop, channel, payload)

    def _publish_in_loop(self, loop: asyncio.AbstractEventLoop, channel: str, payload: Optional[Dict[str, Any]]) -> None:
        window = self._windows.get(channel, 0.0)
        if window <= 0:
            self._emit(channel, payload)
            return

        self._pending_payload[channel] = payload
        if channel in self._timers:
            # Already scheduled for this window
            return
        self._timers[channel] = loop.call_later(window, self._flush, channel)

    def _flush(self, channel: str) -> None:
        self._timers.pop(channel, None)
        payload = self._pending_payload.pop(channel, None)
        self._emit(channel, payload)

    def _emit(self, channel: str, payload: Optional[Dict[str, Any]]) -> None:
        event = Event(channel, payload)
        self._emissions[channel] += 1
        subscribers: List[Subscription] = list(self._subscribers[channel])
        for subscription in subscribers:
            subscription._push(event)
        logger.debug(f"[NotificationBus] Emitted {channel} to {len(subscribers)} subscribers")

    def notify_order_changed(self) -> None:
        """Signal an order create or status change on both invalidation channels."""
        self.publish(ORDER_CHANGED)
        self.publish(DATA_CHANGED)

    def broadcast_message(self, text: str) -> None:
        """Send an announcement to every message subscriber."""
        self.publish(MESSAGE, {"message": text})
        logger.info(f"[NotificationBus] Broadcast message to {self.subscriber_count(MESSAGE)} subscribers")

    def emission_count(self, channel: str) -> int:
        """Number of emissions delivered on a channel since creation."""
        return self._emissions[channel]

    def has_pending(self, channel: str) -> bool:
        return channel in self._timers

    def close(self) -> None:
        """Cancel pending throttle timers and end every subscription."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._pending_payload.clear()
        for channel in CHANNELS:
            for subscription in list(self._subscribers[channel]):
                subscription.close()

    def _check_channel(self, channel: str) -> None:
        if channel not in self._subscribers:
            raise ValueError(f"Unknown channel: {channel}")
