"""
Purpose: Keep every observer of an order looking at the latest snapshot.
What it does:
Each subscription owns both transports:
- push: the realtime channel delivers snapshots as the engine publishes them
- poll: a fixed-interval re-fetch, because the push channel can drop silently

Both paths feed one delivery point that drops anything not newer than what
the observer already has (by record version), so the observer sees each
version at most once however many times it arrives. Every snapshot is the
full authoritative state; observers overwrite, never merge.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Protocol, Union

from dispatch.errors import DispatchError
from dispatch.timers import CooperativeTimer

from .snapshot import OrderSnapshot
from .transports import LocalPushChannel, SnapshotRelay

logger = logging.getLogger(__name__)

FetchSnapshot = Callable[[str], Awaitable[OrderSnapshot]]


class OrderObserver(Protocol):
    def on_order_update(self, snapshot: OrderSnapshot) -> None:
        ...


Observer = Union[OrderObserver, Callable[[OrderSnapshot], None]]


class Subscription:
    def __init__(
        self,
        broadcaster: StateBroadcaster,
        order_id: str,
        observer: Observer,
        poll_interval_seconds: Optional[float],
    ):
        self.broadcaster = broadcaster
        self.order_id = order_id
        self.observer = observer
        self.last_version = 0
        self.delivered = 0
        self.duplicates = 0
        self.closed = False

        self._unlisten: Optional[Callable[[], None]] = None
        self._poller: Optional[CooperativeTimer] = None
        if poll_interval_seconds is not None:
            self._poller = CooperativeTimer(
                poll_interval_seconds,
                self.refresh,
                name=f"poll-{order_id}",
                fire_immediately=True,
            )

    def _start(self, channel: LocalPushChannel) -> None:
        self._unlisten = channel.listen(self.order_id, self.receive)
        if self._poller is not None:
            self._poller.start()

    def receive(self, snapshot: OrderSnapshot) -> bool:
        """
        Deliver snapshot to the observer unless it has already seen this version
        or a newer one. Returns True if delivered.
        """
        if self.closed:
            return False
        if snapshot.version <= self.last_version:
            self.duplicates += 1
            return False

        self.last_version = snapshot.version
        self.delivered += 1

        callback = getattr(self.observer, "on_order_update", self.observer)
        try:
            callback(snapshot)
        except Exception:
            # one broken view must not starve the others
            logger.exception(f"Observer of order {self.order_id} failed on v{snapshot.version}")
        return True

    async def refresh(self) -> None:
        """Poll path: fetch the current snapshot and deliver it if newer."""
        try:
            snapshot = await self.broadcaster.fetch_snapshot(self.order_id)
        except DispatchError as error:
            logger.warning(f"Poll for order {self.order_id} failed: {error}")
            return
        self.receive(snapshot)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._unlisten is not None:
            self._unlisten()
            self._unlisten = None
        if self._poller is not None:
            await self._poller.stop()
        self.broadcaster._forget(self)


class StateBroadcaster:
    def __init__(
        self,
        fetch_snapshot: FetchSnapshot,
        poll_interval_seconds: float = 10.0,
        channel: Optional[LocalPushChannel] = None,
        relays: Iterable[SnapshotRelay] = (),
    ):
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        self.fetch_snapshot = fetch_snapshot
        self.poll_interval_seconds = poll_interval_seconds
        self.channel = channel or LocalPushChannel()
        self.relays: List[SnapshotRelay] = list(relays)
        self._subscriptions: List[Subscription] = []

    def subscribe(self, order_id: str, observer: Observer, poll: bool = True) -> Subscription:
        """
        Register observer for order_id. With poll=True (the default) a poll
        fallback starts alongside the push listener, so this must be called
        from inside a running event loop.
        """
        subscription = Subscription(
            self,
            order_id,
            observer,
            self.poll_interval_seconds if poll else None,
        )
        self._subscriptions.append(subscription)
        subscription._start(self.channel)
        return subscription

    def subscriptions_for(self, order_id: str) -> List[Subscription]:
        return [s for s in self._subscriptions if s.order_id == order_id]

    def _forget(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def notify(self, snapshot: OrderSnapshot) -> None:
        """
        Push snapshot to every subscriber of its order, in registration order,
        then to any external relays. Advisory: nothing is retried, and the
        poll fallback covers anything the push path loses.
        """
        self.channel.publish(snapshot)
        for relay in self.relays:
            await relay.send(snapshot)

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            await subscription.close()
