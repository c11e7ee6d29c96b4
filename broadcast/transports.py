"""
Purpose: Push transports for order snapshots.
What it does:
- LocalPushChannel: in-process realtime channel; listeners per order id in
  registration order. It can drop (disconnect) silently, just like a
  websocket does, and publishes nothing while it is down.
- WebhookRelay: forwards every snapshot to an external realtime gateway over
  HTTP (requests, offloaded to a thread).

Both are at-most-once. Nothing here retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List, Protocol

import requests

from .snapshot import OrderSnapshot

logger = logging.getLogger(__name__)

Listener = Callable[[OrderSnapshot], None]


class SnapshotRelay(Protocol):
    async def send(self, snapshot: OrderSnapshot) -> bool:
        ...


class LocalPushChannel:
    def __init__(self):
        self.connected = True
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def listen(self, order_id: str, listener: Listener) -> Callable[[], None]:
        """Register listener; returns the call that unregisters it."""
        self._listeners[order_id].append(listener)

        def unlisten() -> None:
            listeners = self._listeners.get(order_id)
            if listeners and listener in listeners:
                listeners.remove(listener)
                if not listeners:
                    del self._listeners[order_id]

        return unlisten

    def listener_count(self, order_id: str) -> int:
        return len(self._listeners.get(order_id, []))

    def disconnect(self) -> None:
        self.connected = False

    def reconnect(self) -> None:
        self.connected = True

    def publish(self, snapshot: OrderSnapshot) -> bool:
        if not self.connected:
            logger.debug(f"Push channel down, dropped snapshot v{snapshot.version} of order {snapshot.order_id}")
            return False

        # copy: a listener may unsubscribe while we iterate
        for listener in list(self._listeners.get(snapshot.order_id, [])):
            listener(snapshot)
        return True


class WebhookRelay:
    def __init__(self, url: str, timeout: float = 3.0, session: requests.Session | None = None):
        if not url:
            raise ValueError("webhook url is required")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, payload: dict) -> int:
        response = self.session.post(self.url, json=payload, timeout=self.timeout)
        return response.status_code

    async def send(self, snapshot: OrderSnapshot) -> bool:
        try:
            status_code = await asyncio.to_thread(self._post, snapshot.to_dict())
        except requests.RequestException as error:
            logger.warning(f"Snapshot push for order {snapshot.order_id} failed: {error}")
            return False

        if status_code >= 400:
            logger.warning(f"Snapshot push for order {snapshot.order_id} rejected with HTTP {status_code}")
            return False
        return True
