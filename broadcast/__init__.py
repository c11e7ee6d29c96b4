from .snapshot import OrderSnapshot
from .transports import LocalPushChannel, WebhookRelay
from .broadcaster import OrderObserver, StateBroadcaster, Subscription

__all__ = [
    "OrderSnapshot",
    "LocalPushChannel",
    "WebhookRelay",
    "OrderObserver",
    "StateBroadcaster",
    "Subscription",
]
