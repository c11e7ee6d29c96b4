"""
Error taxonomy for the dispatch engine.

None of these are retried inside the engine. Retrying is a caller policy.
- InvalidTransition: illegal state change, report to caller
- NotAuthorized: actor has no rights over the order, report and log
- AlreadyClaimed: race lost, caller should quietly refresh its offer list
- NotOwner / InvalidState: location report rejected, the source should stop
- OrderNotFound: surfaced to users as "order not found"
"""

from __future__ import annotations

from typing import Optional

from orders.errors import DispatchError, InvalidRecord, OrderNotFound, UnknownZone


class InvalidTransition(DispatchError):
    """Raised when the target status is not a direct successor of the current one."""
    pass


class ConcurrentUpdate(InvalidTransition):
    """Raised when the order changed between read and conditional write."""
    pass


class NotAuthorized(DispatchError):
    """Raised when the actor is neither the customer nor the partner the transition needs."""

    def __init__(self, message: str, order_id: Optional[str] = None, actor: Optional[str] = None):
        super().__init__(message, order_id=order_id)
        self.actor = actor


class AlreadyClaimed(DispatchError):
    """Raised when a claim loses: the order already has a partner or left `pending`."""
    pass


class NotOwner(DispatchError):
    """Raised when a location report comes from a partner other than the order's partner."""
    pass


class InvalidState(DispatchError):
    """Raised when a location report arrives for an order that is not being delivered."""
    pass


class InvalidLocation(DispatchError):
    """Raised when a location report has out-of-range coordinates."""
    pass


__all__ = [
    "DispatchError",
    "OrderNotFound",
    "InvalidRecord",
    "UnknownZone",
    "InvalidTransition",
    "ConcurrentUpdate",
    "NotAuthorized",
    "AlreadyClaimed",
    "NotOwner",
    "InvalidState",
    "InvalidLocation",
]
