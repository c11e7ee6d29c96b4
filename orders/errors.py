"""
Errors raised at the order record boundary.
The dispatch-level taxonomy (claims, transitions, tracking) extends these in
dispatch/errors.py.
"""

from __future__ import annotations

from typing import Optional


class DispatchError(Exception):
    """Base class for every error raised by the dispatch engine."""

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message)
        self.order_id = order_id


class OrderNotFound(DispatchError):
    """Raised when an order id does not exist in the record store."""

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found", order_id=order_id)


class InvalidRecord(DispatchError):
    """Raised when a stored record is missing fields or breaks an Order invariant."""
    pass


class UnknownZone(DispatchError):
    """Raised when an order references a zone or pickup point outside the catalog."""
    pass
