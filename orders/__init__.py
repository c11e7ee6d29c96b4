"""
Orders domain package.

Public API:
- Domain models: Order, OrderStatus, LocationReport
- Zone catalog: Zone, get_zone, list_zones
- Store adapter: OrderStore, OrderFilter, InMemoryOrderStore
- Placement entry: place_order
"""
from .errors import DispatchError, InvalidRecord, OrderNotFound, UnknownZone
from .models import LocationReport, Order, OrderStatus
from .zones import Zone, get_zone, list_zones
from .store import InMemoryOrderStore, OrderFilter, OrderStore
from .placement import place_order

__all__ = ["Order",
           "OrderStatus",
             "LocationReport",
               "Zone", "get_zone", "list_zones",
               "OrderStore", "OrderFilter", "InMemoryOrderStore",
               "place_order",
               "DispatchError", "InvalidRecord", "OrderNotFound", "UnknownZone",
               ]
