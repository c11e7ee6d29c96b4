#Expose the dispatch pieces:
#Error taxonomy
#Engine policy (tunable thresholds)
#Order state machine + claim arbiter (race resolver)
#Read-side offer lists
#The engine facade lives in dispatch.dispatcher (import it from there; it pulls in tracking and broadcast)

from .errors import (
    AlreadyClaimed,
    ConcurrentUpdate,
    DispatchError,
    InvalidLocation,
    InvalidRecord,
    InvalidState,
    InvalidTransition,
    NotAuthorized,
    NotOwner,
    OrderNotFound,
    UnknownZone,
)
from .policy import EnginePolicy, default_engine_policy, fast_test_policy, policy_from_env
from .state_machines import ALLOWED_TRANSITIONS, can_transition, transition
from .arbiter import ClaimArbiter
from .offers import active_orders, customer_orders, list_offers
from .timers import CooperativeTimer

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
    "EnginePolicy",
    "default_engine_policy",
    "fast_test_policy",
    "policy_from_env",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "transition",
    "ClaimArbiter",
    "list_offers",
    "active_orders",
    "customer_orders",
    "CooperativeTimer",
]
