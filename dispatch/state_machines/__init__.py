from .order_state import ALLOWED_TRANSITIONS, authorize, can_transition, changed_fields, transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "authorize",
    "can_transition",
    "changed_fields",
    "transition",
]
