from .models import Partner, PartnerStatus
from .selection import is_eligible_for_offers

__all__ = ["Partner", "PartnerStatus", "is_eligible_for_offers"]
