"""
Purpose: Business rules for which partners may see which offers.
Multi-order batching is not supported, so eligibility is presence only.
"""

from .models import Partner


def is_eligible_for_offers(partner: Partner) -> bool:
    return partner.is_online
