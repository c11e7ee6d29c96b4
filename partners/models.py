"""
Purpose: Core data models for delivery partners.
What it does:
Defines a Partner and their presence without relying on the identity
service that owns accounts and credentials.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from orders.models import utc_now


class PartnerStatus(str, Enum):
    """
    Whether a partner is taking offers right now.
    """
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass(frozen=True)
class Partner:
    """
    A stateless representation of a delivery partner at a point in time.
    """
    id: str
    status: PartnerStatus = PartnerStatus.OFFLINE
    status_changed_at: datetime | None = None

    @property
    def is_online(self) -> bool:
        return self.status == PartnerStatus.ONLINE

    @classmethod
    def new(cls, partner_id: str, status: str | PartnerStatus = PartnerStatus.OFFLINE) -> Partner:
        if isinstance(status, str):
            status = PartnerStatus(status)
        return cls(id=partner_id, status=status, status_changed_at=utc_now())

    def go_online(self) -> Partner:
        # Partner is frozen, so presence changes return a new instance via replace
        return replace(self, status=PartnerStatus.ONLINE, status_changed_at=utc_now())

    def go_offline(self) -> Partner:
        return replace(self, status=PartnerStatus.OFFLINE, status_changed_at=utc_now())
