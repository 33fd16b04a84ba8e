"""
Campaigns module.

Structure:
- types: campaign / log entities and enums
- personalizer: message templating
- vendor: outbound vendor client
- dispatcher: fan-out state machine
- receipts: delivery receipt processing
- application: use cases behind the HTTP routes

Only types are re-exported here; the services import the
repositories, which import these types.
"""
from crm.services.campaigns.types import (
    Campaign,
    CampaignStatus,
    CommunicationLog,
    DeliveryReceipt,
    DispatchResult,
    LogStatus,
)

__all__ = [
    "Campaign",
    "CampaignStatus",
    "CommunicationLog",
    "DeliveryReceipt",
    "DispatchResult",
    "LogStatus",
]
