"""
Types and enums for campaigns and delivery logs.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from crm.core.timezone import parse_datetime
from crm.services.audience.rules import RuleGroup


class CampaignStatus(str, Enum):
    """Campaign lifecycle states."""

    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    SENDING = "SENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Dispatch is refused while a campaign is in one of these states
NON_DISPATCHABLE_STATUSES = (CampaignStatus.SENDING, CampaignStatus.COMPLETED)


class LogStatus(str, Enum):
    """Per-recipient delivery states."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    DELIVERED = "DELIVERED"
    OPENED = "OPENED"
    CLICKED = "CLICKED"


# Receipt statuses that count towards campaign completion
SUCCESS_STATUSES = (LogStatus.SENT, LogStatus.DELIVERED)
TERMINAL_STATUSES = (LogStatus.SENT, LogStatus.DELIVERED, LogStatus.FAILED)

DEFAULT_FAILURE_REASON = "Unknown failure from vendor"


def _parse_status(enum_cls, raw, default):
    try:
        return enum_cls(raw)
    except ValueError:
        return default


@dataclass
class Campaign:
    """A campaign row."""

    id: str
    name: str
    audience_rules: RuleGroup
    message_template: str
    status: CampaignStatus = CampaignStatus.DRAFT
    audience_size: int = 0
    sent_count: int = 0
    failed_count: int = 0
    created_by: str = "system"
    tags: List[str] = field(default_factory=list)
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_settled(self) -> bool:
        """Every recipient has a terminal receipt."""
        return (
            self.audience_size > 0
            and self.audience_size == self.sent_count + self.failed_count
        )

    @classmethod
    def from_db_row(cls, row: dict) -> "Campaign":
        """Builds a campaign from a store row."""
        return cls(
            id=str(row["id"]),
            name=row.get("name", ""),
            audience_rules=RuleGroup.from_dict(row.get("audience_rules")),
            message_template=row.get("message_template", ""),
            status=_parse_status(CampaignStatus, row.get("status"), CampaignStatus.DRAFT),
            audience_size=row.get("audience_size") or 0,
            sent_count=row.get("sent_count") or 0,
            failed_count=row.get("failed_count") or 0,
            created_by=row.get("created_by") or "system",
            tags=list(row.get("tags") or []),
            failure_reason=row.get("failure_reason"),
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> dict:
        """API representation (camelCase)."""
        return {
            "id": self.id,
            "name": self.name,
            "audienceRules": self.audience_rules.to_dict(),
            "messageTemplate": self.message_template,
            "status": self.status.value,
            "audienceSize": self.audience_size,
            "sentCount": self.sent_count,
            "failedCount": self.failed_count,
            "createdBy": self.created_by,
            "tags": self.tags,
            "failureReason": self.failure_reason,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class CommunicationLog:
    """One delivery record per (campaign, customer)."""

    id: str
    campaign_id: Optional[str]
    customer_id: str
    message: str
    status: LogStatus = LogStatus.PENDING
    vendor_message_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    created_by: str = "system"
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "CommunicationLog":
        campaign_id = row.get("campaign_id")
        return cls(
            id=str(row["id"]),
            campaign_id=str(campaign_id) if campaign_id else None,
            customer_id=str(row.get("customer_id", "")),
            message=row.get("message", ""),
            status=_parse_status(LogStatus, row.get("status"), LogStatus.PENDING),
            vendor_message_id=row.get("vendor_message_id"),
            sent_at=parse_datetime(row.get("sent_at")),
            failed_at=parse_datetime(row.get("failed_at")),
            failure_reason=row.get("failure_reason"),
            created_by=row.get("created_by") or "system",
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> dict:
        def _iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "campaignId": self.campaign_id,
            "customerId": self.customer_id,
            "message": self.message,
            "status": self.status.value,
            "vendorMessageId": self.vendor_message_id,
            "sentAt": _iso(self.sent_at),
            "failedAt": _iso(self.failed_at),
            "failureReason": self.failure_reason,
            "createdBy": self.created_by,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class DeliveryReceipt:
    """Vendor callback payload."""

    log_id: str
    status: LogStatus
    vendor_message_id: str
    timestamp: datetime
    failure_reason: Optional[str] = None


@dataclass
class DispatchResult:
    """Outcome of starting a dispatch run."""

    campaign_id: str
    status: CampaignStatus
    audience_size: int
    initiated_sends: int
    failure_reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "campaignId": self.campaign_id,
            "status": self.status.value,
            "audienceSize": self.audience_size,
            "initiatedSends": self.initiated_sends,
        }
        if self.failure_reason:
            data["failureReason"] = self.failure_reason
        return data
