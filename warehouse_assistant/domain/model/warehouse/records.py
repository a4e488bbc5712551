"""Read models for the warehouse entities the assistant can reference."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


class ItemStatus(str, Enum):
    ACTIVE = "active"
    ALLOCATED = "allocated"
    RELEASED = "released"
    PENDING_DISPOSAL = "pending_disposal"
    DISPOSED = "disposed"


class ShipmentType(str, Enum):
    INBOUND = "inbound"
    WILL_CALL = "will_call"
    OUTBOUND = "outbound"


@dataclass(frozen=True)
class ItemRecord:
    id: str
    tenant_id: str
    account_id: str
    item_code: str
    description: str
    status: ItemStatus
    sub_account_id: Optional[str] = None
    sub_account_name: Optional[str] = None
    location_code: Optional[str] = None
    received_at: Optional[datetime] = None

    @property
    def code(self) -> str:
        return self.item_code

    @property
    def label(self) -> str:
        return f"{self.item_code} - {self.description}"

    @property
    def search_text(self) -> str:
        return " ".join(filter(None, [self.item_code, self.description, self.sub_account_name]))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "item_code": self.item_code,
            "description": self.description,
            "status": self.status.value,
            "sub_account": self.sub_account_name,
            "location": self.location_code,
            "received_at": self.received_at.isoformat() if self.received_at else None,
        }


@dataclass(frozen=True)
class SubAccountRecord:
    id: str
    tenant_id: str
    account_id: str
    code: str
    name: str

    @property
    def label(self) -> str:
        return f"{self.code} - {self.name}"

    @property
    def search_text(self) -> str:
        return f"{self.code} {self.name}"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "code": self.code, "name": self.name}


@dataclass(frozen=True)
class ShipmentRecord:
    id: str
    shipment_number: str
    shipment_type: ShipmentType
    status: str
    item_count: int = 0
    scheduled_date: Optional[date] = None
    received_at: Optional[datetime] = None
    released_to: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "shipment_number": self.shipment_number,
            "type": self.shipment_type.value,
            "status": self.status,
            "item_count": self.item_count,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "received_at": self.received_at.isoformat() if self.received_at else None,
            "released_to": self.released_to,
        }


@dataclass(frozen=True)
class ItemCommitments:
    """Open work already attached to an item."""

    open_will_call: Optional[str] = None
    open_repair_quote: Optional[str] = None
    open_disposal: Optional[str] = None
