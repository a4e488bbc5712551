from warehouse_assistant.domain.model.warehouse.records import (
    ItemCommitments,
    ItemRecord,
    ItemStatus,
    ShipmentRecord,
    ShipmentType,
    SubAccountRecord,
)

__all__ = [
    "ItemCommitments",
    "ItemRecord",
    "ItemStatus",
    "ShipmentRecord",
    "ShipmentType",
    "SubAccountRecord",
]
