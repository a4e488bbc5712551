from warehouse_assistant.domain.ports.repositories.assistant_session_repository import (
    AssistantSessionRepositoryPort,
)
from warehouse_assistant.domain.ports.repositories.draft_repository import DraftRepositoryPort
from warehouse_assistant.domain.ports.repositories.membership_repository import (
    MembershipRepositoryPort,
)
from warehouse_assistant.domain.ports.repositories.unit_of_work import UnitOfWorkPort
from warehouse_assistant.domain.ports.repositories.warehouse_repository import (
    WarehouseRepositoryPort,
)

__all__ = [
    "AssistantSessionRepositoryPort",
    "DraftRepositoryPort",
    "MembershipRepositoryPort",
    "UnitOfWorkPort",
    "WarehouseRepositoryPort",
]
