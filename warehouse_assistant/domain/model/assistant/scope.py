"""Authorization scope for one assistant request."""

from dataclasses import dataclass
from typing import Optional

from warehouse_assistant.domain.exceptions import ScopeViolationError
from warehouse_assistant.domain.shared_kernel import ValueObject


@dataclass(frozen=True)
class Scope(ValueObject):
    """
    The (tenant, account, optional sub-account, user) tuple bounding every
    read and write made while serving one inbound message.
    """

    tenant_id: str
    account_id: str
    user_id: str
    sub_account_id: Optional[str] = None

    def require(self, operation: str) -> "Scope":
        """Return self, or raise if the tenant/account pair is incomplete."""
        if not self.tenant_id or not self.account_id:
            raise ScopeViolationError(operation)
        return self

    def owns(self, tenant_id: str, account_id: str) -> bool:
        return self.tenant_id == tenant_id and self.account_id == account_id
