"""Port for resolving credentials to a user and checking account access."""

from abc import ABC, abstractmethod


class MembershipRepositoryPort(ABC):
    @abstractmethod
    async def find_user_by_api_key_hash(self, key_hash: str) -> str | None:
        """Return the id of the active user owning the key, if any."""

    @abstractmethod
    async def has_account_access(self, user_id: str, tenant_id: str, account_id: str) -> bool:
        """True if the user may act for the account inside the tenant."""

    @abstractmethod
    async def sub_account_belongs_to(
        self, sub_account_id: str, tenant_id: str, account_id: str
    ) -> bool:
        """True if the sub-account is a live child of the account."""
