"""SQLAlchemy implementation of MembershipRepositoryPort."""

from datetime import datetime, timezone

from sqlalchemy import or_, select

from warehouse_assistant.domain.ports.repositories import MembershipRepositoryPort
from warehouse_assistant.infrastructure.adapters.secondary.common.base_repository import (
    BaseRepository,
    handle_db_errors,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.models import (
    Account,
    AccountMembership,
    APIKey,
    SubAccount,
    User,
)


class SqlMembershipRepository(BaseRepository, MembershipRepositoryPort):
    _entity_name = "Membership"

    @handle_db_errors("APIKey")
    async def find_user_by_api_key_hash(self, key_hash: str) -> str | None:
        now = datetime.now(timezone.utc)
        result = await self._session.execute(
            select(User.id)
            .join(APIKey, APIKey.user_id == User.id)
            .where(
                APIKey.key_hash == key_hash,
                APIKey.is_active.is_(True),
                User.is_active.is_(True),
                or_(APIKey.expires_at.is_(None), APIKey.expires_at > now),
            )
        )
        return result.scalar_one_or_none()

    @handle_db_errors("Membership")
    async def has_account_access(self, user_id: str, tenant_id: str, account_id: str) -> bool:
        result = await self._session.execute(
            select(AccountMembership.id)
            .join(Account, Account.id == AccountMembership.account_id)
            .where(
                AccountMembership.user_id == user_id,
                AccountMembership.tenant_id == tenant_id,
                AccountMembership.account_id == account_id,
                Account.tenant_id == tenant_id,
                Account.deleted_at.is_(None),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    @handle_db_errors("SubAccount")
    async def sub_account_belongs_to(
        self, sub_account_id: str, tenant_id: str, account_id: str
    ) -> bool:
        result = await self._session.execute(
            select(SubAccount.id).where(
                SubAccount.id == sub_account_id,
                SubAccount.tenant_id == tenant_id,
                SubAccount.account_id == account_id,
                SubAccount.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none() is not None
