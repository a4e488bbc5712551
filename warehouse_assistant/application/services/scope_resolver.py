"""Scope Resolver: credentials plus request ids to an authorization scope."""

import hashlib
import logging
from typing import Optional

from warehouse_assistant.domain.exceptions import AuthenticationError, AuthorizationError
from warehouse_assistant.domain.model.assistant import Scope
from warehouse_assistant.domain.ports.repositories import MembershipRepositoryPort

logger = logging.getLogger(__name__)


class ScopeResolver:
    def __init__(
        self, memberships: MembershipRepositoryPort, api_key_prefix: str = "wa_sk_"
    ) -> None:
        self._memberships = memberships
        self._api_key_prefix = api_key_prefix

    @staticmethod
    def hash_api_key(key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    async def resolve(
        self,
        api_key: Optional[str],
        tenant_id: str,
        account_id: str,
        sub_account_id: Optional[str] = None,
    ) -> Scope:
        """
        Build the immutable scope for one request.

        Raises:
            AuthenticationError: Missing, malformed or unknown API key
            AuthorizationError: The user may not act for the account
        """
        if not api_key:
            raise AuthenticationError("Missing API key")
        if not api_key.startswith(self._api_key_prefix):
            raise AuthenticationError(
                f"Invalid API key format. API keys should start with '{self._api_key_prefix}'"
            )
        if not tenant_id or not account_id:
            raise AuthorizationError("tenantId and accountId are required")

        user_id = await self._memberships.find_user_by_api_key_hash(self.hash_api_key(api_key))
        if user_id is None:
            raise AuthenticationError("Invalid API key")

        if not await self._memberships.has_account_access(user_id, tenant_id, account_id):
            logger.warning("User %s denied access to account %s", user_id, account_id)
            raise AuthorizationError("You do not have access to this account")

        if sub_account_id and not await self._memberships.sub_account_belongs_to(
            sub_account_id, tenant_id, account_id
        ):
            raise AuthorizationError("Sub-account does not belong to this account")

        return Scope(
            tenant_id=tenant_id,
            account_id=account_id,
            user_id=user_id,
            sub_account_id=sub_account_id or None,
        )
