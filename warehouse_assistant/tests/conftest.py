"""Pytest configuration and shared fixtures for testing."""

from datetime import date, datetime, timezone
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from warehouse_assistant.application.services import (
    DisambiguationManager,
    DraftWorkflowManager,
    EntityReferenceResolver,
    ScopeResolver,
    SessionStore,
)
from warehouse_assistant.domain.model.assistant import Scope
from warehouse_assistant.infrastructure.adapters.secondary.persistence.models import (
    Account,
    AccountMembership,
    APIKey,
    Base,
    Item,
    Shipment,
    ShipmentItem,
    SubAccount,
    Tenant,
    User,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.sql_assistant_session_repository import (
    SqlAssistantSessionRepository,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.sql_draft_repository import (
    SqlDraftRepository,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.sql_warehouse_repository import (
    SqlWarehouseRepository,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.unit_of_work import (
    SqlUnitOfWork,
)
from warehouse_assistant.infrastructure.agent.tools import ToolDispatcher, get_registered_tools

# Constants
TEST_TENANT_ID = "550e8400-e29b-41d4-a716-446655440001"
TEST_USER_ID = "550e8400-e29b-41d4-a716-446655440000"
TEST_ACCOUNT_ID = "550e8400-e29b-41d4-a716-446655440002"
OTHER_ACCOUNT_ID = "550e8400-e29b-41d4-a716-446655440003"
TEST_API_KEY = "wa_sk_test_0123456789abcdef"

JONES_SUB_ID = "6b1f0c1e-0000-4000-8000-000000000101"
SMITH_SUB_ID = "6b1f0c1e-0000-4000-8000-000000000102"
OTHER_SUB_ID = "6b1f0c1e-0000-4000-8000-000000000109"

TABLE_ID = "7c2e1d2f-0000-4000-8000-000000012345"
BOOKSHELF_ID = "7c2e1d2f-0000-4000-8000-000000112345"
SOFA_IDS = [
    "7c2e1d2f-0000-4000-8000-000000020001",
    "7c2e1d2f-0000-4000-8000-000000020002",
    "7c2e1d2f-0000-4000-8000-000000020003",
]
ARMCHAIR_ID = "7c2e1d2f-0000-4000-8000-000000000777"
CABINET_ID = "7c2e1d2f-0000-4000-8000-000000030001"
DELETED_ITEM_ID = "7c2e1d2f-0000-4000-8000-000000055555"
OTHER_ACCOUNT_ITEM_ID = "7c2e1d2f-0000-4000-8000-000000090001"

RECEIVED_AT = datetime(2026, 1, 5, 14, 30, tzinfo=timezone.utc)


# --- Database Fixtures ---


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


def _item(item_id, code, description, sub_account_id=JONES_SUB_ID, status="active", **kwargs):
    return Item(
        id=item_id,
        tenant_id=TEST_TENANT_ID,
        account_id=kwargs.pop("account_id", TEST_ACCOUNT_ID),
        sub_account_id=sub_account_id,
        item_code=code,
        description=description,
        status=status,
        location_code=kwargs.pop("location_code", "A-01-03"),
        received_at=kwargs.pop("received_at", RECEIVED_AT),
        **kwargs,
    )


@pytest.fixture
async def seeded_db(test_db: AsyncSession) -> AsyncSession:
    """
    One tenant with two accounts. The test user belongs to the first only.

    Account items:
        ITM-12345   walnut table (active)
        ITM-112345  bookshelf (active, shares the digits of ITM-12345)
        ITM-20001..3  three Jones sofas (active)
        ITM-00777   armchair (allocated)
        ITM-30001   cabinet allocated to open will call WC-00001
        ITM-55555   soft-deleted
    """
    test_db.add(Tenant(id=TEST_TENANT_ID, name="Acme Moving & Storage"))
    test_db.add(User(id=TEST_USER_ID, email="client@example.com", full_name="Casey Client"))
    test_db.add(
        APIKey(
            id=APIKey.generate_id(),
            key_hash=ScopeResolver.hash_api_key(TEST_API_KEY),
            name="test key",
            user_id=TEST_USER_ID,
        )
    )
    test_db.add(Account(id=TEST_ACCOUNT_ID, tenant_id=TEST_TENANT_ID, name="Jones Interiors"))
    test_db.add(Account(id=OTHER_ACCOUNT_ID, tenant_id=TEST_TENANT_ID, name="Other Client"))
    test_db.add(
        AccountMembership(
            id=AccountMembership.generate_id(),
            user_id=TEST_USER_ID,
            tenant_id=TEST_TENANT_ID,
            account_id=TEST_ACCOUNT_ID,
            role="client_user",
        )
    )
    test_db.add_all(
        [
            SubAccount(
                id=JONES_SUB_ID,
                tenant_id=TEST_TENANT_ID,
                account_id=TEST_ACCOUNT_ID,
                code="SUB-100",
                name="Jones Residence",
            ),
            SubAccount(
                id=SMITH_SUB_ID,
                tenant_id=TEST_TENANT_ID,
                account_id=TEST_ACCOUNT_ID,
                code="SUB-200",
                name="Smith Office",
            ),
            SubAccount(
                id=OTHER_SUB_ID,
                tenant_id=TEST_TENANT_ID,
                account_id=OTHER_ACCOUNT_ID,
                code="SUB-900",
                name="Other Warehouse Client",
            ),
        ]
    )
    test_db.add_all(
        [
            _item(TABLE_ID, "ITM-12345", "Walnut dining table"),
            _item(BOOKSHELF_ID, "ITM-112345", "Oak bookshelf", sub_account_id=SMITH_SUB_ID),
            _item(SOFA_IDS[0], "ITM-20001", "Jones sofa, grey linen"),
            _item(SOFA_IDS[1], "ITM-20002", "Jones sofa, brown leather"),
            _item(SOFA_IDS[2], "ITM-20003", "Jones sofa, sectional"),
            _item(ARMCHAIR_ID, "ITM-00777", "Wingback armchair", status="allocated"),
            _item(CABINET_ID, "ITM-30001", "Glass display cabinet", status="allocated"),
            _item(
                DELETED_ITEM_ID,
                "ITM-55555",
                "Retired side table",
                deleted_at=datetime(2026, 2, 1, tzinfo=timezone.utc),
            ),
            _item(
                OTHER_ACCOUNT_ITEM_ID,
                "ITM-90001",
                "Brass floor lamp",
                sub_account_id=OTHER_SUB_ID,
                account_id=OTHER_ACCOUNT_ID,
            ),
        ]
    )
    inbound = Shipment(
        id=Shipment.generate_id(),
        tenant_id=TEST_TENANT_ID,
        account_id=TEST_ACCOUNT_ID,
        shipment_number="SHP-00001",
        shipment_type="inbound",
        status="received",
        received_at=RECEIVED_AT,
    )
    will_call = Shipment(
        id=Shipment.generate_id(),
        tenant_id=TEST_TENANT_ID,
        account_id=TEST_ACCOUNT_ID,
        shipment_number="WC-00001",
        shipment_type="will_call",
        status="scheduled",
        scheduled_date=date(2026, 12, 1),
        released_to="Pat Jones",
    )
    test_db.add_all([inbound, will_call])
    test_db.add(
        ShipmentItem(id=ShipmentItem.generate_id(), shipment_id=will_call.id, item_id=CABINET_ID)
    )
    await test_db.commit()
    return test_db


@pytest.fixture
def scope() -> Scope:
    return Scope(tenant_id=TEST_TENANT_ID, account_id=TEST_ACCOUNT_ID, user_id=TEST_USER_ID)


@pytest.fixture
def other_account_scope() -> Scope:
    return Scope(tenant_id=TEST_TENANT_ID, account_id=OTHER_ACCOUNT_ID, user_id=TEST_USER_ID)


# --- Repository and service fixtures ---


@pytest.fixture
def warehouse_repo(seeded_db):
    return SqlWarehouseRepository(seeded_db)


@pytest.fixture
def draft_repo(seeded_db):
    return SqlDraftRepository(seeded_db)


@pytest.fixture
def session_repo(seeded_db):
    return SqlAssistantSessionRepository(seeded_db)


@pytest.fixture
def unit_of_work(seeded_db):
    return SqlUnitOfWork(seeded_db)


@pytest.fixture
def resolver(warehouse_repo):
    return EntityReferenceResolver(warehouse_repo)


@pytest.fixture
def draft_workflow(warehouse_repo, draft_repo, unit_of_work):
    return DraftWorkflowManager(warehouse_repo, draft_repo, unit_of_work)


@pytest.fixture
def session_store(session_repo, unit_of_work):
    return SessionStore(session_repo, unit_of_work)


@pytest.fixture
def dispatcher(resolver, draft_workflow, warehouse_repo):
    return ToolDispatcher(
        tools=get_registered_tools(),
        resolver=resolver,
        disambiguation=DisambiguationManager(),
        drafts=draft_workflow,
        warehouse=warehouse_repo,
    )
