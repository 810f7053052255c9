import itertools
from collections.abc import Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from armory.db.database import build_engine, get_session
from armory.db.workspace import transaction
from armory.host.context import TxContext
from armory.main import app
from armory.models.avatar import Avatar, create_avatar
from armory.models.balance import Balance, Treasury, create_treasury
from armory.models.capability import OwnerCapability
from armory.models.db import Base
from armory.models.shop import Shop, create_shop
from armory.models.weapon import Axe, Sword, mint_weapon
from armory.services.admin import forge_into_stock

AXE_PRICE = 1000
SWORD_PRICE = 800
STARTING_GOLD = 5000


def counting_ids(prefix: str = "id") -> Callable[[], str]:
    """Deterministic id factory for TxContext."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


@pytest.fixture
def tx() -> TxContext:
    """A fresh transaction context sent by alice."""
    return TxContext("alice", id_factory=counting_ids())


@pytest.fixture
def treasury() -> Treasury:
    return Treasury("treasury-1")


@pytest.fixture
def gold(treasury: Treasury) -> Callable[[int], Balance]:
    """Mint test gold."""
    return treasury.mint


@pytest.fixture
def stocked_shop(tx: TxContext) -> tuple[Shop, OwnerCapability]:
    """A shop selling Axes (1000, 2 in stock) and Swords (800, 1 in stock)."""
    shop, cap = create_shop(tx)
    shop.register_kind(cap, Axe, AXE_PRICE)
    shop.register_kind(cap, Sword, SWORD_PRICE)
    for _ in range(2):
        shop.restock(cap, Axe, mint_weapon(tx, Axe))
    shop.restock(cap, Sword, mint_weapon(tx, Sword))
    return shop, cap


@pytest.fixture
def avatar(gold: Callable[[int], Balance]) -> Avatar:
    """An unarmed avatar with 5000 gold."""
    return Avatar("avatar-1", "Brunhild", gold(STARTING_GOLD))


# --- Persistent store ---


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded(session_factory) -> dict[str, str]:
    """
    A store with one treasury and one shop owned by "owner", and one avatar
    owned by "alice" holding 5000 gold.

    The shop sells Axes (1000, 2 in stock) and Swords (800, 1 in stock).
    """
    async with session_factory() as session:
        async with transaction(session, "owner") as ws:
            treasury = create_treasury(ws.tx)
            shop, cap = create_shop(ws.tx)
            shop.register_kind(cap, Axe, AXE_PRICE)
            shop.register_kind(cap, Sword, SWORD_PRICE)
            forge_into_stock(ws.tx, cap, shop, Axe, 2)
            forge_into_stock(ws.tx, cap, shop, Sword, 1)
            ws.tx.transfer_to(cap, "owner")
            avatar = create_avatar(ws.tx, "Brunhild", treasury.mint(STARTING_GOLD), "alice")

    return {
        "treasury_id": treasury.id,
        "shop_id": shop.id,
        "cap_id": cap.id,
        "avatar_id": avatar.id,
    }


@pytest.fixture
async def client(session_factory):
    """Provide an async test client with overridden database session."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()