"""
Database read operations and row-to-domain conversion.

Provides async functions for fetching rows from the object store and
pure functions that rebuild domain objects from them. Writing back is
the job of the transaction workspace.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from armory.models.avatar import Avatar
from armory.models.balance import Balance
from armory.models.db import (
    HOLDER_AVATAR,
    HOLDER_PRINCIPAL,
    HOLDER_SHOP,
    AvatarDB,
    CapabilityDB,
    CoinDB,
    ShopDB,
    TreasuryDB,
    WeaponDB,
)
from armory.models.resource import LinearityViolationError
from armory.models.shop import Shop
from armory.models.weapon import Weapon, WeaponKind, resolve_kind

# --- Row Queries ---


async def get_shop_row(session: AsyncSession, shop_id: str, *, lock: bool = False) -> ShopDB | None:
    """
    Get a shop with its inventories.

    With lock=True the row is selected FOR UPDATE so that databases with
    row locks serialise concurrent writers of the same shop.
    """
    stmt = select(ShopDB).where(ShopDB.id == shop_id).options(selectinload(ShopDB.inventories))
    if lock:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_weapon_rows_held_by(
    session: AsyncSession, holder_type: str, holder_id: str
) -> list[WeaponDB]:
    result = await session.execute(
        select(WeaponDB)
        .where(WeaponDB.holder_type == holder_type, WeaponDB.holder_id == holder_id)
        .order_by(WeaponDB.id)
    )
    return list(result.scalars().all())


async def get_weapon_row(session: AsyncSession, weapon_id: str) -> WeaponDB | None:
    return await session.get(WeaponDB, weapon_id)


async def get_avatar_row(session: AsyncSession, avatar_id: str) -> AvatarDB | None:
    return await session.get(AvatarDB, avatar_id)


async def get_capability_row(session: AsyncSession, cap_id: str) -> CapabilityDB | None:
    return await session.get(CapabilityDB, cap_id)


async def get_treasury_row(session: AsyncSession, treasury_id: str) -> TreasuryDB | None:
    return await session.get(TreasuryDB, treasury_id)


async def get_coin_row(session: AsyncSession, coin_id: str) -> CoinDB | None:
    return await session.get(CoinDB, coin_id)


async def count_treasuries(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(TreasuryDB))
    return int(result.scalar_one())


async def total_gold_in_store(session: AsyncSession) -> int:
    """Sum of every balance in the store: shop earnings, avatar gold and coins."""
    total = 0
    for column in (ShopDB.earnings, AvatarDB.gold, CoinDB.value):
        result = await session.execute(select(func.coalesce(func.sum(column), 0)))
        total += int(result.scalar_one())
    return total


@dataclass
class PrincipalAssets:
    """Everything a principal owns directly."""

    principal: str
    avatars: list[AvatarDB] = field(default_factory=list)
    coins: list[CoinDB] = field(default_factory=list)
    weapons: list[WeaponDB] = field(default_factory=list)
    capabilities: list[CapabilityDB] = field(default_factory=list)
    treasuries: list[TreasuryDB] = field(default_factory=list)

    @property
    def gold(self) -> int:
        return sum(coin.value for coin in self.coins)


async def get_principal_assets(session: AsyncSession, principal: str) -> PrincipalAssets:
    assets = PrincipalAssets(principal=principal)

    result = await session.execute(
        select(AvatarDB).where(AvatarDB.owner == principal).order_by(AvatarDB.created_at)
    )
    assets.avatars = list(result.scalars().all())

    result = await session.execute(
        select(CoinDB).where(CoinDB.owner == principal).order_by(CoinDB.created_at)
    )
    assets.coins = list(result.scalars().all())

    assets.weapons = await get_weapon_rows_held_by(session, HOLDER_PRINCIPAL, principal)

    result = await session.execute(select(CapabilityDB).where(CapabilityDB.owner == principal))
    assets.capabilities = list(result.scalars().all())

    result = await session.execute(select(TreasuryDB).where(TreasuryDB.owner == principal))
    assets.treasuries = list(result.scalars().all())

    return assets


# --- Row -> Domain ---


def weapon_from_row(row: WeaponDB) -> Weapon[Any]:
    """Convert a weapon row to a domain weapon (in transit, no holder)."""
    return Weapon(row.id, resolve_kind(row.kind))


def shop_from_rows(row: ShopDB, weapon_rows: list[WeaponDB]) -> Shop:
    """
    Rebuild a shop from its row, inventory rows and stocked weapon rows.

    Raises:
        LinearityViolationError: If stock exists for a kind the shop never
            registered
    """
    by_kind: dict[str, list[WeaponDB]] = defaultdict(list)
    for weapon_row in weapon_rows:
        if weapon_row.holder_type != HOLDER_SHOP or weapon_row.holder_id != row.id:
            raise LinearityViolationError(
                f"weapon {weapon_row.id}", f"not held by shop {row.id}"
            )
        by_kind[weapon_row.kind].append(weapon_row)

    inventories: list[tuple[type[WeaponKind], int, list[Weapon[Any]]]] = []
    for inv_row in sorted(row.inventories, key=lambda inv: inv.kind):
        kind = resolve_kind(inv_row.kind)
        stock = [weapon_from_row(w) for w in by_kind.pop(inv_row.kind, [])]
        inventories.append((kind, inv_row.price, stock))

    if by_kind:
        raise LinearityViolationError(
            f"shop {row.id} stock", f"weapons of unregistered kinds: {sorted(by_kind)}"
        )

    return Shop.from_storage(row.id, row.earnings, inventories)


def avatar_from_rows(row: AvatarDB, weapon_rows: list[WeaponDB]) -> Avatar:
    """
    Rebuild an avatar and its equipment slot.

    Raises:
        LinearityViolationError: If the stored weapon reference and the
            stored slot disagree
    """
    avatar = Avatar(row.id, row.name, Balance.from_storage(row.gold))

    if row.weapon_id is None:
        if weapon_rows:
            raise LinearityViolationError(
                f"avatar {row.id} slot", "weapon stored without a weapon reference"
            )
        return avatar

    if len(weapon_rows) != 1 or weapon_rows[0].id != row.weapon_id:
        raise LinearityViolationError(
            f"avatar {row.id} slot", f"reference {row.weapon_id} does not match stored slot"
        )
    if weapon_rows[0].holder_type != HOLDER_AVATAR:
        raise LinearityViolationError(f"weapon {row.weapon_id}", "not held by an avatar")

    avatar.attach_weapon(weapon_from_row(weapon_rows[0]))
    return avatar
