"""
Transaction Workspace: All or Nothing Against the Object Store.

A workspace is the identity map of one transaction. It materialises
shops, avatars, capabilities, treasuries, weapons and coins from the
database as provisional working copies, lets flows mutate them freely,
and writes them back only when the whole transaction succeeds.

Usage:
    async with transaction(session, sender="alice") as ws:
        shop = await ws.shop(shop_id)
        avatar = await ws.avatar(avatar_id)
        marketplace.buy(ws.tx, avatar, Axe, 1000, shop)

INVARIANTS (checked on commit, BEFORE anything is written):
- The transaction context finished cleanly: not aborted, no open invoices
- Every weapon loaded or minted ends in exactly one holder: a shop's
  stock, an avatar's slot, or a principal. None dropped, none duplicated
- Gold is conserved: gold loaded + gold minted == gold written back
- Every avatar's weapon reference agrees with its slot

Every row written back carries the version it was loaded with. If another
transaction committed a change to that row in the meantime, the flush
matches nothing and the whole transaction fails with ConflictError.

Any exception inside the block, or any failed check, rolls back the
session. Later transactions never observe partial effects.
"""

import logging
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from armory.db.operations import (
    avatar_from_rows,
    count_treasuries,
    get_avatar_row,
    get_capability_row,
    get_coin_row,
    get_shop_row,
    get_treasury_row,
    get_weapon_row,
    get_weapon_rows_held_by,
    shop_from_rows,
    weapon_from_row,
)
from armory.host.context import TxContext
from armory.models.avatar import Avatar
from armory.models.balance import Balance, Treasury
from armory.models.capability import OwnerCapability
from armory.models.db import (
    HOLDER_AVATAR,
    HOLDER_PRINCIPAL,
    HOLDER_SHOP,
    AvatarDB,
    CapabilityDB,
    CoinDB,
    ShopDB,
    ShopInventoryDB,
    TreasuryDB,
    WeaponDB,
)
from armory.models.failure import (
    ConflictError,
    InvalidInputError,
    KnownError,
    ObjectNotFoundError,
    UnauthorizedError,
)
from armory.models.resource import LinearityViolationError
from armory.models.shop import Shop
from armory.models.weapon import Weapon, kind_key

logger = logging.getLogger(__name__)


class Workspace:
    """Working copies of every object touched by one transaction."""

    def __init__(self, session: AsyncSession, tx: TxContext) -> None:
        self.session = session
        self.tx = tx

        self._shops: dict[str, tuple[ShopDB, Shop]] = {}
        self._avatars: dict[str, tuple[AvatarDB, Avatar]] = {}
        self._caps: dict[str, tuple[CapabilityDB, OwnerCapability]] = {}
        self._treasuries: dict[str, tuple[TreasuryDB, Treasury, int]] = {}
        self._coins: dict[str, CoinDB] = {}

        # Every weapon handed out by this workspace, by id
        self._weapons: dict[str, Weapon[Any]] = {}
        self._weapon_rows: dict[str, WeaponDB] = {}

        self._gold_loaded = 0

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _track_weapons(self, rows: list[WeaponDB], weapons: list[Weapon[Any]]) -> None:
        for row in rows:
            self._weapon_rows[row.id] = row
        for weapon in weapons:
            self._weapons[weapon.id] = weapon

    async def shop(self, shop_id: str) -> Shop:
        """Load a shared shop. Any principal may use it."""
        cached = self._shops.get(shop_id)
        if cached is not None:
            return cached[1]

        row = await get_shop_row(self.session, shop_id, lock=True)
        if row is None:
            raise ObjectNotFoundError("Shop", shop_id)
        weapon_rows = await get_weapon_rows_held_by(self.session, HOLDER_SHOP, shop_id)
        shop = shop_from_rows(row, weapon_rows)

        self._shops[shop_id] = (row, shop)
        self._track_weapons(weapon_rows, shop.stocked_weapons())
        self._gold_loaded += row.earnings
        return shop

    async def avatar(self, avatar_id: str) -> Avatar:
        """Load an avatar owned by the sender."""
        cached = self._avatars.get(avatar_id)
        if cached is not None:
            return cached[1]

        row = await get_avatar_row(self.session, avatar_id)
        if row is None:
            raise ObjectNotFoundError("Avatar", avatar_id)
        if row.owner != self.tx.sender:
            raise UnauthorizedError(f"avatar {avatar_id} is not owned by {self.tx.sender}")
        weapon_rows = await get_weapon_rows_held_by(self.session, HOLDER_AVATAR, avatar_id)
        avatar = avatar_from_rows(row, weapon_rows)

        self._avatars[avatar_id] = (row, avatar)
        wielded = avatar.peek_weapon()
        self._track_weapons(weapon_rows, [wielded] if wielded is not None else [])
        self._gold_loaded += row.gold
        return avatar

    async def capability(self, cap_id: str) -> OwnerCapability:
        """Load a capability. Only its owner may hold it."""
        cached = self._caps.get(cap_id)
        if cached is not None:
            return cached[1]

        row = await get_capability_row(self.session, cap_id)
        if row is None:
            raise ObjectNotFoundError("OwnerCapability", cap_id)
        if row.owner != self.tx.sender:
            raise UnauthorizedError(f"capability {cap_id} is not held by {self.tx.sender}")
        cap = OwnerCapability.from_storage(row.id, row.shop_id)
        self._caps[cap_id] = (row, cap)
        return cap

    async def treasury(self, treasury_id: str) -> Treasury:
        """Load the mint authority. Only its owner may hold it."""
        cached = self._treasuries.get(treasury_id)
        if cached is not None:
            return cached[1]

        row = await get_treasury_row(self.session, treasury_id)
        if row is None:
            raise ObjectNotFoundError("Treasury", treasury_id)
        if row.owner != self.tx.sender:
            raise UnauthorizedError(f"treasury {treasury_id} is not held by {self.tx.sender}")
        treasury = Treasury(row.id, row.total_supply)
        self._treasuries[treasury_id] = (row, treasury, row.total_supply)
        return treasury

    async def take_weapon(self, weapon_id: str) -> Weapon[Any]:
        """Take a weapon out of the sender's possession. It is now in transit."""
        if weapon_id in self._weapons:
            raise LinearityViolationError(
                f"weapon {weapon_id}", "already taken in this transaction"
            )

        row = await get_weapon_row(self.session, weapon_id)
        if row is None:
            raise ObjectNotFoundError("Weapon", weapon_id)
        if row.holder_type != HOLDER_PRINCIPAL or row.holder_id != self.tx.sender:
            raise UnauthorizedError(f"weapon {weapon_id} is not held by {self.tx.sender}")
        weapon = weapon_from_row(row)
        self._track_weapons([row], [weapon])
        return weapon

    async def take_coin(self, coin_id: str) -> Balance:
        """Take a coin out of the sender's possession as a Balance in transit."""
        if coin_id in self._coins:
            raise LinearityViolationError(f"coin {coin_id}", "already taken in this transaction")

        row = await get_coin_row(self.session, coin_id)
        if row is None:
            raise ObjectNotFoundError("Coin", coin_id)
        if row.owner != self.tx.sender:
            raise UnauthorizedError(f"coin {coin_id} is not owned by {self.tx.sender}")
        self._coins[coin_id] = row
        self._gold_loaded += row.value
        return Balance.from_storage(row.value)

    async def take_coins(self, coin_ids: list[str]) -> Balance:
        """Take several of the sender's coins and join them into one Balance."""
        _require_distinct(coin_ids, "coin_ids")
        purse = Balance.zero()
        for coin_id in coin_ids:
            purse.join(await self.take_coin(coin_id))
        return purse

    async def take_weapons(self, weapon_ids: list[str]) -> list[Weapon[Any]]:
        _require_distinct(weapon_ids, "weapon_ids")
        return [await self.take_weapon(weapon_id) for weapon_id in weapon_ids]

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def _all_shops(self) -> list[Shop]:
        shops = [shop for _, shop in self._shops.values()]
        shops.extend(self.tx.shared)
        return shops

    def _all_avatars(self) -> list[tuple[Avatar, str | None]]:
        """(avatar, new owner) for loaded and newly transferred avatars."""
        avatars: dict[str, tuple[Avatar, str | None]] = {
            avatar_id: (avatar, None) for avatar_id, (_, avatar) in self._avatars.items()
        }
        for transfer in self.tx.transfers:
            if isinstance(transfer.asset, Avatar):
                avatars[transfer.asset.id] = (transfer.asset, transfer.recipient)
        return list(avatars.values())

    def _place_weapons(self) -> dict[str, tuple[Weapon[Any], str, str]]:
        """
        Find where every weapon ended up.

        Raises:
            LinearityViolationError: If a weapon is in two places, appeared
                from nowhere, or was dropped
        """
        expected = dict(self._weapons)
        for resource in self.tx.minted:
            if isinstance(resource, Weapon):
                expected[resource.id] = resource

        placed: dict[str, tuple[Weapon[Any], str, str]] = {}

        def place(weapon: Weapon[Any], holder_type: str, holder_id: str) -> None:
            if weapon.id in placed:
                raise LinearityViolationError(f"weapon {weapon.id}", "ended in two holders")
            if expected.get(weapon.id) is not weapon:
                raise LinearityViolationError(
                    f"weapon {weapon.id}", "appeared without being minted"
                )
            placed[weapon.id] = (weapon, holder_type, holder_id)

        for shop in self._all_shops():
            for weapon in shop.stocked_weapons():
                place(weapon, HOLDER_SHOP, shop.id)
        for avatar, _ in self._all_avatars():
            wielded = avatar.peek_weapon()
            if wielded is not None:
                place(wielded, HOLDER_AVATAR, avatar.id)
        for transfer in self.tx.transfers:
            if isinstance(transfer.asset, Weapon):
                place(transfer.asset, HOLDER_PRINCIPAL, transfer.recipient)

        dropped = sorted(set(expected) - set(placed))
        if dropped:
            raise LinearityViolationError(f"weapons {dropped}", "dropped without being stored")
        return placed

    def _check_gold(self) -> None:
        minted = sum(
            treasury.total_supply - supply_before
            for _, treasury, supply_before in self._treasuries.values()
        )
        for transfer in self.tx.transfers:
            asset = transfer.asset
            if isinstance(asset, Treasury) and asset.id not in self._treasuries:
                minted += asset.total_supply

        held = sum(shop.earnings for shop in self._all_shops())
        held += sum(avatar.gold.value for avatar, _ in self._all_avatars())
        held += sum(
            transfer.asset.value
            for transfer in self.tx.transfers
            if isinstance(transfer.asset, Balance)
        )

        if held != self._gold_loaded + minted:
            raise LinearityViolationError(
                "gold",
                f"loaded {self._gold_loaded} + minted {minted} != written {held}",
            )

    def _check_transfers(self) -> None:
        unsupported = [
            t.asset
            for t in self.tx.transfers
            if not isinstance(t.asset, (Avatar, Balance, OwnerCapability, Treasury, Weapon))
        ]
        if unsupported:
            name = type(unsupported[0]).__name__
            raise InvalidInputError(f"Cannot transfer {name} to a principal")

        transferred = {
            t.asset.id for t in self.tx.transfers if isinstance(t.asset, OwnerCapability)
        }
        for resource in self.tx.minted:
            if isinstance(resource, OwnerCapability) and resource.id not in transferred:
                raise LinearityViolationError(
                    f"capability {resource.id}", "created but never handed to a principal"
                )

    async def commit(self) -> None:
        """Validate the transaction and stage every write in the session."""
        self.tx.finish()

        for avatar, _ in self._all_avatars():
            if not avatar.slot_is_consistent():
                raise LinearityViolationError(
                    f"avatar {avatar.id} slot", "reference and slot disagree"
                )
        placed = self._place_weapons()
        self._check_gold()
        self._check_transfers()

        await self._write_treasuries()
        self._write_shops()
        # Shops first: capability rows reference them
        await self.session.flush()
        self._write_avatars()
        self._write_capabilities()
        self._write_weapons(placed)
        await self._write_coins()
        await self.session.flush()

    async def _write_treasuries(self) -> None:
        for row, treasury, _ in self._treasuries.values():
            row.total_supply = treasury.total_supply
            _bump(row)
        for transfer in self.tx.transfers:
            if isinstance(transfer.asset, Treasury):
                cached = self._treasuries.get(transfer.asset.id)
                if cached is not None:
                    cached[0].owner = transfer.recipient
                    continue
                if await count_treasuries(self.session) > 0:
                    raise ConflictError("The mint authority has already been created")
                self.session.add(
                    TreasuryDB(
                        id=transfer.asset.id,
                        owner=transfer.recipient,
                        total_supply=transfer.asset.total_supply,
                    )
                )

    def _write_shops(self) -> None:
        for row, shop in self._shops.values():
            row.earnings = shop.earnings
            _bump(row)
            prices = {inv.kind: inv for inv in row.inventories}
            for kind in shop.kinds():
                key = kind_key(kind)
                if key in prices:
                    prices[key].price = shop.price(kind)
                else:
                    row.inventories.append(ShopInventoryDB(kind=key, price=shop.price(kind)))
        for shop in self.tx.shared:
            self.session.add(
                ShopDB(
                    id=shop.id,
                    earnings=shop.earnings,
                    inventories=[
                        ShopInventoryDB(kind=kind_key(kind), price=shop.price(kind))
                        for kind in shop.kinds()
                    ],
                )
            )

    def _write_avatars(self) -> None:
        for avatar, new_owner in self._all_avatars():
            cached = self._avatars.get(avatar.id)
            if cached is None:
                self.session.add(
                    AvatarDB(
                        id=avatar.id,
                        owner=new_owner,
                        name=avatar.name,
                        gold=avatar.gold.value,
                        weapon_id=avatar.weapon_id,
                    )
                )
                continue
            row = cached[0]
            row.gold = avatar.gold.value
            _bump(row)
            row.weapon_id = avatar.weapon_id
            if new_owner is not None:
                row.owner = new_owner

    def _write_capabilities(self) -> None:
        for row, _ in self._caps.values():
            _bump(row)
        for transfer in self.tx.transfers:
            cap = transfer.asset
            if not isinstance(cap, OwnerCapability):
                continue
            cached = self._caps.get(cap.id)
            if cached is not None:
                cached[0].owner = transfer.recipient
            else:
                self.session.add(
                    CapabilityDB(id=cap.id, shop_id=cap.shop_id, owner=transfer.recipient)
                )

    def _write_weapons(self, placed: dict[str, tuple[Weapon[Any], str, str]]) -> None:
        for weapon_id, (weapon, holder_type, holder_id) in placed.items():
            row = self._weapon_rows.get(weapon_id)
            if row is None:
                row = WeaponDB(id=weapon_id, kind=kind_key(weapon.kind))
                self.session.add(row)
            else:
                _bump(row)
            row.holder_type = holder_type
            row.holder_id = holder_id

    async def _write_coins(self) -> None:
        for row in self._coins.values():
            await self.session.delete(row)
        for transfer in self.tx.transfers:
            asset = transfer.asset
            if isinstance(asset, Balance) and asset.value > 0:
                self.session.add(
                    CoinDB(id=self.tx.fresh_id(), owner=transfer.recipient, value=asset.value)
                )


def _require_distinct(ids: list[str], what: str) -> None:
    repeated = sorted(i for i, n in Counter(ids).items() if n > 1)
    if repeated:
        raise InvalidInputError(
            f"{what} lists the same id more than once", detail=", ".join(repeated)
        )


def _bump(row: Any) -> None:
    """Advance a loaded row's version. The flush fails if another transaction got there first."""
    row.version += 1


@asynccontextmanager
async def transaction(
    session: AsyncSession,
    sender: str,
    id_factory: Callable[[], str] | None = None,
) -> AsyncIterator[Workspace]:
    """
    Run one all-or-nothing transaction on behalf of `sender`.

    Commits when the block exits cleanly and every commit check passes;
    rolls the session back and re-raises otherwise.
    """
    tx = TxContext(sender, id_factory)
    workspace = Workspace(session, tx)
    try:
        yield workspace
        try:
            await workspace.commit()
            await session.commit()
        except StaleDataError as e:
            raise ConflictError(
                "A concurrent transaction changed an object this one used; retry"
            ) from e
    except Exception as e:
        reason = e.kind.value if isinstance(e, KnownError) else type(e).__name__
        tx.abort(reason)
        await session.rollback()
        logger.info("TX_ROLLBACK %s sender=%s reason=%s", tx.id, sender, reason)
        raise

    logger.info(
        "TX_COMMIT %s",
        tx.id,
        extra={
            "sender": sender,
            "settled_invoices": tx.settled_invoice_count,
            "transfers": len(tx.transfers),
            "events": len(tx.events),
        },
    )
    for event in tx.events:
        logger.info("EVENT %s: %r", tx.id, event)
