"""
Shop and Typed Inventory Store.

A shop owns its earnings and an open set of per-kind inventories. The
set is keyed by kind tag class, so a new weapon category is opened at
runtime with register_kind() without changing the Shop's shape.

INVARIANT: Configuration changes (registering kinds, pricing, restocking,
withdrawing earnings) require the shop's OwnerCapability.

INVARIANT: Customer-side stock movement (take_one, put_one, buy_back) is
ungated but is only reachable through the settlement protocol, which
never lets a weapon leave without a matching payment.

Stock is a bag: take_one() may return any unit.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic

from armory.config import SELL_BACK_DIVISOR
from armory.models.balance import Balance, validate_amount
from armory.models.capability import OwnerCapability, require_capability
from armory.models.failure import (
    KindAlreadyRegisteredError,
    OutOfStockError,
    ShopInsolventError,
    UnknownKindError,
    WrongWeaponKindError,
)
from armory.models.weapon import K, Weapon, WeaponKind, kind_key

if TYPE_CHECKING:
    from armory.host.context import TxContext


@dataclass
class Inventory(Generic[K]):
    """Price and stock of one weapon kind."""

    kind: type[K]
    price: int
    stock: list[Weapon[K]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.stock)


class Shop:
    """A shared marketplace object with earnings and typed inventories."""

    def __init__(self, shop_id: str, earnings: Balance | None = None) -> None:
        self.id = shop_id
        self._earnings = earnings if earnings is not None else Balance.zero()
        self._earnings._claim(f"shop:{shop_id}:earnings")
        self._inventories: dict[type[WeaponKind], Inventory[Any]] = {}

    @classmethod
    def from_storage(
        cls,
        shop_id: str,
        earnings: int,
        inventories: list[tuple[type[WeaponKind], int, list[Weapon[Any]]]],
    ) -> "Shop":
        """Rehydrate a persisted shop from (kind, price, stock) triples. Storage boundary only."""
        shop = cls(shop_id, Balance.from_storage(earnings))
        for kind, price, weapons in inventories:
            inventory: Inventory[Any] = Inventory(kind=kind, price=validate_amount(price, "price"))
            shop._inventories[kind] = inventory
            for weapon in weapons:
                shop._append(inventory, weapon)
        return shop

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def earnings(self) -> int:
        return self._earnings.value

    def kinds(self) -> list[type[WeaponKind]]:
        return list(self._inventories)

    def has_kind(self, kind: type[WeaponKind]) -> bool:
        return kind in self._inventories

    def price(self, kind: type[WeaponKind]) -> int:
        return self._inventory(kind).price

    def stock_count(self, kind: type[WeaponKind]) -> int:
        return len(self._inventory(kind))

    def stock_of(self, kind: type[K]) -> list[Weapon[K]]:
        """A snapshot of the weapons in stock for `kind`."""
        return list(self._inventory(kind).stock)

    def stocked_weapons(self) -> list[Weapon[Any]]:
        """Every weapon currently in stock, across all kinds."""
        return [weapon for inv in self._inventories.values() for weapon in inv.stock]

    def _inventory(self, kind: type[K]) -> Inventory[K]:
        inventory = self._inventories.get(kind)
        if inventory is None:
            raise UnknownKindError(getattr(kind, "__name__", repr(kind)))
        return inventory

    def _stock_holder(self, kind: type[WeaponKind]) -> str:
        return f"shop:{self.id}:{kind.__name__}"

    def _append(self, inventory: Inventory[K], weapon: Weapon[K]) -> None:
        if weapon.kind is not inventory.kind:
            raise WrongWeaponKindError(inventory.kind.label(), weapon.kind.label())
        weapon._claim(self._stock_holder(inventory.kind))
        inventory.stock.append(weapon)

    # -------------------------------------------------------------------------
    # Privileged configuration (capability-gated)
    # -------------------------------------------------------------------------

    def register_kind(self, cap: OwnerCapability, kind: type[K], price: int) -> None:
        """Open a new, empty inventory for `kind` at `price`."""
        require_capability(cap, self.id)
        kind_key(kind)
        validate_amount(price, "price")
        if kind in self._inventories:
            raise KindAlreadyRegisteredError(kind.label())
        self._inventories[kind] = Inventory(kind=kind, price=price)

    def set_price(self, cap: OwnerCapability, kind: type[WeaponKind], price: int) -> None:
        require_capability(cap, self.id)
        inventory = self._inventory(kind)
        inventory.price = validate_amount(price, "price")

    def restock(self, cap: OwnerCapability, kind: type[K], weapon: Weapon[K]) -> None:
        require_capability(cap, self.id)
        self._append(self._inventory(kind), weapon)

    def withdraw_earnings(self, cap: OwnerCapability) -> Balance:
        """Zero the earnings and return everything that was in them."""
        require_capability(cap, self.id)
        return self._earnings.withdraw_all()

    # -------------------------------------------------------------------------
    # Customer-side stock movement
    # -------------------------------------------------------------------------

    def take_one(self, kind: type[K]) -> tuple[Weapon[K], int]:
        """Remove one unit of `kind` and return it with the current price."""
        inventory = self._inventory(kind)
        if not inventory.stock:
            raise OutOfStockError(kind.label())
        weapon = inventory.stock.pop()
        weapon._release()
        return weapon, inventory.price

    def put_one(self, kind: type[K], weapon: Weapon[K]) -> None:
        self._append(self._inventory(kind), weapon)

    def deposit(self, payment: Balance) -> None:
        """Merge a payment into earnings. `payment` is consumed."""
        self._earnings.join(payment)

    def buy_back(self, kind: type[K], weapon: Weapon[K]) -> Balance:
        """
        Take a weapon back into stock and pay out half its current price.

        Raises:
            UnknownKindError: If the kind is not registered
            ShopInsolventError: If earnings cannot cover the payout
        """
        inventory = self._inventory(kind)
        payout = inventory.price // SELL_BACK_DIVISOR
        if payout > self._earnings.value:
            raise ShopInsolventError(payout=payout, earnings=self._earnings.value)
        self._append(inventory, weapon)
        return self._earnings.split(payout)

    def __repr__(self) -> str:
        kinds = ", ".join(f"{k.label()}={len(inv)}" for k, inv in self._inventories.items())
        return f"<Shop(id={self.id}, earnings={self._earnings.value}, stock=[{kinds}])>"


def create_shop(tx: "TxContext") -> tuple[Shop, OwnerCapability]:
    """
    Shop genesis.

    Publishes the shop as a shared object and returns its one and only
    capability, so the creator can configure the shop within the same
    transaction. The capability is linear: the caller must hand it to a
    principal with tx.transfer_to() before the transaction commits.
    """
    shop = Shop(tx.fresh_id())
    cap = OwnerCapability._issue(tx.fresh_id(), shop.id)
    tx.publish_shared(shop)
    tx.record_mint(cap)
    return shop, cap
