"""
Tests for the typed inventory store.

INVARIANT: Each inventory only ever holds weapons of its own kind, and
stock only moves through take_one / put_one / restock / buy_back.
"""

import pytest

from armory.host.context import TxContext
from armory.models.failure import (
    FailureKind,
    KindAlreadyRegisteredError,
    OutOfStockError,
    ShopInsolventError,
    UnknownKindError,
    WrongWeaponKindError,
)
from armory.models.shop import Shop, create_shop
from armory.models.weapon import Axe, Bow, Sword, Weapon, WeaponKind, mint_weapon

AXE_PRICE = 1000
SWORD_PRICE = 800


class Mace(WeaponKind):
    pass


class TestShopGenesis:
    def test_create_shop_publishes_and_mints_capability(self, tx: TxContext) -> None:
        """The shop is shared and its capability is recorded for hand-off."""
        shop, cap = create_shop(tx)

        assert tx.shared == (shop,)
        assert tx.minted == (cap,)
        assert cap.shop_id == shop.id
        assert shop.earnings == 0
        assert shop.kinds() == []


class TestRegisterKind:
    def test_register_opens_empty_inventory(self, tx: TxContext) -> None:
        shop, cap = create_shop(tx)
        shop.register_kind(cap, Axe, 1000)

        assert shop.has_kind(Axe)
        assert shop.price(Axe) == 1000
        assert shop.stock_count(Axe) == 0

    def test_register_twice_is_refused(self, tx: TxContext) -> None:
        """A kind can only be registered once per shop."""
        shop, cap = create_shop(tx)
        shop.register_kind(cap, Axe, 1000)

        with pytest.raises(KindAlreadyRegisteredError) as exc_info:
            shop.register_kind(cap, Axe, 900)

        assert exc_info.value.kind == FailureKind.KIND_ALREADY_REGISTERED
        assert shop.price(Axe) == 1000

    def test_new_kinds_open_at_runtime(self, tx: TxContext) -> None:
        """Any WeaponKind subclass can be sold without changing the shop."""
        shop, cap = create_shop(tx)
        shop.register_kind(cap, Mace, 300)
        shop.restock(cap, Mace, Weapon("mace-1", Mace))

        weapon, price = shop.take_one(Mace)

        assert weapon.kind is Mace
        assert price == 300

    def test_set_price(self, stocked_shop) -> None:
        shop, cap = stocked_shop
        shop.set_price(cap, Axe, 1200)

        assert shop.price(Axe) == 1200

    def test_set_price_unknown_kind(self, stocked_shop) -> None:
        shop, cap = stocked_shop

        with pytest.raises(UnknownKindError):
            shop.set_price(cap, Bow, 10)


class TestStockMovement:
    def test_take_one_returns_weapon_and_price(self, stocked_shop) -> None:
        """take_one removes one unit and reports the current price."""
        shop, _ = stocked_shop

        weapon, price = shop.take_one(Axe)

        assert weapon.kind is Axe
        assert weapon.holder is None
        assert price == AXE_PRICE
        assert shop.stock_count(Axe) == 1

    def test_take_one_out_of_stock(self, stocked_shop) -> None:
        shop, _ = stocked_shop
        shop.take_one(Sword)

        with pytest.raises(OutOfStockError) as exc_info:
            shop.take_one(Sword)

        assert exc_info.value.kind == FailureKind.OUT_OF_STOCK

    def test_take_one_unknown_kind(self, stocked_shop) -> None:
        shop, _ = stocked_shop

        with pytest.raises(UnknownKindError):
            shop.take_one(Bow)

    def test_put_one_returns_to_stock(self, stocked_shop) -> None:
        shop, _ = stocked_shop
        weapon, _ = shop.take_one(Axe)

        shop.put_one(Axe, weapon)

        assert shop.stock_count(Axe) == 2
        assert weapon.holder is not None

    def test_put_one_unknown_kind(self, stocked_shop, tx: TxContext) -> None:
        shop, _ = stocked_shop

        with pytest.raises(UnknownKindError):
            shop.put_one(Bow, mint_weapon(tx, Bow))

    def test_restock_wrong_kind_is_refused(self, stocked_shop, tx: TxContext) -> None:
        """A Sword can never land in the Axe inventory."""
        shop, cap = stocked_shop
        sword = mint_weapon(tx, Sword)

        with pytest.raises(WrongWeaponKindError):
            shop.restock(cap, Axe, sword)

        assert shop.stock_count(Axe) == 2
        assert sword.holder is None

    def test_stock_of_is_a_snapshot(self, stocked_shop) -> None:
        shop, _ = stocked_shop
        snapshot = shop.stock_of(Axe)
        snapshot.clear()

        assert shop.stock_count(Axe) == 2

    def test_stocked_weapons_lists_every_kind(self, stocked_shop) -> None:
        shop, _ = stocked_shop

        assert sorted(w.kind.label() for w in shop.stocked_weapons()) == ["Axe", "Axe", "Sword"]


class TestEarnings:
    def test_deposit_and_withdraw(self, stocked_shop, gold) -> None:
        """Withdrawing empties the earnings into a new balance."""
        shop, cap = stocked_shop
        shop.deposit(gold(SWORD_PRICE))

        withdrawn = shop.withdraw_earnings(cap)

        assert withdrawn.value == SWORD_PRICE
        assert shop.earnings == 0

    def test_buy_back_pays_half_price(self, stocked_shop, gold) -> None:
        shop, _ = stocked_shop
        shop.deposit(gold(AXE_PRICE))
        weapon, _ = shop.take_one(Axe)

        payout = shop.buy_back(Axe, weapon)

        assert payout.value == AXE_PRICE // 2
        assert shop.earnings == AXE_PRICE - AXE_PRICE // 2
        assert shop.stock_count(Axe) == 2

    def test_buy_back_insolvent(self, stocked_shop) -> None:
        """A shop that cannot pay refuses the weapon and keeps its stock unchanged."""
        shop, _ = stocked_shop
        weapon, _ = shop.take_one(Axe)

        with pytest.raises(ShopInsolventError) as exc_info:
            shop.buy_back(Axe, weapon)

        assert exc_info.value.payout == AXE_PRICE // 2
        assert shop.stock_count(Axe) == 1
        assert weapon.holder is None

    def test_from_storage_restores_stock(self) -> None:
        """A persisted shop comes back with the same stock and prices."""
        shop = Shop.from_storage(
            "s-1", 250, [(Axe, 1000, [Weapon("w-1", Axe)]), (Sword, 800, [])]
        )

        assert shop.earnings == 250
        assert shop.stock_count(Axe) == 1
        assert shop.stock_count(Sword) == 0
        assert shop.price(Sword) == 800
