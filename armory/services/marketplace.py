"""
Transaction Orchestrator: Buy, Sell, Trade, Rent.

Each flow composes the inventory store, the settlement protocol and the
equipment slot into one indivisible unit of work.

INVARIANTS:
- A flow either completes or aborts its transaction. Any failure at any
  step marks the TxContext aborted before the exception propagates, so an
  aborted flow can never be committed, even if the caller swallows the
  exception
- No flow catches and retries a sub-step failure
- Every weapon taken out of stock is either wielded, sold back or traded in
  within the same flow; every invoice opened is settled within the same flow

rent() is a demonstration flow: the avatar pays the discounted trade-in
price to swing a weapon once, and the weapon goes straight back to stock.
Its economics are intentional.
"""

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from armory.host.context import TxContext
from armory.models.avatar import Avatar
from armory.models.failure import KnownError
from armory.models.shop import Shop
from armory.models.weapon import WeaponKind
from armory.services import equipment, settlement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Receipt:
    """Outcome of a completed flow."""

    flow: str
    avatar_id: str
    shop_id: str
    weapon_id: str | None
    paid: int = 0
    received: int = 0


FlowFn = Callable[..., Receipt]


def _flow(name: str) -> Callable[[FlowFn], FlowFn]:
    """Run a flow as an all-or-nothing step of `tx`."""

    def decorate(fn: FlowFn) -> FlowFn:
        @functools.wraps(fn)
        def wrapper(tx: TxContext, *args: Any, **kwargs: Any) -> Receipt:
            tx.ensure_active()
            try:
                receipt = fn(tx, *args, **kwargs)
            except Exception as e:
                reason = e.kind.value if isinstance(e, KnownError) else type(e).__name__
                tx.abort(f"{name} failed: {reason}")
                logger.warning("FLOW_FAILED %s tx=%s reason=%s: %s", name, tx.id, reason, e)
                raise
            logger.info(
                "FLOW_%s tx=%s avatar=%s shop=%s weapon=%s paid=%d received=%d",
                name.upper(),
                tx.id,
                receipt.avatar_id,
                receipt.shop_id,
                receipt.weapon_id,
                receipt.paid,
                receipt.received,
            )
            return receipt

        return wrapper

    return decorate


@_flow("buy")
def buy(tx: TxContext, avatar: Avatar, kind: type[WeaponKind], amount: int, shop: Shop) -> Receipt:
    """
    Buy one weapon of `kind` and wield it.

    take_one -> debit avatar -> pay_in_full -> wield.

    Raises:
        OutOfStockError, UnknownKindError, InsufficientFundsError,
        AmountMismatchError, AlreadyWieldingError
    """
    weapon, invoice = settlement.purchase(tx, shop, kind)
    payment = avatar.gold.split(amount)
    settlement.pay_in_full(tx, shop, invoice, payment)
    equipment.wield(avatar, weapon)
    return Receipt(
        flow="buy", avatar_id=avatar.id, shop_id=shop.id, weapon_id=weapon.id, paid=amount
    )


@_flow("sell")
def sell(tx: TxContext, avatar: Avatar, kind: type[WeaponKind], shop: Shop) -> Receipt:
    """
    Sell the wielded weapon of `kind` back for half its current price.

    unwield -> put back into stock -> pay out from earnings -> credit avatar.

    Raises:
        NotWieldingError, WrongWeaponKindError, UnknownKindError,
        ShopInsolventError
    """
    weapon = equipment.unwield(avatar, kind)
    payout = shop.buy_back(kind, weapon)
    received = payout.value
    avatar.gold.join(payout)
    return Receipt(
        flow="sell", avatar_id=avatar.id, shop_id=shop.id, weapon_id=weapon.id, received=received
    )


@_flow("trade")
def trade(
    tx: TxContext,
    avatar: Avatar,
    old_kind: type[WeaponKind],
    new_kind: type[WeaponKind],
    amount: int,
    shop: Shop,
) -> Receipt:
    """
    Trade the wielded `old_kind` weapon for a `new_kind` one.

    unwield old -> take new -> debit avatar -> trade_in old -> wield new.
    `amount` must equal the new price less the old kind's trade-in credit.

    Raises:
        NotWieldingError, WrongWeaponKindError, OutOfStockError,
        UnknownKindError, InsufficientFundsError, AmountMismatchError
    """
    old_weapon = equipment.unwield(avatar, old_kind)
    new_weapon, invoice = settlement.purchase(tx, shop, new_kind)
    payment = avatar.gold.split(amount)
    settlement.trade_in(tx, shop, invoice, old_kind, old_weapon, payment)
    equipment.wield(avatar, new_weapon)
    return Receipt(
        flow="trade", avatar_id=avatar.id, shop_id=shop.id, weapon_id=new_weapon.id, paid=amount
    )


@_flow("rent")
def rent(tx: TxContext, avatar: Avatar, kind: type[WeaponKind], amount: int, shop: Shop) -> Receipt:
    """
    Swing a shop weapon once and return it.

    take_one -> wield -> swing -> unwield -> debit avatar -> trade_in.
    `amount` must equal price - floor(price * 3 / 4).

    Raises:
        OutOfStockError, UnknownKindError, AlreadyWieldingError,
        InsufficientFundsError, AmountMismatchError
    """
    weapon, invoice = settlement.purchase(tx, shop, kind)
    equipment.wield(avatar, weapon)
    equipment.swing(tx, avatar)
    returned = equipment.unwield(avatar, kind)
    payment = avatar.gold.split(amount)
    settlement.trade_in(tx, shop, invoice, kind, returned, payment)
    return Receipt(
        flow="rent", avatar_id=avatar.id, shop_id=shop.id, weapon_id=weapon.id, paid=amount
    )
