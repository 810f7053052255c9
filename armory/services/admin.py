"""
Shop administration: genesis, forging, withdrawals, capability hand-off.

Every function here that touches an existing shop takes the shop's
OwnerCapability and checks it before doing anything else.
"""

import logging

from armory.host.context import TxContext
from armory.models.balance import validate_amount
from armory.models.capability import OwnerCapability, require_capability
from armory.models.failure import InvalidInputError
from armory.models.shop import Shop, create_shop
from armory.models.weapon import K, Weapon, mint_weapon

logger = logging.getLogger(__name__)

MAX_FORGE_BATCH = 100


def open_shop(tx: TxContext, recipient: str | None = None) -> tuple[Shop, str]:
    """Create a shop and hand its capability to `recipient` (default: sender)."""
    shop, cap = create_shop(tx)
    cap_id = cap.id
    tx.transfer_to(cap, recipient or tx.sender)
    logger.info("SHOP_OPENED shop=%s cap=%s owner=%s", shop.id, cap_id, recipient or tx.sender)
    return shop, cap_id


def forge_weapons(
    tx: TxContext,
    cap: OwnerCapability,
    shop: Shop,
    kind: type[K],
    count: int,
    recipient: str | None = None,
) -> list[str]:
    """
    Mint `count` new weapons of `kind` and hand them to `recipient`.

    Forging is an administrative act of the shop owner; the weapons still
    have to be restocked explicitly.
    """
    require_capability(cap, shop.id)
    _validate_batch(count)

    weapon_ids = []
    for _ in range(count):
        weapon = mint_weapon(tx, kind)
        weapon_ids.append(weapon.id)
        tx.transfer_to(weapon, recipient or tx.sender)
    logger.info("WEAPONS_FORGED shop=%s kind=%s count=%d", shop.id, kind.label(), count)
    return weapon_ids


def forge_into_stock(
    tx: TxContext, cap: OwnerCapability, shop: Shop, kind: type[K], count: int
) -> list[str]:
    """Mint `count` new weapons of `kind` straight into the shop's stock."""
    require_capability(cap, shop.id)
    _validate_batch(count)

    weapon_ids = []
    for _ in range(count):
        weapon = mint_weapon(tx, kind)
        shop.restock(cap, kind, weapon)
        weapon_ids.append(weapon.id)
    logger.info("WEAPONS_STOCKED shop=%s kind=%s count=%d", shop.id, kind.label(), count)
    return weapon_ids


def _validate_batch(count: int) -> None:
    validate_amount(count, "count")
    if count == 0 or count > MAX_FORGE_BATCH:
        raise InvalidInputError(f"count must be between 1 and {MAX_FORGE_BATCH}", detail=str(count))


def restock_all(
    cap: OwnerCapability, shop: Shop, kind: type[K], weapons: list[Weapon[K]]
) -> None:
    for weapon in weapons:
        shop.restock(cap, kind, weapon)


def withdraw_to(
    tx: TxContext, cap: OwnerCapability, shop: Shop, recipient: str | None = None
) -> int:
    """Withdraw all earnings and transfer them to `recipient`. Returns the amount."""
    earnings = shop.withdraw_earnings(cap)
    amount = earnings.value
    tx.transfer_to(earnings, recipient or tx.sender)
    logger.info("EARNINGS_WITHDRAWN shop=%s amount=%d", shop.id, amount)
    return amount


def transfer_capability(tx: TxContext, cap: OwnerCapability, recipient: str) -> None:
    """Give shop ownership to another principal. The caller's reference dies."""
    require_capability(cap, cap.shop_id)
    tx.transfer_to(cap, recipient)
    logger.info("CAPABILITY_TRANSFERRED cap=%s shop=%s to=%s", cap.id, cap.shop_id, recipient)
