"""
Avatar equipment slot: wield, unwield, swing.

An avatar holds at most one weapon, attached under the fixed "weapon"
label. unwield() is kind-checked: asking for the wrong kind fails and
leaves the weapon where it is.
"""

import logging

from armory.host.context import TxContext
from armory.models.avatar import Avatar
from armory.models.events import WeaponSwung
from armory.models.failure import AlreadyWieldingError, NotWieldingError, WrongWeaponKindError
from armory.models.weapon import K, Weapon

logger = logging.getLogger(__name__)


def wield(avatar: Avatar, weapon: Weapon[K]) -> None:
    """
    Put `weapon` into the avatar's slot.

    Raises:
        AlreadyWieldingError: If the avatar already wields a weapon
    """
    if avatar.weapon_id is not None:
        raise AlreadyWieldingError(avatar.id, avatar.weapon_id)
    avatar.attach_weapon(weapon)
    logger.debug("WIELD avatar=%s weapon=%s", avatar.id, weapon.id)


def unwield(avatar: Avatar, kind: type[K]) -> Weapon[K]:
    """
    Take the wielded weapon of `kind` out of the avatar's slot.

    Raises:
        NotWieldingError: If the slot is empty
        WrongWeaponKindError: If the wielded weapon is of another kind
    """
    current = avatar.peek_weapon()
    if avatar.weapon_id is None or current is None:
        raise NotWieldingError(avatar.id)
    if current.kind is not kind:
        raise WrongWeaponKindError(kind.label(), current.kind.label())

    weapon = avatar.detach_weapon()
    logger.debug("UNWIELD avatar=%s weapon=%s", avatar.id, weapon.id)
    return weapon  # type: ignore[return-value]


def swing(tx: TxContext, avatar: Avatar) -> WeaponSwung:
    """
    Swing the wielded weapon. No state change; emits WeaponSwung.

    Raises:
        NotWieldingError: If the slot is empty
    """
    current = avatar.peek_weapon()
    if avatar.weapon_id is None or current is None:
        raise NotWieldingError(avatar.id)

    event = WeaponSwung(avatar_id=avatar.id, weapon_id=current.id, kind=current.kind.label())
    tx.emit(event)
    logger.info("WEAPON_SWUNG avatar=%s weapon=%s", avatar.id, current.id)
    return event
