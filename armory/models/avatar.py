"""
Avatars: a name, a purse of gold and a single weapon slot.

INVARIANT: weapon_id is set if and only if the slot holds a weapon.
attach_weapon() and detach_weapon() are the only writers of either field
and update both together.
"""

from typing import TYPE_CHECKING

from armory.config import MAX_AVATAR_NAME_LENGTH, WEAPON_SLOT_LABEL
from armory.models.balance import Balance
from armory.models.failure import AlreadyWieldingError, InvalidInputError, NotWieldingError
from armory.models.weapon import Weapon, WeaponKind

if TYPE_CHECKING:
    from armory.host.context import TxContext


def validate_avatar_name(name: str) -> str:
    if not isinstance(name, str):
        raise InvalidInputError("Avatar name must be text", detail=repr(name))
    cleaned = name.strip()
    if not cleaned:
        raise InvalidInputError("Avatar name cannot be empty")
    if len(cleaned) > MAX_AVATAR_NAME_LENGTH:
        raise InvalidInputError(
            f"Avatar name must be at most {MAX_AVATAR_NAME_LENGTH} characters",
            detail=f"length={len(cleaned)}",
        )
    return cleaned


class Avatar:
    """A player character holding gold and at most one weapon."""

    def __init__(self, avatar_id: str, name: str, gold: Balance) -> None:
        self.id = avatar_id
        self.name = validate_avatar_name(name)
        gold._claim(self._gold_holder())
        self._gold = gold
        self._weapon_id: str | None = None
        self._weapon: Weapon[WeaponKind] | None = None

    def _gold_holder(self) -> str:
        return f"avatar:{self.id}:gold"

    def _slot_holder(self) -> str:
        return f"avatar:{self.id}:{WEAPON_SLOT_LABEL}"

    @property
    def gold(self) -> Balance:
        return self._gold

    @property
    def weapon_id(self) -> str | None:
        return self._weapon_id

    @property
    def is_wielding(self) -> bool:
        return self._weapon_id is not None

    def peek_weapon(self) -> Weapon[WeaponKind] | None:
        """The weapon in the slot, without moving it."""
        return self._weapon

    def attach_weapon(self, weapon: Weapon[WeaponKind]) -> None:
        if self._weapon_id is not None:
            raise AlreadyWieldingError(self.id, self._weapon_id)
        weapon._claim(self._slot_holder())
        self._weapon = weapon
        self._weapon_id = weapon.id

    def detach_weapon(self) -> Weapon[WeaponKind]:
        if self._weapon is None:
            raise NotWieldingError(self.id)
        weapon = self._weapon
        weapon._release()
        self._weapon = None
        self._weapon_id = None
        return weapon

    def slot_is_consistent(self) -> bool:
        if self._weapon is None:
            return self._weapon_id is None
        return self._weapon_id == self._weapon.id

    def __repr__(self) -> str:
        return (
            f"<Avatar(id={self.id}, name={self.name!r}, "
            f"gold={self._gold.value}, weapon={self._weapon_id})>"
        )


def create_avatar(
    tx: "TxContext",
    name: str,
    initial_gold: Balance,
    recipient: str | None = None,
) -> Avatar:
    """Create an avatar funded with `initial_gold` and hand it to `recipient`."""
    avatar = Avatar(tx.fresh_id(), name, initial_gold)
    tx.transfer_to(avatar, recipient or tx.sender)
    return avatar
