"""
Tests for the avatar equipment slot.

INVARIANT: An avatar wields at most one weapon, and weapon_id is set if
and only if the slot is occupied.
"""

import pytest

from armory.host.context import TxContext
from armory.models.avatar import Avatar, create_avatar, validate_avatar_name
from armory.models.events import WeaponSwung
from armory.models.failure import (
    AlreadyWieldingError,
    FailureKind,
    InvalidInputError,
    NotWieldingError,
    WrongWeaponKindError,
)
from armory.models.weapon import Axe, Sword, Weapon
from armory.services.equipment import swing, unwield, wield


class TestWield:
    def test_wield_fills_slot(self, avatar: Avatar) -> None:
        axe = Weapon("w-1", Axe)

        wield(avatar, axe)

        assert avatar.weapon_id == "w-1"
        assert avatar.is_wielding
        assert avatar.peek_weapon() is axe
        assert avatar.slot_is_consistent()

    def test_second_weapon_is_refused(self, avatar: Avatar) -> None:
        """Only one weapon at a time."""
        wield(avatar, Weapon("w-1", Axe))
        sword = Weapon("w-2", Sword)

        with pytest.raises(AlreadyWieldingError) as exc_info:
            wield(avatar, sword)

        assert exc_info.value.kind == FailureKind.ALREADY_WIELDING
        assert avatar.weapon_id == "w-1"
        assert sword.holder is None


class TestUnwield:
    def test_unwield_empties_slot(self, avatar: Avatar) -> None:
        axe = Weapon("w-1", Axe)
        wield(avatar, axe)

        returned = unwield(avatar, Axe)

        assert returned is axe
        assert avatar.weapon_id is None
        assert not avatar.is_wielding
        assert avatar.slot_is_consistent()

    def test_unwield_empty_slot(self, avatar: Avatar) -> None:
        with pytest.raises(NotWieldingError):
            unwield(avatar, Axe)

    def test_unwield_wrong_kind_leaves_weapon(self, avatar: Avatar) -> None:
        """Asking for a Sword while wielding an Axe changes nothing."""
        wield(avatar, Weapon("w-1", Axe))

        with pytest.raises(WrongWeaponKindError) as exc_info:
            unwield(avatar, Sword)

        assert exc_info.value.expected == "Sword"
        assert exc_info.value.actual == "Axe"
        assert avatar.weapon_id == "w-1"


class TestSwing:
    def test_swing_emits_event(self, tx: TxContext, avatar: Avatar) -> None:
        wield(avatar, Weapon("w-1", Axe))

        event = swing(tx, avatar)

        assert event == WeaponSwung(avatar_id="avatar-1", weapon_id="w-1", kind="Axe")
        assert tx.events == (event,)
        assert avatar.weapon_id == "w-1"

    def test_swing_unarmed(self, tx: TxContext, avatar: Avatar) -> None:
        with pytest.raises(NotWieldingError):
            swing(tx, avatar)

        assert tx.events == ()


class TestAvatar:
    def test_create_avatar_transfers_to_sender(self, tx: TxContext, gold) -> None:
        avatar = create_avatar(tx, "  Brunhild ", gold(100))

        assert avatar.name == "Brunhild"
        assert avatar.gold.value == 100
        assert tx.transfers[0].asset is avatar
        assert tx.transfers[0].recipient == "alice"

    @pytest.mark.parametrize("name", ["", "   ", "x" * 65, 42])
    def test_invalid_names(self, name) -> None:
        with pytest.raises(InvalidInputError):
            validate_avatar_name(name)
