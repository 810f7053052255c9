"""Tests for weapons, kind tags and kind resolution."""

import pytest

from armory.config import settings
from armory.host.context import TxContext
from armory.models.failure import UnknownKindError
from armory.models.weapon import (
    Axe,
    Bow,
    Sword,
    Weapon,
    WeaponKind,
    kind_from_name,
    kind_key,
    mint_weapon,
    resolve_kind,
)


class Dagger(WeaponKind):
    """A kind declared outside the allowed kind modules."""


class TestKindTags:
    def test_kind_cannot_be_instantiated(self) -> None:
        """Kind tags are types, never values."""
        with pytest.raises(TypeError):
            Axe()

    def test_label(self) -> None:
        assert Axe.label() == "Axe"
        assert Bow.label() == "Bow"

    def test_kind_key_is_import_path(self) -> None:
        assert kind_key(Sword) == "armory.models.weapon:Sword"

    def test_kind_key_rejects_base_class(self) -> None:
        """WeaponKind itself is not a kind."""
        with pytest.raises(UnknownKindError):
            kind_key(WeaponKind)

    def test_kind_key_rejects_non_kinds(self) -> None:
        with pytest.raises(UnknownKindError):
            kind_key(int)


class TestResolveKind:
    @pytest.mark.parametrize("kind", [Axe, Sword, Bow])
    def test_resolves_builtin_kinds(self, kind) -> None:
        """A stored key resolves back to the same tag class."""
        assert resolve_kind(kind_key(kind)) is kind

    def test_rejects_malformed_key(self) -> None:
        with pytest.raises(UnknownKindError):
            resolve_kind("Axe")

    def test_rejects_module_not_allowed(self) -> None:
        """Kinds outside settings.kind_modules are never imported."""
        with pytest.raises(UnknownKindError):
            resolve_kind(kind_key(Dagger))

    def test_rejects_missing_attribute(self) -> None:
        with pytest.raises(UnknownKindError):
            resolve_kind("armory.models.weapon:Halberd")

    def test_rejects_non_kind_attribute(self) -> None:
        """Names that exist but are not kinds are refused."""
        with pytest.raises(UnknownKindError):
            resolve_kind("armory.models.weapon:Weapon")

    def test_rejects_base_class(self) -> None:
        with pytest.raises(UnknownKindError):
            resolve_kind("armory.models.weapon:WeaponKind")

    def test_allowed_modules_are_configurable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Adding a module to kind_modules makes its kinds resolvable."""
        monkeypatch.setattr(settings, "kind_modules", [*settings.kind_modules, __name__])

        assert resolve_kind(kind_key(Dagger)) is Dagger


class TestKindFromName:
    def test_bare_label(self) -> None:
        assert kind_from_name("Axe") is Axe

    def test_full_key(self) -> None:
        assert kind_from_name("armory.models.weapon:Bow") is Bow

    def test_unknown_label(self) -> None:
        with pytest.raises(UnknownKindError):
            kind_from_name("Halberd")


class TestWeapon:
    def test_weapon_carries_kind(self) -> None:
        weapon = Weapon("w-1", Sword)

        assert weapon.id == "w-1"
        assert weapon.kind is Sword
        assert not weapon.consumed

    def test_weapon_requires_kind(self) -> None:
        with pytest.raises(UnknownKindError):
            Weapon("w-1", str)

    def test_mint_records_new_weapon(self, tx: TxContext) -> None:
        """Minted weapons are recorded so the store can account for them."""
        weapon = mint_weapon(tx, Axe)

        assert weapon.kind is Axe
        assert tx.minted == (weapon,)
