"""
Weapons and weapon kinds.

A weapon kind is a tag class: it is never instantiated and carries no
data. It exists so that a Weapon[Axe] and a Weapon[Sword] cannot be
mixed up, and so that shops can key inventories by kind without a
central list of kinds. New kinds are declared by subclassing WeaponKind
anywhere; persisted kinds are addressed by import path.
"""

import importlib
from typing import TYPE_CHECKING, Generic, TypeVar

from armory.config import settings
from armory.models.failure import UnknownKindError
from armory.models.resource import LinearResource

if TYPE_CHECKING:
    from armory.host.context import TxContext


class WeaponKind:
    """Base class of all kind tags. Subclass it; never instantiate it."""

    def __new__(cls, *args: object, **kwargs: object) -> "WeaponKind":
        raise TypeError(f"{cls.__name__} is a kind tag and cannot be instantiated")

    @classmethod
    def label(cls) -> str:
        return cls.__name__


class Axe(WeaponKind):
    pass


class Sword(WeaponKind):
    pass


class Bow(WeaponKind):
    pass


K = TypeVar("K", bound=WeaponKind)


def kind_key(kind: type[WeaponKind]) -> str:
    """Stable storage key for a kind: its import path."""
    if not (isinstance(kind, type) and issubclass(kind, WeaponKind)) or kind is WeaponKind:
        raise UnknownKindError(repr(kind), detail="not a WeaponKind subclass")
    return f"{kind.__module__}:{kind.__qualname__}"


def resolve_kind(key: str) -> type[WeaponKind]:
    """
    Resolve a stored kind key back to its tag class.

    Only modules listed in settings.kind_modules are imported.
    """
    module_name, sep, qualname = key.partition(":")
    if not sep or not module_name or not qualname:
        raise UnknownKindError(key, detail="expected 'module:QualName'")
    if module_name not in settings.kind_modules:
        raise UnknownKindError(key, detail=f"module '{module_name}' is not an allowed kind module")

    try:
        target: object = importlib.import_module(module_name)
    except ImportError as e:
        raise UnknownKindError(key, detail=str(e)) from e
    for part in qualname.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise UnknownKindError(key, detail=f"'{qualname}' not found in {module_name}")

    if not (isinstance(target, type) and issubclass(target, WeaponKind)) or target is WeaponKind:
        raise UnknownKindError(key, detail="not a WeaponKind subclass")
    return target


def kind_from_name(name: str) -> type[WeaponKind]:
    """
    Resolve a kind from user input: a full "module:QualName" key, or a bare
    label such as "Axe" looked up in each allowed kind module in order.
    """
    if ":" in name:
        return resolve_kind(name)
    for module_name in settings.kind_modules:
        try:
            return resolve_kind(f"{module_name}:{name}")
        except UnknownKindError:
            continue
    raise UnknownKindError(name, detail=f"searched {', '.join(settings.kind_modules)}")


class Weapon(LinearResource, Generic[K]):
    """
    A uniquely identified weapon of one kind.

    Weapons are minted once and never destroyed; they only move between
    shop stock, avatar slots and principals.
    """

    def __init__(self, weapon_id: str, kind: type[K]) -> None:
        kind_key(kind)
        super().__init__()
        self._id = weapon_id
        self._kind = kind

    @property
    def id(self) -> str:
        return self._id

    @property
    def kind(self) -> type[K]:
        return self._kind

    def _describe(self) -> str:
        return f"Weapon[{self._kind.label()}]({self._id})"

    def __repr__(self) -> str:
        return f"<Weapon(id={self._id}, kind={self._kind.label()})>"


def mint_weapon(tx: "TxContext", kind: type[K]) -> Weapon[K]:
    """Create a brand-new weapon of `kind`. The caller must store or transfer it."""
    weapon: Weapon[K] = Weapon(tx.fresh_id(), kind)
    tx.record_mint(weapon)
    return weapon
