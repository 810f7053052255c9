from armory.models.avatar import Avatar, create_avatar, validate_avatar_name
from armory.models.balance import Balance, Treasury, create_treasury, validate_amount
from armory.models.capability import OwnerCapability, require_capability
from armory.models.events import WeaponSwung
from armory.models.failure import (
    AlreadyWieldingError,
    AmountMismatchError,
    ConflictError,
    FailureDetail,
    FailureKind,
    InsufficientFundsError,
    InvalidInputError,
    KindAlreadyRegisteredError,
    KnownError,
    NotWieldingError,
    ObjectNotFoundError,
    OutOfStockError,
    ShopInsolventError,
    UnauthorizedError,
    UnknownKindError,
    WrongWeaponKindError,
)
from armory.models.invoice import InvalidInvoiceError, Invoice, UnsettledInvoiceError
from armory.models.resource import LinearityViolationError, LinearResource, ResourceConsumedError
from armory.models.shop import Inventory, Shop, create_shop
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

__all__ = [
    # Resources
    "Avatar",
    "Balance",
    "Inventory",
    "Invoice",
    "LinearResource",
    "OwnerCapability",
    "Shop",
    "Treasury",
    "Weapon",
    "WeaponSwung",
    # Kinds
    "Axe",
    "Bow",
    "Sword",
    "WeaponKind",
    "kind_from_name",
    "kind_key",
    "resolve_kind",
    # Genesis
    "create_avatar",
    "create_shop",
    "create_treasury",
    "mint_weapon",
    # Validation
    "require_capability",
    "validate_amount",
    "validate_avatar_name",
    # Failures
    "AlreadyWieldingError",
    "AmountMismatchError",
    "ConflictError",
    "FailureDetail",
    "FailureKind",
    "InsufficientFundsError",
    "InvalidInputError",
    "InvalidInvoiceError",
    "KindAlreadyRegisteredError",
    "KnownError",
    "LinearityViolationError",
    "NotWieldingError",
    "ObjectNotFoundError",
    "OutOfStockError",
    "ResourceConsumedError",
    "ShopInsolventError",
    "UnauthorizedError",
    "UnknownKindError",
    "UnsettledInvoiceError",
    "WrongWeaponKindError",
]
