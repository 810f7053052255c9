"""
Failure Classification: Every Refused Operation Says Why.

This module defines the error vocabulary shared by the resource engine,
the persistent store and the HTTP surface.

INVARIANT: No precondition violation is silent. Every refused operation
raises a KnownError whose kind names the violated rule.

INVARIANT: A KnownError raised inside a flow is terminal for that flow.
The orchestrator never catches and retries; the enclosing transaction
is rolled back.

Classification:
- Domain refusals: funds, stock, kinds, wielding, amounts, solvency, authority
- Input failures: malformed names, negative amounts, unresolvable kinds
- Store failures: missing objects, duplicate bootstrap
- Invariant violations: linearity or obligation breaches detected at runtime
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Funds and settlement
    INSUFFICIENT_FUNDS = "insufficient_funds"
    AMOUNT_MISMATCH = "amount_mismatch"
    SHOP_INSOLVENT = "shop_insolvent"

    # Inventory
    OUT_OF_STOCK = "out_of_stock"
    UNKNOWN_KIND = "unknown_kind"
    KIND_ALREADY_REGISTERED = "kind_already_registered"

    # Equipment slot
    ALREADY_WIELDING = "already_wielding"
    NOT_WIELDING = "not_wielding"
    WRONG_WEAPON_KIND = "wrong_weapon_kind"

    # Authority
    UNAUTHORIZED = "unauthorized"

    # Input and store
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"

    # Transaction and runtime invariants
    TRANSACTION_ABORTED = "transaction_aborted"
    INVARIANT_VIOLATION = "invariant_violation"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to the wire representation."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


# =============================================================================
# DOMAIN REFUSALS
# =============================================================================


class InsufficientFundsError(KnownError):
    """Raised when a debit exceeds the available balance."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            kind=FailureKind.INSUFFICIENT_FUNDS,
            message=f"Cannot take {requested} gold: only {available} available",
            detail=f"requested={requested} available={available}",
            status_code=402,
        )


class OutOfStockError(KnownError):
    def __init__(self, kind_name: str):
        self.kind_name = kind_name
        super().__init__(
            kind=FailureKind.OUT_OF_STOCK,
            message=f"No {kind_name} left in stock",
            suggestion="Ask the shop owner to restock.",
            status_code=409,
        )


class UnknownKindError(KnownError):
    def __init__(self, kind_name: str, detail: str | None = None):
        self.kind_name = kind_name
        super().__init__(
            kind=FailureKind.UNKNOWN_KIND,
            message=f"Weapon kind '{kind_name}' is not known here",
            detail=detail,
            status_code=404,
        )


class KindAlreadyRegisteredError(KnownError):
    def __init__(self, kind_name: str):
        self.kind_name = kind_name
        super().__init__(
            kind=FailureKind.KIND_ALREADY_REGISTERED,
            message=f"Weapon kind '{kind_name}' is already registered",
            suggestion="Use set_price to change the price of an existing kind.",
            status_code=409,
        )


class AlreadyWieldingError(KnownError):
    def __init__(self, avatar_id: str, weapon_id: str):
        self.avatar_id = avatar_id
        self.weapon_id = weapon_id
        super().__init__(
            kind=FailureKind.ALREADY_WIELDING,
            message="Avatar already wields a weapon",
            detail=f"avatar={avatar_id} weapon={weapon_id}",
            suggestion="Sell or trade the current weapon first.",
            status_code=409,
        )


class NotWieldingError(KnownError):
    def __init__(self, avatar_id: str):
        self.avatar_id = avatar_id
        super().__init__(
            kind=FailureKind.NOT_WIELDING,
            message="Avatar is not wielding a weapon",
            detail=f"avatar={avatar_id}",
            status_code=409,
        )


class WrongWeaponKindError(KnownError):
    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            kind=FailureKind.WRONG_WEAPON_KIND,
            message=f"Expected a {expected}, found a {actual}",
            status_code=409,
        )


class AmountMismatchError(KnownError):
    """Raised when an offered payment differs from the amount owed."""

    def __init__(self, owed: int, offered: int, detail: str | None = None):
        self.owed = owed
        self.offered = offered
        super().__init__(
            kind=FailureKind.AMOUNT_MISMATCH,
            message=f"Payment of {offered} does not match the {owed} owed",
            detail=detail,
            suggestion="Pay exactly the amount owed.",
            status_code=400,
        )


class ShopInsolventError(KnownError):
    def __init__(self, payout: int, earnings: int):
        self.payout = payout
        self.earnings = earnings
        super().__init__(
            kind=FailureKind.SHOP_INSOLVENT,
            message=f"Shop cannot pay out {payout}: earnings are {earnings}",
            status_code=409,
        )


class UnauthorizedError(KnownError):
    def __init__(self, reason: str):
        super().__init__(
            kind=FailureKind.UNAUTHORIZED,
            message="Not authorized for this operation",
            detail=reason,
            status_code=403,
        )


# =============================================================================
# INPUT AND STORE FAILURES
# =============================================================================


class InvalidInputError(KnownError):
    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            status_code=422,
        )


class ObjectNotFoundError(KnownError):
    def __init__(self, object_type: str, object_id: str):
        self.object_type = object_type
        self.object_id = object_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"{object_type} '{object_id}' not found",
            status_code=404,
        )


class ConflictError(KnownError):
    def __init__(self, message: str):
        super().__init__(
            kind=FailureKind.CONFLICT,
            message=message,
            status_code=409,
        )
