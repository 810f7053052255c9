"""
Gold balances and the mint authority.

INVARIANT: A Balance never goes negative. Every debit validates funds
first and raises InsufficientFundsError otherwise.

INVARIANT: Gold is conserved. split() and join() move amounts between
balances without creating or destroying any; only Treasury.mint()
creates gold, and it records every unit in total_supply.
"""

from typing import TYPE_CHECKING

from armory.config import MAX_AMOUNT
from armory.models.failure import InsufficientFundsError, InvalidInputError
from armory.models.resource import LinearResource

if TYPE_CHECKING:
    from armory.host.context import TxContext

# Only this module may construct a Balance with an arbitrary value
_MINT_SEAL = object()


def validate_amount(amount: int, what: str = "amount") -> int:
    """Reject non-integer, negative and out-of-range amounts."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidInputError(f"{what} must be an integer", detail=repr(amount))
    if amount < 0:
        raise InvalidInputError(f"{what} must not be negative", detail=str(amount))
    if amount > MAX_AMOUNT:
        raise InvalidInputError(f"{what} must be at most {MAX_AMOUNT}", detail=str(amount))
    return amount


class Balance(LinearResource):
    """
    A non-negative amount of gold with exactly one owner.

    Balances cannot be constructed directly. Use Balance.zero(), split an
    existing balance, mint through the Treasury, or restore one at the
    storage boundary with Balance.from_storage().
    """

    def __init__(self, value: int, *, _seal: object | None = None) -> None:
        if _seal is not _MINT_SEAL:
            raise TypeError("Balance cannot be constructed directly")
        super().__init__()
        self._value = value

    @classmethod
    def zero(cls) -> "Balance":
        return cls(0, _seal=_MINT_SEAL)

    @classmethod
    def from_storage(cls, value: int) -> "Balance":
        """Rehydrate a persisted balance. Storage boundary only."""
        return cls(validate_amount(value, "stored balance"), _seal=_MINT_SEAL)

    @property
    def value(self) -> int:
        return self._value

    def split(self, amount: int) -> "Balance":
        """Remove exactly `amount` from this balance and return it as a new one."""
        self._ensure_live()
        validate_amount(amount)
        if amount > self._value:
            raise InsufficientFundsError(requested=amount, available=self._value)
        self._value -= amount
        return Balance(amount, _seal=_MINT_SEAL)

    def join(self, other: "Balance") -> int:
        """Absorb `other` entirely. `other` is consumed. Returns the new value."""
        self._ensure_live()
        if other is self:
            raise InvalidInputError("Cannot join a balance with itself")
        amount = other._value
        if self._value + amount > MAX_AMOUNT:
            raise InvalidInputError(
                f"Joined balance would exceed {MAX_AMOUNT}", detail=f"{self._value} + {amount}"
            )
        other._consume()
        other._value = 0
        self._value += amount
        return self._value

    def withdraw_all(self) -> "Balance":
        """Empty this balance into a new one."""
        return self.split(self._value)

    def destroy_zero(self) -> None:
        """Consume an empty balance. Non-empty balances cannot be destroyed."""
        self._ensure_live()
        if self._value != 0:
            raise InvalidInputError(
                "Only an empty balance can be destroyed", detail=f"value={self._value}"
            )
        self._consume()

    def __repr__(self) -> str:
        state = " consumed" if self._consumed else ""
        return f"<Balance(value={self._value}{state})>"


class Treasury:
    """
    The one-time mint authority for gold.

    Holding the Treasury is the only way to create gold. Every minted unit
    is counted in total_supply, so the sum of all balances in the store
    always equals total_supply.
    """

    def __init__(self, treasury_id: str, total_supply: int = 0) -> None:
        self.id = treasury_id
        self.total_supply = validate_amount(total_supply, "total supply")

    def mint(self, amount: int) -> Balance:
        validate_amount(amount)
        if self.total_supply + amount > MAX_AMOUNT:
            raise InvalidInputError(
                f"Total supply would exceed {MAX_AMOUNT}",
                detail=f"{self.total_supply} + {amount}",
            )
        self.total_supply += amount
        return Balance(amount, _seal=_MINT_SEAL)

    def __repr__(self) -> str:
        return f"<Treasury(id={self.id}, total_supply={self.total_supply})>"


def create_treasury(tx: "TxContext") -> Treasury:
    """Bootstrap the mint authority and hand it to the caller."""
    treasury = Treasury(tx.fresh_id())
    tx.transfer_to(treasury, tx.sender)
    return treasury
