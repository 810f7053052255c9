"""
Linear Resources: Values That Are Moved, Never Copied or Dropped.

Weapons, balances, capabilities and invoices are linear: at any moment a
resource has exactly one place it lives, and it leaves that place only by
being moved somewhere else or explicitly consumed.

Python has no move checker, so the discipline is enforced at runtime:

INVARIANT: A linear resource cannot be copied. copy.copy, copy.deepcopy
and pickling all raise LinearityViolationError.

INVARIANT: A consumed resource cannot be used again. Every mutating
operation checks liveness first and raises ResourceConsumedError.

INVARIANT: A resource has at most one holder. Claiming a resource that
is already held raises LinearityViolationError.

Dropping a resource on the floor is caught one level up: the transaction
workspace reconciles every resource it handed out against where they all
ended up before anything is committed.
"""

from typing import Any, NoReturn

from armory.models.failure import FailureKind, KnownError


class LinearityViolationError(KnownError):
    """
    Raised when a linear resource would be duplicated or lost.

    This is an invariant violation, not a user error. The enclosing
    transaction MUST be aborted.
    """

    def __init__(self, resource: str, reason: str):
        self.resource = resource
        self.reason = reason
        super().__init__(
            kind=FailureKind.INVARIANT_VIOLATION,
            message=f"Linearity violated for {resource}: {reason}",
            status_code=500,
        )


class ResourceConsumedError(KnownError):
    """Raised when a resource is used after it was consumed or moved away."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(
            kind=FailureKind.INVARIANT_VIOLATION,
            message=f"{resource} has already been consumed",
            status_code=500,
        )


class LinearResource:
    """
    Base class for values with exactly-once ownership.

    Subclasses call `_ensure_live()` before every mutation, `_consume()`
    when the value is destroyed or handed off, and `_claim()` / `_release()`
    when a container takes or gives up the value.
    """

    def __init__(self) -> None:
        self._consumed = False
        self._holder: str | None = None

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def holder(self) -> str | None:
        """Label of the container currently holding this resource, if any."""
        return self._holder

    def _describe(self) -> str:
        return type(self).__name__

    def _ensure_live(self) -> None:
        if self._consumed:
            raise ResourceConsumedError(self._describe())

    def _consume(self) -> None:
        self._ensure_live()
        if self._holder is not None:
            raise LinearityViolationError(
                self._describe(), f"consumed while still held by {self._holder}"
            )
        self._consumed = True

    def _claim(self, holder: str) -> None:
        self._ensure_live()
        if self._holder is not None:
            raise LinearityViolationError(
                self._describe(), f"already held by {self._holder}, cannot move into {holder}"
            )
        self._holder = holder

    def _release(self) -> None:
        if self._holder is None:
            raise LinearityViolationError(self._describe(), "released without a holder")
        self._holder = None

    def __copy__(self) -> NoReturn:
        raise LinearityViolationError(self._describe(), "copying is not allowed")

    def __deepcopy__(self, memo: dict[int, Any]) -> NoReturn:
        raise LinearityViolationError(self._describe(), "copying is not allowed")

    def __reduce_ex__(self, protocol: Any) -> NoReturn:
        raise LinearityViolationError(self._describe(), "serialization is not allowed")
