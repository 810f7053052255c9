"""
OwnerCapability: Possession Is Authorization.

A capability is minted exactly once, when its shop is created, and is
handed to the shop's creator. Every privileged shop operation takes the
capability as its first argument and checks it before touching state.

INVARIANT: There are no role lists and no identity checks. Holding a
live capability bound to a shop is necessary and sufficient to
administer that shop.

INVARIANT: Capabilities are linear. They cannot be copied; they can be
transferred, after which the previous holder's reference is dead.
"""

from armory.models.failure import UnauthorizedError
from armory.models.resource import LinearResource

# Only shop genesis and the storage boundary may construct capabilities
_CAPABILITY_SEAL = object()


class OwnerCapability(LinearResource):
    """Administrative authority over exactly one shop."""

    def __init__(self, cap_id: str, shop_id: str, *, _seal: object | None = None) -> None:
        if _seal is not _CAPABILITY_SEAL:
            raise TypeError("OwnerCapability is only issued at shop creation")
        super().__init__()
        self._id = cap_id
        self._shop_id = shop_id

    @classmethod
    def _issue(cls, cap_id: str, shop_id: str) -> "OwnerCapability":
        return cls(cap_id, shop_id, _seal=_CAPABILITY_SEAL)

    @classmethod
    def from_storage(cls, cap_id: str, shop_id: str) -> "OwnerCapability":
        """Rehydrate a persisted capability. Storage boundary only."""
        return cls(cap_id, shop_id, _seal=_CAPABILITY_SEAL)

    @property
    def id(self) -> str:
        return self._id

    @property
    def shop_id(self) -> str:
        return self._shop_id

    def _describe(self) -> str:
        return f"OwnerCapability({self._id})"

    def __repr__(self) -> str:
        return f"<OwnerCapability(id={self._id}, shop={self._shop_id})>"


def require_capability(cap: object, shop_id: str) -> OwnerCapability:
    """
    Gate for privileged operations.

    Raises:
        UnauthorizedError: If `cap` is not a live capability for `shop_id`
    """
    if not isinstance(cap, OwnerCapability):
        raise UnauthorizedError("an OwnerCapability is required")
    if cap.consumed:
        raise UnauthorizedError(f"capability {cap.id} has been transferred away")
    if cap.shop_id != shop_id:
        raise UnauthorizedError(f"capability {cap.id} does not govern shop {shop_id}")
    return cap
