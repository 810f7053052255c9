"""
Caller identity.

The HTTP surface is a thin host: whoever sends the X-Principal header is
the transaction sender. Authentication is out of scope; authorization is
by possession of the objects the principal owns in the store.
"""

from typing import Annotated

from fastapi import Header

from armory.models.failure import UnauthorizedError


async def get_principal(
    x_principal: Annotated[str | None, Header(max_length=255)] = None,
) -> str:
    """Dependency that returns the calling principal."""
    if x_principal is None or not x_principal.strip():
        raise UnauthorizedError("missing X-Principal header")
    return x_principal.strip()
