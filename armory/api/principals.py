"""
Principal API endpoints.

Lists what a principal owns directly. A principal may only list its own
assets.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from armory.api.avatars import AvatarResponse
from armory.api.identity import get_principal
from armory.db.database import get_session
from armory.db.operations import get_principal_assets
from armory.models.failure import UnauthorizedError
from armory.models.weapon import resolve_kind

router = APIRouter(prefix="/principals", tags=["principals"])


class CoinResponse(BaseModel):
    coin_id: str
    value: int


class HeldWeaponResponse(BaseModel):
    weapon_id: str
    kind: str


class HeldCapabilityResponse(BaseModel):
    capability_id: str
    shop_id: str


class AssetsResponse(BaseModel):
    principal: str
    gold: int = 0
    avatars: list[AvatarResponse] = Field(default_factory=list)
    coins: list[CoinResponse] = Field(default_factory=list)
    weapons: list[HeldWeaponResponse] = Field(default_factory=list)
    capabilities: list[HeldCapabilityResponse] = Field(default_factory=list)
    treasury_ids: list[str] = Field(default_factory=list)


@router.get("/{principal_id}/assets", response_model=AssetsResponse)
async def get_assets(
    principal_id: str,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AssetsResponse:
    """List the caller's avatars, coins, loose weapons, capabilities and treasury."""
    if principal_id != principal:
        raise UnauthorizedError(f"{principal} cannot list the assets of {principal_id}")

    assets = await get_principal_assets(session, principal_id)
    return AssetsResponse(
        principal=principal_id,
        gold=assets.gold,
        avatars=[
            AvatarResponse(
                avatar_id=row.id,
                owner=row.owner,
                name=row.name,
                gold=row.gold,
                weapon_id=row.weapon_id,
            )
            for row in assets.avatars
        ],
        coins=[CoinResponse(coin_id=row.id, value=row.value) for row in assets.coins],
        weapons=[
            HeldWeaponResponse(weapon_id=row.id, kind=resolve_kind(row.kind).label())
            for row in assets.weapons
        ],
        capabilities=[
            HeldCapabilityResponse(capability_id=row.id, shop_id=row.shop_id)
            for row in assets.capabilities
        ],
        treasury_ids=[row.id for row in assets.treasuries],
    )
