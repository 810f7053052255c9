"""
Avatar API endpoints.

Creating avatars and running the four marketplace flows. Each request is
one transaction: it either commits entirely or leaves the store as it
was and reports the refusal.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from armory.api.identity import get_principal
from armory.config import MAX_AMOUNT
from armory.db.database import get_session
from armory.db.operations import avatar_from_rows, get_avatar_row, get_weapon_rows_held_by
from armory.db.workspace import transaction
from armory.models.avatar import Avatar, create_avatar
from armory.models.db import HOLDER_AVATAR
from armory.models.events import WeaponSwung
from armory.models.failure import ObjectNotFoundError, UnauthorizedError
from armory.models.weapon import kind_from_name
from armory.services import marketplace
from armory.services.marketplace import Receipt

router = APIRouter(prefix="/avatars", tags=["avatars"])


class AvatarCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, examples=["Brunhild"])
    coin_ids: list[str] = Field(
        default_factory=list,
        description="Coins held by the caller to fund the avatar's purse",
    )


class AvatarResponse(BaseModel):
    avatar_id: str
    owner: str
    name: str
    gold: int
    weapon_id: str | None = None
    weapon_kind: str | None = None


class BuyRequest(BaseModel):
    shop_id: str
    kind: str = Field(..., examples=["Axe"])
    amount: int = Field(..., ge=0, le=MAX_AMOUNT, description="Exact price being paid")


class SellRequest(BaseModel):
    shop_id: str
    kind: str


class TradeRequest(BaseModel):
    shop_id: str
    old_kind: str
    new_kind: str
    amount: int = Field(..., ge=0, le=MAX_AMOUNT, description="New price less the trade-in credit")


class RentRequest(BaseModel):
    shop_id: str
    kind: str
    amount: int = Field(..., ge=0, le=MAX_AMOUNT, description="Price less the trade-in credit")


class SwingResponse(BaseModel):
    weapon_id: str
    kind: str


class FlowResponse(BaseModel):
    flow: str
    shop_id: str
    weapon_id: str | None = None
    paid: int = 0
    received: int = 0
    avatar: AvatarResponse
    swings: list[SwingResponse] = Field(default_factory=list)


def avatar_to_response(avatar: Avatar, owner: str) -> AvatarResponse:
    weapon = avatar.peek_weapon()
    return AvatarResponse(
        avatar_id=avatar.id,
        owner=owner,
        name=avatar.name,
        gold=avatar.gold.value,
        weapon_id=avatar.weapon_id,
        weapon_kind=weapon.kind.label() if weapon is not None else None,
    )


def _flow_response(
    receipt: Receipt, avatar: Avatar, owner: str, events: tuple[Any, ...]
) -> FlowResponse:
    return FlowResponse(
        flow=receipt.flow,
        shop_id=receipt.shop_id,
        weapon_id=receipt.weapon_id,
        paid=receipt.paid,
        received=receipt.received,
        avatar=avatar_to_response(avatar, owner),
        swings=[
            SwingResponse(weapon_id=e.weapon_id, kind=e.kind)
            for e in events
            if isinstance(e, WeaponSwung)
        ],
    )


@router.post("", response_model=AvatarResponse, status_code=status.HTTP_201_CREATED)
async def create(
    request: AvatarCreateRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AvatarResponse:
    """Create an avatar for the caller, funded by the given coins."""
    async with transaction(session, principal) as ws:
        purse = await ws.take_coins(request.coin_ids)
        avatar = create_avatar(ws.tx, request.name, purse)
    return avatar_to_response(avatar, principal)


@router.get("/{avatar_id}", response_model=AvatarResponse)
async def get_avatar(
    avatar_id: str,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AvatarResponse:
    """Read one of the caller's avatars."""
    row = await get_avatar_row(session, avatar_id)
    if row is None:
        raise ObjectNotFoundError("Avatar", avatar_id)
    if row.owner != principal:
        raise UnauthorizedError(f"avatar {avatar_id} is not owned by {principal}")
    weapon_rows = await get_weapon_rows_held_by(session, HOLDER_AVATAR, avatar_id)
    return avatar_to_response(avatar_from_rows(row, weapon_rows), principal)


@router.post("/{avatar_id}/buy", response_model=FlowResponse)
async def buy(
    avatar_id: str,
    request: BuyRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> FlowResponse:
    """Buy one weapon and wield it."""
    kind = kind_from_name(request.kind)
    async with transaction(session, principal) as ws:
        avatar = await ws.avatar(avatar_id)
        shop = await ws.shop(request.shop_id)
        receipt = marketplace.buy(ws.tx, avatar, kind, request.amount, shop)
    return _flow_response(receipt, avatar, principal, ws.tx.events)


@router.post("/{avatar_id}/sell", response_model=FlowResponse)
async def sell(
    avatar_id: str,
    request: SellRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> FlowResponse:
    """Sell the wielded weapon back to the shop for half its price."""
    kind = kind_from_name(request.kind)
    async with transaction(session, principal) as ws:
        avatar = await ws.avatar(avatar_id)
        shop = await ws.shop(request.shop_id)
        receipt = marketplace.sell(ws.tx, avatar, kind, shop)
    return _flow_response(receipt, avatar, principal, ws.tx.events)


@router.post("/{avatar_id}/trade", response_model=FlowResponse)
async def trade(
    avatar_id: str,
    request: TradeRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> FlowResponse:
    """Trade the wielded weapon in for one of another kind."""
    old_kind = kind_from_name(request.old_kind)
    new_kind = kind_from_name(request.new_kind)
    async with transaction(session, principal) as ws:
        avatar = await ws.avatar(avatar_id)
        shop = await ws.shop(request.shop_id)
        receipt = marketplace.trade(ws.tx, avatar, old_kind, new_kind, request.amount, shop)
    return _flow_response(receipt, avatar, principal, ws.tx.events)


@router.post("/{avatar_id}/rent", response_model=FlowResponse)
async def rent(
    avatar_id: str,
    request: RentRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> FlowResponse:
    """Swing a shop weapon once and hand it straight back."""
    kind = kind_from_name(request.kind)
    async with transaction(session, principal) as ws:
        avatar = await ws.avatar(avatar_id)
        shop = await ws.shop(request.shop_id)
        receipt = marketplace.rent(ws.tx, avatar, kind, request.amount, shop)
    return _flow_response(receipt, avatar, principal, ws.tx.events)
