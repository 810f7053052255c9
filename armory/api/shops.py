"""
Shop API endpoints.

Opening shops and the capability-gated administration surface:
registering kinds, pricing, forging, restocking, withdrawing earnings and
handing the capability on. Every privileged request names the capability
it acts with; the workspace only lends it to its current owner.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from armory.api.identity import get_principal
from armory.config import MAX_AMOUNT
from armory.db.database import get_session
from armory.db.operations import get_shop_row, get_weapon_rows_held_by, shop_from_rows
from armory.db.workspace import transaction
from armory.models.db import HOLDER_SHOP
from armory.models.failure import ObjectNotFoundError
from armory.models.shop import Shop
from armory.models.weapon import kind_from_name, kind_key
from armory.services import admin

router = APIRouter(tags=["shops"])


class InventoryResponse(BaseModel):
    kind: str = Field(..., description="Kind label, e.g. 'Axe'")
    kind_key: str = Field(..., description="Import path of the kind tag")
    price: int
    stock: int


class ShopResponse(BaseModel):
    shop_id: str
    earnings: int
    inventories: list[InventoryResponse] = Field(default_factory=list)


class ShopCreatedResponse(BaseModel):
    shop_id: str
    capability_id: str
    owner: str


class CapabilityRequest(BaseModel):
    capability_id: str = Field(..., description="OwnerCapability held by the caller")


class KindPriceRequest(CapabilityRequest):
    kind: str = Field(..., description="Kind label or 'module:QualName' key", examples=["Axe"])
    price: int = Field(..., ge=0, le=MAX_AMOUNT)


class ForgeRequest(CapabilityRequest):
    kind: str
    count: int = Field(default=1, ge=1)
    into_stock: bool = Field(
        default=True,
        description="Stock the new weapons directly; otherwise hand them to the caller",
    )


class ForgeResponse(BaseModel):
    shop_id: str
    kind: str
    weapon_ids: list[str]
    into_stock: bool


class RestockRequest(CapabilityRequest):
    kind: str
    weapon_ids: list[str] = Field(..., min_length=1)


class WithdrawRequest(CapabilityRequest):
    recipient: str | None = None


class WithdrawResponse(BaseModel):
    shop_id: str
    amount: int
    recipient: str


class CapabilityTransferRequest(BaseModel):
    recipient: str = Field(..., min_length=1)


class CapabilityResponse(BaseModel):
    capability_id: str
    shop_id: str
    owner: str


def shop_to_response(shop: Shop) -> ShopResponse:
    return ShopResponse(
        shop_id=shop.id,
        earnings=shop.earnings,
        inventories=[
            InventoryResponse(
                kind=kind.label(),
                kind_key=kind_key(kind),
                price=shop.price(kind),
                stock=shop.stock_count(kind),
            )
            for kind in sorted(shop.kinds(), key=kind_key)
        ],
    )


@router.post("/shops", response_model=ShopCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_shop(
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ShopCreatedResponse:
    """Open a new, empty shop. The caller receives its capability."""
    async with transaction(session, principal) as ws:
        shop, cap_id = admin.open_shop(ws.tx)
    return ShopCreatedResponse(shop_id=shop.id, capability_id=cap_id, owner=principal)


@router.get("/shops/{shop_id}", response_model=ShopResponse)
async def get_shop(
    shop_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ShopResponse:
    """Read a shop's earnings, prices and stock levels. Shops are public."""
    row = await get_shop_row(session, shop_id)
    if row is None:
        raise ObjectNotFoundError("Shop", shop_id)
    weapon_rows = await get_weapon_rows_held_by(session, HOLDER_SHOP, shop_id)
    return shop_to_response(shop_from_rows(row, weapon_rows))


@router.post("/shops/{shop_id}/kinds", response_model=ShopResponse)
async def register_kind(
    shop_id: str,
    request: KindPriceRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ShopResponse:
    """Open a new inventory for a weapon kind."""
    kind = kind_from_name(request.kind)
    async with transaction(session, principal) as ws:
        shop = await ws.shop(shop_id)
        cap = await ws.capability(request.capability_id)
        shop.register_kind(cap, kind, request.price)
    return shop_to_response(shop)


@router.put("/shops/{shop_id}/kinds/price", response_model=ShopResponse)
async def set_price(
    shop_id: str,
    request: KindPriceRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ShopResponse:
    """Change the price of a registered kind."""
    kind = kind_from_name(request.kind)
    async with transaction(session, principal) as ws:
        shop = await ws.shop(shop_id)
        cap = await ws.capability(request.capability_id)
        shop.set_price(cap, kind, request.price)
    return shop_to_response(shop)


@router.post("/shops/{shop_id}/forge", response_model=ForgeResponse)
async def forge(
    shop_id: str,
    request: ForgeRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ForgeResponse:
    """Mint new weapons of a kind, into stock or into the caller's hands."""
    kind = kind_from_name(request.kind)
    async with transaction(session, principal) as ws:
        shop = await ws.shop(shop_id)
        cap = await ws.capability(request.capability_id)
        if request.into_stock:
            weapon_ids = admin.forge_into_stock(ws.tx, cap, shop, kind, request.count)
        else:
            weapon_ids = admin.forge_weapons(ws.tx, cap, shop, kind, request.count)
    return ForgeResponse(
        shop_id=shop_id, kind=kind.label(), weapon_ids=weapon_ids, into_stock=request.into_stock
    )


@router.post("/shops/{shop_id}/restock", response_model=ShopResponse)
async def restock(
    shop_id: str,
    request: RestockRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ShopResponse:
    """Move weapons held by the caller into the shop's stock."""
    kind = kind_from_name(request.kind)
    async with transaction(session, principal) as ws:
        shop = await ws.shop(shop_id)
        cap = await ws.capability(request.capability_id)
        weapons = await ws.take_weapons(request.weapon_ids)
        admin.restock_all(cap, shop, kind, weapons)
    return shop_to_response(shop)


@router.post("/shops/{shop_id}/withdraw", response_model=WithdrawResponse)
async def withdraw(
    shop_id: str,
    request: WithdrawRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> WithdrawResponse:
    """Empty the shop's earnings into a coin for the recipient (default: caller)."""
    recipient = request.recipient or principal
    async with transaction(session, principal) as ws:
        shop = await ws.shop(shop_id)
        cap = await ws.capability(request.capability_id)
        amount = admin.withdraw_to(ws.tx, cap, shop, recipient)
    return WithdrawResponse(shop_id=shop_id, amount=amount, recipient=recipient)


@router.post("/capabilities/{capability_id}/transfer", response_model=CapabilityResponse)
async def transfer_capability(
    capability_id: str,
    request: CapabilityTransferRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CapabilityResponse:
    """Hand shop ownership to another principal."""
    async with transaction(session, principal) as ws:
        cap = await ws.capability(capability_id)
        shop_id = cap.shop_id
        admin.transfer_capability(ws.tx, cap, request.recipient)
    return CapabilityResponse(capability_id=capability_id, shop_id=shop_id, owner=request.recipient)
