"""
Treasury API endpoints.

Bootstraps the one mint authority and mints gold, either as a coin for a
principal or straight into one of the caller's avatars.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from armory.api.identity import get_principal
from armory.config import MAX_AMOUNT
from armory.db.database import get_session
from armory.db.workspace import transaction
from armory.models.balance import create_treasury

router = APIRouter(prefix="/treasury", tags=["treasury"])


class TreasuryResponse(BaseModel):
    treasury_id: str
    owner: str
    total_supply: int = 0


class MintRequest(BaseModel):
    amount: int = Field(..., ge=0, le=MAX_AMOUNT, description="Gold to create")
    recipient: str | None = Field(
        default=None,
        description="Principal that receives the gold as a coin (default: caller)",
    )
    avatar_id: str | None = Field(
        default=None,
        description="Credit one of the caller's avatars instead of issuing a coin",
    )


class MintResponse(BaseModel):
    treasury_id: str
    amount: int
    total_supply: int
    recipient: str | None = None
    avatar_id: str | None = None


@router.post("", response_model=TreasuryResponse, status_code=status.HTTP_201_CREATED)
async def bootstrap_treasury(
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TreasuryResponse:
    """Create the mint authority. Fails with a conflict if it already exists."""
    async with transaction(session, principal) as ws:
        treasury = create_treasury(ws.tx)
    return TreasuryResponse(treasury_id=treasury.id, owner=principal)


@router.post("/{treasury_id}/mint", response_model=MintResponse)
async def mint(
    treasury_id: str,
    request: MintRequest,
    principal: Annotated[str, Depends(get_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MintResponse:
    """Mint gold. Only the treasury's owner may call this."""
    async with transaction(session, principal) as ws:
        treasury = await ws.treasury(treasury_id)
        gold = treasury.mint(request.amount)
        if request.avatar_id is not None:
            avatar = await ws.avatar(request.avatar_id)
            avatar.gold.join(gold)
            recipient = None
        else:
            recipient = request.recipient or principal
            ws.tx.transfer_to(gold, recipient)

    return MintResponse(
        treasury_id=treasury.id,
        amount=request.amount,
        total_supply=treasury.total_supply,
        recipient=recipient,
        avatar_id=request.avatar_id,
    )
