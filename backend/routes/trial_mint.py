"""
Trial mint endpoints - one complimentary NFT per user.

Endpoints:
    POST /users/{user_id}/trial-mint      - Mint an owned artwork via the house wallet
    GET  /users/{user_id}/trial-mint      - Trial mint state + minted NFT
    POST /users/{user_id}/trial-mint/pay  - Mark the claimed trial mint as paid
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import get_minting_client
from domain.enums import MintStatus
from models import NFTResponse, TrialMintRequest, TrialMintResponse, TrialMintStatusResponse
from services import association_store, trial_mint_service
from services.minting_client import MintingServiceClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{user_id}/trial-mint", tags=["trial-mint"])


async def _status_response(db: AsyncSession, user_id: int) -> TrialMintStatusResponse:
    user = await association_store.require_user(db, user_id)
    nft = await association_store.get_trial_minted(db, user_id)
    return TrialMintStatusResponse(
        user_id=user.id,
        state=user.trial_mint_state,
        claimed=user.trial_mint_claimed,
        paid=user.trial_mint_paid,
        nft=NFTResponse.from_row(nft) if nft is not None else None,
    )


@router.post("", response_model=TrialMintResponse)
async def create_trial_mint(
    user_id: int,
    request: TrialMintRequest,
    db: AsyncSession = Depends(get_db),
    client: MintingServiceClient = Depends(get_minting_client),
):
    """
    Mint one of the user's artworks as their trial NFT.

    `status` is MintedAlready when the user is not eligible (already claimed,
    or the artwork is not theirs), Failed when the minting service did not
    deliver, Success otherwise.
    """
    status = await trial_mint_service.create_trial_mint(
        db, user_id, request.artwork_id, client=client
    )

    nft = None
    if status == MintStatus.SUCCESS:
        minted = await association_store.get_trial_minted(db, user_id)
        nft = NFTResponse.from_row(minted) if minted is not None else None
    return TrialMintResponse(status=status, nft=nft)


@router.get("", response_model=TrialMintStatusResponse)
async def get_trial_mint(user_id: int, db: AsyncSession = Depends(get_db)):
    return await _status_response(db, user_id)


@router.post("/pay", response_model=TrialMintStatusResponse)
async def pay_trial_mint(user_id: int, db: AsyncSession = Depends(get_db)):
    """Mark the trial mint as paid; it must have been claimed first."""
    await association_store.pay_trial_mint(db, user_id)
    await db.commit()
    return await _status_response(db, user_id)
