"""
NFT and collection endpoints - metadata, ownership, removal.

Endpoints:
    GET    /nfts/{nft_id}                          - NFT with metadata
    PUT    /nfts/{nft_id}/metadata                 - Overwrite NFT metadata
    POST   /nfts/{nft_id}/owner                    - Move NFT to another stored wallet
    POST   /nfts/{nft_id}/artwork/{artwork_id}     - Link NFT to an artwork
    DELETE /nfts/{nft_id}                          - Remove NFT row
    GET    /collections/{collection_id}            - Collection with metadata
    DELETE /collections/{collection_id}            - Remove collection row
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from domain.errors import NotFoundError
from domain.responses import success_response
from models import ChangeOwnerRequest, CollectionResponse, NftData, NFTResponse
from services import association_store
from utils.validators import validate_wallet_address

logger = logging.getLogger(__name__)

router = APIRouter(tags=["nft"])


@router.get("/nfts/{nft_id}", response_model=NFTResponse)
async def get_nft(nft_id: int, db: AsyncSession = Depends(get_db)):
    nft = await association_store.require_nft(db, nft_id)
    return NFTResponse.from_row(nft)


@router.put("/nfts/{nft_id}/metadata", response_model=NFTResponse)
async def update_nft_metadata(
    nft_id: int,
    request: NftData,
    db: AsyncSession = Depends(get_db),
):
    """Overwrite the stored metadata. The external id must stay unique."""
    nft = await association_store.update_nft_metadata(db, nft_id, request)
    await db.commit()
    return NFTResponse.from_row(nft)


@router.post("/nfts/{nft_id}/owner", response_model=NFTResponse)
async def change_nft_owner(
    nft_id: int,
    request: ChangeOwnerRequest,
    db: AsyncSession = Depends(get_db),
):
    """Record a transfer: the target wallet must already be tracked."""
    validate_wallet_address(request.wallet_address)
    nft = await association_store.change_owner(db, nft_id, request.wallet_address)
    await db.commit()
    return NFTResponse.from_row(nft)


@router.post("/nfts/{nft_id}/artwork/{artwork_id}", response_model=NFTResponse)
async def link_nft_artwork(nft_id: int, artwork_id: int, db: AsyncSession = Depends(get_db)):
    nft = await association_store.assign_artwork_nft(db, nft_id, artwork_id)
    await db.commit()
    return NFTResponse.from_row(nft)


@router.delete("/nfts/{nft_id}")
async def remove_nft(nft_id: int, db: AsyncSession = Depends(get_db)):
    await association_store.remove_nft(db, nft_id)
    await db.commit()
    return success_response({"id": nft_id, "removed": True})


@router.get("/collections/{collection_id}", response_model=CollectionResponse)
async def get_collection(collection_id: int, db: AsyncSession = Depends(get_db)):
    col = await association_store.get_collection(db, collection_id)
    if col is None:
        raise NotFoundError("Collection", str(collection_id))
    return CollectionResponse.from_row(col)


@router.delete("/collections/{collection_id}")
async def remove_collection(collection_id: int, db: AsyncSession = Depends(get_db)):
    await association_store.remove_collection(db, collection_id)
    await db.commit()
    return success_response({"id": collection_id, "removed": True})
