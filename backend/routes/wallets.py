"""
Wallet endpoints - linking wallets to users, wallet inventory, indexer sync.

Endpoints:
    GET  /users/{user_id}/wallets                   - Wallets linked to a user
    POST /users/{user_id}/wallets                   - Link a wallet to a user
    GET  /wallets/{wallet_address}                  - Wallet with NFTs + collections
    GET  /wallets/{wallet_address}/nfts             - Paginated NFT inventory
    GET  /wallets/{wallet_address}/collections      - Collections of a wallet
    POST /wallets/{wallet_address}/nfts/sync        - Ingest indexer NFTs
    POST /wallets/{wallet_address}/collections/sync - Ingest indexer collections
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import Pagination, existing_user, pagination_params
from domain.enums import IngestOutcome
from domain.errors import NotFoundError
from domain.responses import paginated_response
from models import (
    CollectionResponse,
    ExternalCollection,
    ExternalNFT,
    IngestItemResult,
    IngestResponse,
    LinkWalletRequest,
    NFTResponse,
    WalletDetailResponse,
    WalletResponse,
)
from services import association_store, reconciliation_service
from utils.validators import validate_wallet_address

logger = logging.getLogger(__name__)

router = APIRouter(tags=["wallets"])


def _wallet_response(wallet) -> WalletResponse:
    return WalletResponse(
        id=wallet.id,
        wallet_address=wallet.wallet_address,
        online_check=wallet.online_check,
        user_id=wallet.user_id,
    )


def _ingest_response(wallet_address: str, items: List[IngestItemResult]) -> IngestResponse:
    inserted = sum(1 for i in items if i.outcome == IngestOutcome.INSERTED)
    return IngestResponse(
        wallet_address=wallet_address,
        inserted=inserted,
        skipped=len(items) - inserted,
        items=items,
    )


# ── GET /users/{user_id}/wallets ───────────────────────────────────

@router.get("/users/{user_id}/wallets", response_model=List[WalletResponse])
async def list_user_wallets(
    user: User = Depends(existing_user),
    db: AsyncSession = Depends(get_db),
):
    """All wallets linked to a user."""
    wallets = await association_store.get_user_wallets(db, user.id)
    return [_wallet_response(w) for w in wallets]


# ── POST /users/{user_id}/wallets ──────────────────────────────────

@router.post("/users/{user_id}/wallets", response_model=WalletResponse)
async def link_wallet(
    user_id: int,
    request: LinkWalletRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Link a wallet address to a user.

    Unseen addresses are created; an already tracked wallet is moved to this user.
    """
    validate_wallet_address(request.wallet_address)
    wallet = await association_store.assign_wallet(db, request.wallet_address, user_id)
    await db.commit()
    return _wallet_response(wallet)


# ── GET /wallets/{wallet_address} ──────────────────────────────────

@router.get("/wallets/{wallet_address}", response_model=WalletDetailResponse)
async def get_wallet(wallet_address: str, db: AsyncSession = Depends(get_db)):
    """Wallet with everything stored for it."""
    validate_wallet_address(wallet_address)
    wallet = await association_store.get_wallet(db, wallet_address)
    if wallet is None:
        raise NotFoundError("Wallet", wallet_address)

    return WalletDetailResponse(
        id=wallet.id,
        wallet_address=wallet.wallet_address,
        online_check=wallet.online_check,
        user_id=wallet.user_id,
        nfts=[NFTResponse.from_row(n) for n in wallet.nfts],
        collections=[CollectionResponse.from_row(c) for c in wallet.collections],
    )


# ── GET /wallets/{wallet_address}/nfts ─────────────────────────────

@router.get("/wallets/{wallet_address}/nfts")
async def list_wallet_nfts(
    wallet_address: str,
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    """Paginated NFT inventory of a wallet."""
    validate_wallet_address(wallet_address)
    nfts = await association_store.get_wallet_nfts(
        db, wallet_address, limit=page["limit"], offset=page["offset"]
    )
    total = await association_store.count_wallet_nfts(db, wallet_address)

    return paginated_response(
        items=[NFTResponse.from_row(n).model_dump(by_alias=True) for n in nfts],
        limit=page["limit"],
        offset=page["offset"],
        total=total,
    )


# ── GET /wallets/{wallet_address}/collections ──────────────────────

@router.get("/wallets/{wallet_address}/collections", response_model=List[CollectionResponse])
async def list_wallet_collections(wallet_address: str, db: AsyncSession = Depends(get_db)):
    validate_wallet_address(wallet_address)
    cols = await association_store.get_wallet_collections(db, wallet_address)
    return [CollectionResponse.from_row(c) for c in cols]


# ── POST /wallets/{wallet_address}/nfts/sync ───────────────────────

@router.post("/wallets/{wallet_address}/nfts/sync", response_model=IngestResponse)
async def sync_wallet_nfts(
    wallet_address: str,
    observed: List[ExternalNFT],
    user_id: Optional[int] = Query(None, description="Owner to link if the wallet is new"),
    db: AsyncSession = Depends(get_db),
):
    """
    Store the NFTs the indexer reports for a wallet.

    Already stored NFTs are skipped; new ones are linked to a stored
    collection of the wallet when their id prefix matches.
    """
    validate_wallet_address(wallet_address)
    items = await reconciliation_service.ingest_nfts(db, user_id, wallet_address, observed)
    return _ingest_response(wallet_address, items)


# ── POST /wallets/{wallet_address}/collections/sync ────────────────

@router.post("/wallets/{wallet_address}/collections/sync", response_model=IngestResponse)
async def sync_wallet_collections(
    wallet_address: str,
    observed: List[ExternalCollection],
    user_id: Optional[int] = Query(None, description="Owner to link if the wallet is new"),
    db: AsyncSession = Depends(get_db),
):
    """Store the collections the indexer reports for a wallet."""
    validate_wallet_address(wallet_address)
    items = await reconciliation_service.ingest_collections(db, user_id, wallet_address, observed)
    return _ingest_response(wallet_address, items)
