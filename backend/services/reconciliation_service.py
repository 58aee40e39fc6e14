"""
Reconciliation Service - merges indexer-reported NFTs and collections into the DB.

Flow (per wallet sync):
    1. Ensure the wallet row exists (created and linked to the user if unseen)
    2. For each observed item, in input order:
         - already stored        → skipped
         - new                   → inserted (NFTs matched to a collection first)
         - lost an insert race   → skipped
    3. Each insert is committed on its own; there is no batch transaction.
       Partial success is the normal outcome of a sync.

create_nft() is the single-NFT path shared with the trial mint workflow.
"""
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Collection, NFT, Wallet
from domain.constants import SKIP_ALREADY_STORED, SKIP_CONCURRENT_INSERT
from domain.enums import IngestOutcome
from domain.errors import ConstraintViolationError
from models import ExternalCollection, ExternalNFT, IngestItemResult, NftData
from services import association_store
from services.collection_matcher import match_collection

logger = logging.getLogger(__name__)


def _to_nft_data(item: ExternalNFT) -> NftData:
    """Indexer item → stored metadata (the feed's `metadata` is the description)."""
    return NftData(
        id=item.external_id,
        name=item.name,
        description=item.metadata,
        image=item.image,
    )


def _skipped(external_id: str, reason: str) -> IngestItemResult:
    return IngestItemResult(
        external_id=external_id,
        outcome=IngestOutcome.SKIPPED,
        reason=reason,
    )


async def _candidate_collections(
    db: AsyncSession, wallet: Wallet, created: bool
) -> Sequence[Collection]:
    # A wallet created just now cannot own collections yet
    if created:
        return []
    return await association_store.list_collections_for_wallet(db, wallet.id)


async def _insert_matched_nft(
    db: AsyncSession,
    wallet: Wallet,
    candidates: Sequence[Collection],
    nft_data: NftData,
    artwork_id: Optional[int] = None,
) -> NFT:
    collection = match_collection(nft_data.id, candidates)
    if collection is None:
        logger.info(f"NFT with id {nft_data.id} doesn't belong to any collection in the database")

    return await association_store.insert_nft(
        db, wallet, nft_data, collection=collection, artwork_id=artwork_id
    )


async def ingest_nfts(
    db: AsyncSession,
    user_id: Optional[int],
    wallet_address: str,
    observed: Iterable[ExternalNFT],
) -> List[IngestItemResult]:
    """
    Store the NFTs observed for a wallet, each at most once.

    Returns one IngestItemResult per observed item, in input order.

    Raises:
        NotFoundError: user_id given but no such user (wallet creation).
    """
    wallet, created = await association_store.get_or_create_wallet(db, wallet_address, user_id)
    await db.commit()
    candidates = await _candidate_collections(db, wallet, created)

    results: List[IngestItemResult] = []
    for item in observed:
        if await association_store.find_nft_by_external_id(db, item.external_id) is not None:
            logger.info(f"NFT with id {item.external_id} already exists in the database")
            results.append(_skipped(item.external_id, SKIP_ALREADY_STORED))
            continue

        try:
            nft = await _insert_matched_nft(db, wallet, candidates, _to_nft_data(item))
        except ConstraintViolationError:
            logger.warning(f"NFT with id {item.external_id} was inserted concurrently, skipping")
            results.append(_skipped(item.external_id, SKIP_CONCURRENT_INSERT))
            continue

        await db.commit()
        results.append(
            IngestItemResult(
                external_id=item.external_id,
                outcome=IngestOutcome.INSERTED,
                entity_id=nft.id,
            )
        )

    _log_summary("NFT", wallet_address, results)
    return results


async def ingest_collections(
    db: AsyncSession,
    user_id: Optional[int],
    wallet_address: str,
    observed: Iterable[ExternalCollection],
) -> List[IngestItemResult]:
    """Same as ingest_nfts for collections (no parent matching)."""
    wallet, _ = await association_store.get_or_create_wallet(db, wallet_address, user_id)
    await db.commit()

    results: List[IngestItemResult] = []
    for item in observed:
        if await association_store.find_collection_by_external_id(db, item.external_id) is not None:
            logger.info(f"Collection with id {item.external_id} already exists in the database")
            results.append(_skipped(item.external_id, SKIP_ALREADY_STORED))
            continue

        try:
            col = await association_store.insert_collection(db, wallet, _to_nft_data(item))
        except ConstraintViolationError:
            logger.warning(f"Collection with id {item.external_id} was inserted concurrently, skipping")
            results.append(_skipped(item.external_id, SKIP_CONCURRENT_INSERT))
            continue

        await db.commit()
        results.append(
            IngestItemResult(
                external_id=item.external_id,
                outcome=IngestOutcome.INSERTED,
                entity_id=col.id,
            )
        )

    _log_summary("Collection", wallet_address, results)
    return results


async def create_nft(
    db: AsyncSession,
    wallet_address: str,
    nft_data: NftData,
    artwork_id: Optional[int] = None,
) -> NFT:
    """
    Create one NFT for a wallet, linked to its collection when one matches.

    Unlike batch ingest, a duplicate external id is an error here.

    Raises:
        ConstraintViolationError: the external id is already stored.
    """
    wallet, created = await association_store.get_or_create_wallet(db, wallet_address)
    candidates = await _candidate_collections(db, wallet, created)
    return await _insert_matched_nft(db, wallet, candidates, nft_data, artwork_id=artwork_id)


def _log_summary(kind: str, wallet_address: str, results: List[IngestItemResult]) -> None:
    inserted = sum(1 for r in results if r.outcome == IngestOutcome.INSERTED)
    logger.info(
        f"{kind} sync for {wallet_address[:10]}...: "
        f"{inserted} inserted, {len(results) - inserted} skipped"
    )
