"""
Trial Mint Service - one complimentary NFT per user, minted by the house wallet.

State machine (per request):
    ELIGIBLE → REJECTED                 user already claimed / artwork not theirs
    ELIGIBLE → REQUESTED → FAILED       minting service did not confirm
    ELIGIBLE → REQUESTED → MINTED       NFT stored and granted to the user

The eligibility gate runs before any network call. It is only a fast path:
two concurrent requests can both pass it, and association_store.set_trial_mint
(conditional update) decides which one is granted. The loser's NFT stays
stored under the house wallet, unassigned.
"""
import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Artwork
from domain.constants import DESCRIPTION_LABELS
from domain.enums import MintAttemptState, MintStatus
from domain.errors import AlreadyClaimedError, ExternalServiceError
from models import NftData
from services import association_store, reconciliation_service
from services.minting_client import MintingServiceClient, minting_client

logger = logging.getLogger(__name__)


def compose_description(artwork: Artwork) -> str:
    """'<Label>: <value>' for each non-empty descriptive field, joined by ', '."""
    values = {
        "description": artwork.description,
        "artist": artwork.artist.name if artwork.artist is not None else None,
        "year": artwork.year,
        "genre": artwork.genre,
        "material": artwork.material,
        "technique": artwork.technique,
        "worktype": artwork.worktype,
        "measurements": artwork.measurements,
    }
    return ", ".join(
        f"{label}: {values[field]}" for field, label in DESCRIPTION_LABELS if values[field]
    )


def _transition(user_id: int, state: MintAttemptState, detail: str = "") -> None:
    logger.info(f"Trial mint user {user_id}: {state.value}{' (' + detail + ')' if detail else ''}")


async def create_trial_mint(
    db: AsyncSession,
    user_id: int,
    artwork_id: int,
    client: Optional[MintingServiceClient] = None,
) -> MintStatus:
    """
    Mint the user's artwork as their trial NFT.

    Returns:
        MintStatus.MINTED_ALREADY: not eligible (or lost a concurrent claim)
        MintStatus.FAILED: minting service / gateway did not deliver
        MintStatus.SUCCESS: NFT stored and granted to the user

    Raises:
        DomainError / SQLAlchemyError: store failures while persisting the
            minted NFT (after rollback).
    """
    client = client or minting_client

    # Eligibility gate (no network I/O before this passes)
    user = await association_store.get_user(db, user_id)
    artwork = await association_store.get_artwork(db, user_id, artwork_id)

    if (
        user is None
        or artwork is None
        or user.trial_mint_claimed
        or user.trial_mint_nft_id is not None
    ):
        _transition(user_id, MintAttemptState.REJECTED, f"artwork {artwork_id}")
        return MintStatus.MINTED_ALREADY

    artwork_image = await association_store.get_artwork_image(db, user_id, artwork_id)
    if artwork_image is None:
        _transition(user_id, MintAttemptState.FAILED, f"artwork {artwork_id} has no image")
        return MintStatus.FAILED

    _transition(user_id, MintAttemptState.ELIGIBLE, f"artwork {artwork_id}")

    # Request the mint
    description = compose_description(artwork)
    _transition(user_id, MintAttemptState.REQUESTED)
    try:
        minted = await client.mint_trial(
            name=artwork.name,
            description=description,
            image=artwork_image.image,
            mime_type=artwork_image.mime_type,
        )
    except ExternalServiceError as e:
        _transition(user_id, MintAttemptState.FAILED, e.message)
        return MintStatus.FAILED

    nft_id = minted["nft_id"]
    metadata_cid = minted["metadata_cid"]
    if not nft_id or not metadata_cid:
        _transition(user_id, MintAttemptState.FAILED, "mint not confirmed")
        return MintStatus.FAILED

    # House wallet lookups + metadata dereference
    try:
        lookups = await asyncio.gather(
            client.get_house_collection_id(),
            client.get_house_wallet_address(),
            return_exceptions=True,
        )
        # both lookups have finished here; surface the first failure
        for outcome in lookups:
            if isinstance(outcome, BaseException):
                raise outcome
        collection_id, house_address = lookups
        metadata = await client.fetch_metadata(metadata_cid)
    except ExternalServiceError as e:
        logger.error(
            f"Trial mint user {user_id}: token {nft_id} was minted but its "
            f"metadata could not be resolved ({e.message}); nothing stored"
        )
        _transition(user_id, MintAttemptState.FAILED, e.message)
        return MintStatus.FAILED

    # Final metadata record
    nft_data = NftData(
        id=f"{collection_id}-{nft_id}",
        name=artwork.name,
        description=metadata.get("description"),
        image=client.normalize_locator(metadata.get("image")),
    )

    # Persist under the house wallet, then claim for the user
    try:
        nft = await reconciliation_service.create_nft(
            db, house_address, nft_data, artwork_id=artwork.id
        )
        await association_store.set_trial_mint(db, user_id, nft)
    except AlreadyClaimedError:
        await db.commit()
        logger.warning(
            f"Trial mint user {user_id}: claimed concurrently; "
            f"NFT {nft_data.id} stays with the house wallet unassigned"
        )
        _transition(user_id, MintAttemptState.REJECTED, "lost concurrent claim")
        return MintStatus.MINTED_ALREADY
    except Exception:
        await db.rollback()
        raise

    await db.commit()

    _transition(user_id, MintAttemptState.MINTED, f"NFT {nft.external_id}")
    return MintStatus.SUCCESS
