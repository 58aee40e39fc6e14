"""
Association Store - persistence for users, wallets, artworks, collections, NFTs.

Every read/write against the ownership graph goes through here. Functions
take the caller's AsyncSession and only flush; the caller decides when to
commit.

Concurrency rules:
    - Wallet creation is an atomic upsert on wallet_address, so concurrent
      callers converge on one row.
    - NFT / collection inserts are conditional on the unique external_id;
      the losing insert raises ConstraintViolationError instead of creating
      a duplicate.
    - set_trial_mint is a conditional update (only while unclaimed) and is
      the single place a trial mint can be granted.
"""
import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy import select, update, delete, exists, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from config import settings
from db_models import User, Wallet, Artist, Artwork, ArtworkImage, Collection, NFT
from domain.enums import TrialMintState
from domain.errors import NotFoundError, ConstraintViolationError, AlreadyClaimedError
from models import NftData
from services.collection_matcher import match_collection

logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────

def _insert(db: AsyncSession, model):
    """Dialect-specific INSERT supporting on_conflict_do_nothing."""
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert(model)
    return sqlite_insert(model)


def wallet_online_check(address: str) -> str:
    return f"{settings.subscan_url}/account/{address}"


def nft_online_check(external_id: str) -> str:
    return f"{settings.kodadot_url}/gallery/{external_id}"


def collection_online_check(external_id: str) -> str:
    return f"{settings.kodadot_url}/collection/{external_id}"


# ── Users ───────────────────────────────────────────────────────────

async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    """Load a user, refreshing any stale copy held by the session."""
    return await db.get(User, user_id, populate_existing=True)


async def require_user(db: AsyncSession, user_id: int) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User", str(user_id))
    return user


async def get_user_by_wallet(db: AsyncSession, wallet_address: str) -> Optional[User]:
    """User that owns the wallet, or None if the wallet is unknown or unclaimed."""
    result = await db.execute(
        select(User).join(Wallet, Wallet.user_id == User.id).where(
            Wallet.wallet_address == wallet_address
        )
    )
    return result.scalar_one_or_none()


# ── Wallets ─────────────────────────────────────────────────────────

async def get_or_create_wallet(
    db: AsyncSession,
    wallet_address: str,
    owner_user_id: Optional[int] = None,
) -> Tuple[Wallet, bool]:
    """
    Fetch the wallet for an address, creating it if unseen.

    The owner is only linked when the row is created here.

    Returns:
        (wallet, created)
    """
    if owner_user_id is not None:
        await require_user(db, owner_user_id)

    res = await db.execute(
        _insert(db, Wallet)
        .values(
            wallet_address=wallet_address,
            online_check=wallet_online_check(wallet_address),
            user_id=owner_user_id,
        )
        .on_conflict_do_nothing(index_elements=["wallet_address"])
    )
    created = getattr(res, "rowcount", 0) == 1

    result = await db.execute(
        select(Wallet)
        .where(Wallet.wallet_address == wallet_address)
        .execution_options(populate_existing=True)
    )
    wallet = result.scalar_one()

    if created:
        logger.info(f"Wallet created: {wallet_address[:10]}... (user: {owner_user_id})")
    return wallet, created


async def get_wallet(db: AsyncSession, wallet_address: str) -> Optional[Wallet]:
    """Wallet with its NFTs and collections loaded."""
    result = await db.execute(
        select(Wallet)
        .where(Wallet.wallet_address == wallet_address)
        .options(selectinload(Wallet.nfts), selectinload(Wallet.collections))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_wallet(db: AsyncSession, wallet_address: str) -> Wallet:
    result = await db.execute(select(Wallet).where(Wallet.wallet_address == wallet_address))
    wallet = result.scalar_one_or_none()
    if wallet is None:
        raise NotFoundError("Wallet", wallet_address)
    return wallet


async def get_user_wallets(db: AsyncSession, user_id: int) -> Sequence[Wallet]:
    result = await db.execute(
        select(Wallet).where(Wallet.user_id == user_id).order_by(Wallet.id)
    )
    return result.scalars().all()


async def assign_wallet(db: AsyncSession, wallet_address: str, user_id: int) -> Wallet:
    """
    Link a wallet to a user (users may hold several wallets).

    Unseen addresses are created; an existing wallet is moved to the user.
    """
    wallet, created = await get_or_create_wallet(db, wallet_address, user_id)
    if not created and wallet.user_id != user_id:
        if wallet.user_id is not None:
            logger.info(
                f"Wallet {wallet_address[:10]}... moved from user {wallet.user_id} to {user_id}"
            )
        wallet.user_id = user_id
        await db.flush()
    return wallet


# ── Collections ─────────────────────────────────────────────────────

async def find_collection_by_external_id(db: AsyncSession, external_id: str) -> Optional[Collection]:
    result = await db.execute(select(Collection).where(Collection.external_id == external_id))
    return result.scalar_one_or_none()


async def list_collections_for_wallet(db: AsyncSession, wallet_id: int) -> Sequence[Collection]:
    """Collections of a wallet in creation order (feeds the matcher's tie-break)."""
    result = await db.execute(
        select(Collection)
        .where(Collection.wallet_id == wallet_id)
        .order_by(Collection.created_at, Collection.id)
    )
    return result.scalars().all()


async def get_wallet_collections(db: AsyncSession, wallet_address: str) -> Sequence[Collection]:
    result = await db.execute(
        select(Collection)
        .join(Wallet, Collection.wallet_id == Wallet.id)
        .where(Wallet.wallet_address == wallet_address)
        .order_by(Collection.created_at, Collection.id)
    )
    return result.scalars().all()


async def insert_collection(db: AsyncSession, wallet: Wallet, col_data: NftData) -> Collection:
    """
    Insert a collection unless its external id is already stored.

    Raises:
        ConstraintViolationError: the external id exists (possibly inserted
            by a concurrent request after the caller's own check).
    """
    res = await db.execute(
        _insert(db, Collection)
        .values(
            external_id=col_data.id,
            name=col_data.name,
            description=col_data.description,
            image=col_data.image,
            online_check=collection_online_check(col_data.id),
            wallet_id=wallet.id,
        )
        .on_conflict_do_nothing(index_elements=["external_id"])
    )
    if getattr(res, "rowcount", 0) == 0:
        raise ConstraintViolationError("Collection", col_data.id)
    return await find_collection_by_external_id(db, col_data.id)


async def get_collection(db: AsyncSession, collection_id: int) -> Optional[Collection]:
    return await db.get(Collection, collection_id, populate_existing=True)


async def get_collection_metadata(db: AsyncSession, collection_id: int) -> Optional[dict]:
    col = await get_collection(db, collection_id)
    return col.metadata_dict if col else None


async def remove_collection(db: AsyncSession, collection_id: int) -> None:
    """
    Delete a collection that no NFT belongs to.

    Raises:
        NotFoundError: no collection with this id.
        ConstraintViolationError: NFTs still reference the collection.
    """
    col = (
        await db.execute(select(Collection).where(Collection.id == collection_id))
    ).scalar_one_or_none()
    if col is None:
        raise NotFoundError("Collection", str(collection_id))

    if (await db.execute(select(exists().where(NFT.collection_id == collection_id)))).scalar():
        raise ConstraintViolationError("Collection", col.external_id, reason="still has NFTs")

    res = await db.execute(delete(Collection).where(Collection.id == collection_id))
    if res.rowcount == 0:
        raise NotFoundError("Collection", str(collection_id))
    logger.info(f"Collection {col.external_id} removed")


# ── NFTs ────────────────────────────────────────────────────────────

async def find_nft_by_external_id(db: AsyncSession, external_id: str) -> Optional[NFT]:
    result = await db.execute(select(NFT).where(NFT.external_id == external_id))
    return result.scalar_one_or_none()


async def insert_nft(
    db: AsyncSession,
    wallet: Wallet,
    nft_data: NftData,
    collection: Optional[Collection] = None,
    artwork_id: Optional[int] = None,
) -> NFT:
    """
    Insert an NFT unless its external id is already stored.

    Raises:
        ConstraintViolationError: the external id exists.
    """
    res = await db.execute(
        _insert(db, NFT)
        .values(
            external_id=nft_data.id,
            name=nft_data.name,
            description=nft_data.description,
            image=nft_data.image,
            online_check=nft_online_check(nft_data.id),
            wallet_id=wallet.id,
            collection_id=collection.id if collection is not None else None,
            artwork_id=artwork_id,
        )
        .on_conflict_do_nothing(index_elements=["external_id"])
    )
    if getattr(res, "rowcount", 0) == 0:
        raise ConstraintViolationError("NFT", nft_data.id)
    return await find_nft_by_external_id(db, nft_data.id)


async def get_nft(db: AsyncSession, nft_id: int) -> Optional[NFT]:
    return await db.get(NFT, nft_id, populate_existing=True)


async def require_nft(db: AsyncSession, nft_id: int) -> NFT:
    nft = await get_nft(db, nft_id)
    if nft is None:
        raise NotFoundError("NFT", str(nft_id))
    return nft


async def get_nft_metadata(db: AsyncSession, nft_id: int) -> Optional[dict]:
    nft = await get_nft(db, nft_id)
    return nft.metadata_dict if nft else None


async def get_wallet_nfts(
    db: AsyncSession,
    wallet_address: str,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Sequence[NFT]:
    query = (
        select(NFT)
        .join(Wallet, NFT.wallet_id == Wallet.id)
        .where(Wallet.wallet_address == wallet_address)
        .order_by(NFT.id)
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def count_wallet_nfts(db: AsyncSession, wallet_address: str) -> int:
    result = await db.execute(
        select(func.count(NFT.id))
        .join(Wallet, NFT.wallet_id == Wallet.id)
        .where(Wallet.wallet_address == wallet_address)
    )
    return result.scalar() or 0


async def update_nft_metadata(db: AsyncSession, nft_id: int, nft_data: NftData) -> NFT:
    """
    Overwrite an NFT's metadata (independent of ingestion).

    A new external id re-links the NFT to the wallet's collection matching
    its prefix, or to none.

    Raises:
        NotFoundError: no NFT with this id.
        ConstraintViolationError: the new external id belongs to another NFT.
    """
    nft = await require_nft(db, nft_id)

    if nft_data.id != nft.external_id:
        other = await find_nft_by_external_id(db, nft_data.id)
        if other is not None:
            raise ConstraintViolationError("NFT", nft_data.id)
        nft.online_check = nft_online_check(nft_data.id)
        # the collection follows the id prefix
        collection = match_collection(
            nft_data.id, await list_collections_for_wallet(db, nft.wallet_id)
        )
        nft.collection_id = collection.id if collection is not None else None

    nft.external_id = nft_data.id
    nft.name = nft_data.name
    nft.description = nft_data.description
    nft.image = nft_data.image
    await db.flush()
    return nft


async def remove_nft(db: AsyncSession, nft_id: int) -> None:
    """
    Delete an NFT that is nobody's trial mint.

    Raises:
        NotFoundError: no NFT with this id.
        ConstraintViolationError: a user's trial mint points at the NFT.
    """
    nft = await require_nft(db, nft_id)

    if (await db.execute(select(exists().where(User.trial_mint_nft_id == nft_id)))).scalar():
        raise ConstraintViolationError("NFT", nft.external_id, reason="is a trial mint")

    res = await db.execute(delete(NFT).where(NFT.id == nft_id))
    if res.rowcount == 0:
        raise NotFoundError("NFT", str(nft_id))
    logger.info(f"NFT {nft.external_id} removed")


async def change_owner(db: AsyncSession, nft_id: int, wallet_address: str) -> NFT:
    """Move an NFT to another stored wallet."""
    wallet = await require_wallet(db, wallet_address)
    nft = await require_nft(db, nft_id)
    nft.wallet = wallet
    await db.flush()
    logger.info(f"NFT {nft.external_id} now owned by {wallet_address[:10]}...")
    return nft


# ── Artworks ────────────────────────────────────────────────────────

async def get_artwork(db: AsyncSession, user_id: int, artwork_id: int) -> Optional[Artwork]:
    """Artwork owned (through its artist) by the user, else None."""
    result = await db.execute(
        select(Artwork)
        .join(Artist, Artwork.artist_id == Artist.id)
        .where(Artwork.id == artwork_id, Artist.user_id == user_id)
        .options(selectinload(Artwork.artist))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_artwork_image(db: AsyncSession, user_id: int, artwork_id: int) -> Optional[ArtworkImage]:
    result = await db.execute(
        select(ArtworkImage)
        .join(Artwork, ArtworkImage.artwork_id == Artwork.id)
        .join(Artist, Artwork.artist_id == Artist.id)
        .where(Artwork.id == artwork_id, Artist.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def is_artwork_minted(db: AsyncSession, artwork_id: int) -> bool:
    result = await db.execute(select(exists().where(NFT.artwork_id == artwork_id)))
    return bool(result.scalar())


async def assign_artwork_nft(db: AsyncSession, nft_id: int, artwork_id: int) -> NFT:
    nft = await require_nft(db, nft_id)
    if await db.get(Artwork, artwork_id) is None:
        raise NotFoundError("Artwork", str(artwork_id))
    nft.artwork_id = artwork_id
    await db.flush()
    return nft


# ── Trial mint ──────────────────────────────────────────────────────

async def set_trial_mint(db: AsyncSession, user_id: int, nft: NFT) -> None:
    """
    Grant the user's trial mint: unclaimed → claimed with the NFT attached.

    Conditional update, so of two racing callers exactly one succeeds.

    Raises:
        AlreadyClaimedError: the user was already claimed or paid.
        NotFoundError: no such user.
    """
    res = await db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.trial_mint_state == TrialMintState.UNCLAIMED.value,
        )
        .values(
            trial_mint_state=TrialMintState.CLAIMED.value,
            trial_mint_nft_id=nft.id,
        )
    )
    if res.rowcount == 0:
        await require_user(db, user_id)
        raise AlreadyClaimedError(user_id)
    logger.info(f"Trial mint granted: user {user_id} ← NFT {nft.external_id}")


async def pay_trial_mint(db: AsyncSession, user_id: int) -> User:
    """
    Mark a claimed trial mint as paid. Paying twice is a no-op.

    Raises:
        ConstraintViolationError: the trial mint has not been claimed yet.
        NotFoundError: no such user.
    """
    res = await db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.trial_mint_state == TrialMintState.CLAIMED.value,
        )
        .values(trial_mint_state=TrialMintState.PAID.value)
    )
    user = await require_user(db, user_id)
    if res.rowcount == 0 and not user.trial_mint_paid:
        raise ConstraintViolationError("Trial mint", str(user_id), reason="not claimed")
    return user


async def get_trial_minted(db: AsyncSession, user_id: int) -> Optional[NFT]:
    """The user's trial-minted NFT, or None if not claimed yet."""
    user = await require_user(db, user_id)
    if user.trial_mint_nft_id is None:
        return None
    return await get_nft(db, user.trial_mint_nft_id)
