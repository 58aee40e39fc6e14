"""
Pydantic models for request/response validation.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from domain.enums import IngestOutcome, MintStatus


class ApiBase(BaseModel):
    """Shared base - allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Indexer feed ────────────────────────────────────────────────────

class ExternalNFT(ApiBase):
    """One NFT as reported by the chain indexer for a wallet."""
    external_id: str = Field(..., alias="externalId", min_length=1, max_length=128)
    name: str = ""
    image: Optional[str] = None
    metadata: Optional[str] = Field(
        default=None,
        description="Free-text description; stored as the NFT description",
    )


class ExternalCollection(ExternalNFT):
    """One collection as reported by the chain indexer (same shape)."""


# ── Stored metadata ─────────────────────────────────────────────────

class NftData(ApiBase):
    """
    Metadata record kept for NFTs and collections.

    `id` is the chain-native external id, not the row id.
    """
    id: str = Field(..., min_length=1, max_length=128)
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None


class NFTResponse(ApiBase):
    id: int
    metadata: NftData
    wallet_address: str = Field(..., alias="walletAddress")
    collection_id: Optional[int] = Field(None, alias="collectionId")
    artwork_id: Optional[int] = Field(None, alias="artworkId")
    online_check: Optional[str] = Field(None, alias="onlineCheck")

    @classmethod
    def from_row(cls, nft) -> "NFTResponse":
        return cls(
            id=nft.id,
            metadata=NftData(**nft.metadata_dict),
            wallet_address=nft.wallet.wallet_address,
            collection_id=nft.collection_id,
            artwork_id=nft.artwork_id,
            online_check=nft.online_check,
        )


class CollectionResponse(ApiBase):
    id: int
    metadata: NftData
    wallet_address: str = Field(..., alias="walletAddress")
    online_check: Optional[str] = Field(None, alias="onlineCheck")

    @classmethod
    def from_row(cls, col) -> "CollectionResponse":
        return cls(
            id=col.id,
            metadata=NftData(**col.metadata_dict),
            wallet_address=col.wallet.wallet_address,
            online_check=col.online_check,
        )


# ── Wallets ─────────────────────────────────────────────────────────

class LinkWalletRequest(ApiBase):
    wallet_address: str = Field(..., alias="walletAddress")


class WalletResponse(ApiBase):
    id: int
    wallet_address: str = Field(..., alias="walletAddress")
    online_check: Optional[str] = Field(None, alias="onlineCheck")
    user_id: Optional[int] = Field(None, alias="userId")


class WalletDetailResponse(WalletResponse):
    nfts: List[NFTResponse] = []
    collections: List[CollectionResponse] = []


class ChangeOwnerRequest(ApiBase):
    wallet_address: str = Field(..., alias="walletAddress")


# ── Reconciliation ──────────────────────────────────────────────────

class IngestItemResult(ApiBase):
    """Per-item outcome of a batch ingest."""
    external_id: str = Field(..., alias="externalId")
    outcome: IngestOutcome
    reason: Optional[str] = None
    entity_id: Optional[int] = Field(None, alias="entityId")


class IngestResponse(ApiBase):
    wallet_address: str = Field(..., alias="walletAddress")
    inserted: int
    skipped: int
    items: List[IngestItemResult]


# ── Trial mint ──────────────────────────────────────────────────────

class TrialMintRequest(ApiBase):
    artwork_id: int = Field(..., alias="artworkId")


class TrialMintResponse(ApiBase):
    status: MintStatus
    nft: Optional[NFTResponse] = None


class TrialMintStatusResponse(ApiBase):
    user_id: int = Field(..., alias="userId")
    state: str
    claimed: bool
    paid: bool
    nft: Optional[NFTResponse] = None
