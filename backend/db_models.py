"""
SQLAlchemy ORM models for the Gallery NFT backend.

Tables:
    users           - accounts; carry the one-time trial mint state
    wallets         - chain addresses, optionally linked to a user
    artists         - artist profiles owned by a user
    artworks        - catalogued artworks (minted or not)
    artwork_images  - raw image bytes uploaded for an artwork
    collections     - on-chain collections observed for a wallet
    nfts            - on-chain NFTs observed for a wallet or trial-minted
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, LargeBinary, ForeignKey,
    CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from database import Base
from domain.enums import TrialMintState


class User(Base):
    """
    Gallery account.

    The trial mint is a single state column instead of separate flags so
    "paid but not claimed" cannot be stored; the check constraint ties the
    NFT reference to the claimed/paid states.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=True)
    trial_mint_state = Column(
        String(20), nullable=False, default=TrialMintState.UNCLAIMED.value
    )  # "unclaimed" | "claimed" | "paid"
    trial_mint_nft_id = Column(
        Integer,
        ForeignKey("nfts.id", use_alter=True, name="fk_users_trial_mint_nft_id"),
        nullable=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    wallets = relationship("Wallet", back_populates="user", lazy="select")

    __table_args__ = (
        CheckConstraint(
            "(trial_mint_state = 'unclaimed' AND trial_mint_nft_id IS NULL) OR "
            "(trial_mint_state IN ('claimed', 'paid') AND trial_mint_nft_id IS NOT NULL)",
            name="ck_users_trial_mint_state",
        ),
    )

    @property
    def trial_mint_claimed(self) -> bool:
        return self.trial_mint_state != TrialMintState.UNCLAIMED.value

    @property
    def trial_mint_paid(self) -> bool:
        return self.trial_mint_state == TrialMintState.PAID.value


class Wallet(Base):
    """Chain addresses tracked by the gallery (claimed or not)."""
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(64), unique=True, nullable=False, index=True)
    online_check = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="wallets")
    nfts = relationship("NFT", back_populates="wallet", lazy="select")
    collections = relationship(
        "Collection",
        back_populates="wallet",
        lazy="select",
        order_by=lambda: [Collection.created_at, Collection.id],
    )


class Artist(Base):
    """Artist profile; artworks are owned through the artist's user."""
    __tablename__ = "artists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Relationships
    artworks = relationship("Artwork", back_populates="artist", lazy="select")


class Artwork(Base):
    """Catalogued artwork. Its NFT (once minted) points back via nfts.artwork_id."""
    __tablename__ = "artworks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    year = Column(String(10), nullable=True)
    genre = Column(String(100), nullable=True)
    material = Column(String(100), nullable=True)
    technique = Column(String(100), nullable=True)
    worktype = Column(String(100), nullable=True)
    measurements = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    artist = relationship("Artist", back_populates="artworks")
    image = relationship("ArtworkImage", back_populates="artwork", uselist=False)
    nft = relationship("NFT", uselist=False, viewonly=True)


class ArtworkImage(Base):
    """Original image upload for an artwork (sent to the minting service)."""
    __tablename__ = "artwork_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    artwork_id = Column(Integer, ForeignKey("artworks.id"), unique=True, nullable=False)
    image = Column(LargeBinary, nullable=False)
    mime_type = Column(String(50), nullable=False, default="image/jpeg")

    artwork = relationship("Artwork", back_populates="image")


class Collection(Base):
    """On-chain collection. external_id is the chain-native id (e.g. 'u421')."""
    __tablename__ = "collections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(128), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    image = Column(Text, nullable=True)
    online_check = Column(Text, nullable=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    wallet = relationship("Wallet", back_populates="collections", lazy="joined")
    nfts = relationship("NFT", back_populates="collection", lazy="select")

    __table_args__ = (
        # list_collections_for_wallet: filter by wallet, order by creation
        Index("ix_collections_wallet_created", "wallet_id", "created_at"),
        # ids are never reused once a row is deleted
        {"sqlite_autoincrement": True},
    )

    @property
    def metadata_dict(self) -> dict:
        return {
            "id": self.external_id,
            "name": self.name,
            "description": self.description,
            "image": self.image,
        }


class NFT(Base):
    """
    On-chain NFT. external_id is '<collectionPart>-<tokenPart>' (e.g. 'u421-10')
    or a bare '<tokenPart>'.
    """
    __tablename__ = "nfts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(128), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    image = Column(Text, nullable=True)
    online_check = Column(Text, nullable=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    collection_id = Column(Integer, ForeignKey("collections.id"), nullable=True, index=True)
    artwork_id = Column(Integer, ForeignKey("artworks.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    wallet = relationship("Wallet", back_populates="nfts", lazy="joined")
    collection = relationship("Collection", back_populates="nfts")
    artwork = relationship("Artwork")

    __table_args__ = ({"sqlite_autoincrement": True},)

    @property
    def metadata_dict(self) -> dict:
        return {
            "id": self.external_id,
            "name": self.name,
            "description": self.description,
            "image": self.image,
        }
