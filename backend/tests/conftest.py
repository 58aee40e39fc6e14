"""
Pytest configuration and shared fixtures for the Gallery NFT backend tests.

Provides an in-memory SQLite session, a file-backed engine for concurrency
tests, sample users/artworks, and a stubbed minting service (httpx.MockTransport).
"""
import hashlib
from typing import AsyncGenerator, List, Optional

import base58
import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import db_models  # noqa: F401  (register tables on Base.metadata)
from database import Base, SQLITE_BUSY_TIMEOUT, enable_sqlite_foreign_keys
from services.minting_client import MintingServiceClient
from utils.validators import ss58_checksum


def make_ss58_address(seed: str, network_prefix: int = 2) -> str:
    """Deterministic, checksum-valid SS58 address for tests."""
    payload = bytes([network_prefix]) + hashlib.sha256(seed.encode()).digest()
    return base58.b58encode(payload + ss58_checksum(payload)).decode()


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture(scope="function")
async def session_factory(tmp_path):
    """
    Session factory over a file-backed SQLite database.

    Each session gets its own connection, so concurrent tasks behave like
    separate requests.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'gallery_test.db'}",
        connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
def sample_wallet() -> str:
    return make_ss58_address("collector-wallet")


@pytest.fixture
def other_wallet() -> str:
    return make_ss58_address("other-wallet")


@pytest.fixture
async def sample_user(db_session: AsyncSession):
    from db_models import User

    user = User(username="collector")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def sample_artwork(db_session: AsyncSession, sample_user):
    """Unminted artwork owned by sample_user, with an uploaded image."""
    from db_models import Artist, Artwork, ArtworkImage

    artist = Artist(name="Ada Painter", user_id=sample_user.id)
    db_session.add(artist)
    await db_session.flush()

    artwork = Artwork(
        artist_id=artist.id,
        name="Blue Hour",
        description="Harbor at dusk",
        year="2021",
        genre="Landscape",
        material="Canvas",
        technique="Oil",
        worktype="Painting",
        measurements="50x70 cm",
    )
    db_session.add(artwork)
    await db_session.flush()

    db_session.add(ArtworkImage(artwork_id=artwork.id, image=b"\x89PNG-bytes", mime_type="image/png"))
    await db_session.commit()
    await db_session.refresh(artwork)
    return artwork


# ── Minting Service Stub ─────────────────────────────────────────────


class MintServiceStub:
    """
    In-process stand-in for the minting service and the IPFS gateway.

    Defaults reproduce a confirmed mint: token "10", collection "u421",
    house wallet "5Houseaddr", metadata {description: "d", image: ipfs://ipfs/cidY}.
    """

    GATEWAY = "https://gateway.test/ipfs/"

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.nft_ids: List[str] = ["10"]
        self.metadata_cid: Optional[str] = "ipfs://ipfs/cidX"
        self.collection_id = "u421"
        self.house_address = "5Houseaddr"
        self.metadata = {"description": "d", "image": "ipfs://ipfs/cidY"}
        self.failing_paths: set = set()
        self._mints = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in self.failing_paths:
            raise httpx.ConnectError("connection refused", request=request)

        if request.method == "PUT" and path == "/trial/mint":
            nft_id = self.nft_ids[min(self._mints, len(self.nft_ids) - 1)]
            self._mints += 1
            return httpx.Response(200, json={"nftID": nft_id, "metadataCid": self.metadata_cid})
        if path == "/eva/wallet/collection":
            return httpx.Response(200, text=self.collection_id)
        if path == "/eva/wallet/address":
            return httpx.Response(200, text=self.house_address)
        if request.url.host == "gateway.test" and path.startswith("/ipfs/"):
            return httpx.Response(200, json=self.metadata)
        return httpx.Response(404)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def client(self) -> MintingServiceClient:
        return MintingServiceClient(
            base_url="http://mint.test",
            timeout=5.0,
            gateway_base=self.GATEWAY,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def mint_stub() -> MintServiceStub:
    return MintServiceStub()
