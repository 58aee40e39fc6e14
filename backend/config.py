"""
Settings for the Gallery NFT backend, read from the environment / .env.

    DATABASE_URL              sqlite:/// or postgresql:// (async driver added in database.py)
    NFT_MODULE_URL            minting service holding the house wallet
    MINTING_TIMEOUT_SECONDS   per-request timeout towards the minting service and gateway
    IPFS_GATEWAY_HOST         host substituted for ipfs://ipfs/ locators
    SUBSCAN_URL, KODADOT_URL  bases of the "online check" links stored on rows
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):

    # ── Storage ─────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/gallery.db"

    # ── Minting service ─────────────────────────────────────────────
    nft_module_url: str = "http://localhost:3001"
    minting_timeout_seconds: float = 30.0
    ipfs_gateway_host: str = "flk-ipfs.xyz"

    # ── Explorer links ──────────────────────────────────────────────
    subscan_url: str = "https://assethub-kusama.subscan.io"
    kodadot_url: str = "https://kodadot.xyz/ahk"

    # ── Runtime ─────────────────────────────────────────────────────
    environment: str = "development"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def ipfs_gateway_base(self) -> str:
        """Replacement for the ipfs://ipfs/ prefix, e.g. https://flk-ipfs.xyz/ipfs/."""
        return f"https://{self.ipfs_gateway_host}/ipfs/"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate_production_settings(self):
        """
        Refuse to start in production with open CORS or a local minting service;
        outside production only warn.
        """
        problems = []
        if "*" in self.cors_origins:
            problems.append("CORS_ORIGINS contains '*'")
        if "localhost" in self.nft_module_url or "127.0.0.1" in self.nft_module_url:
            problems.append(f"NFT_MODULE_URL points at a local service ({self.nft_module_url})")

        if self.is_production:
            if problems:
                raise ValueError("Unsafe production settings: " + "; ".join(problems))
            logger.info("Production settings validated")
            return

        if self.database_url.startswith("sqlite"):
            problems.append("DATABASE_URL uses SQLite (single writer)")
        for p in problems:
            logger.warning(f"⚠️  {p}")


settings = Settings()
