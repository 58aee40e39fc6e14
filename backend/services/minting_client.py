"""
Minting Service client - talks to the external NFT module that mints on
behalf of the gallery's house wallet.

Endpoints (relative to settings.nft_module_url):
    PUT /trial/mint              multipart (file, name, metadata) → {nftID, metadataCid}
    GET /eva/wallet/collection   plain-text collection id of the house wallet
    GET /eva/wallet/address      plain-text address of the house wallet

Metadata locators come back as ipfs://ipfs/<cid>; they are rewritten to the
configured HTTP gateway before being fetched.

Every network, timeout, status or payload problem is raised as
ExternalServiceError so callers handle a single failure type.
"""
import logging
from typing import Optional

import httpx

from config import settings
from domain.constants import (
    HOUSE_ADDRESS_PATH,
    HOUSE_COLLECTION_PATH,
    IPFS_SCHEME_PREFIX,
    MINT_TRIAL_PATH,
)
from domain.errors import ExternalServiceError

logger = logging.getLogger(__name__)


def convert_ipfs_link(locator: str, gateway_base: Optional[str] = None) -> str:
    """
    ipfs://ipfs/<rest> → https://<gateway-host>/ipfs/<rest>.

    Anything else is returned unchanged.
    """
    if locator and locator.startswith(IPFS_SCHEME_PREFIX):
        base = gateway_base or settings.ipfs_gateway_base
        return base + locator[len(IPFS_SCHEME_PREFIX):]
    return locator


class MintingServiceClient:
    """Async client for the minting service and the IPFS gateway."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        gateway_base: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._gateway_base = gateway_base
        self._transport = transport

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.nft_module_url).rstrip("/")

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else settings.minting_timeout_seconds

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
        except httpx.TimeoutException as e:
            logger.error(f"Minting service timeout on {method} {url}: {e}")
            raise ExternalServiceError("Minting service timed out", details={"url": url}) from e
        except httpx.HTTPError as e:
            logger.error(f"Minting service request failed on {method} {url}: {e}")
            raise ExternalServiceError("Minting service request failed", details={"url": url}) from e

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            payload = response.json()
        except ValueError as e:
            raise ExternalServiceError(
                "Malformed JSON from minting service", details={"url": str(response.url)}
            ) from e
        if not isinstance(payload, dict):
            raise ExternalServiceError(
                "Unexpected payload from minting service", details={"url": str(response.url)}
            )
        return payload

    async def mint_trial(
        self,
        name: str,
        description: str,
        image: bytes,
        mime_type: str = "image/jpeg",
    ) -> dict:
        """
        Ask the minting service to mint an NFT from the house wallet.

        Returns:
            dict: {nft_id, metadata_cid}; either may be None when the service
            did not confirm the mint.
        """
        response = await self._request(
            "PUT",
            MINT_TRIAL_PATH,
            files={"file": ("artwork", image, mime_type)},
            data={"name": name, "metadata": description},
        )
        payload = self._json(response)

        nft_id = payload.get("nftID")
        metadata_cid = payload.get("metadataCid")
        logger.info(f"Trial mint response: nftID={nft_id}, metadataCid={metadata_cid}")
        return {
            "nft_id": str(nft_id) if nft_id is not None else None,
            "metadata_cid": metadata_cid,
        }

    async def get_house_collection_id(self) -> str:
        response = await self._request("GET", HOUSE_COLLECTION_PATH)
        return response.text.strip()

    async def get_house_wallet_address(self) -> str:
        response = await self._request("GET", HOUSE_ADDRESS_PATH)
        return response.text.strip()

    def normalize_locator(self, locator: Optional[str]) -> Optional[str]:
        return convert_ipfs_link(locator, self._gateway_base)

    async def fetch_metadata(self, locator: str) -> dict:
        """Dereference a metadata locator (normalized to the gateway) into its JSON."""
        url = self.normalize_locator(locator)
        response = await self._request("GET", url)
        metadata = self._json(response)
        for field in ("description", "image"):
            value = metadata.get(field)
            if value is not None and not isinstance(value, str):
                logger.error(f"Metadata at {url} has a non-string {field}: {value!r}")
                raise ExternalServiceError(
                    f"Malformed metadata field '{field}'", details={"url": url, "field": field}
                )
        return metadata


# Global client instance
minting_client = MintingServiceClient()
