"""
Input validation utilities for the Gallery NFT backend.

Wallet addresses are SS58 (Polkadot / Kusama Asset Hub): base58 of
<network prefix (1-2 bytes)> + <32-byte public key> + <2-byte checksum>,
where the checksum is the head of blake2b-512(b"SS58PRE" + prefix + key).
"""
import hashlib

import base58

from domain.errors import ValidationError

SS58_PREFIX = b"SS58PRE"
_VALID_DECODED_LENGTHS = (35, 36)


def ss58_checksum(payload: bytes) -> bytes:
    return hashlib.blake2b(SS58_PREFIX + payload, digest_size=64).digest()[:2]


def validate_wallet_address(address: str) -> str:
    """
    Validate an SS58 address format and checksum.

    Returns:
        The validated address (unchanged)

    Raises:
        ValidationError (400) if the address is invalid
    """
    if not address:
        raise ValidationError("Wallet address is required", field="wallet_address")

    try:
        decoded = base58.b58decode(address)
    except ValueError:
        raise ValidationError(
            f"Invalid wallet address encoding: {address[:12]}...", field="wallet_address"
        )

    if len(decoded) not in _VALID_DECODED_LENGTHS:
        raise ValidationError(
            f"Invalid wallet address length: {address[:12]}...", field="wallet_address"
        )

    if ss58_checksum(decoded[:-2]) != decoded[-2:]:
        raise ValidationError(
            f"Invalid wallet address checksum: {address[:12]}...", field="wallet_address"
        )

    return address
