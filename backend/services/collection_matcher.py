"""
Collection matcher - derives an NFT's owning collection from its id.

The indexer does not report which collection an NFT belongs to, so the
relation is rebuilt from the id scheme:

    NFT id          "u421-10"   → key "u421"
    Collection id   "u421"

A bare NFT id ("10") is its own key. It can match a collection that happens
to share that exact id; that false positive is a known limit of the scheme
and is kept as is.
"""
from typing import Iterable, Optional

from domain.constants import NFT_ID_SEPARATOR


def collection_key(nft_external_id: str) -> str:
    """First '-' separated segment of an NFT external id."""
    return nft_external_id.split(NFT_ID_SEPARATOR)[0]


def match_collection(nft_external_id: str, candidate_collections: Optional[Iterable]):
    """
    Return the first candidate whose external id equals the NFT's key, else None.

    Candidates are scanned in the order given; pass them in a stable order
    (creation order) if the result must be deterministic.
    """
    if not candidate_collections:
        return None

    key = collection_key(nft_external_id)
    for col in candidate_collections:
        if col.external_id == key:
            return col
    return None
