"""
Domain constants used across services/routers.
"""

# NFT external ids are "<collectionPart>-<tokenPart>", e.g. "u421-10".
# A "u" prefix marks the uniques pallet, bare numbers the nfts pallet.
NFT_ID_SEPARATOR = "-"

# Locators returned by the minting service / stored in metadata
IPFS_SCHEME_PREFIX = "ipfs://ipfs/"

# Minting service endpoints (relative to settings.nft_module_url)
MINT_TRIAL_PATH = "/trial/mint"
HOUSE_COLLECTION_PATH = "/eva/wallet/collection"
HOUSE_ADDRESS_PATH = "/eva/wallet/address"

# Skip reasons reported by batch ingest
SKIP_ALREADY_STORED = "already_stored"
SKIP_CONCURRENT_INSERT = "concurrent_insert"

# Labels used when composing a trial mint description, in output order
DESCRIPTION_LABELS = (
    ("description", "Description"),
    ("artist", "Artist"),
    ("year", "Year"),
    ("genre", "Genre"),
    ("material", "Material"),
    ("technique", "Technique"),
    ("worktype", "Worktype"),
    ("measurements", "Measurements"),
)
