"""
Domain enums (minimal set used for clarity in services).
"""

from enum import Enum


class TrialMintState(str, Enum):
    """Persisted per-user trial mint state (users.trial_mint_state)."""
    UNCLAIMED = "unclaimed"
    CLAIMED = "claimed"
    PAID = "paid"


class MintStatus(str, Enum):
    """Result of a trial mint request."""
    MINTED_ALREADY = "MintedAlready"
    SUCCESS = "Success"
    FAILED = "Failed"


class MintAttemptState(str, Enum):
    """Progress of a single trial mint request (logged, not persisted)."""
    ELIGIBLE = "eligible"
    REQUESTED = "requested"
    MINTED = "minted"
    REJECTED = "rejected"
    FAILED = "failed"


class IngestOutcome(str, Enum):
    INSERTED = "inserted"
    SKIPPED = "skipped"
