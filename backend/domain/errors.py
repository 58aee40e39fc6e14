"""
Domain exceptions for the ownership graph and the trial mint.

Each one is an HTTPException carrying `message` and `details`; main.py turns
them into the {"success": false, "error": {...}} envelope. Services raise
them directly and callers catch the specific subclass they can recover from
(batch ingest catches ConstraintViolationError, the trial mint catches
AlreadyClaimedError and ExternalServiceError).
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """User, wallet, artwork, NFT or collection missing (404)."""
    def __init__(self, resource_type: str, identifier: str):
        super().__init__(
            f"{resource_type} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource_type, "identifier": identifier},
        )


class ValidationError(DomainError):
    """Malformed input the pydantic models cannot catch, e.g. an SS58 checksum (400)."""
    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            f"Validation error on {field}: {message}" if field else message,
            details={"field": field} if field else None,
        )


class ConflictError(DomainError):
    """409 base."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class ConstraintViolationError(ConflictError):
    """
    A write lost against a unique external id, or hit the wrong trial mint state.

    Raised instead of letting the database's IntegrityError escape, so the
    session stays usable.
    """
    def __init__(self, resource_type: str, identifier: str, reason: str = "already exists"):
        super().__init__(
            f"{resource_type} {reason}: {identifier}",
            details={"resource": resource_type, "identifier": identifier},
        )
        self.resource_type = resource_type
        self.identifier = identifier


class AlreadyClaimedError(ConflictError):
    """The user's trial mint was granted before (possibly by a concurrent request)."""
    def __init__(self, user_id: int):
        super().__init__(
            f"Trial mint already claimed for user {user_id}",
            details={"user_id": user_id},
        )
        self.user_id = user_id


class ExternalServiceError(DomainError):
    """Minting service or IPFS gateway unreachable, slow, or answering garbage (502)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY, details=details)
