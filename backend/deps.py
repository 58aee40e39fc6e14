"""
Shared FastAPI dependencies (pagination, user lookup, minting client).

Tests override get_minting_client to point the trial mint at a stub.
"""

from __future__ import annotations

from typing import TypedDict

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from services import association_store
from services.minting_client import MintingServiceClient, minting_client


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> Pagination:
    return {"limit": limit, "offset": offset}


async def existing_user(user_id: int, db: AsyncSession = Depends(get_db)) -> User:
    """Resolve the `{user_id}` path parameter; 404 when unknown."""
    return await association_store.require_user(db, user_id)


def get_minting_client() -> MintingServiceClient:
    return minting_client
