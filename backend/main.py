"""
Gallery NFT backend: FastAPI application.

Keeps the wallet → NFT/collection graph in sync with the chain indexer and
issues one trial mint per user through the house wallet of the minting
service.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from domain.errors import DomainError
from routes import health, nft, trial_mint, wallets

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _sqlite_directory(database_url: str):
    """Directory holding a file-backed SQLite database, if any."""
    if not database_url.startswith("sqlite") or ":memory:" in database_url:
        return None
    path = database_url.split(":///", 1)[-1]
    return os.path.dirname(path) or None


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: check settings, create tables. Shutdown: release the engine."""
    settings.validate_production_settings()

    db_dir = _sqlite_directory(settings.database_url)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    from database import engine, init_db
    await init_db()
    logger.info(f"Database ready; minting service at {settings.nft_module_url}")

    yield

    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="Gallery NFT API",
    description="Wallet NFT reconciliation and trial mints for the gallery",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (health, wallets, nft, trial_mint):
    app.include_router(module.router)


# ── Error envelope ──────────────────────────────────────────────────

def _error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message, "details": details},
        },
    )


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    """NotFoundError → "notfound", ConstraintViolationError → "constraintviolation", ..."""
    code = exc.__class__.__name__.replace("Error", "").lower()
    if exc.status_code >= 500:
        logger.error(f"{code} on {request.url.path}: {exc.message}")
    return _error_response(exc.status_code, code, exc.message, exc.details)


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    detail = exc.detail
    if isinstance(detail, str):
        return _error_response(exc.status_code, "http_error", detail)
    return _error_response(exc.status_code, "http_error", "Request failed", detail)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    """Log the traceback server-side; clients only get a generic 500."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return _error_response(500, "internal_server_error", "Internal server error")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8000)), log_level="info")
