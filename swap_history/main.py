import logging
import time
from typing import Optional

from fastapi import FastAPI, HTTPException, Path, Query

from swap_history.config import Config
from swap_history.middlewares import RequestLoggingMiddleware, add_cors_middleware
from swap_history.models.responses import ErrorResponse, SwapHistoryResponse
from swap_history.models.swaps import SwapRecord
from swap_history.services.errors import DecodeError, FetchCancelledError, RateLimitError, RetrievalError
from swap_history.services.swap_history_service import SwapHistoryService

logging.basicConfig(
    level=Config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Swap History API", version="0.1.0")

app.add_middleware(RequestLoggingMiddleware, log_requests=Config.LOG_REQUESTS)
add_cors_middleware(app)

swap_history_service = SwapHistoryService()

ERROR_RESPONSES = {
    422: {"model": ErrorResponse, "description": "A matching transaction could not be decoded"},
    429: {"model": ErrorResponse, "description": "The ledger RPC node is rate limiting"},
    502: {"model": ErrorResponse, "description": "The ledger query failed"},
    504: {"model": ErrorResponse, "description": "The request deadline passed"},
}


def _error_detail(error: str, error_code: str, exc: Exception, signature: Optional[str] = None) -> dict:
    return ErrorResponse(error=error, error_code=error_code, details=str(exc), signature=signature).model_dump()


def _raise_http_error(exc: Exception) -> None:
    if isinstance(exc, DecodeError):
        raise HTTPException(
            status_code=422,
            detail=_error_detail("Transaction could not be decoded as a swap", "DECODE_ERROR", exc, exc.signature),
        )
    if isinstance(exc, RateLimitError):
        raise HTTPException(status_code=429, detail=_error_detail("Ledger node rate limited", "RATE_LIMITED", exc))
    if isinstance(exc, RetrievalError):
        raise HTTPException(status_code=502, detail=_error_detail("Ledger query failed", "RETRIEVAL_ERROR", exc))
    if isinstance(exc, FetchCancelledError):
        raise HTTPException(status_code=504, detail=_error_detail("Request timed out", "TIMEOUT", exc))
    raise exc


@app.get("/")
async def root() -> dict:
    """Basic health check endpoint."""
    return {"status": "ok", "message": "Swap History API is running"}


@app.get("/swaps", response_model=SwapHistoryResponse, responses=ERROR_RESPONSES)
def swaps(
    wallet_address: str = Query(..., description="Wallet address to query", min_length=1),
    limit: int = Query(Config.DEFAULT_SWAP_LIMIT, description="Number of swaps to return", ge=1, le=100),
    before: Optional[str] = Query(None, description="Return swaps older than this signature (next_before of the previous page)"),
    skip_undecodable: bool = Query(False, description="Skip transactions that cannot be decoded instead of failing"),
    timeout: Optional[float] = Query(None, description="Seconds after which no further ledger rounds are started", gt=0),
):
    """
    Get the swap history of a wallet, newest first.  Pass the returned
    ``next_before`` as ``before`` to fetch the next page.
    """
    deadline = time.monotonic() + timeout if timeout is not None else None
    try:
        return swap_history_service.get_swap_history(
            wallet_address,
            limit=limit,
            before=before,
            skip_undecodable=skip_undecodable,
            deadline=deadline,
        )
    except (DecodeError, RetrievalError, FetchCancelledError) as e:
        _raise_http_error(e)


@app.get("/swaps/{signature}", response_model=SwapRecord, responses=ERROR_RESPONSES)
def swap_by_signature(signature: str = Path(..., description="Transaction signature", min_length=1)):
    """Decode a single swap transaction."""
    try:
        swap = swap_history_service.get_swap(signature)
    except (DecodeError, RetrievalError) as e:
        _raise_http_error(e)
    if swap is None:
        raise HTTPException(status_code=404, detail="Transaction not found or pruned from the ledger")
    return swap
