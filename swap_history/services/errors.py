"""
Error taxonomy for ledger retrieval and swap decoding.
"""
from typing import Optional


class SwapHistoryError(Exception):
    """Base class for swap history errors"""
    pass


class RetrievalError(SwapHistoryError):
    """The ledger query failed (transport, HTTP status, malformed or error response)"""

    def __init__(self, message: str, method: Optional[str] = None, code: Optional[int] = None):
        super().__init__(message)
        self.method = method
        self.code = code


class RateLimitError(RetrievalError):
    """The RPC node rejected the request because of rate limiting"""
    pass


class DecodeError(SwapHistoryError):
    """A transaction did not contain the instruction shape expected for its venue"""

    def __init__(self, signature: str, message: str, venue: Optional[str] = None):
        super().__init__(f"{message} (signature={signature})")
        self.signature = signature
        self.venue = venue


class FetchCancelledError(SwapHistoryError):
    """The caller cancelled the fetch or its deadline passed between rounds"""
    pass
