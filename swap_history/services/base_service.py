"""
Base ledger client describing the calls the swap history pipeline depends on.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, TypeVar

from swap_history.models.ledger import RawTransaction, SignatureInfo
from swap_history.models.responses import TokenAccountInfo

T = TypeVar("T")


class BaseLedgerClient(ABC):
    """Read-only access to a signature-indexed ledger.

    Implementations raise ``RetrievalError`` for any failed query; they never
    report a failure as an empty result.
    """

    @abstractmethod
    def list_signatures(
        self, account: str, before: Optional[str] = None, page_size: int = 100
    ) -> List[SignatureInfo]:
        """List up to ``page_size`` signatures strictly older than ``before``, newest first."""
        pass

    @abstractmethod
    def get_minimum_retained_slot(self) -> int:
        """Oldest slot for which full transaction detail is still retained."""
        pass

    @abstractmethod
    def get_transaction_details(
        self, signatures: Sequence[str], batch_cap: int
    ) -> List[Optional[RawTransaction]]:
        """Fetch transaction details, aligned with ``signatures``.

        ``None`` entries denote pruned or unavailable transactions.
        """
        pass

    @abstractmethod
    def get_token_accounts(self, addresses: Sequence[str]) -> Dict[str, TokenAccountInfo]:
        """Resolve token accounts to their mint and balance metadata."""
        pass


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """Split ``items`` into consecutive chunks of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]
