import logging
from typing import Iterable, List, Optional

from swap_history.config import Config
from swap_history.models.responses import SwapHistoryResponse, TokenAccountInfo
from swap_history.models.swaps import TRACKED_PROGRAM_IDS, SwapRecord
from swap_history.services.base_service import BaseLedgerClient
from swap_history.services.errors import DecodeError, RetrievalError
from swap_history.services.solana_service import SolanaLedgerClient
from swap_history.services.swap_decoder import decode_swap
from swap_history.services.transaction_fetcher import fetch_swap_transactions

logger = logging.getLogger(__name__)


def referenced_addresses(swaps: Iterable[SwapRecord]) -> List[str]:
    """Every account referenced by ``swaps``, deduplicated in first-seen order."""
    seen = {}
    for swap in swaps:
        for address in swap.addresses:
            seen.setdefault(address, None)
    return list(seen)


class SwapHistoryService:
    """Resolves a wallet's swap history from the ledger."""

    def __init__(self, client: Optional[BaseLedgerClient] = None) -> None:
        self.client = client or SolanaLedgerClient()

    def get_swap_history(
        self,
        wallet_address: str,
        limit: Optional[int] = None,
        before: Optional[str] = None,
        skip_undecodable: bool = False,
        deadline: Optional[float] = None,
    ) -> SwapHistoryResponse:
        """Fetch and decode one page of swaps for a wallet.

        Args:
            wallet_address: Wallet to query
            limit: Maximum number of swaps; defaults to ``Config.DEFAULT_SWAP_LIMIT``
            before: Signature cursor returned as ``next_before`` by the previous page
            skip_undecodable: Skip transactions that fail to decode instead of raising
            deadline: ``time.monotonic()`` value after which no further rounds start

        Returns:
            SwapHistoryResponse with the decoded swaps and their token accounts

        Raises:
            RetrievalError: The ledger query failed.
            DecodeError: A transaction could not be decoded and ``skip_undecodable`` is false.
            ValueError: ``limit`` is less than 1.
        """
        limit = Config.DEFAULT_SWAP_LIMIT if limit is None else limit
        transactions = fetch_swap_transactions(
            self.client,
            wallet_address,
            limit=limit,
            before=before,
            program_ids=TRACKED_PROGRAM_IDS,
            deadline=deadline,
        )

        swaps: List[SwapRecord] = []
        skipped: List[str] = []
        for transaction in transactions:
            try:
                swaps.append(decode_swap(transaction))
            except DecodeError as e:
                if not skip_undecodable:
                    raise
                logger.warning(f"Skipping undecodable swap {e.signature}: {e}")
                skipped.append(e.signature)

        next_before = transactions[-1].signature if len(transactions) == limit else None
        return SwapHistoryResponse(
            wallet_address=wallet_address,
            swaps=swaps,
            next_before=next_before,
            skipped_signatures=skipped,
            accounts=self._resolve_accounts(referenced_addresses(swaps)),
        )

    def get_swap(self, signature: str) -> Optional[SwapRecord]:
        """Decode a single transaction; ``None`` when it is pruned or unknown."""
        [transaction] = self.client.get_transaction_details([signature], 1)
        if transaction is None:
            return None
        if transaction.failed:
            raise DecodeError(signature, "Transaction failed on-chain")
        return decode_swap(transaction)

    def _resolve_accounts(self, addresses: List[str]) -> List[TokenAccountInfo]:
        if not addresses:
            return []
        try:
            accounts = self.client.get_token_accounts(addresses)
        except RetrievalError as e:
            logger.warning(f"Could not resolve {len(addresses)} token accounts: {e}")
            return []
        return [accounts[address] for address in addresses if address in accounts]
