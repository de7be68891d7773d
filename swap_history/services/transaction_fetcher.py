"""
Cursor-based retrieval of swap transactions for a wallet.

The ledger lists signatures newest first in pages of at most
``page_size``.  Each round lists one page strictly before the cursor, drops
failed transactions, fetches the details of the rest and keeps those that
invoke one of the requested programs.  Rounds repeat until ``limit`` matches
are accumulated or the history runs out.

Detail retrieval is split around the node's minimum retained slot: signatures
at or above it are fetched in batches of ``batch_size``, older ones in
smaller batches of ``below_slot_batch_size``.  The batches of one round are
independent and run concurrently; their results are merged by signature and
re-emitted in listing order.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional

from swap_history.config import Config
from swap_history.models.ledger import PageState, RawTransaction, SignatureInfo
from swap_history.models.swaps import TRACKED_PROGRAM_IDS
from swap_history.services.base_service import BaseLedgerClient, chunked
from swap_history.services.errors import FetchCancelledError

logger = logging.getLogger(__name__)


def fetch_swap_transactions(
    client: BaseLedgerClient,
    account: str,
    limit: int = Config.DEFAULT_SWAP_LIMIT,
    before: Optional[str] = None,
    program_ids: Iterable[str] = TRACKED_PROGRAM_IDS,
    page_size: int = Config.SIGNATURE_PAGE_SIZE,
    batch_size: int = Config.TRANSACTION_BATCH_SIZE,
    below_slot_batch_size: int = Config.BELOW_MIN_SLOT_BATCH_SIZE,
    max_workers: int = Config.MAX_CONCURRENT_REQUESTS,
    cancel_event: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
) -> List[RawTransaction]:
    """Return up to ``limit`` successful transactions touching ``program_ids``, newest first.

    Args:
        client: Ledger client used for every query
        account: Wallet address whose history is walked
        limit: Maximum number of matching transactions to return
        before: Exclusive cursor; only signatures older than it are considered
        program_ids: Program identifiers a transaction must invoke to match
        page_size: Signatures listed per round
        batch_size: Detail batch size at or above the minimum retained slot
        below_slot_batch_size: Detail batch size below the minimum retained slot
        max_workers: Concurrent detail batches per round
        cancel_event: Checked between rounds; when set the fetch is abandoned
        deadline: ``time.monotonic()`` value after which the fetch is abandoned

    Raises:
        RetrievalError: A ledger query failed.
        FetchCancelledError: Cancelled or past the deadline between rounds.
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    wanted = frozenset(program_ids)
    state = PageState(before=before)
    minimum_slot = client.get_minimum_retained_slot()

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        while len(state.accumulated) < limit:
            _check_cancelled(state, cancel_event, deadline)

            signatures = client.list_signatures(account, before=state.before, page_size=page_size)
            state.record_round(len(signatures))
            if not signatures:
                break

            successful = [info for info in signatures if not info.failed]
            details = _fetch_details(
                client, pool, successful, minimum_slot, batch_size, below_slot_batch_size
            )
            matched = []
            for info in successful:
                transaction = details.get(info.signature)
                if transaction is not None and transaction.references_any(wanted):
                    matched.append(transaction)
            logger.debug(
                f"Round {state.rounds} for {account}: listed={len(signatures)} "
                f"successful={len(successful)} matched={len(matched)}"
            )

            state.accumulated.extend(matched)
            # The oldest listed signature bounds everything examined so far.
            state.before = signatures[-1].signature

            if len(signatures) < page_size:
                # A short page means no older history remains.
                logger.debug(
                    f"History of {account} exhausted after {state.rounds} rounds "
                    f"(first page held {state.first_round_size} signatures)"
                )
                break

    return state.accumulated[:limit]


def _check_cancelled(
    state: PageState, cancel_event: Optional[threading.Event], deadline: Optional[float]
) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise FetchCancelledError(f"Fetch cancelled after {state.rounds} rounds")
    if deadline is not None and time.monotonic() >= deadline:
        raise FetchCancelledError(f"Fetch deadline passed after {state.rounds} rounds")


def _fetch_details(
    client: BaseLedgerClient,
    pool: ThreadPoolExecutor,
    signatures: List[SignatureInfo],
    minimum_slot: int,
    batch_size: int,
    below_slot_batch_size: int,
) -> Dict[str, RawTransaction]:
    """Fetch details for ``signatures`` and index the available ones by signature."""
    above = [info.signature for info in signatures if info.slot >= minimum_slot]
    below = [info.signature for info in signatures if info.slot < minimum_slot]

    batches = []
    if above:
        batches.extend((batch, batch_size) for batch in chunked(above, batch_size))
    if below:
        batches.extend((batch, below_slot_batch_size) for batch in chunked(below, below_slot_batch_size))

    futures = [pool.submit(client.get_transaction_details, batch, cap) for batch, cap in batches]

    details: Dict[str, RawTransaction] = {}
    for future in futures:
        # result() re-raises the batch's RetrievalError
        for transaction in future.result():
            if transaction is not None and not transaction.failed:
                details[transaction.signature] = transaction
    return details
