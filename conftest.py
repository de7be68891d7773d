"""
Pytest configuration: an in-memory ledger and transaction builders.
"""
import threading
import time
from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from swap_history.models.ledger import TOKEN_PROGRAM_ID, RawTransaction, SignatureInfo
from swap_history.models.responses import TokenAccountInfo
from swap_history.models.swaps import ORCA_SWAP_PROGRAM_ID, SERUM_SWAP_PROGRAM_ID
from swap_history.services.base_service import BaseLedgerClient

WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
MEMO_PROGRAM_ID = "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr"


def transfer_ix(source: str, destination: str, amount) -> dict:
    """An SPL token transfer in ``jsonParsed`` form."""
    return {
        "program": "spl-token",
        "programId": TOKEN_PROGRAM_ID,
        "parsed": {
            "type": "transfer",
            "info": {
                "source": source,
                "destination": destination,
                "amount": str(amount),
                "authority": WALLET,
            },
        },
    }


def program_ix(program_id: str) -> dict:
    """A top-level instruction the RPC node could not parse."""
    return {"programId": program_id, "accounts": [], "data": "3Bxs4Bc3VYuGVB19"}


def rpc_transaction(
    signature: str,
    slot: int = 1000,
    program_ids: Sequence[str] = (SERUM_SWAP_PROGRAM_ID,),
    inner: Optional[List[dict]] = None,
    block_time: Optional[int] = 1614882011,
    err=None,
) -> dict:
    """A ``getTransaction`` result in ``jsonParsed`` encoding."""
    return {
        "slot": slot,
        "blockTime": block_time,
        "meta": {"err": err, "innerInstructions": inner if inner is not None else []},
        "transaction": {
            "signatures": [signature],
            "message": {"instructions": [program_ix(program_id) for program_id in program_ids]},
        },
    }


def serum_swap(signature: str, slot: int = 1000, **kwargs) -> RawTransaction:
    inner = [{"index": 0, "instructions": [transfer_ix("X", "Y", 10), transfer_ix("Y", "X", 9)]}]
    return RawTransaction.from_rpc(
        rpc_transaction(signature, slot, program_ids=[SERUM_SWAP_PROGRAM_ID], inner=inner, **kwargs)
    )


def orca_swap(signature: str, slot: int = 1000, **kwargs) -> RawTransaction:
    inner = [{"index": 0, "instructions": [transfer_ix("A", "B", 500), transfer_ix("C", "D", 7)]}]
    return RawTransaction.from_rpc(
        rpc_transaction(signature, slot, program_ids=[ORCA_SWAP_PROGRAM_ID], inner=inner, **kwargs)
    )


def unrelated_transaction(signature: str, slot: int = 1000) -> RawTransaction:
    return RawTransaction.from_rpc(rpc_transaction(signature, slot, program_ids=[SYSTEM_PROGRAM_ID]))


def build_history(
    count: int,
    matching: Iterable[int] = (),
    failed: Iterable[int] = (),
    pruned: Iterable[int] = (),
    orca: Iterable[int] = (),
    top_slot: int = 10_000,
) -> List[tuple]:
    """A newest-first ledger of ``count`` entries ``(SignatureInfo, RawTransaction or None)``.

    Entry ``i`` has signature ``sig0000i`` and slot ``top_slot - i``.  Entries
    in ``matching`` are Serum swaps (Orca swaps if also in ``orca``), the rest
    are system transfers.
    """
    matching, failed, pruned, orca = set(matching), set(failed), set(pruned), set(orca)
    history = []
    for i in range(count):
        signature = f"sig{i:05d}"
        slot = top_slot - i
        err = {"InstructionError": [0, "Custom"]} if i in failed else None
        info = SignatureInfo(signature=signature, slot=slot, err=err, block_time=1614882011 - i)
        if i in pruned:
            transaction = None
        elif i in matching:
            builder = orca_swap if i in orca else serum_swap
            transaction = builder(signature, slot, err=err)
        else:
            transaction = unrelated_transaction(signature, slot)
        history.append((info, transaction))
    return history


class FakeLedgerClient(BaseLedgerClient):
    """In-memory ledger that records every call made against it."""

    def __init__(self, history: Optional[List[tuple]] = None, minimum_slot: int = 0) -> None:
        history = history or []
        self.signatures = [info for info, _ in history]
        self.details: Dict[str, Optional[RawTransaction]] = {info.signature: tx for info, tx in history}
        self.minimum_slot = minimum_slot
        self.accounts: Dict[str, TokenAccountInfo] = {}
        self.list_calls: List[Optional[str]] = []
        self.detail_calls: List[tuple] = []
        self.account_calls: List[List[str]] = []
        self.list_error: Optional[Exception] = None
        self.detail_error: Optional[Exception] = None
        self.account_error: Optional[Exception] = None
        # Seconds to sleep before answering a batch, keyed by its first signature.
        self.batch_delays: Dict[str, float] = {}
        self.completed_batches: List[str] = []
        self._lock = threading.Lock()

    def list_signatures(self, account, before=None, page_size=100):
        self.list_calls.append(before)
        if self.list_error:
            raise self.list_error
        start = 0
        if before is not None:
            start = [info.signature for info in self.signatures].index(before) + 1
        return self.signatures[start:start + page_size]

    def get_minimum_retained_slot(self):
        return self.minimum_slot

    def get_transaction_details(self, signatures, batch_cap):
        assert len(signatures) <= batch_cap
        with self._lock:
            self.detail_calls.append((list(signatures), batch_cap))
        if self.detail_error:
            raise self.detail_error
        time.sleep(self.batch_delays.get(signatures[0], 0))
        with self._lock:
            self.completed_batches.append(signatures[0])
        return [self.details.get(signature) for signature in signatures]

    def get_token_accounts(self, addresses):
        self.account_calls.append(list(addresses))
        if self.account_error:
            raise self.account_error
        return {address: self.accounts[address] for address in addresses if address in self.accounts}

    @property
    def requested_signatures(self) -> List[str]:
        return [signature for batch, _ in self.detail_calls for signature in batch]


@pytest.fixture
def wallet() -> str:
    return WALLET


@pytest.fixture
def ledger_factory():
    """Build a ``FakeLedgerClient`` from ``build_history`` arguments."""
    def _factory(count: int = 0, minimum_slot: int = 0, **kwargs) -> FakeLedgerClient:
        return FakeLedgerClient(build_history(count, **kwargs), minimum_slot=minimum_slot)
    return _factory
