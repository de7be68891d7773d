"""
Tests for the Solana JSON-RPC ledger client.
"""
import threading

import pytest
import requests

from conftest import WALLET, rpc_transaction
from swap_history.services.errors import RateLimitError, RetrievalError
from swap_history.services.solana_service import SolanaLedgerClient


class FakeResponse:
    def __init__(self, body=None, status_code=200):
        self._body = body
        self.status_code = status_code
        self.ok = status_code < 400

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeSession:
    """Records posted payloads and answers with queued responses or a handler."""

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.payloads = []

    def post(self, url, json=None, timeout=None):
        self.payloads.append(json)
        if self.handler:
            return self.handler(json)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(session) -> SolanaLedgerClient:
    return SolanaLedgerClient(rpc_url="http://rpc.test", session=session)


def _ok(result):
    return FakeResponse({"jsonrpc": "2.0", "id": 1, "result": result})


def test_list_signatures_sends_cursor_and_page_size():
    session = FakeSession([_ok([
        {"signature": "sigA", "slot": 120, "err": None, "blockTime": 1614882011, "memo": None},
        {"signature": "sigB", "slot": 118, "err": {"InstructionError": [0, "Custom"]}, "blockTime": None},
    ])])

    signatures = _client(session).list_signatures(WALLET, before="sig0", page_size=100)

    payload = session.payloads[0]
    assert payload["method"] == "getSignaturesForAddress"
    assert payload["params"] == [WALLET, {"limit": 100, "commitment": "confirmed", "before": "sig0"}]
    assert [s.signature for s in signatures] == ["sigA", "sigB"]
    assert signatures[0].block_time == 1614882011
    assert not signatures[0].failed
    assert signatures[1].failed


def test_list_signatures_omits_missing_cursor():
    session = FakeSession([_ok([])])

    assert _client(session).list_signatures(WALLET, page_size=10) == []
    assert "before" not in session.payloads[0]["params"][1]


def test_minimum_retained_slot():
    session = FakeSession([_ok(84_000_123)])

    assert _client(session).get_minimum_retained_slot() == 84_000_123
    assert session.payloads[0]["method"] == "minimumLedgerSlot"


@pytest.mark.parametrize(
    "response, error_type",
    [
        (FakeResponse({"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}}), RetrievalError),
        (FakeResponse({"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "Too many requests"}}), RateLimitError),
        (FakeResponse(None, status_code=429), RateLimitError),
        (FakeResponse(None, status_code=503), RetrievalError),
        (FakeResponse(ValueError("not json")), RetrievalError),
        (FakeResponse({"jsonrpc": "2.0", "id": 1, "result": {"unexpected": True}}), RetrievalError),
        (requests.ConnectionError("connection refused"), RetrievalError),
    ],
)
def test_list_signatures_failures_raise(response, error_type):
    session = FakeSession([response])

    with pytest.raises(error_type):
        _client(session).list_signatures(WALLET)


def test_rpc_error_keeps_method_and_code():
    session = FakeSession([FakeResponse({"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid"}})])

    with pytest.raises(RetrievalError) as exc_info:
        _client(session).get_minimum_retained_slot()

    assert exc_info.value.method == "minimumLedgerSlot"
    assert exc_info.value.code == -32602


def test_transaction_details_are_batched_and_aligned():
    def handler(payload):
        # Answer in reverse order to check results are realigned by id.
        answers = []
        for request in reversed(payload):
            signature = request["params"][0]
            result = None if signature == "pruned" else rpc_transaction(signature, slot=90)
            answers.append({"jsonrpc": "2.0", "id": request["id"], "result": result})
        return FakeResponse(answers)

    session = FakeSession(handler=handler)

    details = _client(session).get_transaction_details(["s1", "pruned", "s3"], batch_cap=2)

    assert [len(payload) for payload in session.payloads] == [2, 1]
    first = session.payloads[0][0]
    assert first["method"] == "getTransaction"
    assert first["params"][1] == {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0, "commitment": "confirmed"}
    assert details[0].signature == "s1"
    assert details[1] is None
    assert details[2].signature == "s3"


def test_pruned_history_errors_become_missing_details():
    session = FakeSession([FakeResponse([
        {"jsonrpc": "2.0", "id": 1, "error": {"code": -32009, "message": "Slot 12 was skipped, or missing in long-term storage"}},
        {"jsonrpc": "2.0", "id": 2, "result": rpc_transaction("s2")},
    ])])

    details = _client(session).get_transaction_details(["s1", "s2"], batch_cap=10)

    assert details[0] is None
    assert details[1].signature == "s2"


def test_other_batch_errors_raise():
    session = FakeSession([FakeResponse([
        {"jsonrpc": "2.0", "id": 1, "error": {"code": -32603, "message": "Internal error"}},
        {"jsonrpc": "2.0", "id": 2, "result": rpc_transaction("s2")},
    ])])

    with pytest.raises(RetrievalError):
        _client(session).get_transaction_details(["s1", "s2"], batch_cap=10)


def test_incomplete_batch_raises():
    session = FakeSession([FakeResponse([{"jsonrpc": "2.0", "id": 1, "result": rpc_transaction("s1")}])])

    with pytest.raises(RetrievalError):
        _client(session).get_transaction_details(["s1", "s2"], batch_cap=10)


def test_malformed_transaction_raises():
    malformed = rpc_transaction("s1")
    malformed["transaction"]["signatures"] = []
    session = FakeSession([FakeResponse([{"jsonrpc": "2.0", "id": 1, "result": malformed}])])

    with pytest.raises(RetrievalError):
        _client(session).get_transaction_details(["s1"], batch_cap=10)


def test_token_accounts_are_parsed():
    token_account = {
        "data": {
            "program": "spl-token",
            "parsed": {
                "type": "account",
                "info": {
                    "mint": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
                    "owner": WALLET,
                    "tokenAmount": {"amount": "1500000", "decimals": 6, "uiAmount": 1.5},
                },
            },
        },
        "lamports": 2039280,
    }
    system_account = {"data": ["", "base64"], "lamports": 1000}
    session = FakeSession([_ok({"context": {"slot": 1}, "value": [token_account, None, system_account]})])

    accounts = _client(session).get_token_accounts(["acc1", "acc2", "acc3"])

    assert session.payloads[0]["method"] == "getMultipleAccounts"
    assert list(accounts) == ["acc1"]
    assert accounts["acc1"].mint == "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
    assert accounts["acc1"].amount == "1500000"
    assert accounts["acc1"].decimals == 6


def test_token_accounts_are_requested_in_chunks():
    def handler(payload):
        return _ok({"context": {"slot": 1}, "value": [None] * len(payload["params"][0])})

    session = FakeSession(handler=handler)

    assert _client(session).get_token_accounts([f"acc{i}" for i in range(250)]) == {}
    assert [len(payload["params"][0]) for payload in session.payloads] == [100, 100, 50]


def test_each_thread_gets_its_own_session():
    client = SolanaLedgerClient(rpc_url="http://rpc.test")
    sessions = {}

    def remember(name):
        sessions[name] = client.session

    worker = threading.Thread(target=remember, args=("worker",))
    worker.start()
    worker.join()
    remember("main")

    assert isinstance(sessions["main"], requests.Session)
    assert sessions["main"] is client.session
    assert sessions["worker"] is not sessions["main"]


def test_injected_session_is_shared_across_threads():
    session = FakeSession()
    client = _client(session)
    seen = []

    worker = threading.Thread(target=lambda: seen.append(client.session))
    worker.start()
    worker.join()

    assert seen == [session]
    assert client.session is session
