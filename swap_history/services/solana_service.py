import logging
import threading
from typing import Any, Collection, Dict, List, Optional, Sequence

import requests
from pydantic import ValidationError

from swap_history.config import Config
from swap_history.models.ledger import RawTransaction, SignatureInfo
from swap_history.models.responses import TokenAccountInfo
from swap_history.services.base_service import BaseLedgerClient, chunked
from swap_history.services.errors import RateLimitError, RetrievalError

logger = logging.getLogger(__name__)

# Per-request errors meaning the transaction detail is gone from the node
# (block not available, slot skipped, missing in long-term storage,
# transaction history not available).
PRUNED_ERROR_CODES = frozenset({-32004, -32007, -32009, -32011})
RATE_LIMIT_ERROR_CODE = -32005
MAX_ACCOUNTS_PER_REQUEST = 100


class SolanaLedgerClient(BaseLedgerClient):
    """Minimal JSON-RPC client for the Solana ledger.

    Detail batches are sent from several worker threads, so each thread
    posts through its own ``requests.Session`` unless one is passed in.
    A session passed to the constructor is shared by every thread.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.rpc_url = rpc_url or Config.SOLANA_RPC_URL
        self.commitment = commitment or Config.RPC_COMMITMENT
        self.timeout = timeout or Config.RPC_TIMEOUT
        self._shared_session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _send(self, method: str, payload: Any) -> Any:
        try:
            resp = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"RPC request {method} failed: {e}")
            raise RetrievalError(f"{method} request failed: {e}", method=method) from e

        if resp.status_code == 429:
            logger.warning(f"Rate limited on {method}")
            raise RateLimitError(f"{method} was rate limited by the RPC node", method=method, code=429)
        if not resp.ok:
            logger.error(f"HTTP error {resp.status_code} for {method}")
            raise RetrievalError(f"{method} returned HTTP {resp.status_code}", method=method, code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"Failed to parse JSON response for {method}: {e}")
            raise RetrievalError(f"{method} returned a non-JSON body", method=method) from e

    def _raise_rpc_error(self, method: str, error: Any) -> None:
        code = error.get("code") if isinstance(error, dict) else None
        message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
        if code == RATE_LIMIT_ERROR_CODE:
            logger.warning(f"Rate limited on {method}: {message}")
            raise RateLimitError(f"{method} rate limited: {message}", method=method, code=code)
        logger.error(f"RPC error in {method}: {code} {message}")
        raise RetrievalError(f"{method} RPC error {code}: {message}", method=method, code=code)

    def _post(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        data = self._send(method, payload)
        if not isinstance(data, dict):
            raise RetrievalError(f"{method} returned a malformed response", method=method)
        if data.get("error") is not None:
            self._raise_rpc_error(method, data["error"])
        if "result" not in data:
            raise RetrievalError(f"{method} response has no result", method=method)
        return data["result"]

    def _batch_post(
        self,
        method: str,
        params_list: List[List[Any]],
        pruned_codes: Collection[int] = (),
    ) -> List[Any]:
        """Send one JSON-RPC batch of ``method`` calls.

        Results come back aligned with ``params_list`` regardless of the order
        the node answers in.  Entries failing with one of ``pruned_codes`` are
        reported as ``None``; any other error fails the whole batch.
        """
        if not params_list:
            return []

        payload = [
            {"jsonrpc": "2.0", "id": i + 1, "method": method, "params": params}
            for i, params in enumerate(params_list)
        ]
        data = self._send(method, payload)
        if isinstance(data, dict) and data.get("error") is not None:
            self._raise_rpc_error(method, data["error"])
        if not isinstance(data, list):
            raise RetrievalError(f"{method} batch returned a malformed response", method=method)

        results: List[Any] = [None] * len(params_list)
        answered = set()
        for response in data:
            response_id = response.get("id") if isinstance(response, dict) else None
            if not isinstance(response_id, int) or not 1 <= response_id <= len(params_list):
                raise RetrievalError(f"{method} batch returned an unexpected response id", method=method)
            answered.add(response_id)

            error = response.get("error")
            if error is not None:
                if isinstance(error, dict) and error.get("code") in pruned_codes:
                    logger.debug(f"{method} #{response_id} unavailable: {error.get('message')}")
                    continue
                self._raise_rpc_error(method, error)
            results[response_id - 1] = response.get("result")

        if len(answered) != len(params_list):
            raise RetrievalError(
                f"{method} batch answered {len(answered)} of {len(params_list)} requests", method=method
            )
        return results

    def list_signatures(
        self, account: str, before: Optional[str] = None, page_size: int = 100
    ) -> List[SignatureInfo]:
        options: Dict[str, Any] = {"limit": page_size, "commitment": self.commitment}
        if before:
            options["before"] = before

        result = self._post("getSignaturesForAddress", [account, options])
        if not isinstance(result, list):
            raise RetrievalError("getSignaturesForAddress returned a malformed result", method="getSignaturesForAddress")
        try:
            return [SignatureInfo.model_validate(entry) for entry in result]
        except ValidationError as e:
            raise RetrievalError(
                f"getSignaturesForAddress returned a malformed entry: {e}", method="getSignaturesForAddress"
            ) from e

    def get_minimum_retained_slot(self) -> int:
        result = self._post("minimumLedgerSlot", [])
        try:
            return int(result)
        except (TypeError, ValueError) as e:
            raise RetrievalError(f"minimumLedgerSlot returned {result!r}", method="minimumLedgerSlot") from e

    def get_transaction_details(
        self, signatures: Sequence[str], batch_cap: int
    ) -> List[Optional[RawTransaction]]:
        options = {
            "encoding": "jsonParsed",
            "maxSupportedTransactionVersion": 0,
            "commitment": self.commitment,
        }
        details: List[Optional[RawTransaction]] = []
        for batch in chunked(signatures, batch_cap):
            results = self._batch_post(
                "getTransaction",
                [[signature, options] for signature in batch],
                pruned_codes=PRUNED_ERROR_CODES,
            )
            for signature, result in zip(batch, results):
                details.append(self._parse_transaction(signature, result))
        return details

    def _parse_transaction(self, signature: str, result: Any) -> Optional[RawTransaction]:
        if result is None:
            return None
        if not isinstance(result, dict):
            raise RetrievalError(f"getTransaction returned a malformed result for {signature}", method="getTransaction")
        try:
            return RawTransaction.from_rpc(result)
        except ValidationError as e:
            raise RetrievalError(
                f"getTransaction returned a malformed transaction for {signature}: {e}", method="getTransaction"
            ) from e

    def get_token_accounts(self, addresses: Sequence[str]) -> Dict[str, TokenAccountInfo]:
        """Resolve token accounts in chunks of ``getMultipleAccounts`` calls.

        Addresses that do not exist or are not token accounts are left out
        of the result.
        """
        accounts: Dict[str, TokenAccountInfo] = {}
        for batch in chunked(addresses, MAX_ACCOUNTS_PER_REQUEST):
            result = self._post(
                "getMultipleAccounts",
                [batch, {"encoding": "jsonParsed", "commitment": self.commitment}],
            )
            values = result.get("value") if isinstance(result, dict) else None
            if not isinstance(values, list) or len(values) != len(batch):
                raise RetrievalError("getMultipleAccounts returned a malformed result", method="getMultipleAccounts")

            for address, account in zip(batch, values):
                info = self._token_account_info(address, account)
                if info:
                    accounts[address] = info
        return accounts

    def _token_account_info(self, address: str, account: Any) -> Optional[TokenAccountInfo]:
        if not account or not isinstance(account, dict):
            return None
        data = account.get("data", {}) or {}
        parsed = data.get("parsed", {}) if isinstance(data, dict) else {}
        if not isinstance(parsed, dict) or parsed.get("type") != "account":
            return None

        info = parsed.get("info", {}) or {}
        token_amount = info.get("tokenAmount", {}) or {}
        mint = info.get("mint")
        owner = info.get("owner")
        amount = token_amount.get("amount")
        decimals = token_amount.get("decimals")
        if not mint or not owner or amount is None or decimals is None:
            logger.debug(f"Token account {address} is missing parsed fields")
            return None
        return TokenAccountInfo(
            address=address,
            mint=mint,
            owner=owner,
            amount=str(amount),
            decimals=int(decimals),
        )
