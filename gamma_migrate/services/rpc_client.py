"""Solana JSON-RPC client over requests."""

import base64
import itertools
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import RPCError

logger = logging.getLogger(__name__)


class SolanaRPCClient:
    """
    Minimal JSON-RPC 2.0 client for a Solana cluster.

    Supports:
    - Retry with backoff on 429 and 5xx responses
    - Per-request timeout
    - The handful of methods the migration needs
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the RPC client.

        Args:
            url: HTTP endpoint of the cluster
            timeout: Seconds to wait for each response
            max_retries: Retries on 429/5xx before giving up
            backoff_factor: Backoff factor between retries
            session: Custom requests session
        """
        self.url = url
        self.timeout = timeout
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor
        self._session = session or self._create_session()
        self._ids = itertools.count(1)

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        retries = Retry(
            total=self._max_retries,
            backoff_factor=self._backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=frozenset(["POST"]),
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers["Content-Type"] = "application/json"

        return session

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Perform one JSON-RPC call and return its `result`.

        Raises:
            RPCError: on transport failure, non-2xx status or a JSON-RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        logger.debug(f"RPC {method}")

        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            raise RPCError(
                f"HTTP error on {method}: {e.response.status_code} - {e.response.text}", method
            ) from e
        except requests.exceptions.RequestException as e:
            raise RPCError(f"Request failed on {method}: {e}", method) from e
        except ValueError as e:
            raise RPCError(f"Invalid JSON response on {method}: {e}", method) from e

        if not isinstance(data, dict):
            raise RPCError(f"Unexpected response on {method}: {data!r}", method)

        error = data.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise RPCError(f"RPC error on {method}: {message}", method, code)

        return data.get("result")

    def get_program_accounts(
        self,
        program_id: str,
        filters: Optional[List[Dict[str, Any]]] = None,
        commitment: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List every account owned by `program_id` with base64-encoded data."""
        config: Dict[str, Any] = {"encoding": "base64"}
        if filters:
            config["filters"] = filters
        if commitment:
            config["commitment"] = commitment

        result = self.call("getProgramAccounts", [program_id, config])
        if not isinstance(result, list):
            raise RPCError(f"getProgramAccounts returned {type(result).__name__}", "getProgramAccounts")
        return result

    def get_latest_blockhash(self, commitment: Optional[str] = None) -> str:
        params = [{"commitment": commitment}] if commitment else []
        result = self.call("getLatestBlockhash", params)
        try:
            return result["value"]["blockhash"]
        except (KeyError, TypeError) as e:
            raise RPCError(f"Malformed getLatestBlockhash result: {result!r}", "getLatestBlockhash") from e

    def send_transaction(self, raw_transaction: bytes, preflight_commitment: Optional[str] = None) -> str:
        """Submit a signed transaction. Returns the base58 signature."""
        config: Dict[str, Any] = {"encoding": "base64"}
        if preflight_commitment:
            config["preflightCommitment"] = preflight_commitment
        encoded = base64.b64encode(raw_transaction).decode("ascii")
        return self.call("sendTransaction", [encoded, config])

    def simulate_transaction(self, raw_transaction: bytes, commitment: Optional[str] = None) -> Dict[str, Any]:
        """Simulate a signed transaction. Returns the `value` object."""
        config: Dict[str, Any] = {"encoding": "base64", "sigVerify": True}
        if commitment:
            config["commitment"] = commitment
        encoded = base64.b64encode(raw_transaction).decode("ascii")
        result = self.call("simulateTransaction", [encoded, config])
        return (result or {}).get("value") or {}

    def get_signature_statuses(self, signatures: List[str]) -> List[Optional[Dict[str, Any]]]:
        result = self.call(
            "getSignatureStatuses",
            [signatures, {"searchTransactionHistory": False}],
        )
        return (result or {}).get("value") or [None] * len(signatures)

    def close(self) -> None:
        self._session.close()
