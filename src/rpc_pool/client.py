"""Lightweight JSON-RPC client bound to a single endpoint (httpx, HTTP/2).

One RpcClient per endpoint; the pool creates it lazily and reuses it across
calls. It holds no per-call state beyond httpx's connection pool, so
concurrent calls can share it.
"""

import asyncio
import itertools
import logging
import time

import httpx

from rpc_pool.config import COMMITMENTS, EndpointTarget
from rpc_pool.errors import RpcError, TransactionError

log = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


def _commitment_rank(c: str | None) -> int:
    return COMMITMENTS.index(c) if c in COMMITMENTS else -1


class RpcClient:
    def __init__(
        self,
        url: str,
        commitment: str = "confirmed",
        timeout_ms: int = 30_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.commitment = commitment
        self.timeout_ms = timeout_ms
        self._ids = itertools.count(1)

        async def _hook(response: httpx.Response):
            log.debug("%s -> HTTP %d", self.url, response.status_code)

        self._http = httpx.AsyncClient(
            http2=True,
            timeout=timeout_ms / 1000,
            transport=transport,
            event_hooks={"response": [_hook]},
        )

    def __repr__(self):
        return f"RpcClient({self.url!r}, commitment={self.commitment!r})"

    async def call(self, method: str, params: list | None = None):
        """Send one JSON-RPC 2.0 request. Returns the `result` member."""
        req_id = next(self._ids)
        body = {"jsonrpc": "2.0", "id": req_id, "method": method}
        if params is not None:
            body["params"] = params
        response = await self._http.post(self.url, json=body)
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as e:
            raise RpcError(None, f"invalid JSON from {self.url}: {e}") from e
        err = payload.get("error") if isinstance(payload, dict) else None
        if err:
            if isinstance(err, dict):
                raise RpcError(err.get("code"), err.get("message", ""), err.get("data"))
            raise RpcError(None, str(err))
        if not isinstance(payload, dict) or "result" not in payload:
            raise RpcError(None, f"malformed response from {self.url}")
        return payload["result"]

    def _config(self) -> dict:
        return {"commitment": self.commitment}

    # --- Read helpers ---

    async def get_latest_blockhash(self) -> dict:
        """Returns {"blockhash": str, "lastValidBlockHeight": int}."""
        result = await self.call("getLatestBlockhash", [self._config()])
        return result["value"]

    async def get_balance(self, address: str) -> int:
        """Balance in lamports."""
        result = await self.call("getBalance", [address, self._config()])
        return int(result["value"])

    async def get_slot(self) -> int:
        return int(await self.call("getSlot", [self._config()]))

    async def get_health(self) -> str:
        return await self.call("getHealth")

    async def get_version(self) -> dict:
        return await self.call("getVersion")

    async def get_signature_statuses(self, signatures: list[str]) -> list:
        result = await self.call(
            "getSignatureStatuses",
            [signatures, {"searchTransactionHistory": True}],
        )
        return result["value"]

    # --- Write helpers (not idempotent; see EndpointPool.resolve) ---

    async def request_airdrop(self, address: str, lamports: int) -> str:
        return await self.call("requestAirdrop", [address, lamports, self._config()])

    async def send_raw_transaction(self, tx_base64: str) -> str:
        """Submit a signed, base64-encoded transaction. Returns its signature."""
        return await self.call(
            "sendTransaction",
            [
                tx_base64,
                {"encoding": "base64", "preflightCommitment": self.commitment},
            ],
        )

    async def confirm_transaction(
        self, signature: str, poll_interval: float = 0.5, timeout: float = 60.0
    ) -> dict:
        """Poll until `signature` reaches the client's commitment.

        Raises TransactionError if the transaction failed on chain, and
        TimeoutError if it is not confirmed within `timeout` seconds.
        """
        want = _commitment_rank(self.commitment)
        t0 = time.monotonic()
        while True:
            statuses = await self.get_signature_statuses([signature])
            status = statuses[0] if statuses else None
            if status:
                if status.get("err"):
                    raise TransactionError(signature, status["err"])
                if _commitment_rank(status.get("confirmationStatus")) >= want:
                    return status
            elapsed = time.monotonic() - t0
            if elapsed > timeout:
                raise TimeoutError(
                    f"Tx {signature} not {self.commitment} after {timeout}s"
                )
            await asyncio.sleep(poll_interval)

    async def aclose(self):
        await self._http.aclose()


def create_client(
    target: EndpointTarget,
    commitment: str,
    timeout_ms: int,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RpcClient:
    return RpcClient(
        target.url, commitment=commitment, timeout_ms=timeout_ms, transport=transport
    )
