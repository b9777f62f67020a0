"""Failover client pool for redundant Solana-style JSON-RPC endpoints.

Picks a working endpoint, pins it for the rest of the process, rotates
through the full list on failure, and raises a single AllEndpointsFailed
when nothing answers.

Usage:
    import asyncio
    from rpc_pool import EndpointPool

    async def main():
        async with EndpointPool("http://bad:8899,http://good:8899") as pool:
            slot = await pool.run(lambda c, url: c.get_slot(), label="slot")

            # Multi-step / non-idempotent work: resolve once, reuse the client.
            client = await pool.resolve()
            sig = await client.request_airdrop(address, 1_000_000_000)
            await client.confirm_transaction(sig)

    asyncio.run(main())

Config (env, overridden by explicit arguments):
    RPC_URLS / RPC_URL   single URL or comma-separated list
    RPC_COMMITMENT       processed | confirmed | finalized (default confirmed)
    RPC_TIMEOUT_MS       per-attempt timeout (default 30000)
    RPC_DEADLINE_MS      optional bound on a whole rotation
"""

from rpc_pool.client import LAMPORTS_PER_SOL, RpcClient, create_client
from rpc_pool.config import (
    COMMITMENTS,
    DEFAULT_COMMITMENT,
    DEFAULT_RPC_URL,
    DEFAULT_TIMEOUT_MS,
    EndpointTarget,
    PoolConfig,
    parse_endpoints,
)
from rpc_pool.errors import (
    AllEndpointsFailed,
    AttemptFailure,
    AttemptTimeout,
    ConfigurationError,
    RpcError,
    TransactionError,
)
from rpc_pool.pool import EndpointPool

__all__ = [
    "AllEndpointsFailed",
    "AttemptFailure",
    "AttemptTimeout",
    "COMMITMENTS",
    "ConfigurationError",
    "DEFAULT_COMMITMENT",
    "DEFAULT_RPC_URL",
    "DEFAULT_TIMEOUT_MS",
    "EndpointPool",
    "EndpointTarget",
    "LAMPORTS_PER_SOL",
    "PoolConfig",
    "RpcClient",
    "RpcError",
    "TransactionError",
    "create_client",
    "parse_endpoints",
]
