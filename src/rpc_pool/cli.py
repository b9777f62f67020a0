"""rpcctl: operator CLI over EndpointPool.

Usage:
  rpcctl [--rpc-url URL[,URL2,...]] [--commitment confirmed] COMMAND ...
  rpcctl ping
  rpcctl balance --address <pubkey>
  rpcctl airdrop --address <pubkey> --sol 1.5
  rpcctl send-raw --tx <base64>

One pool per invocation. Every command resolves a working endpoint once and
runs all of its requests against that endpoint, so a transfer is never
submitted to one node and confirmed against another.

Output is JSON on stdout; failures are a one-line `error: ...` on stderr.
"""

import argparse
import asyncio
import json
import logging
import sys

import httpx

from rpc_pool.client import LAMPORTS_PER_SOL
from rpc_pool.config import COMMITMENTS, PoolConfig
from rpc_pool.errors import (
    AllEndpointsFailed,
    ConfigurationError,
    RpcError,
    TransactionError,
)
from rpc_pool.pool import EndpointPool

log = logging.getLogger(__name__)


def _positive_sol(value: str) -> float:
    try:
        sol = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid SOL amount {value!r}") from None
    if not sol > 0 or sol == float("inf"):
        raise argparse.ArgumentTypeError(f"invalid SOL amount {value!r}")
    return sol


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpcctl", description="Failover RPC operator tool"
    )
    parser.add_argument(
        "--rpc-url",
        default=None,
        help="Endpoint URL or comma-separated list (default: $RPC_URLS or http://127.0.0.1:8899)",
    )
    parser.add_argument("--commitment", choices=COMMITMENTS, default=None)
    parser.add_argument("--timeout-ms", type=int, default=None)
    parser.add_argument("--deadline-ms", type=int, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("ping", help="Pick an endpoint and report blockhash + slot")
    sub.add_parser("endpoints", help="Show the configured endpoint list")
    sub.add_parser("slot")
    sub.add_parser("blockhash")
    sub.add_parser("version")
    sub.add_parser("health")

    p = sub.add_parser("balance")
    p.add_argument("--address", required=True)

    p = sub.add_parser("airdrop")
    p.add_argument("--address", required=True)
    p.add_argument("--sol", type=_positive_sol, required=True)

    p = sub.add_parser("send-raw", help="Submit a pre-signed base64 transaction")
    p.add_argument("--tx", required=True)
    p.add_argument("--no-confirm", action="store_true")
    return parser


def _emit(obj: dict):
    sys.stdout.write(json.dumps(obj, indent=2) + "\n")


async def _ping(client, url):
    latest = await client.get_latest_blockhash()
    slot = await client.get_slot()
    return {
        "type": "ping",
        "endpoint": url,
        "blockhash": latest["blockhash"],
        "slot": slot,
    }


async def run_command(args, pool: EndpointPool) -> dict:
    cmd = args.command
    if cmd == "endpoints":
        return {
            "type": "endpoints",
            "commitment": pool.commitment,
            "timeout_ms": pool.timeout_ms,
            "endpoints": [{"ordinal": t.ordinal, "url": t.url} for t in pool.targets],
        }
    if cmd == "ping":
        return await pool.run(_ping, label="rpcctl:ping")

    client = await pool.resolve(label="rpcctl:rpc-pick")
    endpoint = client.url

    if cmd == "slot":
        return {"type": "slot", "endpoint": endpoint, "slot": await client.get_slot()}
    if cmd == "blockhash":
        latest = await client.get_latest_blockhash()
        return {"type": "blockhash", "endpoint": endpoint, **latest}
    if cmd == "version":
        return {"type": "version", "endpoint": endpoint, **await client.get_version()}
    if cmd == "health":
        return {"type": "health", "endpoint": endpoint, "health": await client.get_health()}
    if cmd == "balance":
        lamports = await client.get_balance(args.address)
        return {
            "type": "balance",
            "endpoint": endpoint,
            "pubkey": args.address,
            "lamports": lamports,
            "sol": lamports / LAMPORTS_PER_SOL,
        }
    if cmd == "airdrop":
        sig = await client.request_airdrop(args.address, round(args.sol * LAMPORTS_PER_SOL))
        await client.confirm_transaction(sig)
        return {
            "type": "airdrop",
            "endpoint": endpoint,
            "pubkey": args.address,
            "sol": args.sol,
            "tx_sig": sig,
        }
    if cmd == "send-raw":
        sig = await client.send_raw_transaction(args.tx)
        confirmed = False
        if not args.no_confirm:
            await client.confirm_transaction(sig)
            confirmed = True
        return {
            "type": "send_raw",
            "endpoint": endpoint,
            "tx_sig": sig,
            "confirmed": confirmed,
        }
    raise ValueError(f"Unknown command: {cmd}")


async def _main(args) -> dict:
    config = PoolConfig.from_env(
        urls=args.rpc_url,
        commitment=args.commitment,
        timeout_ms=args.timeout_ms,
        deadline_ms=args.deadline_ms,
    )
    async with EndpointPool.from_config(config) as pool:
        log.debug("Using %r", pool)
        return await run_command(args, pool)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        result = asyncio.run(_main(args))
    except ConfigurationError as e:
        parser.error(str(e))
    except AllEndpointsFailed as e:
        sys.stderr.write(f"error: {e}\n")
        return 1
    except (RpcError, TransactionError, TimeoutError, httpx.HTTPError) as e:
        sys.stderr.write(f"error: {e}\n")
        return 1
    except (KeyError, TypeError, ValueError) as e:
        # Node answered, but not in the shape the command expects.
        sys.stderr.write(f"error: unexpected RPC response: {type(e).__name__}: {e}\n")
        return 1
    _emit(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
