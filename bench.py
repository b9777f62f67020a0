"""Latency benchmark for rpc_pool failover.

Usage:
  uv run python bench.py --rpc-url http://127.0.0.1:8899 [--runs N]
  uv run python bench.py --rpc-url http://down:8899,http://127.0.0.1:8899 --timeout-ms 500

Measures:
- Per-call wall clock for getSlot through one shared pool
- Which endpoint served each call (pinning should make this stable)
- Reports median / max across runs, and first-call cost (includes failover)
"""

import argparse
import asyncio
import logging
import statistics
import time
from collections import Counter

from rpc_pool import AllEndpointsFailed, EndpointPool

log = logging.getLogger("bench")


async def bench(urls: str, runs: int, timeout_ms: int) -> dict:
    latencies: list[float] = []
    served: Counter = Counter()
    failures = 0

    async def _slot(client, url):
        await client.get_slot()
        return url

    async with EndpointPool(urls, timeout_ms=timeout_ms) as pool:
        for i in range(runs):
            t0 = time.monotonic()
            try:
                url = await pool.run(_slot, label=f"bench:{i}")
            except AllEndpointsFailed as e:
                failures += 1
                log.info("%s", e)
                continue
            latencies.append(time.monotonic() - t0)
            served[url] += 1
        pinned = pool.preferred

    return {
        "latencies": latencies,
        "served": served,
        "failures": failures,
        "pinned": pinned.url if pinned else None,
    }


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--rpc-url", required=True)
    parser.add_argument("--runs", type=int, default=20)
    parser.add_argument("--timeout-ms", type=int, default=2000)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    r = asyncio.run(bench(args.rpc_url, args.runs, args.timeout_ms))
    lat = r["latencies"]

    print(f"\n{'='*60}")
    print(f"{args.runs} runs, {r['failures']} failed, pinned={r['pinned']}")
    print(f"{'='*60}")
    if lat:
        print(f"  First call: {lat[0] * 1000:.1f} ms")
        print(f"  Median:     {statistics.median(lat) * 1000:.1f} ms")
        print(f"  Max:        {max(lat) * 1000:.1f} ms")
    for url, n in r["served"].most_common():
        print(f"  {url}: {n} call(s)")


if __name__ == "__main__":
    main()
