"""Failover pool over redundant RPC endpoints with last-known-good pinning.

Usage:
    pool = EndpointPool("https://rpc-a.example,https://rpc-b.example")
    slot = await pool.run(lambda client, url: client.get_slot(), label="slot")

Each run() tries every endpoint at most once, one at a time, starting at the
endpoint that last succeeded (index 0 before any success). A failure never
clears the pin; only a different endpoint's success moves it.

Multi-step, non-idempotent workflows (transfers, airdrops) should resolve a
client once via resolve() and reuse it for every step, rather than calling
run() per step, which may rotate to another endpoint mid-workflow.
"""

import asyncio
import logging
import threading
import time

from rpc_pool.client import create_client
from rpc_pool.config import (
    EndpointTarget,
    PoolConfig,
    parse_endpoints,
)
from rpc_pool.errors import AllEndpointsFailed, AttemptFailure, AttemptTimeout

for name in ("httpx", "httpcore", "hpack"):
    logging.getLogger(name).setLevel(logging.WARNING)

log = logging.getLogger(__name__)


class _UnitTimeout(Exception):
    """Carries a TimeoutError raised by the unit of work itself past wait_for."""

    def __init__(self, cause: BaseException):
        super().__init__(str(cause))
        self.cause = cause


async def _tag_unit_timeouts(awaitable):
    try:
        return await awaitable
    except (asyncio.TimeoutError, TimeoutError) as e:
        raise _UnitTimeout(e) from e


class EndpointPool:
    """Ordered endpoint registry plus a shared pin and per-endpoint client cache.

    Safe to share across concurrent run() calls: the pin and the client cache
    are the only mutable state and both are written under a lock. A stale pin
    read only changes which endpoint is tried first.
    """

    def __init__(
        self,
        urls=None,
        commitment: str | None = None,
        timeout_ms: int | None = None,
        deadline_ms: int | None = None,
        client_factory=create_client,
    ):
        # Settings left as None fall back to RPC_* env vars, then defaults.
        cfg = PoolConfig.from_env(
            commitment=commitment, timeout_ms=timeout_ms, deadline_ms=deadline_ms
        )
        self._targets = tuple(parse_endpoints(cfg.urls if urls is None else urls))
        self.commitment = cfg.commitment
        self.timeout_ms = cfg.timeout_ms
        self.deadline_ms = cfg.deadline_ms
        self._client_factory = client_factory
        self._clients: dict[int, object] = {}
        self._preferred_index: int | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: PoolConfig, client_factory=create_client):
        return cls(
            config.urls,
            commitment=config.commitment,
            timeout_ms=config.timeout_ms,
            deadline_ms=config.deadline_ms,
            client_factory=client_factory,
        )

    def __repr__(self):
        return (
            f"EndpointPool({len(self._targets)} endpoints, "
            f"preferred={self._preferred_index}, commitment={self.commitment!r})"
        )

    def __len__(self):
        return len(self._targets)

    @property
    def targets(self) -> tuple[EndpointTarget, ...]:
        return self._targets

    @property
    def urls(self) -> list[str]:
        return [t.url for t in self._targets]

    @property
    def preferred_index(self) -> int | None:
        return self._preferred_index

    @property
    def preferred(self) -> EndpointTarget | None:
        idx = self._preferred_index
        return None if idx is None else self._targets[idx]

    def reset_pin(self):
        """Forget the last-known-good endpoint; the next run() starts at index 0."""
        with self._lock:
            self._preferred_index = None

    def _pin(self, ordinal: int):
        with self._lock:
            previous = self._preferred_index
            self._preferred_index = ordinal
        if previous != ordinal:
            log.debug(
                "Pinned RPC endpoint %d (%s), was %s",
                ordinal,
                self._targets[ordinal].url,
                previous,
            )

    def client_for(self, target: EndpointTarget):
        """Return the cached client for `target`, creating it on first use."""
        client = self._clients.get(target.ordinal)
        if client is not None:
            return client
        with self._lock:
            client = self._clients.get(target.ordinal)
            if client is None:
                client = self._client_factory(target, self.commitment, self.timeout_ms)
                self._clients[target.ordinal] = client
        return client

    def _rotation(self) -> list[EndpointTarget]:
        n = len(self._targets)
        start = self._preferred_index
        if start is None:
            start = 0
        return [self._targets[(start + i) % n] for i in range(n)]

    async def run(self, unit_of_work, *, label: str):
        """Run `unit_of_work(client, url)` against the first endpoint that succeeds.

        Endpoints are tried sequentially in configured order, starting at the
        pin and wrapping around. Each attempt is bounded by timeout_ms (and by
        whatever remains of deadline_ms, if set). Any exception from an
        attempt rotates to the next endpoint; cancellation propagates.

        Raises AllEndpointsFailed (message contains "<label> failed" and the
        endpoint count) when every endpoint fails.
        """
        if not label:
            raise ValueError("label is required")

        rotation = self._rotation()
        failures: list[AttemptFailure] = []
        skipped: list[str] = []
        t0 = time.monotonic()

        for i, target in enumerate(rotation):
            timeout = self.timeout_ms / 1000
            if self.deadline_ms is not None:
                remaining = self.deadline_ms / 1000 - (time.monotonic() - t0)
                if remaining <= 0:
                    skipped = [t.url for t in rotation[i:]]
                    log.warning(
                        "%s: deadline of %dms exceeded, skipping %d endpoint(s)",
                        label,
                        self.deadline_ms,
                        len(skipped),
                    )
                    break
                timeout = min(timeout, remaining)

            try:
                client = self.client_for(target)
                result = await asyncio.wait_for(
                    _tag_unit_timeouts(unit_of_work(client, target.url)), timeout
                )
            except _UnitTimeout as e:
                cause = e.cause
            except asyncio.TimeoutError:
                cause = AttemptTimeout(target.url, round(timeout * 1000))
            except Exception as e:
                cause = e
            else:
                self._pin(target.ordinal)
                return result

            failure = AttemptFailure(target, cause)
            failures.append(failure)
            log.warning(
                "%s: attempt %d/%d failed (%s)",
                label,
                i + 1,
                len(rotation),
                failure.summary(),
            )

        raise AllEndpointsFailed(label, failures, len(self._targets), skipped)

    async def resolve(self, *, label: str = "rpc-pick"):
        """Pick a working endpoint once and return its client.

        Connectivity is confirmed with getLatestBlockhash. Reuse the returned
        client for every step of a workflow so that non-idempotent requests
        all go to the same endpoint.
        """

        async def _probe(client, url):
            await client.get_latest_blockhash()
            return client

        return await self.run(_probe, label=label)

    async def aclose(self):
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            close = getattr(client, "aclose", None)
            if close is not None:
                await close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()
