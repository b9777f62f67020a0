"""Endpoint list, commitment and timeout normalization.

Usage:
    RPC_URLS=https://rpc-a.example,https://rpc-b.example
    RPC_COMMITMENT=finalized
    RPC_TIMEOUT_MS=10000
    RPC_DEADLINE_MS=25000   # optional, bounds a whole rotation

Explicit arguments always win over the environment.
"""

import os
from dataclasses import dataclass

from rpc_pool.errors import ConfigurationError

DEFAULT_RPC_URL = "http://127.0.0.1:8899"
DEFAULT_COMMITMENT = "confirmed"
COMMITMENTS = ("processed", "confirmed", "finalized")
DEFAULT_TIMEOUT_MS = 30_000


@dataclass(frozen=True)
class EndpointTarget:
    url: str
    ordinal: int


def parse_endpoints(raw) -> list[EndpointTarget]:
    """'a, ,b' -> [EndpointTarget('a', 0), EndpointTarget('b', 1)]

    Accepts a single URL, a comma-separated string, or an iterable of
    strings (each of which may itself be comma-separated).
    """
    if raw is None:
        raise ConfigurationError("No RPC endpoints configured")
    if isinstance(raw, str):
        pieces = raw.split(",")
    else:
        pieces = [p for item in raw for p in str(item).split(",")]
    urls = [p.strip() for p in pieces if p.strip()]
    if not urls:
        raise ConfigurationError(f"No RPC endpoints configured (got {raw!r})")
    return [EndpointTarget(url=u, ordinal=i) for i, u in enumerate(urls)]


def normalize_commitment(value) -> str:
    if value is None or not str(value).strip():
        return DEFAULT_COMMITMENT
    c = str(value).strip().lower()
    if c not in COMMITMENTS:
        raise ConfigurationError(
            f"Invalid commitment {value!r} (expected one of {', '.join(COMMITMENTS)})"
        )
    return c


def _positive_ms(value, name: str, default):
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid {name} {value!r}")
    try:
        ms = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid {name} {value!r}") from None
    if ms <= 0:
        raise ConfigurationError(f"Invalid {name} {value!r} (must be > 0)")
    return ms


def normalize_timeout_ms(value) -> int:
    return _positive_ms(value, "timeout_ms", DEFAULT_TIMEOUT_MS)


def normalize_deadline_ms(value) -> int | None:
    return _positive_ms(value, "deadline_ms", None)


@dataclass(frozen=True)
class PoolConfig:
    urls: str
    commitment: str = DEFAULT_COMMITMENT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    deadline_ms: int | None = None

    @classmethod
    def from_env(
        cls, urls=None, commitment=None, timeout_ms=None, deadline_ms=None
    ) -> "PoolConfig":
        env = os.environ
        if urls is None or (isinstance(urls, str) and not urls.strip()):
            urls = env.get("RPC_URLS") or env.get("RPC_URL") or DEFAULT_RPC_URL
        if not isinstance(urls, str):
            urls = ",".join(str(u) for u in urls)
        return cls(
            urls=urls,
            commitment=normalize_commitment(
                commitment if commitment is not None else env.get("RPC_COMMITMENT")
            ),
            timeout_ms=normalize_timeout_ms(
                timeout_ms if timeout_ms is not None else env.get("RPC_TIMEOUT_MS")
            ),
            deadline_ms=normalize_deadline_ms(
                deadline_ms if deadline_ms is not None else env.get("RPC_DEADLINE_MS")
            ),
        )
