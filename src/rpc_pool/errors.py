"""Error types raised by the endpoint pool and its RPC client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rpc_pool.config import EndpointTarget


class ConfigurationError(ValueError):
    """Invalid pool configuration (empty endpoint list, bad commitment, ...)."""


class RpcError(RuntimeError):
    """JSON-RPC error object returned by a node."""

    def __init__(self, code: int | None, message: str, data=None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class AttemptTimeout(TimeoutError):
    """The pool's own per-attempt timeout expired before the unit of work finished."""

    def __init__(self, url: str, timeout_ms: int):
        super().__init__(f"timed out after {timeout_ms}ms")
        self.url = url
        self.timeout_ms = timeout_ms


@dataclass(frozen=True)
class AttemptFailure:
    """One candidate's failed attempt: which endpoint, and what went wrong."""

    target: EndpointTarget
    cause: BaseException

    @property
    def url(self) -> str:
        return self.target.url

    def summary(self) -> str:
        if isinstance(self.cause, AttemptTimeout):
            return f"{self.url}: {self.cause}"
        msg = str(self.cause) or repr(self.cause)
        return f"{self.url}: {type(self.cause).__name__}: {msg}"


class AllEndpointsFailed(RuntimeError):
    """Every endpoint failed within a single pool.run() call."""

    def __init__(
        self,
        label: str,
        failures: list[AttemptFailure],
        endpoint_count: int,
        skipped: list[str] | None = None,
    ):
        self.label = label
        self.failures = list(failures)
        self.endpoint_count = endpoint_count
        self.skipped = list(skipped or [])

        parts = [f.summary() for f in self.failures]
        parts += [f"{url}: skipped (deadline exceeded)" for url in self.skipped]
        detail = "; ".join(parts) if parts else "no endpoints attempted"
        super().__init__(
            f"{label} failed on all {endpoint_count} endpoint(s): {detail}"
        )

    @property
    def urls(self) -> list[str]:
        return [f.url for f in self.failures]


class TransactionError(RuntimeError):
    """A submitted transaction landed but failed on chain."""

    def __init__(self, signature: str, err):
        super().__init__(f"Tx {signature} failed: {err}")
        self.signature = signature
        self.err = err
