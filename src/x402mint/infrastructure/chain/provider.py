"""Shared async JSON-RPC connection to the ledger."""

from __future__ import annotations

from typing import Optional, Protocol

import aiohttp
from web3 import AsyncWeb3


class HasRpcSettings(Protocol):
    rpc_url: str
    rpc_timeout_seconds: float


_w3: Optional[AsyncWeb3] = None


def build_async_web3(rpc_url: str, timeout: float) -> AsyncWeb3:
    """Build a client that sends each request once; callers own retry policy."""
    return AsyncWeb3(
        AsyncWeb3.AsyncHTTPProvider(
            rpc_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
            exception_retry_configuration=None,
        )
    )


def get_async_web3(settings: HasRpcSettings) -> AsyncWeb3:
    """Get or create the process-wide AsyncWeb3 client."""
    global _w3
    if _w3 is None:
        _w3 = build_async_web3(settings.rpc_url, settings.rpc_timeout_seconds)
    return _w3
