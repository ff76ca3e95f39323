"""Shared pytest fixtures for minter tests."""

from __future__ import annotations

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from x402mint.application.minter.keyed_lock import KeyedLock
from x402mint.application.minter.use_cases.mint_dispatcher import MintDispatcher
from x402mint.application.minter.use_cases.payment_discovery import PaymentDiscovery
from x402mint.application.minter.use_cases.payment_mint import PaymentMintService
from x402mint.application.minter.use_cases.payment_verifier import PaymentVerifier
from x402mint.infrastructure.storage import RedisKeyValueStore
from tests.fixtures import (
    FakeChainReader,
    InMemoryProcessedProofRepository,
    InMemoryTokenContract,
    accounts,
)


@pytest_asyncio.fixture
async def redis_store() -> AsyncGenerator[RedisKeyValueStore, None]:
    """Create a Redis-backed key-value store for testing.

    Uses database 15 by default, or TEST_REDIS_URL if set.
    """
    import warnings

    test_redis_url = os.getenv("TEST_REDIS_URL", "redis://localhost:6379/15")
    store = RedisKeyValueStore(test_redis_url)

    # Test connection
    try:
        await store.redis.ping()
    except Exception as e:
        warnings.warn(
            f"Redis not available at {test_redis_url}: {e}. "
            "Tests requiring Redis will be skipped.",
            UserWarning,
        )
        await store.close()
        pytest.skip(f"Redis not available: {e}")

    yield store

    # Cleanup: flush test database
    try:
        await store.redis.flushdb()
    except Exception:
        pass  # Ignore cleanup errors
    await store.close()


# ============================================================================
# Minter fixtures
# ============================================================================


@pytest.fixture
def chain_reader() -> FakeChainReader:
    return FakeChainReader()


@pytest.fixture
def token_contract() -> InMemoryTokenContract:
    return InMemoryTokenContract(address=accounts.NFT_CONTRACT, owner=accounts.OWNER)


@pytest.fixture
def processed_proof_repository() -> InMemoryProcessedProofRepository:
    return InMemoryProcessedProofRepository()


@pytest.fixture
def verifier(chain_reader: FakeChainReader) -> PaymentVerifier:
    return PaymentVerifier(
        chain_reader,
        asset_address=accounts.USDC,
        treasury_address=accounts.TREASURY,
        min_amount=accounts.PRICE,
    )


@pytest.fixture
def discovery(chain_reader: FakeChainReader) -> PaymentDiscovery:
    return PaymentDiscovery(
        chain_reader,
        asset_address=accounts.USDC,
        treasury_address=accounts.TREASURY,
        lookback_blocks=500,
    )


@pytest.fixture
def dispatcher(token_contract: InMemoryTokenContract) -> MintDispatcher:
    return MintDispatcher(token_contract, confirmation_timeout=1.0)


@pytest.fixture
def payment_mint_service(
    processed_proof_repository: InMemoryProcessedProofRepository,
    verifier: PaymentVerifier,
    discovery: PaymentDiscovery,
    dispatcher: MintDispatcher,
) -> PaymentMintService:
    return PaymentMintService(
        processed_proof_repository,
        verifier,
        discovery,
        dispatcher,
        resource=accounts.RESOURCE,
        locks=KeyedLock(),
        claim_ttl_seconds=300.0,
    )
