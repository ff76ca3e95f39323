"""FastAPI dependencies for the minter API."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends

from ...application.minter.keyed_lock import KeyedLock
from ...application.minter.use_cases.mint_dispatcher import MintDispatcher
from ...application.minter.use_cases.payment_discovery import PaymentDiscovery
from ...application.minter.use_cases.payment_mint import PaymentMintService
from ...application.minter.use_cases.payment_requirements import (
    PaymentRequirementsBuilder,
)
from ...application.minter.use_cases.payment_verifier import PaymentVerifier
from ...domain.minter.processed_proof_repository import ProcessedProofRepository
from ...domain.shared import ChainReaderProtocol
from ...envs.minter_env import Settings, get_settings
from ...infrastructure.chain.provider import get_async_web3
from ...infrastructure.chain.web3_chain_reader import Web3ChainReader
from ...infrastructure.chain.web3_token_contract import Web3TokenContract
from ...infrastructure.minter.processed_proof_repository_impl import (
    ProcessedProofRepositoryImpl,
)
from ...infrastructure.storage import KeyValueStore, RedisKeyValueStore

# Process-wide state shared by every request
_locks = KeyedLock()
_dispatcher: Optional[MintDispatcher] = None
_key_value_store: Optional[RedisKeyValueStore] = None
_processed_proof_repository: Optional[ProcessedProofRepository] = None


def get_key_value_store(
    settings: Settings = Depends(get_settings),
) -> KeyValueStore:
    """Get the Redis key-value store (one client per process)."""
    global _key_value_store
    if _key_value_store is None:
        _key_value_store = RedisKeyValueStore(settings.database_url)
    return _key_value_store


async def close_key_value_store() -> None:
    """Close the Redis client; the next request opens a fresh one."""
    global _key_value_store, _processed_proof_repository
    if _key_value_store is not None:
        await _key_value_store.close()
    _key_value_store = None
    _processed_proof_repository = None


def get_processed_proof_repository(
    store: KeyValueStore = Depends(get_key_value_store),
) -> ProcessedProofRepository:
    """Get the processed-proof ledger (one instance per process)."""
    global _processed_proof_repository
    if _processed_proof_repository is None:
        _processed_proof_repository = ProcessedProofRepositoryImpl(store)
    return _processed_proof_repository


def get_chain_reader(
    settings: Settings = Depends(get_settings),
) -> ChainReaderProtocol:
    """Get the read-only ledger client."""
    return Web3ChainReader(
        get_async_web3(settings),
        timeout=settings.rpc_timeout_seconds,
        min_confirmations=settings.min_confirmations,
        log_chunk_blocks=settings.log_scan_chunk_blocks,
    )


def get_mint_dispatcher(
    settings: Settings = Depends(get_settings),
) -> Optional[MintDispatcher]:
    """Get the mint dispatcher, or None when minting is not configured."""
    global _dispatcher
    contract_address = settings.nft_contract_address
    private_key = settings.owner_private_key
    if not contract_address or not private_key:
        return None
    if _dispatcher is None:
        token_contract = Web3TokenContract(
            get_async_web3(settings),
            contract_address,
            private_key,
            chain_id=settings.chain_id,
            timeout=settings.rpc_timeout_seconds,
        )
        _dispatcher = MintDispatcher(
            token_contract,
            gas_limit=settings.mint_gas_limit,
            confirmation_timeout=settings.mint_confirmation_timeout_seconds,
        )
    return _dispatcher


def get_payment_verifier(
    chain_reader: ChainReaderProtocol = Depends(get_chain_reader),
    settings: Settings = Depends(get_settings),
) -> PaymentVerifier:
    """Get payment verifier."""
    return PaymentVerifier(
        chain_reader,
        asset_address=settings.usdc_address,
        treasury_address=settings.treasury_address,
        min_amount=settings.x402_price_usdc,
        min_confirmations=settings.min_confirmations,
    )


def get_payment_discovery(
    chain_reader: ChainReaderProtocol = Depends(get_chain_reader),
    settings: Settings = Depends(get_settings),
) -> PaymentDiscovery:
    """Get payment discovery."""
    return PaymentDiscovery(
        chain_reader,
        asset_address=settings.usdc_address,
        treasury_address=settings.treasury_address,
        lookback_blocks=settings.discovery_lookback_blocks,
    )


def get_payment_mint_service(
    processed_proof_repository: ProcessedProofRepository = Depends(
        get_processed_proof_repository
    ),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
    discovery: PaymentDiscovery = Depends(get_payment_discovery),
    dispatcher: Optional[MintDispatcher] = Depends(get_mint_dispatcher),
    settings: Settings = Depends(get_settings),
) -> PaymentMintService:
    """Get payment mint service."""
    return PaymentMintService(
        processed_proof_repository,
        verifier,
        discovery,
        dispatcher,
        resource=settings.x402_resource,
        locks=_locks,
        claim_ttl_seconds=settings.claim_ttl_seconds,
    )


def get_payment_requirements_builder(
    settings: Settings = Depends(get_settings),
) -> PaymentRequirementsBuilder:
    """Get the payment-requirement document builder."""
    return PaymentRequirementsBuilder(
        x402_version=settings.x402_version,
        network=settings.x402_network,
        price=settings.x402_price_usdc,
        resource=settings.x402_resource,
        description=settings.x402_description,
        pay_to=settings.treasury_address,
        max_timeout_seconds=settings.x402_max_timeout_seconds,
        asset=settings.x402_asset,
        project=settings.x402_project,
        input_fields=settings.x402_input_fields,
    )
