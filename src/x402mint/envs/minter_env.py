from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from eth_account import Account
from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3


def _checksum(v: Optional[str], name: str) -> Optional[str]:
    if v is None or v == "":
        return None
    if not Web3.is_address(v):
        raise ValueError(f"Invalid {name}: {v}")
    return Web3.to_checksum_address(v)


class Settings(BaseModel):
    """Process-wide configuration, read once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    # Ledger
    rpc_url: str
    chain_id: int
    rpc_timeout_seconds: float
    usdc_address: str
    treasury_address: str
    nft_contract_address: Optional[str]
    owner_private_key: Optional[str] = Field(..., repr=False)
    min_confirmations: int
    discovery_lookback_blocks: int
    log_scan_chunk_blocks: int
    mint_gas_limit: int
    mint_confirmation_timeout_seconds: float
    claim_ttl_seconds: float

    # x402 requirement document
    x402_version: int
    x402_resource: str
    x402_price_usdc: int
    x402_network: str
    x402_asset: str
    x402_max_timeout_seconds: int
    x402_description: str
    x402_project: str
    x402_input_fields: list[str]
    x402_get_status: int

    # Processed-proof store
    database_url: str

    api_host: str
    api_port: int
    api_debug: bool
    api_workers: int
    api_cors_origins: list[str]

    app_name: str
    app_version: str
    log_level: str

    @field_validator("usdc_address", "treasury_address")
    @classmethod
    def validate_required_address(cls, v: str) -> str:
        address = _checksum(v, "address")
        if address is None:
            raise ValueError("USDC_ADDRESS and TREASURY_ADDRESS are required")
        return address

    @field_validator("nft_contract_address")
    @classmethod
    def validate_contract_address(cls, v: Optional[str]) -> Optional[str]:
        return _checksum(v, "NFT_CONTRACT_ADDRESS")

    @field_validator("owner_private_key")
    @classmethod
    def validate_owner_private_key(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        try:
            Account.from_key(v)
        except Exception as e:
            raise ValueError(f"Invalid OWNER_PRIVATE_KEY: {type(e).__name__}") from e
        return v

    @field_validator("x402_price_usdc")
    @classmethod
    def validate_price(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("X402_PRICE_USDC must be > 0")
        return v

    @field_validator("x402_get_status")
    @classmethod
    def validate_get_status(cls, v: int) -> int:
        if v not in (200, 402):
            raise ValueError("X402_GET_STATUS must be 200 or 402")
        return v

    @property
    def can_mint(self) -> bool:
        return bool(self.owner_private_key and self.nft_contract_address)


def _bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


def _list(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the typed settings instance sourced from env vars."""
    return Settings(
        rpc_url=os.environ.get("RPC_URL", "http://localhost:8545"),
        chain_id=int(os.environ.get("CHAIN_ID", "8453")),
        rpc_timeout_seconds=float(os.environ.get("RPC_TIMEOUT_SECONDS", "20")),
        usdc_address=os.environ.get("USDC_ADDRESS", ""),
        treasury_address=os.environ.get("TREASURY_ADDRESS", ""),
        nft_contract_address=os.environ.get("NFT_CONTRACT_ADDRESS"),
        owner_private_key=os.environ.get("OWNER_PRIVATE_KEY"),
        min_confirmations=int(os.environ.get("MIN_CONFIRMATIONS", "1")),
        discovery_lookback_blocks=int(
            os.environ.get("DISCOVERY_LOOKBACK_BLOCKS", "50000")
        ),
        log_scan_chunk_blocks=int(os.environ.get("LOG_SCAN_CHUNK_BLOCKS", "10000")),
        mint_gas_limit=int(os.environ.get("MINT_GAS_LIMIT", "300000")),
        mint_confirmation_timeout_seconds=float(
            os.environ.get("MINT_CONFIRMATION_TIMEOUT_SECONDS", "120")
        ),
        claim_ttl_seconds=float(os.environ.get("CLAIM_TTL_SECONDS", "300")),
        x402_version=int(os.environ.get("X402_VERSION", "1")),
        x402_resource=os.environ.get("X402_RESOURCE", "mint:x402apes:1"),
        # 10 USDC (6 decimals)
        x402_price_usdc=int(os.environ.get("X402_PRICE_USDC", "10000000")),
        x402_network=os.environ.get("X402_NETWORK", "base"),
        x402_asset=os.environ.get("X402_ASSET", "USDC"),
        x402_max_timeout_seconds=int(os.environ.get("X402_MAX_TIMEOUT_SECONDS", "600")),
        x402_description=os.environ.get(
            "X402_DESCRIPTION",
            "Mint one x402Apes NFT automatically after USDC payment confirmation.",
        ),
        x402_project=os.environ.get("X402_PROJECT", "x402Apes"),
        x402_input_fields=_list("X402_INPUT_FIELDS", ""),
        x402_get_status=int(os.environ.get("X402_GET_STATUS", "402")),
        database_url=os.environ.get("DATABASE_URL", "redis://localhost:6379/0"),
        api_host=os.environ.get("API_HOST", "0.0.0.0"),
        api_port=int(os.environ.get("API_PORT", "8000")),
        api_debug=_bool("API_DEBUG", "false"),
        api_workers=int(os.environ.get("API_WORKERS", "1")),
        api_cors_origins=_list("API_CORS_ORIGINS", "*"),
        app_name=os.environ.get("APP_NAME", "x402mint"),
        app_version=os.environ.get("APP_VERSION", "1.0.0"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
