"""Test fixtures for in-memory implementations."""

from . import accounts
from .fake_chain_reader import FakeChainReader, make_tx_hash
from .in_memory_repositories import InMemoryProcessedProofRepository
from .in_memory_storage import InMemoryKeyValueStore
from .in_memory_token_contract import ContractRevert, InMemoryTokenContract

__all__ = [
    "accounts",
    "ContractRevert",
    "FakeChainReader",
    "InMemoryKeyValueStore",
    "InMemoryProcessedProofRepository",
    "InMemoryTokenContract",
    "make_tx_hash",
]
