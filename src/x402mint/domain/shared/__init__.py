"""Shared domain utilities.

This package is domain-accessible and should not depend on application code.
"""

from .chain_reader_protocol import ChainReaderProtocol
from .token_contract_protocol import TokenContractProtocol

__all__ = ["ChainReaderProtocol", "TokenContractProtocol"]
