"""ProcessedProof repository implementation over a storage abstraction."""

from __future__ import annotations

from typing import Any, Optional

from ...domain.minter.entities import MintOutcome, ProcessedProof
from ...domain.minter.processed_proof_repository import ProcessedProofRepository
from ..scripts import MINTER_SCRIPTS
from ..storage import KeyValueStore


def _proof_key(tx_hash: str) -> str:
    return f"processed_proof:{tx_hash.lower()}"


class ProcessedProofRepositoryImpl(ProcessedProofRepository):
    """Processed-proof ledger using a KeyValueStore and atomic Lua transitions."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._scripts_registered = False

    async def _run(self, name: str, tx_hash: str, *args: str) -> tuple[int, str]:
        if not self._scripts_registered:
            for script_name, source in MINTER_SCRIPTS.items():
                await self.store.register_script(script_name, source)
            self._scripts_registered = True
        result: Any = await self.store.run_script(name, [_proof_key(tx_hash)], list(args))
        code, value = result[0], result[1]
        if isinstance(value, bytes):
            value = value.decode()
        return int(code), value or ""

    async def get(self, tx_hash: str) -> Optional[ProcessedProof]:
        data = await self.store.get(_proof_key(tx_hash))
        if not data:
            return None
        return ProcessedProof.model_validate_json(data)

    async def is_processed(self, tx_hash: str) -> bool:
        proof = await self.get(tx_hash)
        return proof is not None and proof.is_completed

    async def try_claim(self, tx_hash: str, payer: str) -> bool:
        proof = ProcessedProof(tx_hash=tx_hash.lower(), payer=payer)
        return await self.store.set_if_absent(
            _proof_key(tx_hash), proof.model_dump_json()
        )

    async def record_broadcast(
        self, tx_hash: str, mint_tx_hash: str, nonce: Optional[int] = None
    ) -> ProcessedProof:
        proof = await self.get(tx_hash)
        if proof is None:
            raise ValueError(f"No in-flight claim for payment {tx_hash}")
        proof.broadcast(mint_tx_hash, nonce)

        code, current = await self._run(
            "record_broadcast", tx_hash, proof.model_dump_json()
        )
        if code == 2:
            raise ValueError(f"No in-flight claim for payment {tx_hash}")
        if code == 0:
            raise ValueError(
                f"Claim for payment {tx_hash} changed state concurrently: {current}"
            )
        return ProcessedProof.model_validate_json(current)

    async def mark_processed(
        self, tx_hash: str, outcome: MintOutcome
    ) -> ProcessedProof:
        proof = await self.get(tx_hash)
        if proof is None:
            proof = ProcessedProof(tx_hash=tx_hash.lower())
        if proof.is_completed:
            return proof
        proof.complete(outcome)

        _, current = await self._run("complete_proof", tx_hash, proof.model_dump_json())
        # Code 0 means another worker completed it first; keep its record
        return ProcessedProof.model_validate_json(current)

    async def release(self, tx_hash: str) -> bool:
        code, _ = await self._run("release_proof", tx_hash)
        return code == 1
