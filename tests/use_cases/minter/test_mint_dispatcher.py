"""Tests for MintDispatcher against the in-memory token contract."""

import pytest

from x402mint.application.minter.use_cases.mint_dispatcher import MintDispatcher
from x402mint.domain.errors import (
    AuthorityMismatchError,
    ChainUnavailableError,
    MintRevertedError,
    MintTimeoutError,
)
from x402mint.domain.shared.token_contract_protocol import PreparedMint
from tests.fixtures import ContractRevert, InMemoryTokenContract, accounts


async def test_dispatch_mints_sequential_token_ids(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract
) -> None:
    first = await dispatcher.dispatch(accounts.PAYER)
    second = await dispatcher.dispatch(accounts.SECOND_PAYER)

    assert first.recipient == accounts.PAYER
    assert first.quantity == 1
    assert first.tx_hash != second.tx_hash
    assert await token_contract.total_minted() == 2
    assert token_contract.token_owners == {1: accounts.PAYER, 2: accounts.SECOND_PAYER}


async def test_authority_mismatch_performs_no_mutation(
    token_contract: InMemoryTokenContract,
) -> None:
    token_contract.transfer_ownership(accounts.OWNER, accounts.STRANGER)
    dispatcher = MintDispatcher(token_contract)

    with pytest.raises(AuthorityMismatchError) as excinfo:
        await dispatcher.dispatch(accounts.PAYER)

    assert await token_contract.total_minted() == 0
    assert token_contract.broadcast_count == 0
    assert excinfo.value.details == {
        "onchainOwner": accounts.STRANGER,
        "signer": accounts.OWNER,
        "contract": accounts.NFT_CONTRACT,
    }


async def test_authority_is_read_fresh_on_every_dispatch(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract
) -> None:
    await dispatcher.dispatch(accounts.PAYER)
    token_contract.transfer_ownership(accounts.OWNER, accounts.STRANGER)

    with pytest.raises(AuthorityMismatchError):
        await dispatcher.dispatch(accounts.PAYER)
    assert await token_contract.total_minted() == 1


@pytest.mark.parametrize(
    "configure, reason",
    [
        (lambda c: c.set_mint_enabled(accounts.OWNER, False), "MintDisabled"),
        (lambda c: c.set_paused(accounts.OWNER, True), "EnforcedPause"),
    ],
)
async def test_contract_rejection_is_reported_before_broadcast(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract, configure, reason
) -> None:
    configure(token_contract)

    with pytest.raises(MintRevertedError, match=reason):
        await dispatcher.dispatch(accounts.PAYER)
    assert token_contract.broadcast_count == 0


async def test_sold_out() -> None:
    contract = InMemoryTokenContract(
        address=accounts.NFT_CONTRACT, owner=accounts.OWNER, max_supply=1
    )
    dispatcher = MintDispatcher(contract)
    await dispatcher.dispatch(accounts.PAYER)

    with pytest.raises(MintRevertedError, match="SoldOut"):
        await dispatcher.dispatch(accounts.SECOND_PAYER)
    assert await contract.total_minted() == 1


async def test_max_supply_exceeded() -> None:
    contract = InMemoryTokenContract(
        address=accounts.NFT_CONTRACT, owner=accounts.OWNER, max_supply=2
    )
    dispatcher = MintDispatcher(contract)

    with pytest.raises(MintRevertedError, match="MaxSupplyExceeded"):
        await dispatcher.dispatch(accounts.PAYER, 3)


async def test_quantity_zero(dispatcher: MintDispatcher) -> None:
    with pytest.raises(MintRevertedError, match="QuantityZero"):
        await dispatcher.dispatch(accounts.PAYER, 0)


async def test_on_broadcast_sees_signed_mint_before_send(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract
) -> None:
    seen = []

    async def on_broadcast(prepared: PreparedMint) -> None:
        seen.append((prepared.tx_hash, prepared.nonce, token_contract.broadcast_count))

    outcome = await dispatcher.dispatch(accounts.PAYER, on_broadcast=on_broadcast)
    await dispatcher.dispatch(accounts.SECOND_PAYER, on_broadcast=on_broadcast)

    assert seen[0] == (outcome.tx_hash, 0, 0)
    assert seen[1][1:] == (1, 1)


async def test_rejection_details_carry_contract_state(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract
) -> None:
    token_contract.set_mint_enabled(accounts.OWNER, False)

    with pytest.raises(MintRevertedError) as excinfo:
        await dispatcher.dispatch(accounts.PAYER)

    assert excinfo.value.details == {
        "mintEnabled": False,
        "paused": False,
        "totalMinted": 0,
        "maxSupply": 10,
    }


async def test_unreadable_contract_state_keeps_the_revert(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract, monkeypatch
) -> None:
    token_contract.set_paused(accounts.OWNER, True)

    async def unreachable() -> int:
        raise ChainUnavailableError("RPC unreachable")

    monkeypatch.setattr(token_contract, "max_supply", unreachable)

    with pytest.raises(MintRevertedError, match="EnforcedPause") as excinfo:
        await dispatcher.dispatch(accounts.PAYER)
    assert excinfo.value.details is None


async def test_confirmation_timeout(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract
) -> None:
    token_contract.hold_mints = True

    with pytest.raises(MintTimeoutError) as excinfo:
        await dispatcher.dispatch(accounts.PAYER)
    assert excinfo.value.mint_tx_hash in token_contract.mempool


async def test_reverted_receipt(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract
) -> None:
    token_contract.revert_reason = "out of gas"

    with pytest.raises(MintRevertedError) as excinfo:
        await dispatcher.dispatch(accounts.PAYER)
    assert excinfo.value.mint_tx_hash is not None
    assert await token_contract.total_minted() == 0


async def test_node_unreachable_during_broadcast(
    dispatcher: MintDispatcher, token_contract: InMemoryTokenContract
) -> None:
    token_contract.broadcast_error = ChainUnavailableError("RPC unreachable")

    with pytest.raises(ChainUnavailableError):
        await dispatcher.dispatch(accounts.PAYER)
    assert await token_contract.total_minted() == 0


def test_renounce_ownership_is_disabled(token_contract: InMemoryTokenContract) -> None:
    with pytest.raises(ContractRevert, match="RenounceDisabled"):
        token_contract.renounce_ownership(accounts.OWNER)
