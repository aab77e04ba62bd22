import asyncio

import pytest
from web3 import Web3

from epochbot.domain import Direction
from epochbot.errors import ClaimError, TransferError, WagerError
from epochbot.gateway.contracts import PROFILES, get_profile
from epochbot.gateway.nonce import NonceManager
from epochbot.gateway.prediction import PredictionGateway
from epochbot.tests.fakes import FakeContract, FakeEth, FakeSigner, FakeWeb3

TEST_KEY = "0x" + "11" * 32
CONTRACT = "0x18B2A687610328590Bc8F2e5fEdDe3b582A49cdA"
BENEFICIARY = "0x000000000000000000000000000000000000dEaD"


def _gateway(eth: FakeEth, profile: str = "pancake_v2") -> tuple[PredictionGateway, FakeSigner]:
    gw = PredictionGateway(
        FakeWeb3(eth),
        profile=get_profile(profile),
        contract_address=CONTRACT,
        private_key=TEST_KEY,
        chain_id=56,
        call_timeout=5.0,
        tx_timeout=5.0,
    )
    signer = FakeSigner()
    gw.account = signer
    return gw, signer


def test_reverted_gas_estimate_gives_the_nonce_back() -> None:
    contract = FakeContract(revert_build={"betBull": "execution reverted: Round not bettable"})
    eth = FakeEth(contract, pending_nonce=7)
    gw, signer = _gateway(eth)

    async def scenario():
        with pytest.raises(WagerError, match="Round not bettable"):
            await gw.place_wager(101, Direction.BULL, 10**17)
        return await gw.place_wager(102, Direction.BEAR, 10**17)

    tx_hash = asyncio.run(scenario())
    assert tx_hash
    assert [tx["nonce"] for tx in signer.signed] == [7]
    assert signer.signed[0]["data"] == "betBear"
    assert signer.signed[0]["value"] == 10**17
    assert len(eth.sent) == 1
    assert gw._nonce_mgr.released == 1


def test_reverted_receipt_raises_and_keeps_nonce_consumed() -> None:
    eth = FakeEth(FakeContract(), pending_nonce=7, receipt_status=0)
    gw, signer = _gateway(eth)

    with pytest.raises(ClaimError, match="reverted"):
        asyncio.run(gw.claim((3, 4)))

    assert [tx["nonce"] for tx in signer.signed] == [7]
    assert signer.signed[0]["args"] == ([3, 4],)
    assert eth.pending_nonce == 8
    assert gw._nonce_mgr.released == 0


def test_reverted_wager_receipt_raises_wager_error() -> None:
    eth = FakeEth(FakeContract(), receipt_status=0)
    gw, _ = _gateway(eth)
    with pytest.raises(WagerError):
        asyncio.run(gw.place_wager(5, Direction.BULL, 1))


def test_nonce_too_low_is_retried_with_chain_nonce() -> None:
    eth = FakeEth(FakeContract(), pending_nonce=7, send_errors=[ValueError("nonce too low")])
    gw, signer = _gateway(eth)

    tx_hash = asyncio.run(gw.transfer(BENEFICIARY, 5000))

    assert tx_hash
    assert [tx["nonce"] for tx in signer.signed] == [7, 7]
    assert signer.signed[-1]["gas"] == 21_000
    assert signer.signed[-1]["to"] == Web3.to_checksum_address(BENEFICIARY)
    assert len(eth.sent) == 1


def test_send_rejection_becomes_transfer_error_and_releases_nonce() -> None:
    eth = FakeEth(FakeContract(), pending_nonce=3, send_errors=[ValueError("insufficient funds for gas")])
    gw, _ = _gateway(eth)

    with pytest.raises(TransferError, match="insufficient funds"):
        asyncio.run(gw.transfer(BENEFICIARY, 1))

    assert gw._nonce_mgr.released == 1
    assert eth.sent == []


def test_skip_direction_is_not_wagerable() -> None:
    gw, _ = _gateway(FakeEth(FakeContract()))
    with pytest.raises(ValueError):
        asyncio.run(gw.place_wager(5, Direction.SKIP, 1))


def test_claimable_epochs_filters_and_sorts() -> None:
    ledger = {
        9: (0, 0, False),
        8: (0, 10, True),
        7: (1, 10, False),
        6: (1, 10, False),
        5: (0, 10, False),
    }
    contract = FakeContract(
        views={
            "ledger": lambda epoch, addr: ledger[epoch],
            "claimable": lambda epoch, addr: epoch == 7,
            "refundable": lambda epoch, addr: epoch == 6,
        }
    )
    gw, _ = _gateway(FakeEth(contract))

    batch = asyncio.run(gw.claimable_epochs(10, lookback=5))

    assert batch.reference_epoch == 10
    assert batch.epochs == (6, 7)
    # zero-amount and already-claimed rounds never hit claimable/refundable
    checked = {args[0] for name, args in contract.calls if name == "claimable"}
    assert checked == {7, 6, 5}


def test_claimable_epochs_stops_at_epoch_one() -> None:
    contract = FakeContract(
        views={
            "ledger": lambda epoch, addr: (0, 0, False),
            "claimable": lambda epoch, addr: False,
            "refundable": lambda epoch, addr: False,
        }
    )
    gw, _ = _gateway(FakeEth(contract))

    batch = asyncio.run(gw.claimable_epochs(3, lookback=5))

    assert not batch
    assert sorted(args[0] for name, args in contract.calls) == [1, 2]


@pytest.mark.parametrize("name", sorted(PROFILES))
def test_get_round_maps_pool_and_timestamp_fields(name) -> None:
    profile = get_profile(name)
    outputs = [o["name"] for o in next(e for e in profile.abi if e["name"] == profile.round_fn)["outputs"]]
    values = {"bullAmount": 11, "bearAmount": 22, "lockTimestamp": 33, "closeTimestamp": 44}
    row = tuple(values.get(field, 0) for field in outputs)
    contract = FakeContract(views={profile.round_fn: lambda epoch: row})
    gw, _ = _gateway(FakeEth(contract), profile=name)

    rnd = asyncio.run(gw.get_round(12))

    assert rnd.epoch == 12
    assert (rnd.bull_pool, rnd.bear_pool) == (11, 22)
    assert (rnd.lock_timestamp, rnd.close_timestamp) == (33, 44)


def _claim_log(contract_address: str, sender: str, epoch: int, amount: int, index: int) -> dict:
    return {
        "address": contract_address,
        "topics": [
            Web3.keccak(text="Claim(address,uint256,uint256)"),
            bytes(12) + bytes.fromhex(sender[2:]),
            epoch.to_bytes(32, "big"),
        ],
        "data": amount.to_bytes(32, "big"),
        "blockHash": b"\x01" * 32,
        "blockNumber": 1,
        "transactionHash": b"\x02" * 32,
        "transactionIndex": 0,
        "logIndex": index,
    }


@pytest.mark.parametrize("name", sorted(PROFILES))
def test_parse_payouts_reads_claim_events(name) -> None:
    w3 = Web3(Web3.HTTPProvider("http://127.0.0.1:8545"))
    gw = PredictionGateway(
        w3, profile=get_profile(name), contract_address=CONTRACT, private_key=TEST_KEY, chain_id=56
    )
    address = gw.contract.address
    unrelated = {
        **_claim_log(address, gw.address, 0, 0, 2),
        "topics": [Web3.keccak(text="StartRound(uint256)"), (99).to_bytes(32, "big")],
        "data": b"",
    }
    receipt = {
        "logs": [
            _claim_log(address, gw.address, 41, 1500, 0),
            _claim_log(address, gw.address, 43, 2500, 1),
            unrelated,
        ]
    }

    payouts = gw.parse_payouts(receipt)

    assert [(p.epoch, p.amount) for p in payouts] == [(41, 1500), (43, 2500)]


def test_nonce_release_of_latest_allocation_reuses_it() -> None:
    eth = FakeEth(FakeContract(), pending_nonce=7)
    mgr = NonceManager(FakeWeb3(eth), "0xabc")

    async def scenario():
        loop = asyncio.get_running_loop()
        first = await mgr.next_nonce(loop)
        await mgr.release(first)
        return first, await mgr.next_nonce(loop)

    assert asyncio.run(scenario()) == (7, 7)


def test_nonce_release_behind_a_later_allocation_falls_back_to_chain() -> None:
    eth = FakeEth(FakeContract(), pending_nonce=7)
    mgr = NonceManager(FakeWeb3(eth), "0xabc")

    async def scenario():
        loop = asyncio.get_running_loop()
        a = await mgr.next_nonce(loop)
        b = await mgr.next_nonce(loop)
        await mgr.release(a)
        eth.pending_nonce = 8  # b was broadcast
        return a, b, await mgr.next_nonce(loop)

    assert asyncio.run(scenario()) == (7, 8, 8)
