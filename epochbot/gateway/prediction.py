from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from eth_account import Account
from web3 import Web3
from web3.logs import DISCARD
from web3.middleware import ExtraDataToPOAMiddleware

from epochbot.domain import ClaimBatch, ClaimReceipt, Direction, PayoutEvent, Round, RoundStarted
from epochbot.errors import CallTimeoutError, ClaimError, GatewayError, TransferError, WagerError
from epochbot.gateway.contracts import ContractProfile
from epochbot.gateway.nonce import NonceManager

TRANSFER_GAS = 21_000
LOG_CHUNK_BLOCKS = 2_000


def connect_web3(rpc_url: str, *, timeout: float = 10.0) -> Web3:
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


class PredictionGateway:
    """Async binding to a round-based prediction contract.

    web3 calls are blocking, so each one runs in the default executor and is
    bounded by ``call_timeout``. Writes go through a single lock so the
    nonce sequence stays ordered.
    """

    def __init__(
        self,
        w3: Web3,
        *,
        profile: ContractProfile,
        contract_address: str,
        private_key: str,
        chain_id: int,
        call_timeout: float = 30.0,
        tx_timeout: float = 120.0,
    ):
        self.w3 = w3
        self.profile = profile
        self.account = Account.from_key(private_key)
        self.address = self.account.address
        self.chain_id = int(chain_id)
        self.call_timeout = float(call_timeout)
        self.tx_timeout = float(tx_timeout)
        self.contract = w3.eth.contract(
            address=Web3.to_checksum_address(contract_address), abi=list(profile.abi)
        )
        self._nonce_mgr = NonceManager(w3, self.address)
        self._tx_lock = asyncio.Lock()

    async def _call(self, fn: Callable[[], Any], *, what: str, timeout: float | None = None) -> Any:
        loop = asyncio.get_running_loop()
        limit = self.call_timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(loop.run_in_executor(None, fn), timeout=limit)
        except asyncio.TimeoutError as exc:
            raise CallTimeoutError(f"{what} timed out after {limit:.0f}s") from exc
        except GatewayError:
            raise
        except Exception as exc:
            raise GatewayError(f"{what} failed: {exc}") from exc

    # ── reads ─────────────────────────────────────────────────────────────────
    async def block_number(self) -> int:
        return int(await self._call(lambda: self.w3.eth.block_number, what="block_number"))

    async def current_epoch(self) -> int:
        return int(await self._call(self.contract.functions.currentEpoch().call, what="currentEpoch"))

    async def balance(self) -> int:
        return int(await self._call(lambda: self.w3.eth.get_balance(self.address), what="get_balance"))

    async def get_round(self, epoch: int) -> Round:
        p = self.profile
        fn = getattr(self.contract.functions, p.round_fn)(int(epoch))
        row = await self._call(fn.call, what=f"{p.round_fn}({epoch})")
        return Round(
            epoch=int(epoch),
            bull_pool=int(row[p.round_bull_index]),
            bear_pool=int(row[p.round_bear_index]),
            lock_timestamp=int(row[p.round_lock_index]),
            close_timestamp=int(row[p.round_close_index]),
        )

    async def round_starts(self, from_block: int, to_block: int) -> list[RoundStarted]:
        out: list[RoundStarted] = []
        start = int(from_block)
        while start <= to_block:
            end = min(int(to_block), start + LOG_CHUNK_BLOCKS - 1)
            logs = await self._call(
                lambda s=start, e=end: self.contract.events.StartRound().get_logs(from_block=s, to_block=e),
                what=f"StartRound logs {start}-{end}",
            )
            for ev in logs:
                out.append(RoundStarted(epoch=int(ev["args"]["epoch"]), block_number=int(ev["blockNumber"])))
            start = end + 1
        out.sort(key=lambda r: r.epoch)
        return out

    async def _epoch_claimable(self, epoch: int) -> bool:
        p = self.profile
        fns = self.contract.functions
        ledger = await self._call(
            getattr(fns, p.ledger_fn)(epoch, self.address).call, what=f"{p.ledger_fn}({epoch})"
        )
        amount = int(ledger[p.ledger_amount_index])
        claimed = bool(ledger[p.ledger_claimed_index])
        if amount <= 0 or claimed:
            return False
        claimable, refundable = await asyncio.gather(
            self._call(fns.claimable(epoch, self.address).call, what=f"claimable({epoch})"),
            self._call(fns.refundable(epoch, self.address).call, what=f"refundable({epoch})"),
        )
        return bool(claimable) or bool(refundable)

    async def claimable_epochs(self, reference_epoch: int, *, lookback: int = 5) -> ClaimBatch:
        """Unclaimed, resolved positions in the ``lookback`` rounds before ``reference_epoch``."""
        candidates = [int(reference_epoch) - i for i in range(1, int(lookback) + 1)]
        candidates = [e for e in candidates if e > 0]
        flags = await asyncio.gather(*[self._epoch_claimable(e) for e in candidates])
        epochs = tuple(sorted(e for e, ok in zip(candidates, flags) if ok))
        return ClaimBatch(reference_epoch=int(reference_epoch), epochs=epochs)

    # ── writes ────────────────────────────────────────────────────────────────
    async def _send(self, build_tx: Callable[[dict], dict], *, what: str, error_cls: type[GatewayError]) -> Any:
        loop = asyncio.get_running_loop()
        async with self._tx_lock:
            last_err: Exception | None = None
            for _ in range(3):
                nonce: int | None = None
                broadcast = False
                try:
                    nonce = await self._nonce_mgr.next_nonce(loop)
                    gas_price = await self._call(lambda: self.w3.eth.gas_price, what="gas_price")
                    base = {
                        "from": self.address,
                        "nonce": nonce,
                        "gasPrice": gas_price,
                        "chainId": self.chain_id,
                    }
                    tx = await self._call(lambda: build_tx(base), what=f"build {what}")
                    signed = self.account.sign_transaction(tx)
                    tx_hash = await self._call(
                        lambda: self.w3.eth.send_raw_transaction(signed.raw_transaction), what=f"send {what}"
                    )
                    broadcast = True
                    receipt = await self._call(
                        lambda h=tx_hash: self.w3.eth.wait_for_transaction_receipt(h, timeout=self.tx_timeout),
                        what=f"receipt {what}",
                        timeout=self.tx_timeout + 5.0,
                    )
                    if receipt.status != 1:
                        raise error_cls(f"{what} reverted", detail=tx_hash.hex())
                    return receipt
                except Exception as e:
                    if nonce is not None and not broadcast:
                        await self._nonce_mgr.release(nonce)
                    if isinstance(e, error_cls):
                        raise
                    last_err = e
                    msg = str(e).lower()
                    if "nonce too low" in msg or "already known" in msg:
                        await self._nonce_mgr.reset_from_chain(loop)
                        await asyncio.sleep(0.4)
                        continue
                    raise error_cls(f"{what} failed: {e}") from e
            raise error_cls(f"{what} failed after retries: {last_err}")

    async def place_wager(self, epoch: int, direction: Direction, stake_wei: int) -> str:
        if direction is Direction.SKIP:
            raise ValueError("cannot wager on a skip decision")
        fn_name = self.profile.bet_fn(direction is Direction.BULL)
        fn = getattr(self.contract.functions, fn_name)(int(epoch))
        receipt = await self._send(
            lambda base: fn.build_transaction({**base, "value": int(stake_wei)}),
            what=f"{fn_name}({epoch})",
            error_cls=WagerError,
        )
        return receipt.transactionHash.hex()

    async def claim(self, epochs: tuple[int, ...]) -> ClaimReceipt:
        fn = getattr(self.contract.functions, self.profile.claim_fn)([int(e) for e in epochs])
        receipt = await self._send(
            lambda base: fn.build_transaction(base),
            what=f"{self.profile.claim_fn}({list(epochs)})",
            error_cls=ClaimError,
        )
        return ClaimReceipt(tx_hash=receipt.transactionHash.hex(), payouts=self.parse_payouts(receipt))

    def parse_payouts(self, receipt) -> tuple[PayoutEvent, ...]:
        events = self.contract.events.Claim().process_receipt(receipt, errors=DISCARD)
        key = self.profile.claim_epoch_arg
        return tuple(
            PayoutEvent(epoch=int(ev["args"].get(key, 0)), amount=int(ev["args"]["amount"]))
            for ev in events
        )

    async def transfer(self, destination: str, amount_wei: int) -> str:
        to = Web3.to_checksum_address(destination)
        receipt = await self._send(
            lambda base: {**base, "to": to, "value": int(amount_wei), "gas": TRANSFER_GAS},
            what=f"transfer to {to[:10]}...",
            error_cls=TransferError,
        )
        return receipt.transactionHash.hex()
