from __future__ import annotations

import asyncio


class NonceManager:
    """Hands out account nonces in order for a single sender.

    A nonce that was allocated but never reached the network (gas estimate
    reverted, signing failed, RPC refused the raw tx) must be given back
    with ``release``; otherwise every later transaction queues behind a gap.
    """

    def __init__(self, web3, address: str):
        self.w3 = web3
        self.address = address
        self._lock = asyncio.Lock()
        self._next_nonce: int | None = None
        self.released = 0

    async def _chain_nonce(self, loop) -> int:
        return int(
            await loop.run_in_executor(
                None, lambda: self.w3.eth.get_transaction_count(self.address, "pending")
            )
        )

    async def next_nonce(self, loop) -> int:
        async with self._lock:
            chain_nonce = await self._chain_nonce(loop)
            if self._next_nonce is None or self._next_nonce < chain_nonce:
                self._next_nonce = chain_nonce
            out = self._next_nonce
            self._next_nonce += 1
            return out

    async def release(self, nonce: int) -> None:
        async with self._lock:
            self.released += 1
            if self._next_nonce == nonce + 1:
                self._next_nonce = nonce
            else:
                # a later nonce is already out; fall back to the chain's pending count
                self._next_nonce = None

    async def reset_from_chain(self, loop) -> None:
        async with self._lock:
            self._next_nonce = await self._chain_nonce(loop)
