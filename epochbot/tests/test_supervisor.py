import asyncio
import logging

import pytest

from epochbot.runtime.supervisor import LoopSupervisor


class _Events:
    def __init__(self):
        self.items = []

    def emit(self, event, **fields):
        self.items.append((event, fields))


def test_backoff_grows_then_resets_after_healthy_run() -> None:
    sleeps: list[float] = []
    ticks = iter([0.0, 1.0, 1.0, 2.0, 2.0, 200.0, 200.0])
    calls = {"n": 0}
    events = _Events()

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    async def flaky() -> None:
        calls["n"] += 1
        if calls["n"] <= 2:
            raise RuntimeError("rpc down")
        if calls["n"] == 3:
            raise RuntimeError("after a long run")
        raise asyncio.CancelledError()

    sup = LoopSupervisor(
        base_delay=2.0,
        max_delay=20.0,
        healthy_after=60.0,
        events=events,
        sleep=fake_sleep,
        clock=lambda: next(ticks),
    )

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(sup.run_forever("poller", flaky, logging.getLogger("test.supervisor")))

    assert sleeps == [2.0, 3.0, 2.0]
    assert sup.restarts["poller"] == 3
    assert [e for e, _ in events.items] == ["loop.crash"] * 3
    assert events.items[-1][1]["restarts"] == 3
