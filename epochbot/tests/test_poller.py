import asyncio

from epochbot.domain import RoundStarted
from epochbot.gateway.subscription import RoundStartPoller
from epochbot.tests.fakes import FakeGateway


def test_poller_starts_at_head_and_queues_new_rounds() -> None:
    gw = FakeGateway()
    gw.logs = [RoundStarted(epoch=7, block_number=95), RoundStarted(epoch=8, block_number=104)]
    queue: asyncio.Queue = asyncio.Queue()
    poller = RoundStartPoller(gw, queue)

    async def scenario():
        first = await poller.poll_once()
        gw.head = 110
        second = await poller.poll_once()
        third = await poller.poll_once()
        return first, second, third

    first, second, third = asyncio.run(scenario())
    assert first == []
    assert [r.epoch for r in second] == [8]
    assert third == []
    assert queue.qsize() == 1
    assert queue.get_nowait().epoch == 8
