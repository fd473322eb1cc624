import asyncio

from polling import RefreshLoop, bills_view, chats_view, dashboard_view, rides_view
from schemas import RideCreate


async def test_refresh_replaces_snapshot():
    counter = {"n": 0}

    async def fetch():
        counter["n"] += 1
        return counter["n"]

    seen = []
    loop = RefreshLoop(fetch, interval=10, on_update=seen.append)
    assert loop.snapshot is None
    assert await loop.refresh() == 1
    assert await loop.refresh() == 2
    assert loop.snapshot == 2
    assert seen == [1, 2]


async def test_loop_sees_other_writers(rides, alice):
    view = rides_view(rides)
    view.interval = 0.01
    async with view:
        await asyncio.sleep(0.03)
        await rides.create(RideCreate(origin="Mess", destination="Airport", time="5:00 AM"), alice)
        await asyncio.sleep(0.05)
        assert view.running
    assert not view.running
    assert view.snapshot[0].driver == alice


async def test_stop_cancels_timer():
    calls = []

    async def fetch():
        calls.append(1)
        return len(calls)

    loop = RefreshLoop(fetch, interval=0.01)
    loop.start()
    await asyncio.sleep(0.05)
    await loop.stop()
    stopped_at = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == stopped_at
    assert not loop.running


async def test_failed_fetch_keeps_previous_snapshot():
    results = [["a"], RuntimeError("store unreachable")]

    async def fetch():
        result = results.pop(0) if results else ["b"]
        if isinstance(result, Exception):
            raise result
        return result

    loop = RefreshLoop(fetch, interval=0.01)
    loop.start()
    await asyncio.sleep(0.005)
    assert loop.snapshot == ["a"]
    await asyncio.sleep(0.1)
    await loop.stop()
    assert loop.snapshot == ["b"]
    assert loop.refreshes >= 2


async def test_start_twice_runs_one_timer():
    async def fetch():
        return None

    loop = RefreshLoop(fetch, interval=0.01)
    loop.start()
    task = loop._task
    loop.start()
    assert loop._task is task
    await loop.stop()


async def test_screen_views(rides, items, tasks, bills, chats):
    assert rides_view(rides).interval == 3.0
    assert bills_view(bills, "u1").interval == 4.0
    assert dashboard_view(rides, items, tasks).interval == 5.0

    stats = await dashboard_view(rides, items, tasks).refresh()
    assert stats.rides == 3
    assert len(await bills_view(bills, "u1").refresh()) == 4
    assert await chats_view(chats, "u1").refresh() == []
