import asyncio

import httpx
import pytest

from stationlog import fetch_history
from stationlog.models import Server
from stationlog.poller import PollDriver
from stationlog.state import DashboardState

SERVERS_BODY = {
    "data": [
        {"server_code": "de1", "server_name": "DE1", "is_active": False},
        {"server_code": "en1", "server_name": "EN1", "is_active": True},
        {"server_code": "pl1", "server_name": "PL1", "is_active": True},
    ],
}


@pytest.fixture(autouse=True)
def _clear_history():
    fetch_history.clear()
    yield
    fetch_history.clear()


def _stations_body(code: str, steam_id: str | None = None) -> dict:
    dispatched_by = [{"steam_id": steam_id}] if steam_id else []
    return {"data": [{"prefix": code.upper(), "dispatched_by": dispatched_by}]}


def _state() -> DashboardState:
    return DashboardState(servers=[
        Server("en1", "EN1", True),
        Server("pl1", "PL1", True),
    ])


def test_tick_without_server_is_noop():
    def handler(request):
        raise AssertionError("no request expected")

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            driver = PollDriver(DashboardState(), client)
            return driver.tick()

    assert asyncio.run(go()) is None


def test_select_server_polls_immediately():
    def handler(request):
        return httpx.Response(200, json=_stations_body(request.url.params["serverCode"], "111"))

    async def go():
        state = _state()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            driver = PollDriver(state, client)
            await driver.select_server("en1")
        return state

    state = asyncio.run(go())
    assert [e.occupant for e in state.log.history("EN1")] == ["111"]
    assert fetch_history.last().status == "ok"


def test_failed_fetch_leaves_history_untouched():
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        if calls == 1:
            return httpx.Response(200, json=_stations_body("en1", "111"))
        if calls == 2:
            return httpx.Response(500)
        return httpx.Response(200, text="not json")

    async def go():
        state = _state()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            driver = PollDriver(state, client)
            await driver.select_server("en1")
            await driver.tick()
            await driver.tick()
        return state

    state = asyncio.run(go())
    assert [e.occupant for e in state.log.history("EN1")] == ["111"]
    events, total = fetch_history.load_page(status="error")
    assert total == 2


def test_stale_response_after_switch_is_dropped():
    async def go():
        state = _state()
        gate = asyncio.Event()

        async def handler(request):
            code = request.url.params["serverCode"]
            if code == "en1":
                await gate.wait()
            return httpx.Response(200, json=_stations_body(code, "111"))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            driver = PollDriver(state, client)
            slow = driver.select_server("en1")
            await asyncio.sleep(0)
            await driver.select_server("pl1")
            gate.set()
            await slow
        return state

    state = asyncio.run(go())
    assert state.selected_server == "pl1"
    assert state.log.prefixes() == ["PL1"]
    assert fetch_history.last().status == "stale"
    assert fetch_history.last().server == "en1"


def test_run_bootstraps_from_server_list():
    server_calls = 0

    def handler(request):
        nonlocal server_calls
        if request.url.path == "/servers-open":
            server_calls += 1
            if server_calls == 1:
                raise httpx.ConnectError("down", request=request)
            return httpx.Response(200, json=SERVERS_BODY)
        return httpx.Response(200, json=_stations_body(request.url.params["serverCode"]))

    async def go():
        state = DashboardState()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            driver = PollDriver(state, client, interval=0.01)
            task = asyncio.create_task(driver.run())
            for _ in range(200):
                await asyncio.sleep(0.01)
                if state.log.count:
                    break
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            await driver.aclose()
        return state

    state = asyncio.run(go())
    assert server_calls == 2
    assert state.selected_server == "en1"
    assert [e.occupant for e in state.log.history("EN1")] == ["BOT"]


def _ko_body(steam_id: str | None) -> dict:
    dispatched_by = [{"steam_id": steam_id}] if steam_id else []
    return {"data": [{"prefix": "KO", "dispatched_by": dispatched_by}]}


def test_fetch_from_earlier_selection_of_same_server_is_dropped():
    async def go():
        state = _state()
        gate = asyncio.Event()
        slow_reached = asyncio.Event()
        en1_calls = 0

        async def handler(request):
            nonlocal en1_calls
            if request.url.params["serverCode"] == "en1":
                en1_calls += 1
                if en1_calls == 1:
                    slow_reached.set()
                    await gate.wait()
                    return httpx.Response(200, json=_ko_body("OLD"))
            return httpx.Response(200, json=_ko_body(None))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            driver = PollDriver(state, client)
            slow = driver.select_server("en1")
            await slow_reached.wait()
            await driver.select_server("pl1")
            await driver.select_server("en1")
            gate.set()
            await slow
        return state

    state = asyncio.run(go())
    assert state.selected_server == "en1"
    assert [e.occupant for e in state.log.history("KO")] == ["BOT"]
    assert fetch_history.last().status == "stale"


def test_overlapping_fetches_apply_in_completion_order():
    async def go():
        state = _state()
        state.select_server("en1")
        gate = asyncio.Event()
        first_reached = asyncio.Event()
        replies = ["111", "222", "111", "111"]
        calls = 0

        async def handler(request):
            nonlocal calls
            calls += 1
            steam_id = replies[calls - 1]
            if calls == 1:
                first_reached.set()
                await gate.wait()
            return httpx.Response(200, json=_ko_body(steam_id))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            driver = PollDriver(state, client)
            first = driver.tick()
            await first_reached.wait()
            second = driver.tick()
            await second
            after_second = [e.occupant for e in state.log.history("KO")]
            gate.set()
            await first
            await driver.tick()
            await driver.tick()
        return state, after_second

    state, after_second = asyncio.run(go())
    assert after_second == ["222"]
    events = state.log.history("KO")
    # the late "111" lands after "222"; the later identical replies collapse into it
    assert [e.occupant for e in events] == ["222", "111"]
    for a, b in zip(events, events[1:]):
        assert a.occupant != b.occupant
