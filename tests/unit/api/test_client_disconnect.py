import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.api.app import run_transcode, watch_disconnect
from src.transcoding.domain.exceptions import SearchCancelledError


class FakeRequest:
    """Request, у которого клиент отключается после disconnect_after опросов."""

    def __init__(self, disconnect_after=None):
        self.disconnect_after = disconnect_after
        self.polls = 0

    async def is_disconnected(self):
        self.polls += 1
        return self.disconnect_after is not None and self.polls > self.disconnect_after

    class url:
        path = "/optimize"


class BlockingService:
    """Кодирует, пока не выставлен cancel_event (не дольше timeout)."""

    def __init__(self, timeout=5.0):
        self.timeout = timeout

    def deadline_from_now(self):
        return time.monotonic() + self.timeout

    def process(self, raw, request, deadline, cancel_event):
        if cancel_event.wait(self.timeout):
            raise SearchCancelledError(message="cancelled", component="BlockingService")
        return "done"


class QuickService(BlockingService):
    def process(self, raw, request, deadline, cancel_event):
        return "done"


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=1)
    yield pool
    pool.shutdown(wait=True)


def test_watch_disconnect_sets_cancel_event():
    async def scenario():
        future = asyncio.get_running_loop().create_future()
        cancel_event = threading.Event()
        await watch_disconnect(FakeRequest(disconnect_after=2), future, cancel_event, interval=0.01)
        return cancel_event.is_set()

    assert asyncio.run(scenario())


def test_watch_disconnect_stops_when_work_done():
    async def scenario():
        future = asyncio.get_running_loop().create_future()
        future.set_result("done")
        cancel_event = threading.Event()
        request = FakeRequest()
        await watch_disconnect(request, future, cancel_event, interval=0.01)
        return cancel_event.is_set(), request.polls

    assert asyncio.run(scenario()) == (False, 0)


def test_disconnect_cancels_running_search(executor):
    """Тест: клиент отключился -> воркер получает сигнал и прекращает поиск."""
    started = time.monotonic()
    with pytest.raises(SearchCancelledError):
        asyncio.run(run_transcode(
            executor, BlockingService(), FakeRequest(disconnect_after=1), b"raw", None, poll_interval=0.01,
        ))
    assert time.monotonic() - started < 2.0


def test_connected_client_gets_result(executor):
    result = asyncio.run(run_transcode(
        executor, QuickService(), FakeRequest(), b"raw", None, poll_interval=0.01,
    ))
    assert result == "done"
