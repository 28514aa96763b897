"""Tests for the one-second reading progress debounce."""

import asyncio
import logging

import pytest

from clurb.domains.reading.debounce import ProgressDebouncer


class Recorder:
    def __init__(self, fail: bool = False):
        self.pages = []
        self.fail = fail

    async def __call__(self, page: int) -> None:
        if self.fail:
            raise RuntimeError("database is gone")
        self.pages.append(page)


@pytest.mark.asyncio
async def test_rapid_page_changes_write_only_the_last_page() -> None:
    writes = Recorder()
    debouncer = ProgressDebouncer(writes, delay=0.05)

    for page in (3, 4, 5):
        debouncer.schedule(page)
    assert debouncer.pending == 5

    await asyncio.sleep(0.2)
    assert writes.pages == [5]
    assert debouncer.pending is None


@pytest.mark.asyncio
async def test_each_change_restarts_the_timer() -> None:
    writes = Recorder()
    debouncer = ProgressDebouncer(writes, delay=0.2)

    debouncer.schedule(1)
    await asyncio.sleep(0.12)
    debouncer.schedule(2)
    await asyncio.sleep(0.12)
    assert writes.pages == []

    await asyncio.sleep(0.2)
    assert writes.pages == [2]


@pytest.mark.asyncio
async def test_cancel_drops_the_pending_write() -> None:
    writes = Recorder()
    debouncer = ProgressDebouncer(writes, delay=0.05)

    debouncer.schedule(7)
    debouncer.cancel()
    await asyncio.sleep(0.15)

    assert writes.pages == []
    assert debouncer.pending is None


@pytest.mark.asyncio
async def test_flush_writes_immediately_once() -> None:
    writes = Recorder()
    debouncer = ProgressDebouncer(writes, delay=0.05)

    debouncer.schedule(2)
    await debouncer.flush()
    await asyncio.sleep(0.15)

    assert writes.pages == [2]


@pytest.mark.asyncio
async def test_flush_without_pending_page_does_nothing() -> None:
    writes = Recorder()
    await ProgressDebouncer(writes).flush()
    assert writes.pages == []


@pytest.mark.asyncio
async def test_failed_write_is_logged_and_not_retried(caplog: pytest.LogCaptureFixture) -> None:
    writes = Recorder(fail=True)
    debouncer = ProgressDebouncer(writes, delay=0.01)

    with caplog.at_level(logging.WARNING, logger="clurb.domains.reading.debounce"):
        debouncer.schedule(9)
        await asyncio.sleep(0.1)

    assert "page 9 failed" in caplog.text
    assert debouncer.pending is None

    writes.fail = False
    debouncer.schedule(10)
    await asyncio.sleep(0.1)
    assert writes.pages == [10]
