from __future__ import annotations

import asyncio

import pytest

from pyrbo._debounce import Debouncer


@pytest.mark.asyncio
async def test_triggers_within_interval_fire_once() -> None:
    calls: list[float] = []
    loop = asyncio.get_running_loop()
    debouncer = Debouncer(0.02, lambda: calls.append(loop.time()))

    start = loop.time()
    last_trigger = start
    for _ in range(5):
        last_trigger = loop.time()
        debouncer.trigger()
        await asyncio.sleep(0.005)
    assert debouncer.pending

    await asyncio.sleep(0.06)

    assert len(calls) == 1
    assert calls[0] - last_trigger >= 0.019
    assert calls[0] - start >= 0.02
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_cancel_drops_pending_call() -> None:
    calls: list[int] = []
    debouncer = Debouncer(0.01, lambda: calls.append(1))

    debouncer.trigger()
    assert debouncer.cancel() is True
    assert debouncer.cancel() is False
    await asyncio.sleep(0.03)

    assert calls == []


@pytest.mark.asyncio
async def test_trigger_from_callback_arms_new_cycle() -> None:
    calls: list[int] = []
    debouncer: Debouncer

    def _callback() -> None:
        calls.append(1)
        if len(calls) == 1:
            debouncer.trigger()

    debouncer = Debouncer(0.005, _callback)
    debouncer.trigger()
    await asyncio.sleep(0.05)

    assert calls == [1, 1]
