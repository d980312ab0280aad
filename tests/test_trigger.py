"""Tests for the background run trigger.

Tests del trigger: responde enseguida, nunca corre dos trabajos a la vez
y valida la búsqueda antes de encolar un chequeo puntual.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from fareradar.engine import SearchNotFoundError
from fareradar.models import BatchSummary
from fareradar.trigger import ALREADY_RUNNING, CHECK_STARTED, RUN_STARTED, RunTrigger


def _make_runner(gate: asyncio.Event) -> MagicMock:
    """Runner falso cuyas corridas esperan a que se abra ``gate``."""
    runner = MagicMock()

    async def run_once():
        await gate.wait()
        return BatchSummary(processed=1)

    async def check_search(search_id):
        await gate.wait()
        return BatchSummary(processed=1)

    runner.run_once = MagicMock(side_effect=run_once)
    runner.check_search = MagicMock(side_effect=check_search)
    return runner


@pytest.mark.asyncio
async def test_run_now_is_single_flight():
    gate = asyncio.Event()
    runner = _make_runner(gate)
    trigger = RunTrigger(lambda: runner)

    assert trigger.run_now() == RUN_STARTED
    assert trigger.is_running
    assert trigger.run_now() == ALREADY_RUNNING
    assert await trigger.check_now("search-1") == ALREADY_RUNNING

    gate.set()
    await trigger.wait()

    assert not trigger.is_running
    assert runner.run_once.call_count == 1
    runner.check_search.assert_not_called()

    # Terminado el anterior, se puede arrancar otro
    assert trigger.run_now() == RUN_STARTED
    await trigger.wait()
    assert runner.run_once.call_count == 2


@pytest.mark.asyncio
async def test_check_now_queues_known_search():
    gate = asyncio.Event()
    gate.set()
    runner = _make_runner(gate)
    runner.store.get_search.return_value = MagicMock()
    trigger = RunTrigger(lambda: runner)

    assert await trigger.check_now("search-1") == CHECK_STARTED.format(search_id="search-1")
    await trigger.wait()

    runner.check_search.assert_called_once_with("search-1")


@pytest.mark.asyncio
async def test_check_now_unknown_search_raises():
    runner = _make_runner(asyncio.Event())
    runner.store.get_search.return_value = None
    trigger = RunTrigger(lambda: runner)

    with pytest.raises(SearchNotFoundError):
        await trigger.check_now("missing")

    assert not trigger.is_running
    runner.check_search.assert_not_called()


@pytest.mark.asyncio
async def test_failed_job_frees_the_trigger():
    """Si la corrida explota, se loggea y el trigger queda libre."""
    runner = MagicMock()

    async def broken():
        raise RuntimeError("browser crashed")

    runner.run_once = MagicMock(side_effect=broken)
    trigger = RunTrigger(lambda: runner)

    trigger.run_now()
    await trigger.wait()

    assert not trigger.is_running
    assert trigger.run_now() == RUN_STARTED
    await trigger.wait()
