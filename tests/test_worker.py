from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from core.errors import UpstreamUnavailableError
from core.models import SyncResult
from core.worker import SyncOutcome, SyncWorker


class FakeReconciler:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.calls = 0
        self.error = error

    async def run_full_sync(self) -> SyncResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return SyncResult(newly_queued=1, evicted=0)


async def _drain(worker: SyncWorker, run_on_start: bool = False) -> None:
    task = asyncio.create_task(worker.run_forever(run_on_start=run_on_start))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


def test_requests_made_while_waiting_are_coalesced() -> None:
    reconciler = FakeReconciler()
    worker = SyncWorker(reconciler, interval_seconds=3600)

    async def scenario() -> None:
        worker.request("whitelist add 7")
        worker.request("whitelist add 8")
        worker.request("manual rescan")
        await _drain(worker)

    asyncio.run(scenario())

    assert reconciler.calls == 1
    assert worker.last_outcome.reason == "whitelist add 7"
    assert worker.last_outcome.ok


def test_startup_pass_runs_before_requests() -> None:
    reconciler = FakeReconciler()
    worker = SyncWorker(reconciler, interval_seconds=3600)

    asyncio.run(_drain(worker, run_on_start=True))

    assert reconciler.calls == 1
    assert worker.last_outcome.reason == "startup"


def test_failed_pass_is_recorded_and_reported() -> None:
    seen: list[SyncOutcome] = []
    worker = SyncWorker(
        FakeReconciler(UpstreamUnavailableError("ATI API returned HTTP 503")),
        interval_seconds=3600,
        on_outcome=seen.append,
    )

    outcome = asyncio.run(worker.run_once("interval"))

    assert not outcome.ok
    assert "UpstreamUnavailableError" in outcome.error
    assert seen == [outcome]
    assert list(worker.outcomes) == [outcome]


def test_unexpected_errors_do_not_escape() -> None:
    worker = SyncWorker(FakeReconciler(ValueError("boom")), interval_seconds=3600)

    outcome = asyncio.run(worker.run_once("manual rescan"))

    assert outcome.error == "ValueError: boom"


def test_broken_listener_does_not_break_worker() -> None:
    def listener(outcome: SyncOutcome) -> None:
        raise RuntimeError("ui closed")

    worker = SyncWorker(FakeReconciler(), interval_seconds=3600, on_outcome=listener)

    outcome = asyncio.run(worker.run_once("interval"))

    assert outcome.ok
    assert outcome.result == SyncResult(newly_queued=1, evicted=0)


def test_history_is_bounded() -> None:
    worker = SyncWorker(FakeReconciler(), interval_seconds=3600, history_size=2)

    async def scenario() -> None:
        for index in range(5):
            await worker.run_once(f"pass {index}")

    asyncio.run(scenario())

    assert [outcome.reason for outcome in worker.outcomes] == ["pass 3", "pass 4"]
