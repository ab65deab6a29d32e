"""Tests for the extraction worker: concurrency ceiling, timeouts, crash recovery."""

import asyncio
import concurrent.futures
from concurrent.futures import BrokenExecutor, Executor

import pytest
from pydantic import ValidationError

from sketchgraph.models.extraction import ComponentRole
from sketchgraph.worker.errors import (
    ExtractionTimeoutError,
    ExtractionWorkerError,
    QueueFullError,
    WorkerCrashedError,
)
from sketchgraph.worker.manager import ExtractionWorker, extract_for_llm, extract_for_overlay


class InlineExecutor(Executor):
    """Runs each job on submit, in the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = concurrent.futures.Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class HeldExecutor(Executor):
    """Accepts jobs and leaves them pending until the test settles them."""

    def __init__(self):
        self.jobs = []
        self.shut_down = False

    def submit(self, fn, /, *args, **kwargs):
        future = concurrent.futures.Future()
        self.jobs.append(future)
        return future

    def shutdown(self, wait=True, *, cancel_futures=False):
        self.shut_down = True


class BrokenOnSubmit(Executor):
    def submit(self, fn, /, *args, **kwargs):
        raise BrokenExecutor("pool is gone")


def _factory(*executors):
    made = list(executors)
    created = []

    def build():
        executor = made.pop(0)
        created.append(executor)
        return executor

    return build, created


async def _until_pending(worker, n):
    for _ in range(20):
        if worker.status()["pending_requests"] >= n:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {n} pending requests")


def test_extract_on_the_default_pool(sample_elements):
    worker = ExtractionWorker()
    try:
        result = asyncio.run(worker.extract(sample_elements))
    finally:
        worker.shutdown()
    assert result.summary.total_components == 5


def test_depth_shortcuts(sample_elements):
    worker = ExtractionWorker(executor_factory=InlineExecutor)

    fast = asyncio.run(worker.extract_fast(sample_elements))
    thorough = asyncio.run(worker.extract_thorough(sample_elements))
    capped = asyncio.run(worker.extract_thorough(sample_elements, max_components=2))

    assert {c.id for c in fast.components} == {"element-2", "element-3", "element-4", "element-5"}
    assert all(not c.relationships for c in fast.components)
    assert len(thorough.components) == 5
    assert len(capped.components) == 2


def test_status_tracks_message_ids(sample_elements):
    worker = ExtractionWorker(executor_factory=InlineExecutor)
    assert worker.status() == {"is_available": True, "pending_requests": 0, "last_message_id": 0}

    asyncio.run(worker.extract(sample_elements))
    asyncio.run(worker.extract(sample_elements))
    assert worker.status()["last_message_id"] == 2
    assert worker.status()["pending_requests"] == 0


def test_job_errors_reach_the_caller():
    worker = ExtractionWorker(executor_factory=InlineExecutor)
    with pytest.raises(ValidationError):
        asyncio.run(worker.extract([{"id": "a", "x": "wide"}]))
    assert worker.status()["pending_requests"] == 0


def test_timeout_fails_only_that_request(sample_elements):
    held = HeldExecutor()
    worker = ExtractionWorker(timeout_s=0.05, executor_factory=lambda: held)

    with pytest.raises(ExtractionTimeoutError) as exc:
        asyncio.run(worker.extract(sample_elements))

    assert exc.value.message_id == 1
    assert worker.status()["pending_requests"] == 0
    assert worker.status()["is_available"]


def test_queue_ceiling(sample_elements):
    held = HeldExecutor()
    worker = ExtractionWorker(max_concurrent=1, timeout_s=5, executor_factory=lambda: held)

    async def scenario():
        first = asyncio.create_task(worker.extract(sample_elements))
        await _until_pending(worker, 1)
        with pytest.raises(QueueFullError):
            await worker.extract(sample_elements)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

    asyncio.run(scenario())
    assert worker.status()["pending_requests"] == 0


def test_crash_fails_every_pending_request_and_respawns(sample_elements):
    held = HeldExecutor()
    build, created = _factory(held, InlineExecutor())
    worker = ExtractionWorker(timeout_s=5, executor_factory=build)

    async def scenario():
        tasks = [asyncio.create_task(worker.extract(sample_elements)) for _ in range(3)]
        await _until_pending(worker, 3)
        held.jobs[0].set_exception(BrokenExecutor("worker process died"))
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        recovered = await worker.extract(sample_elements)
        return outcomes, recovered

    outcomes, recovered = asyncio.run(scenario())

    assert all(isinstance(o, WorkerCrashedError) for o in outcomes)
    assert sorted(o.message_id for o in outcomes) == [1, 2, 3]
    assert held.shut_down
    assert len(created) == 2
    assert recovered.summary.total_components == 5


def test_broken_submit_raises_crash_and_rebuilds():
    build, created = _factory(BrokenOnSubmit(), InlineExecutor())
    worker = ExtractionWorker(executor_factory=build)

    with pytest.raises(WorkerCrashedError):
        asyncio.run(worker.extract([]))
    result = asyncio.run(worker.extract([]))

    assert result.components == []
    assert len(created) == 2


def test_shutdown_fails_pending_and_refuses_new_work(sample_elements):
    held = HeldExecutor()
    worker = ExtractionWorker(timeout_s=5, executor_factory=lambda: held)

    async def scenario():
        task = asyncio.create_task(worker.extract(sample_elements))
        await _until_pending(worker, 1)
        worker.shutdown()
        with pytest.raises(ExtractionWorkerError) as exc:
            await task
        assert not isinstance(exc.value, WorkerCrashedError)
        with pytest.raises(ExtractionWorkerError):
            await worker.extract(sample_elements)

    asyncio.run(scenario())
    assert held.shut_down
    assert not worker.status()["is_available"]


def test_late_results_after_timeout_are_ignored(sample_elements):
    held = HeldExecutor()
    worker = ExtractionWorker(timeout_s=0.05, executor_factory=lambda: held)

    async def scenario():
        with pytest.raises(ExtractionTimeoutError):
            await worker.extract(sample_elements)
        held.jobs[0].set_result(None)
        await asyncio.sleep(0)

    asyncio.run(scenario())


# ── Convenience views ──


def test_extract_for_llm(sample_elements):
    worker = ExtractionWorker(executor_factory=InlineExecutor)
    view = asyncio.run(extract_for_llm(worker, sample_elements))

    assert len(view.components) == 5
    assert view.summary == f"Extracted 5 semantic components with {view.token_savings:.1f}% token reduction"
    title = next(c for c in view.components if c.id == "element-5")
    assert title.role == ComponentRole.TITLE.value
    assert title.text == "Login Form"
    assert any(r.target == "element-4" for r in title.relationships)


def test_extract_for_overlay(sample_elements):
    worker = ExtractionWorker(executor_factory=InlineExecutor)
    overlay = asyncio.run(extract_for_overlay(worker, sample_elements))

    labels = {label.id: label for label in overlay.labels}
    assert set(labels) == {"element-2", "element-3", "element-4", "element-5"}
    assert labels["element-5"].label == "title (90%)"
    assert labels["element-5"].category == "text"
    assert labels["element-4"].label == "card (70%)"
    assert labels["element-4"].category == "shape"
    assert labels["element-3"].label == "text block (80%)"
    assert overlay.confidence == pytest.approx(0.8)
