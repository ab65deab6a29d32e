"""Extraction worker: runs the pipeline off the event loop with bounded concurrency.

Requests are tracked in a pending map keyed by an incrementing message id.
Each request resolves exactly once, from whichever comes first: the executor
result, its own timeout, or an executor crash. A crash fails every request
still pending and a fresh executor is built for the next submission.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import BrokenExecutor, Executor, ThreadPoolExecutor
from itertools import count
from typing import Any

from sketchgraph.config import settings
from sketchgraph.engine.config import ExtractionOptions
from sketchgraph.engine.pipeline import run_extraction
from sketchgraph.engine.registry import load_transforms
from sketchgraph.models.elements import RawShape, Viewport
from sketchgraph.models.extraction import ExtractionResult
from sketchgraph.models.responses import LLMComponentView, LLMExtraction, LLMRelationshipView, OverlayResult
from sketchgraph.worker.errors import (
    ExtractionTimeoutError,
    ExtractionWorkerError,
    QueueFullError,
    WorkerCrashedError,
)
from sketchgraph.worker.labels import confidence_label, to_overlay_label

logger = logging.getLogger(__name__)

Elements = Iterable[RawShape | Mapping[str, Any]]
ViewportLike = Viewport | Mapping[str, Any] | None


class ExtractionWorker:
    """Explicit handle on an extraction executor. Create one per app, not per request."""

    def __init__(
        self,
        max_concurrent: int | None = None,
        timeout_s: float | None = None,
        executor_factory: Callable[[], Executor] | None = None,
    ) -> None:
        self.max_concurrent = max_concurrent or settings.worker_max_concurrent
        self.timeout_s = timeout_s or settings.worker_timeout_s
        self._executor_factory = executor_factory or _default_executor
        self._executor: Executor | None = None
        self._pending: dict[int, asyncio.Future] = {}
        self._ids = count(1)
        self._last_message_id = 0
        self._closed = False
        # Register transforms up front so worker threads never race on imports
        load_transforms()

    async def extract(
        self,
        elements: Elements,
        viewport: ViewportLike = None,
        options: ExtractionOptions | None = None,
    ) -> ExtractionResult:
        if self._closed:
            raise ExtractionWorkerError("Extraction worker is not available")
        if len(self._pending) >= self.max_concurrent:
            raise QueueFullError(
                f"Extraction queue full ({len(self._pending)}/{self.max_concurrent} pending)"
            )

        message_id = next(self._ids)
        self._last_message_id = message_id
        waiter = self._submit(message_id, list(elements), viewport, options)
        self._pending[message_id] = waiter
        try:
            return await asyncio.wait_for(waiter, self.timeout_s)
        except asyncio.TimeoutError as e:
            logger.warning("Extraction %d timed out after %.1fs", message_id, self.timeout_s)
            raise ExtractionTimeoutError(
                f"Extraction timed out after {self.timeout_s:g}s", message_id
            ) from e
        finally:
            self._pending.pop(message_id, None)

    async def extract_fast(self, elements: Elements, viewport: ViewportLike = None, **overrides) -> ExtractionResult:
        return await self.extract(elements, viewport, ExtractionOptions.for_depth("fast", **overrides))

    async def extract_thorough(
        self, elements: Elements, viewport: ViewportLike = None, **overrides
    ) -> ExtractionResult:
        return await self.extract(elements, viewport, ExtractionOptions.for_depth("thorough", **overrides))

    def status(self) -> dict[str, Any]:
        return {
            "is_available": not self._closed,
            "pending_requests": len(self._pending),
            "last_message_id": self._last_message_id,
        }

    def shutdown(self) -> None:
        """Stop the executor and fail anything still pending."""
        self._closed = True
        self._fail_pending(lambda mid: ExtractionWorkerError("Extraction worker shut down", mid))
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    # ── Internals ──

    def _ensure_executor(self) -> Executor:
        if self._executor is None:
            self._executor = self._executor_factory()
        return self._executor

    def _submit(self, message_id: int, elements: list, viewport: ViewportLike, options) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        try:
            job = self._ensure_executor().submit(run_extraction, elements, viewport, options)
        except BrokenExecutor as e:
            self._crash(e)
            raise WorkerCrashedError(f"Extraction worker crashed: {e}", message_id) from e

        def _done(job: concurrent.futures.Future) -> None:
            loop.call_soon_threadsafe(self._settle, waiter, job)

        job.add_done_callback(_done)
        return waiter

    def _settle(self, waiter: asyncio.Future, job: concurrent.futures.Future) -> None:
        if waiter.done():
            # already timed out or failed by a crash
            return
        if job.cancelled():
            waiter.set_exception(ExtractionWorkerError("Extraction was cancelled"))
            return
        exc = job.exception()
        if isinstance(exc, BrokenExecutor):
            self._crash(exc)
        elif exc is not None:
            waiter.set_exception(exc)
        else:
            waiter.set_result(job.result())

    def _crash(self, exc: BaseException) -> None:
        logger.error("Extraction executor crashed, failing %d pending request(s): %s", len(self._pending), exc)
        self._fail_pending(lambda mid: WorkerCrashedError(f"Extraction worker crashed: {exc}", mid))
        broken, self._executor = self._executor, None
        if broken is not None:
            broken.shutdown(wait=False, cancel_futures=True)
        logger.info("Extraction executor will be respawned on next request")

    def _fail_pending(self, make_error: Callable[[int], ExtractionWorkerError]) -> None:
        for message_id, waiter in list(self._pending.items()):
            if not waiter.done():
                waiter.set_exception(make_error(message_id))
        self._pending.clear()


def _default_executor() -> Executor:
    return ThreadPoolExecutor(max_workers=settings.worker_max_threads, thread_name_prefix="extraction")


# ── Convenience views ──


async def extract_for_llm(worker: ExtractionWorker, elements: Elements, viewport: ViewportLike = None) -> LLMExtraction:
    """Thorough extraction flattened for an LLM prompt."""
    result = await worker.extract_thorough(elements, viewport)
    components = [
        LLMComponentView(
            id=c.id,
            role=c.role.value,
            confidence=c.confidence,
            bounds=c.bounding_box,
            text=c.metadata.visual_properties.text_content,
            relationships=[
                LLMRelationshipView(type=r.type.value, target=r.target_component_id, confidence=r.confidence)
                for r in c.relationships
            ],
        )
        for c in result.components
    ]
    savings = result.token_optimization.reduction_percentage
    return LLMExtraction(
        components=components,
        token_savings=savings,
        summary=f"Extracted {len(components)} semantic components with {savings:.1f}% token reduction",
    )


async def extract_for_overlay(
    worker: ExtractionWorker, elements: Elements, viewport: ViewportLike = None
) -> OverlayResult:
    """Fast extraction labelled with role and confidence for live display."""
    result = await worker.extract_fast(elements, viewport)
    return OverlayResult(
        labels=[to_overlay_label(c, confidence_label(c)) for c in result.components],
        confidence=result.summary.average_confidence,
    )
