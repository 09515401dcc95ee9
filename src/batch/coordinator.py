# src/batch/coordinator.py — v1
"""Batch coordinator: bounded-concurrency processing of many analyses.

Items run in fixed-size groups (``concurrency_limit`` at a time) with a
fixed delay between groups. Every item settles independently: a failing
item is marked ``failed`` and recorded as a BatchItemError at its input
position while the others carry on. Results keep input order.

Item lifecycle:
    text: pending -> analyzing -> completed | failed
    file: pending -> uploading -> analyzing -> completed | failed

``cancel(item_id)`` fails one item with a "cancelled" error. Rate-limit
budget already consumed by that item is not refunded.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence

from scamguard.batch.models import (
    BatchEntry,
    BatchItem,
    BatchItemError,
    BatchRunResult,
)
from scamguard.core.errors import ItemCancelled, ScamGuardError, ValidationError
from scamguard.gateway.gateway import validate_content
from scamguard.logging.context import set_batch_context
from scamguard.ratelimit.limiter import ANONYMOUS_CLIENT

if TYPE_CHECKING:
    from scamguard.batch.uploader import BaseUploader
    from scamguard.gateway.gateway import AnalysisGateway

logger = logging.getLogger(__name__)

ItemListener = Callable[[BatchItem], None]


class BatchCoordinator:
    """Runs batches of text and file items through the analysis gateway.

    Args:
        gateway: Gateway used for every item.
        uploader: Reader for file items (required only if file items are added).
        concurrency_limit: Items analyzed at the same time.
        max_batch_size: Hard cap on items per run.
        inter_group_delay_s: Pause between concurrency groups.
        on_update: Called with a copy of an item after every status or
            progress change.
    """

    def __init__(
        self,
        gateway: AnalysisGateway,
        uploader: BaseUploader | None = None,
        concurrency_limit: int = 5,
        max_batch_size: int = 20,
        inter_group_delay_s: float = 0.5,
        on_update: ItemListener | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be >= 1")
        self._gateway = gateway
        self._uploader = uploader
        self._concurrency_limit = concurrency_limit
        self._max_batch_size = max_batch_size
        self._inter_group_delay_s = inter_group_delay_s
        self._on_update = on_update
        self._sleep = sleep
        self._items: dict[str, BatchItem] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._cancel_requested: set[str] = set()
        self._running: set[str] = set()

    # ------------------------------------------------------------------
    # Item management
    # ------------------------------------------------------------------

    def add_text_item(self, content: str, category: str | None = None) -> BatchItem:
        item = BatchItem(type="text", content=content, category=category)
        self._items[item.id] = item
        return item.model_copy()

    def add_file_item(self, path: str, category: str | None = None) -> BatchItem:
        item = BatchItem(type="file", content=str(path), category=category)
        self._items[item.id] = item
        return item.model_copy()

    @property
    def items(self) -> list[BatchItem]:
        """Snapshot of all items, in insertion order."""
        return [item.model_copy() for item in self._items.values()]

    def get_item(self, item_id: str) -> BatchItem | None:
        item = self._items.get(item_id)
        return item.model_copy() if item else None

    def cancel(self, item_id: str) -> bool:
        """Request cancellation of one item. False if unknown or already settled."""
        item = self._items.get(item_id)
        if item is None or item.is_terminal:
            return False
        if item_id in self._running:
            # consumed by _process_item, which discards it once the item settles
            self._cancel_requested.add(item_id)
        if item.status == "pending":
            self._fail(item, "cancelled", kind="cancelled")
        else:
            task = self._tasks.get(item_id)
            if task is not None and not task.done():
                task.cancel()
        logger.info("Cancellation requested for item %s", item_id)
        return True

    def clear(self) -> None:
        """Drop every item (and pending cancellation requests)."""
        self._items.clear()
        self._cancel_requested.clear()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_batch(
        self,
        items: Sequence[BatchItem] | None = None,
        client_id: str = ANONYMOUS_CLIENT,
    ) -> BatchRunResult:
        """Process items (default: every pending item) and return results in order.

        Raises:
            ValidationError: Empty batch, too many items, or a text item
                that is empty or over-length. Nothing is processed then.
        """
        if items is not None:
            for item in items:
                self._items[item.id] = item
            run = [self._items[item.id] for item in items]
        else:
            run = [item for item in self._items.values() if item.status == "pending"]

        self._validate(run)

        batch_id = uuid.uuid4().hex[:12]
        set_batch_context(batch_id)
        start = time.monotonic()
        logger.info(
            "Batch %s: %d item(s) in groups of %d",
            batch_id, len(run), self._concurrency_limit,
        )

        results: list[BatchEntry] = []
        run_ids = {item.id for item in run}
        self._running.update(run_ids)
        try:
            for offset in range(0, len(run), self._concurrency_limit):
                if offset:
                    await self._sleep(self._inter_group_delay_s)
                group = run[offset:offset + self._concurrency_limit]
                tasks = []
                for item in group:
                    task = asyncio.ensure_future(self._process_item(item, client_id))
                    self._tasks[item.id] = task
                    tasks.append(task)
                try:
                    results.extend(await asyncio.gather(*tasks))
                finally:
                    for item in group:
                        self._tasks.pop(item.id, None)
        finally:
            self._running.difference_update(run_ids)
            set_batch_context(None)

        completed = sum(1 for r in results if not isinstance(r, BatchItemError))
        failed = len(results) - completed
        duration = time.monotonic() - start

        metrics = self._gateway.metrics
        metrics.record(
            "batch_analysis",
            len(run),
            {"completed": str(completed), "failed": str(failed)},
        )
        await metrics.flush()
        logger.info(
            "Batch %s done: %d completed, %d failed in %.1fs",
            batch_id, completed, failed, duration,
        )
        return BatchRunResult(
            batch_id=batch_id,
            results=results,
            items=[item.model_copy() for item in run],
            completed=completed,
            failed=failed,
            duration_seconds=duration,
        )

    def _validate(self, run: Sequence[BatchItem]) -> None:
        if not run:
            raise ValidationError("Batch is empty")
        if len(run) > self._max_batch_size:
            raise ValidationError(
                f"Batch size exceeds maximum of {self._max_batch_size} items"
            )
        max_length = self._gateway.max_content_length
        for index, item in enumerate(run):
            if item.type == "text":
                try:
                    validate_content(item.content, max_length)
                except ValidationError as e:
                    raise ValidationError(f"Item {index}: {e}") from e
            elif self._uploader is None:
                raise ValidationError(
                    f"Item {index}: file items need an uploader"
                )

    async def _process_item(self, item: BatchItem, client_id: str) -> BatchEntry:
        try:
            if item.id in self._cancel_requested:
                raise ItemCancelled(item.id)

            content = item.content
            if item.type == "file":
                self._update(item, status="uploading", progress=0)
                content = await self._uploader.read(
                    item.content, on_progress=lambda p: self._update(item, progress=p)
                )

            self._update(item, status="analyzing", progress=0)
            outcome = await self._gateway.analyze(
                content, category=item.category, client_id=client_id, endpoint="batch"
            )
        except asyncio.CancelledError:
            if item.id not in self._cancel_requested:
                raise
            _uncancel_current_task()
            return self._fail(item, "cancelled", kind="cancelled")
        except ScamGuardError as e:
            return self._fail(item, str(e), kind=e.kind)
        except Exception as e:
            logger.warning("Batch item %s failed", item.id, exc_info=True)
            return self._fail(item, str(e) or type(e).__name__)
        finally:
            self._cancel_requested.discard(item.id)

        self._update(item, status="completed", progress=100, result=outcome)
        return outcome

    def _fail(self, item: BatchItem, message: str, kind: str = "internal") -> BatchItemError:
        self._update(item, status="failed", error=message)
        return BatchItemError(item_id=item.id, error=message, kind=kind)

    def _update(self, item: BatchItem, **changes: Any) -> None:
        for field, value in changes.items():
            setattr(item, field, value)
        if self._on_update is not None:
            try:
                self._on_update(item.model_copy())
            except Exception:
                logger.exception("Batch update listener failed")


def _uncancel_current_task() -> None:
    """Clear the pending cancel on the running task after a handled item cancel."""
    task = asyncio.current_task()
    if task is not None and hasattr(task, "uncancel"):
        task.uncancel()
