# tests/unit/batch/test_unit_coordinator.py — v1
"""Tests for batch/coordinator.py — grouping, isolation, cancel, progress."""

from __future__ import annotations

import asyncio

import pytest

from scamguard.batch.coordinator import BatchCoordinator
from scamguard.batch.models import BatchItem, BatchItemError
from scamguard.batch.uploader import LocalFileUploader
from scamguard.core.errors import ValidationError
from scamguard.core.models import AnalysisOutcome
from scamguard.ratelimit.retry import RetryPolicy
from scamguard.scoring.base_scorer import BaseScorer

SAFE = {"isSafe": True, "confidence": 90, "threats": [], "analysis": "fine"}


class ContentScorer(BaseScorer):
    """Answers per content; tracks how many calls run at once."""

    def __init__(self, gate=None):
        self.gate = gate
        self.active = 0
        self.max_active = 0
        self.calls = []

    async def analyze(self, content, category=None):
        self.calls.append(content)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            if self.gate is not None and content in self.gate:
                await self.gate[content].wait()
            return SAFE
        finally:
            self.active -= 1

    @property
    def name(self):
        return "content"


def break_on(gateway, bad_content, error):
    """Make ``gateway.analyze`` raise ``error`` for one content string."""
    original = gateway.analyze

    async def analyze(content, **kwargs):
        if content == bad_content:
            raise error
        return await original(content, **kwargs)

    gateway.analyze = analyze
    return gateway


@pytest.fixture
def delays():
    return []


@pytest.fixture
def make_coordinator(build_gateway, delays):
    async def fake_sleep(seconds):
        delays.append(seconds)

    def _make(scorer=None, gateway=None, **kwargs):
        kwargs.setdefault("sleep", fake_sleep)
        return BatchCoordinator(gateway or build_gateway(scorer=scorer or ContentScorer()), **kwargs)

    return _make


class TestItems:
    def test_add_returns_copies(self, make_coordinator):
        coordinator = make_coordinator()
        item = coordinator.add_text_item("hello", category="SMS")
        item.status = "failed"
        stored = coordinator.get_item(item.id)
        assert stored.status == "pending"
        assert stored.category == "SMS"
        assert [i.id for i in coordinator.items] == [item.id]

    def test_unknown_item(self, make_coordinator):
        coordinator = make_coordinator()
        assert coordinator.get_item("nope") is None
        assert coordinator.cancel("nope") is False

    def test_clear(self, make_coordinator):
        coordinator = make_coordinator()
        coordinator.add_text_item("a")
        coordinator.clear()
        assert coordinator.items == []

    def test_invalid_concurrency(self, build_gateway):
        with pytest.raises(ValueError):
            BatchCoordinator(build_gateway(), concurrency_limit=0)


class TestValidation:
    @pytest.mark.asyncio
    async def test_empty_batch(self, make_coordinator):
        with pytest.raises(ValidationError, match="Batch is empty"):
            await make_coordinator().process_batch()

    @pytest.mark.asyncio
    async def test_too_many_items(self, make_coordinator):
        coordinator = make_coordinator(max_batch_size=2)
        for i in range(3):
            coordinator.add_text_item(f"msg {i}")
        with pytest.raises(ValidationError, match="maximum of 2 items"):
            await coordinator.process_batch()

    @pytest.mark.asyncio
    async def test_invalid_item_rejects_whole_batch(self, make_coordinator):
        scorer = ContentScorer()
        coordinator = make_coordinator(scorer=scorer)
        coordinator.add_text_item("fine")
        coordinator.add_text_item("   ")
        with pytest.raises(ValidationError, match="Item 1: Content is required"):
            await coordinator.process_batch()
        assert scorer.calls == []

    @pytest.mark.asyncio
    async def test_file_item_needs_uploader(self, make_coordinator):
        coordinator = make_coordinator()
        coordinator.add_file_item("/tmp/x.txt")
        with pytest.raises(ValidationError, match="need an uploader"):
            await coordinator.process_batch()


class TestProcessing:
    @pytest.mark.asyncio
    async def test_results_keep_input_order(self, make_coordinator):
        coordinator = make_coordinator()
        texts = [f"message number {i}" for i in range(7)]
        for text in texts:
            coordinator.add_text_item(text)

        run = await coordinator.process_batch()

        assert run.completed == 7
        assert run.failed == 0
        assert [r.fingerprint for r in run.results] == [
            i.result.fingerprint for i in run.items
        ]
        assert all(isinstance(r, AnalysisOutcome) for r in run.results)
        assert all(i.status == "completed" and i.progress == 100 for i in run.items)

    @pytest.mark.asyncio
    async def test_groups_bounded_and_delayed(self, make_coordinator, delays):
        scorer = ContentScorer()
        coordinator = make_coordinator(scorer=scorer, concurrency_limit=3, inter_group_delay_s=0.25)
        for i in range(7):
            coordinator.add_text_item(f"message number {i}")

        await coordinator.process_batch()

        assert scorer.max_active <= 3
        assert len(scorer.calls) == 7
        assert delays == [0.25, 0.25]

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, build_gateway, make_coordinator):
        gateway = break_on(build_gateway(scorer=ContentScorer()), "broken", KeyError("bug"))
        coordinator = make_coordinator(gateway=gateway)
        coordinator.add_text_item("good one")
        bad = coordinator.add_text_item("broken")
        coordinator.add_text_item("good two")

        run = await coordinator.process_batch()

        assert run.completed == 2
        assert run.failed == 1
        error = run.results[1]
        assert isinstance(error, BatchItemError)
        assert error.item_id == bad.id
        assert error.kind == "internal"
        assert coordinator.get_item(bad.id).status == "failed"
        assert isinstance(run.results[2], AnalysisOutcome)

    @pytest.mark.asyncio
    async def test_rate_limited_items_fail_with_kind(self, build_gateway, make_coordinator):
        gateway = build_gateway(
            scorer=ContentScorer(),
            max_requests=2,
            policy=RetryPolicy(min_interval_s=0.0, wait_on_rate_limit=False),
        )
        coordinator = make_coordinator(gateway=gateway, concurrency_limit=2)
        for i in range(4):
            coordinator.add_text_item(f"message number {i}")

        run = await coordinator.process_batch(client_id="user:1")

        assert run.completed == 2
        assert run.failed == 2
        kinds = [r.kind for r in run.results if isinstance(r, BatchItemError)]
        assert kinds == ["rate_limited", "rate_limited"]

    @pytest.mark.asyncio
    async def test_only_pending_items_rerun(self, make_coordinator):
        scorer = ContentScorer()
        coordinator = make_coordinator(scorer=scorer)
        coordinator.add_text_item("first")
        await coordinator.process_batch()
        coordinator.add_text_item("second")
        run = await coordinator.process_batch()
        assert len(run.results) == 1
        assert scorer.calls == ["first", "second"]

    @pytest.mark.asyncio
    async def test_explicit_items(self, make_coordinator):
        coordinator = make_coordinator()
        items = [BatchItem(content="alpha"), BatchItem(content="beta")]
        run = await coordinator.process_batch(items)
        assert [i.id for i in run.items] == [i.id for i in items]
        assert len(coordinator.items) == 2

    @pytest.mark.asyncio
    async def test_batch_metric(self, build_gateway, make_coordinator):
        gateway = break_on(build_gateway(scorer=ContentScorer()), "bad", KeyError("x"))
        coordinator = make_coordinator(gateway=gateway)
        coordinator.add_text_item("good")
        coordinator.add_text_item("bad")
        await coordinator.process_batch()
        sample = coordinator._gateway.metrics.samples(name="batch_analysis")[0]
        assert sample.value == 2
        assert sample.tags == {"completed": "1", "failed": "1"}

    @pytest.mark.asyncio
    async def test_per_item_cache_metrics_are_batch_tagged(self, make_coordinator):
        coordinator = make_coordinator(concurrency_limit=1)
        coordinator.add_text_item("same text", category="SMS")
        coordinator.add_text_item("same text", category="SMS")

        await coordinator.process_batch()

        metrics = coordinator._gateway.metrics
        miss = metrics.samples(name="batch_cache_miss")
        hit = metrics.samples(name="batch_cache_hit")
        assert len(miss) == 1
        assert len(hit) == 1
        assert hit[0].tags == {"endpoint": "batch", "category": "SMS"}
        assert metrics.count("cache_hit") == 1


class TestFileItems:
    @pytest.mark.asyncio
    async def test_file_item_lifecycle(self, make_coordinator, tmp_path):
        path = tmp_path / "sms.txt"
        path.write_text("Congratulations winner", encoding="utf-8")
        updates = []
        coordinator = make_coordinator(
            uploader=LocalFileUploader(),
            on_update=lambda item: updates.append((item.status, item.progress)),
        )
        item = coordinator.add_file_item(str(path))

        run = await coordinator.process_batch()

        assert run.completed == 1
        statuses = [s for s, _ in updates]
        assert statuses[0] == "uploading"
        assert statuses.index("analyzing") > statuses.index("uploading")
        assert updates[-1] == ("completed", 100)
        assert ("uploading", 100) in updates
        assert coordinator.get_item(item.id).result is not None

    @pytest.mark.asyncio
    async def test_missing_file_fails_item(self, make_coordinator, tmp_path):
        coordinator = make_coordinator(uploader=LocalFileUploader())
        coordinator.add_file_item(str(tmp_path / "gone.txt"))
        coordinator.add_text_item("still fine")
        run = await coordinator.process_batch()
        assert run.failed == 1
        assert run.results[0].kind == "validation"
        assert run.items[0].error == "File not found: gone.txt"


class TestUpdatesAndCancel:
    @pytest.mark.asyncio
    async def test_text_item_updates(self, make_coordinator):
        updates = []
        coordinator = make_coordinator(on_update=lambda item: updates.append(item.status))
        coordinator.add_text_item("hello")
        await coordinator.process_batch()
        assert updates == ["analyzing", "completed"]

    @pytest.mark.asyncio
    async def test_listener_error_is_isolated(self, make_coordinator, caplog):
        def broken(item):
            raise RuntimeError("ui gone")

        coordinator = make_coordinator(on_update=broken)
        coordinator.add_text_item("hello")
        run = await coordinator.process_batch()
        assert run.completed == 1
        assert "Batch update listener failed" in caplog.text

    @pytest.mark.asyncio
    async def test_cancel_pending_item(self, make_coordinator):
        scorer = ContentScorer()
        coordinator = make_coordinator(scorer=scorer)
        keep = coordinator.add_text_item("keep me")
        drop = coordinator.add_text_item("drop me")

        assert coordinator.cancel(drop.id) is True
        dropped = coordinator.get_item(drop.id)
        assert dropped.status == "failed"
        assert dropped.error == "cancelled"
        assert coordinator.cancel(drop.id) is False

        run = await coordinator.process_batch()
        assert [i.id for i in run.items] == [keep.id]
        assert scorer.calls == ["keep me"]
        assert coordinator._cancel_requested == set()

    @pytest.mark.asyncio
    async def test_cancel_in_flight_item(self, make_coordinator):
        gate = {"slow": asyncio.Event(), "other": asyncio.Event()}
        scorer = ContentScorer(gate=gate)
        coordinator = make_coordinator(scorer=scorer)
        slow = coordinator.add_text_item("slow")
        coordinator.add_text_item("other")

        task = asyncio.ensure_future(coordinator.process_batch())
        for _ in range(50):
            await asyncio.sleep(0)
            if "slow" in scorer.calls:
                break
        assert coordinator.get_item(slow.id).status == "analyzing"

        assert coordinator.cancel(slow.id) is True
        gate["other"].set()
        run = await task

        assert run.completed == 1
        assert run.failed == 1
        assert run.results[0].kind == "cancelled"
        assert run.results[0].error == "cancelled"
        assert coordinator.get_item(slow.id).status == "failed"
        assert coordinator._cancel_requested == set()
        assert coordinator._running == set()

    @pytest.mark.asyncio
    async def test_cancel_terminal_item(self, make_coordinator):
        coordinator = make_coordinator()
        item = coordinator.add_text_item("hello")
        await coordinator.process_batch()
        assert coordinator.cancel(item.id) is False
