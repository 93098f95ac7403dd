"""Tests for the per-item pipeline and the batch scheduler."""

import asyncio
from typing import Any, Dict, List

import pytest

from schemas import AnalysisItem, FileHandle, TERMINAL
from pipeline import analyze_item, run_in_batches, extract_content
from session import apply_item_update


class Recorder:
    """Applies updates to a local copy of an item the way the session does."""

    def __init__(self, item: AnalysisItem):
        self.item = item
        self.history: List[Dict[str, Any]] = []

    def __call__(self, **changes) -> None:
        self.history.append(changes)
        self.item = apply_item_update(self.item, changes)


class TestAnalyzeItem:
    @pytest.mark.asyncio
    async def test_happy_path_checkpoints(self, fake, make_items) -> None:
        item = make_items(1)[0]
        rec = Recorder(item)
        report = await analyze_item(item, rec, fake.services())

        assert report is not None
        assert [(h["status"], h["progress"]) for h in rec.history] == [
            ("parsing", 20), ("analyzing", 50), ("complete", 100)
        ]
        assert rec.item.status == "complete"
        assert rec.item.report == report
        assert rec.item.extracted_content == f"deck text for {item.source_ref}"

    @pytest.mark.asyncio
    async def test_extraction_failure_degrades_to_empty(self, fake, make_items) -> None:
        item = make_items(1)[0]
        fake.extract_fail.add(item.source_ref)
        rec = Recorder(item)
        await analyze_item(item, rec, fake.services())

        assert rec.item.status == "complete"
        assert rec.item.extracted_content == ""

    @pytest.mark.asyncio
    async def test_analysis_failure_marks_error(self, fake, make_items) -> None:
        item = make_items(1)[0]
        fake.fail_names.add(item.name)
        rec = Recorder(item)
        report = await analyze_item(item, rec, fake.services())

        assert report is None
        assert rec.item.status == "error"
        assert rec.item.progress == 0
        assert rec.item.report is None
        assert "AI gateway error" in rec.item.error

    @pytest.mark.asyncio
    async def test_malformed_analysis_response_marks_error(self, fake, make_items) -> None:
        item = make_items(1)[0]
        services = fake.services()

        async def bad_analyze(name, content):
            return {"summary": "not a report"}

        services.analyze = bad_analyze
        rec = Recorder(item)
        await analyze_item(item, rec, services)

        assert rec.item.status == "error"
        assert rec.item.error == "Malformed analysis response"

    @pytest.mark.asyncio
    async def test_content_is_truncated(self, fake, make_items) -> None:
        seen = {}
        services = fake.services(content_limit=10)

        async def analyze(name, content):
            seen["content"] = content
            return await fake.analyze(name, content)

        services.analyze = analyze
        item = make_items(1)[0]
        await analyze_item(item, Recorder(item), services)
        assert len(seen["content"]) == 10

    @pytest.mark.asyncio
    async def test_file_items_are_stored_before_extraction(self, fake) -> None:
        item = AnalysisItem(
            id="f1", name="Acme", source_kind="file", source_ref="Acme.pdf",
            file=FileHandle(filename="Acme.pdf", data=b"%PDF"),
        )
        content = await extract_content(item, fake.services())
        assert fake.stored == ["/stored/Acme.pdf"]
        assert fake.log == [("extract", "/stored/Acme.pdf")]
        assert content == "deck text for /stored/Acme.pdf"

    @pytest.mark.asyncio
    async def test_storage_failure_degrades_to_empty(self, fake) -> None:
        services = fake.services()

        async def broken_store(filename, data):
            raise OSError("disk full")

        services.store = broken_store
        item = AnalysisItem(
            id="f1", name="Acme", source_kind="file", source_ref="Acme.pdf",
            file=FileHandle(filename="Acme.pdf", data=b"%PDF"),
        )
        assert await extract_content(item, services) == ""


class TestRunInBatches:
    @pytest.mark.asyncio
    async def test_batch_barrier(self, fake, make_items) -> None:
        items = make_items(7)
        # later items in a wave finish first
        for i, item in enumerate(items):
            fake.delays[item.name] = 0.03 - (i % 3) * 0.01
        recorders = {item.id: Recorder(item) for item in items}
        terminal_at: Dict[str, int] = {}

        def worker(item):
            rec = recorders[item.id]

            def update(**changes):
                rec(**changes)
                if rec.item.status in TERMINAL:
                    terminal_at[item.id] = len(fake.log)
                    fake.log.append(("terminal", item.name))

            return analyze_item(item, update, fake.services())

        await run_in_batches(items, worker, batch_size=3)

        starts = {ref: idx for idx, (kind, ref) in enumerate(fake.log) if kind == "extract"}
        first_wave_done = max(terminal_at[i.id] for i in items[:3])
        for later in items[3:]:
            assert starts[later.source_ref] > first_wave_done
        second_wave_done = max(terminal_at[i.id] for i in items[3:6])
        assert starts[items[6].source_ref] > second_wave_done

    @pytest.mark.asyncio
    async def test_concurrency_within_wave(self, make_items) -> None:
        active = 0
        peak = 0

        async def worker(item):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        await run_in_batches(make_items(7), worker, batch_size=3)
        assert peak == 3

    @pytest.mark.asyncio
    async def test_failure_isolation(self, fake, make_items) -> None:
        items = make_items(5)
        fake.fail_names.add("startup-2")
        recorders = {item.id: Recorder(item) for item in items}

        await run_in_batches(
            items, lambda item: analyze_item(item, recorders[item.id], fake.services()), batch_size=3
        )

        statuses = [recorders[i.id].item.status for i in items]
        assert statuses == ["complete", "error", "complete", "complete", "complete"]
        assert all(recorders[i.id].item.report is not None for i in items if i.name != "startup-2")

    @pytest.mark.asyncio
    async def test_settle_called_for_raising_worker(self, make_items) -> None:
        settled = []

        async def worker(item):
            if item.id == "item-2":
                raise ValueError("boom")

        await run_in_batches(make_items(3), worker, 3, settle=lambda item, exc: settled.append((item.id, str(exc))))
        assert settled == [("item-2", "boom")]

    @pytest.mark.asyncio
    async def test_empty_list(self) -> None:
        async def worker(item):
            raise AssertionError("no items to run")

        await run_in_batches([], worker)
