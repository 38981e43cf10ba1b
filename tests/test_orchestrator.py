"""Tests for the extraction lifecycle state machine."""

import asyncio
import json

import pytest

from fakes import COFFEE_RECEIPT, FakeVisionModel
from receipt_extractor.client import ReceiptExtractionClient
from receipt_extractor.errors import AuthError
from receipt_extractor.history import ExtractionHistoryStore
from receipt_extractor.models import ReceiptData, ReceiptItem
from receipt_extractor.orchestrator import ExtractionOrchestrator, ExtractionStatus
from receipt_extractor.upload import ReceiptFile


def _orchestrator(history, replies, timeout=0.5):
    model = FakeVisionModel(replies)
    client = ReceiptExtractionClient(lambda api_key: model, timeout=timeout)
    return ExtractionOrchestrator(client, history), model


def _past_record() -> ReceiptData:
    return ReceiptData(
        id="receipt_old",
        file_name="old.jpg",
        timestamp="2025-01-01T00:00:00.000+00:00",
        items=(ReceiptItem(name="Bread", quantity="1", price="3.00"),),
    )


class TestInitialState:
    def test_idle_with_loaded_history(self, storage):
        ExtractionHistoryStore(storage).add(_past_record())
        orch, _ = _orchestrator(ExtractionHistoryStore(storage), [])
        state = orch.state
        assert state.status == ExtractionStatus.IDLE
        assert not state.is_loading
        assert state.current_extraction is None
        assert state.progress == 0
        assert [r.id for r in state.history] == ["receipt_old"]


class TestExtract:
    @pytest.mark.asyncio
    async def test_end_to_end_success(self, history, receipt_file):
        orch, model = _orchestrator(history, ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)])

        result = await orch.extract(receipt_file, api_key="key", country="United States")

        assert result.success
        state = orch.state
        assert state.status == ExtractionStatus.SUCCEEDED
        assert state.progress == 100
        assert state.error is None
        assert not state.is_loading and not state.is_processing
        data = state.current_extraction
        assert data is result.data
        assert state.data is data
        assert data.id and data.timestamp
        assert data.total_items is None
        assert data.item_count == 2
        assert history.load() == [data]
        assert state.history == (data,)
        assert len(model.calls) == 2

    @pytest.mark.asyncio
    async def test_progress_sequence(self, history, receipt_file):
        orch, _ = _orchestrator(history, ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)])
        seen = []
        orch.subscribe(lambda s: seen.append((s.status, s.progress)))

        await orch.extract(receipt_file, api_key="key")

        assert seen[0] == (ExtractionStatus.LOADING, 0)
        assert [p for _, p in seen] == [0, 25, 75, 100]
        assert seen[-1][0] == ExtractionStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_failure_keeps_prior_state(self, history, receipt_file):
        orch, model = _orchestrator(history, ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)])
        first = await orch.extract(receipt_file, api_key="key")

        model.replies = ["NOT_RECEIPT"]
        selfie = ReceiptFile(name="selfie.png", mime_type="image/png", data=b"\x89PNG")
        result = await orch.extract(selfie)

        assert not result.success
        state = orch.state
        assert state.status == ExtractionStatus.FAILED
        assert state.error == result.message
        assert "does not appear to be a payment receipt" in state.error
        assert state.progress == 0
        assert not state.is_loading
        assert state.current_extraction is first.data
        assert history.load() == [first.data]

    @pytest.mark.asyncio
    async def test_schema_error_not_added_to_history(self, history, receipt_file):
        orch, _ = _orchestrator(history, ["VALID_RECEIPT", '{"total": "1"}'])
        result = await orch.extract(receipt_file, api_key="key")
        assert "missing items array" in orch.state.error
        assert result.data is None
        assert history.load() == []

    @pytest.mark.asyncio
    async def test_empty_api_key(self, history, receipt_file):
        orch, model = _orchestrator(history, ["VALID_RECEIPT"])
        result = await orch.extract(receipt_file, api_key="")
        assert isinstance(result.error, AuthError)
        assert orch.state.status == ExtractionStatus.FAILED
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_new_extraction_clears_previous_error(self, history, receipt_file):
        orch, model = _orchestrator(history, ["UNCLEAR_IMAGE"])
        await orch.extract(receipt_file, api_key="key")
        assert orch.state.error

        model.replies = ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)]
        errors_during_loading = []

        def record(state):
            if state.status == ExtractionStatus.LOADING:
                errors_during_loading.append(state.error)

        orch.subscribe(record)
        await orch.extract(receipt_file)
        assert errors_during_loading and all(e is None for e in errors_during_loading)
        assert orch.state.error is None

    @pytest.mark.asyncio
    async def test_overlapping_extraction_rejected(self, history, receipt_file):
        orch, model = _orchestrator(
            history, ["HANG", "VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)], timeout=0.2
        )
        first = asyncio.create_task(orch.extract(receipt_file, api_key="key"))
        await asyncio.sleep(0)
        assert orch.state.is_loading

        second = await orch.extract(receipt_file)
        assert not second.success
        assert "already in progress" in second.message
        assert orch.state.is_loading

        await first
        assert len(model.calls) == 1

    @pytest.mark.asyncio
    async def test_cancelled_extraction_releases_loading(self, history, receipt_file):
        orch, model = _orchestrator(history, ["HANG"], timeout=5)
        task = asyncio.create_task(orch.extract(receipt_file, api_key="key"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not orch.state.is_loading
        assert orch.state.status == ExtractionStatus.FAILED

        model.replies = ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)]
        result = await orch.extract(receipt_file)
        assert result.success
        assert orch.state.status == ExtractionStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_failing_listener_releases_loading(self, history, receipt_file):
        orch, model = _orchestrator(history, ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)])

        def broken(state):
            if state.progress == 25:
                raise RuntimeError("listener failed")

        unsubscribe = orch.subscribe(broken)
        with pytest.raises(RuntimeError):
            await orch.extract(receipt_file, api_key="key")
        assert not orch.state.is_loading

        unsubscribe()
        model.replies = ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)]
        assert (await orch.extract(receipt_file)).success


class TestCommands:
    @pytest.mark.asyncio
    async def test_clear_current_extraction_keeps_history(self, history, receipt_file):
        orch, _ = _orchestrator(history, ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)])
        await orch.extract(receipt_file, api_key="key")

        orch.clear_current_extraction()

        assert orch.state.current_extraction is None
        assert orch.state.progress == 0
        assert orch.state.status == ExtractionStatus.IDLE
        assert len(orch.state.history) == 1

    @pytest.mark.asyncio
    async def test_reset_state(self, history, receipt_file):
        orch, _ = _orchestrator(history, ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)])
        await orch.extract(receipt_file, api_key="key")

        orch.reset_state()

        state = orch.state
        assert state.data is None and state.current_extraction is None
        assert state.status == ExtractionStatus.IDLE
        assert len(state.history) == 1

    @pytest.mark.asyncio
    async def test_remove_from_history_leaves_current(self, history, receipt_file):
        orch, _ = _orchestrator(history, ["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)])
        result = await orch.extract(receipt_file, api_key="key")

        orch.remove_from_history("coffee.jpg")

        assert orch.state.history == ()
        assert history.load() == []
        assert orch.state.current_extraction is result.data

    def test_load_from_history(self, history):
        history.add(_past_record())
        orch, _ = _orchestrator(history, [])
        assert orch.load_from_history("old.jpg").id == "receipt_old"
        assert orch.state.data.id == "receipt_old"
        assert orch.load_from_history("missing.jpg") is None
        assert orch.state.data.id == "receipt_old"

    def test_clear_history(self, history):
        history.add(_past_record())
        orch, _ = _orchestrator(history, [])
        orch.clear_history()
        assert orch.state.history == ()
        assert history.load() == []

    def test_clear_error_and_update_progress(self, history):
        orch, _ = _orchestrator(history, [])
        orch.update_progress(40)
        assert orch.state.progress == 40
        orch.clear_error()
        assert orch.state.error is None

    def test_unsubscribe(self, history):
        orch, _ = _orchestrator(history, [])
        seen = []
        unsubscribe = orch.subscribe(seen.append)
        orch.update_progress(10)
        unsubscribe()
        orch.update_progress(20)
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_api_key_check(self, history):
        orch, _ = _orchestrator(history, ["OK"])
        assert await orch.test_api_key("key") is True
        assert orch.state.error is None

        orch, _ = _orchestrator(history, [""])
        assert await orch.test_api_key("key") is False
        assert orch.state.error == "Invalid API key or connection failed"
        assert not orch.state.is_loading
