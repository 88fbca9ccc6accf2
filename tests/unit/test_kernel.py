"""Tests for the prediction kernel facade."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from cellengine.core.action import Action
from cellengine.core.config import KernelConfig
from cellengine.core.prediction import AutomationSuggestion, Prediction
from cellengine.kernel import PredictionKernel
from cellengine.sources.base import CallbackEventSource
from cellengine.storage.base import StorageError
from cellengine.storage.memory_store import InMemoryStorage

# ── Fixtures ─────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def kernel(storage, executor, config, clock) -> AsyncGenerator[PredictionKernel, None]:
    k = PredictionKernel(storage, action_executor=executor, config=config, clock=clock)
    await k.start()
    yield k
    await k.stop()


class BrokenAppendStorage(InMemoryStorage):
    async def append_event(self, event, max_events=1000) -> None:
        raise StorageError("disk full")


# ── Lifecycle ────────────────────────────────────────────────────


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_events_ignored_before_start(self, storage, executor, make_event) -> None:
        k = PredictionKernel(storage, action_executor=executor)

        assert await k.add_event(make_event("e1")) is None
        assert await storage.read_event_log() == []
        assert k.current_sequence() == ()

    @pytest.mark.asyncio
    async def test_stop_clears_live_state(self, kernel, make_event) -> None:
        await kernel.add_event(make_event("e1"))
        await kernel.stop()

        assert not kernel.is_running
        assert kernel.current_sequence() == ()

    @pytest.mark.asyncio
    async def test_start_analyzes_history(self, storage, executor, config, make_event) -> None:
        for i in ("a", "b"):
            await storage.append_event(make_event(i))

        async with PredictionKernel(storage, action_executor=executor, config=config):
            assert await storage.get_patterns() == {("a", "b"): 1}

    @pytest.mark.asyncio
    async def test_event_persisted_and_windowed(self, kernel, storage, make_event) -> None:
        await kernel.add_event(make_event("e1"))
        await kernel.add_event(make_event("e2"))

        assert [e.id for e in await storage.read_event_log()] == ["e1", "e2"]
        assert [e.id for e in kernel.current_sequence()] == ["e1", "e2"]

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_halt(self, executor, config, make_event) -> None:
        async with PredictionKernel(
            BrokenAppendStorage(), action_executor=executor, config=config
        ) as k:
            await k.add_event(make_event("e1"))
            assert [e.id for e in k.current_sequence()] == ["e1"]


# ── Predictions ──────────────────────────────────────────────────


class TestPredictions:
    @pytest_asyncio.fixture
    async def primed(self, storage, make_event) -> None:
        """Log a -> b -> c and a strong stored pattern for it."""
        for i in ("a", "b", "c"):
            await storage.append_event(make_event(i, f"/{i}"))
        await storage.add_pattern_counts({("a", "b", "c"): 8})

    @pytest.mark.asyncio
    async def test_emits_prediction(self, primed, kernel, make_event) -> None:
        received: list[Prediction] = []
        kernel.on_prediction(received.append)

        await kernel.add_event(make_event("a", "/a"))
        result = await kernel.add_event(make_event("b", "/b"))

        assert result is not None
        assert [p.action.id for p in received] == ["c"]
        assert received[0] is result
        assert received[0].context == "After GET request to /b"

    @pytest.mark.asyncio
    async def test_async_callback(self, primed, kernel, make_event) -> None:
        received: list[str] = []

        async def on_prediction(prediction: Prediction) -> None:
            received.append(prediction.action.id)

        kernel.on_prediction(on_prediction)
        await kernel.add_event(make_event("a", "/a"))
        await kernel.add_event(make_event("b", "/b"))

        assert received == ["c"]

    @pytest.mark.asyncio
    async def test_min_confidence_filters(self, primed, kernel, make_event) -> None:
        confident: list[Prediction] = []
        kernel.on_prediction(confident.append, min_confidence=0.99)

        await kernel.add_event(make_event("a", "/a"))
        await kernel.add_event(make_event("b", "/b"))

        assert confident == []

    @pytest.mark.asyncio
    async def test_failing_callback_is_isolated(self, primed, kernel, make_event) -> None:
        received: list[Prediction] = []

        def broken(prediction: Prediction) -> None:
            raise RuntimeError("boom")

        kernel.on_prediction(broken)
        kernel.on_prediction(received.append)
        await kernel.add_event(make_event("a", "/a"))
        await kernel.add_event(make_event("b", "/b"))

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_off_prediction(self, primed, kernel, make_event) -> None:
        received: list[Prediction] = []
        kernel.on_prediction(received.append)
        kernel.off_prediction(received.append)

        await kernel.add_event(make_event("a", "/a"))
        await kernel.add_event(make_event("b", "/b"))

        assert received == []

    @pytest.mark.asyncio
    async def test_rebuild_is_debounced(self, storage, executor, clock, make_event) -> None:
        config_fast = KernelConfig(rebuild_interval_seconds=0.01, step_delay_seconds=0.0)
        async with PredictionKernel(
            storage, action_executor=executor, config=config_fast, clock=clock
        ) as k:
            await k.add_event(make_event("a"))
            await k.add_event(make_event("b"))
            await asyncio.sleep(0.1)

            assert await storage.get_patterns() == {("a", "b"): 1}


# ── Automation suggestions ───────────────────────────────────────


class TestAutomationSuggestions:
    @pytest.mark.asyncio
    async def test_suggests_and_accepts(self, kernel, storage, make_event) -> None:
        suggestions: list[AutomationSuggestion] = []
        kernel.on_automation_suggestion(suggestions.append)

        for i in range(3):
            await kernel.add_event(make_event(f"a{i}", "/a"))
            await kernel.add_event(make_event(f"b{i}", "/b", "POST"))

        assert len(suggestions) == 1
        assert suggestions[0].pair == ("GET:/a", "POST:/b")

        workflow = await kernel.accept_suggestion(suggestions[0])

        assert workflow is not None
        assert [a.id for a in workflow.actions] == ["a2", "b2"]
        assert workflow.description == "GET /a → POST /b"
        assert await kernel.list_workflows() == [workflow]

    @pytest.mark.asyncio
    async def test_off_automation_suggestion(self, kernel, make_event) -> None:
        suggestions: list[AutomationSuggestion] = []
        kernel.on_automation_suggestion(suggestions.append)
        kernel.off_automation_suggestion(suggestions.append)

        for i in range(3):
            await kernel.add_event(make_event(f"a{i}", "/a"))
            await kernel.add_event(make_event(f"b{i}", "/b"))

        assert suggestions == []


# ── Recording and execution ──────────────────────────────────────


class TestWorkflows:
    @pytest.mark.asyncio
    async def test_recording_captures_events(self, kernel, make_event) -> None:
        assert kernel.start_recording() is True
        await kernel.add_event(make_event("e1", "/login", "POST"))
        await kernel.add_event(make_event("e2", "/dashboard"))
        assert kernel.add_action(Action.ui("u1", "#go", "click"))

        workflow = await kernel.stop_recording()

        assert workflow is not None
        assert [a.id for a in workflow.actions] == ["e1", "e2", "u1"]
        assert not kernel.is_recording

    @pytest.mark.asyncio
    async def test_accept_does_not_disturb_recording(self, kernel, make_event) -> None:
        suggestion = AutomationSuggestion(
            current=make_event("x", "/x"), next=make_event("y", "/y"), count=3
        )
        kernel.start_recording()
        kernel.add_action(Action.ui("u1", "#a", "click"))

        await kernel.accept_suggestion(suggestion)

        assert kernel.is_recording
        kernel.add_action(Action.ui("u2", "#b", "click"))
        workflow = await kernel.stop_recording()
        assert [a.id for a in workflow.actions] == ["u1", "u2"]

    @pytest.mark.asyncio
    async def test_execute_workflow(self, kernel, executor, make_event) -> None:
        kernel.start_recording()
        kernel.add_action(Action.ui("u1", "#a", "click"))
        kernel.add_action(Action.ui("u2", "#b", "click"))
        workflow = await kernel.stop_recording()

        updated = await kernel.execute_workflow(workflow.id)
        await kernel.wait_idle()

        assert executor.calls == ["u1", "u2"]
        assert updated.frequency == 2

    @pytest.mark.asyncio
    async def test_execute_unknown_workflow(self, kernel) -> None:
        assert await kernel.execute_workflow("missing") is None

    @pytest.mark.asyncio
    async def test_detect_workflow_match(self, kernel, make_event) -> None:
        kernel.start_recording()
        await kernel.add_event(make_event("e1", "/a"))
        await kernel.add_event(make_event("e2", "/b"))
        workflow = await kernel.stop_recording()

        assert await kernel.detect_workflow_match() == workflow

    @pytest.mark.asyncio
    async def test_execute_action(self, kernel, executor) -> None:
        assert await kernel.execute_action(Action.ui("u1", "#a", "click")) is True
        assert executor.calls == ["u1"]

    @pytest.mark.asyncio
    async def test_execute_action_failure(self, storage, config, failing_executor) -> None:
        async with PredictionKernel(
            storage, action_executor=failing_executor("u1"), config=config
        ) as k:
            assert await k.execute_action(Action.ui("u1", "#a", "click")) is False


# ── Event sources ────────────────────────────────────────────────


class TestEventSources:
    @pytest.mark.asyncio
    async def test_attached_source_feeds_kernel(self, storage, executor, config, make_event) -> None:
        source = CallbackEventSource()
        k = PredictionKernel(storage, action_executor=executor, config=config)
        k.attach_source(source)

        await k.start()
        assert source.is_running
        await source.emit(make_event("e1"))
        assert [e.id for e in k.current_sequence()] == ["e1"]

        k.detach_source(source)
        await source.emit(make_event("e2"))
        assert [e.id for e in k.current_sequence()] == ["e1"]
        await k.stop()

    @pytest.mark.asyncio
    async def test_stop_stops_sources(self, storage, executor, config) -> None:
        source = CallbackEventSource()
        k = PredictionKernel(storage, action_executor=executor, config=config)
        k.attach_source(source)
        await k.start()
        await k.stop()

        assert not source.is_running
