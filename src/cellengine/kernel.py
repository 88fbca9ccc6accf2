"""Prediction kernel: the collaborator-facing facade.

Wires the sequence window, pattern store, predictor, recorder,
repetition watcher and executor around one storage backend and one
action executor. Everything runs on a single asyncio loop; the only
suspension points besides storage I/O are the debounced pattern
rebuild and workflow step pacing.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING

from cellengine.core.action import ActionType
from cellengine.core.config import KernelConfig
from cellengine.engine.action_catalog import ActionCatalog
from cellengine.engine.action_dispatch import DispatchingActionExecutor
from cellengine.engine.pattern_store import PatternStore, RebuildReport
from cellengine.engine.predictor import Predictor
from cellengine.engine.repetition_watcher import RepetitionWatcher
from cellengine.engine.sequence_window import SequenceWindow
from cellengine.engine.workflow_executor import WorkflowExecutor
from cellengine.engine.workflow_matcher import detect_workflow_match
from cellengine.engine.workflow_recorder import WorkflowRecorder
from cellengine.storage.base import StorageError
from cellengine.utils.timeutils import now_ms

if TYPE_CHECKING:
    from cellengine.core.action import Action
    from cellengine.core.event import Event
    from cellengine.core.prediction import (
        AutomationSuggestion,
        Prediction,
        PredictionCallback,
        SuggestionCallback,
    )
    from cellengine.core.workflow import Workflow
    from cellengine.engine.action_dispatch import ActionExecutor
    from cellengine.sources.base import EventSource
    from cellengine.storage.base import KernelStorage
    from cellengine.utils.timeutils import Clock

logger = logging.getLogger(__name__)


async def _notify(callbacks: list, payload: object, label: str) -> None:
    """Call each callback, awaiting coroutine results; failures are logged."""
    for callback in list(callbacks):
        try:
            result = callback(payload)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.error("Error in %s callback", label, exc_info=True)


class PredictionKernel:
    """Observes events, predicts the next action and automates workflows.

    Usage:
        kernel = PredictionKernel(InMemoryStorage(), action_executor=my_executor)
        kernel.on_prediction(show_suggestion)
        await kernel.start()
        await kernel.add_event(Event.create("GET", "https://app/api/items"))
        ...
        await kernel.stop()
    """

    def __init__(
        self,
        storage: KernelStorage,
        action_executor: ActionExecutor | None = None,
        config: KernelConfig | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._config = config or KernelConfig()
        self._storage = storage
        self._clock = clock

        self._owned_executor: DispatchingActionExecutor | None = None
        if action_executor is None:
            self._owned_executor = DispatchingActionExecutor()
            action_executor = self._owned_executor
        self._action_executor = action_executor

        self._window = SequenceWindow(self._config.max_sequence_length)
        self._catalog = ActionCatalog(storage)
        self._patterns = PatternStore(storage, self._config.max_pattern_length)
        self._predictor = Predictor(storage, self._catalog, self._config, clock)
        self._recorder = WorkflowRecorder(storage, clock)
        self._watcher = RepetitionWatcher(
            threshold=self._config.repetition_threshold,
            cooldown_ms=self._config.suggestion_cooldown_ms,
            clock=clock,
        )
        self._executor = WorkflowExecutor(
            storage,
            action_executor,
            step_delay_seconds=self._config.step_delay_seconds,
            clock=clock,
        )

        self._prediction_callbacks: list[tuple[PredictionCallback, float]] = []
        self._suggestion_callbacks: list[SuggestionCallback] = []
        self._sources: list[EventSource] = []
        self._rebuild_task: asyncio.Task[None] | None = None
        self._running = False

    # ========== Lifecycle ==========

    @property
    def config(self) -> KernelConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_recording(self) -> bool:
        return self._recorder.is_recording

    @property
    def executor(self) -> WorkflowExecutor:
        return self._executor

    async def start(self) -> None:
        """Load cached actions, analyze history once and start sources."""
        if self._running:
            return
        self._running = True
        cached = await self._catalog.load()
        await self.rebuild_patterns()
        for source in self._sources:
            await source.start()
        logger.info(
            "Kernel started for namespace %r (%d cached actions)",
            self._config.namespace,
            cached,
        )

    async def stop(self) -> None:
        """Stop sources, cancel pending work and release owned resources."""
        if not self._running:
            return
        self._running = False
        for source in self._sources:
            await source.stop()
        if self._rebuild_task is not None and not self._rebuild_task.done():
            self._rebuild_task.cancel()
            await asyncio.wait({self._rebuild_task})
        self._rebuild_task = None
        await self._executor.close()
        if self._owned_executor is not None:
            await self._owned_executor.close()
        self._window.clear()
        self._watcher.reset()
        logger.info("Kernel stopped for namespace %r", self._config.namespace)

    async def __aenter__(self) -> PredictionKernel:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ========== Event Sources ==========

    def attach_source(self, source: EventSource) -> None:
        """Route *source*'s events into ``add_event``."""
        source.on_event(self.add_event)
        self._sources.append(source)

    def detach_source(self, source: EventSource) -> None:
        source.off_event(self.add_event)
        self._sources = [s for s in self._sources if s is not source]

    # ========== Subscriptions ==========

    def on_prediction(self, callback: PredictionCallback, min_confidence: float = 0.0) -> None:
        """Subscribe to predictions at or above *min_confidence*.

        Pass ``config.suggestion_threshold`` to receive only predictions
        worth surfacing in a UI.
        """
        self._prediction_callbacks.append((callback, min_confidence))

    def off_prediction(self, callback: PredictionCallback) -> None:
        self._prediction_callbacks = [
            (cb, threshold) for cb, threshold in self._prediction_callbacks if cb != callback
        ]

    def on_automation_suggestion(self, callback: SuggestionCallback) -> None:
        self._suggestion_callbacks.append(callback)

    def off_automation_suggestion(self, callback: SuggestionCallback) -> None:
        self._suggestion_callbacks = [cb for cb in self._suggestion_callbacks if cb != callback]

    # ========== Events and Prediction ==========

    def current_sequence(self) -> tuple[Event, ...]:
        return self._window.snapshot()

    async def add_event(self, event: Event) -> Prediction | None:
        """Feed one event through the kernel.

        Persists it to the event log, updates the window, the recorder
        and the repetition watcher, emits a prediction and schedules a
        pattern rebuild.

        Returns:
            The prediction emitted for this event, if any
        """
        if not self._running:
            logger.debug("Kernel not running, ignoring event %s", event.id)
            return None

        try:
            await self._storage.append_event(event, self._config.max_stored_events)
        except StorageError:
            logger.warning("Could not persist event %s", event.id, exc_info=True)

        self._window.add(event)

        if self._recorder.is_recording:
            action = await self._catalog.derive(event)
            if action is not None:
                self._recorder.add_action(action)

        suggestion = self._watcher.observe(event)
        if suggestion is not None:
            await _notify(self._suggestion_callbacks, suggestion, "automation suggestion")

        prediction = await self.predict()
        if prediction is not None:
            await self._emit_prediction(prediction)

        self._schedule_rebuild()
        return prediction

    async def predict(self) -> Prediction | None:
        """Predict the next action for the current window."""
        return await self._predictor.predict(self._window.snapshot())

    async def _emit_prediction(self, prediction: Prediction) -> None:
        eligible = [
            cb for cb, threshold in self._prediction_callbacks if prediction.confidence >= threshold
        ]
        await _notify(eligible, prediction, "prediction")

    # ========== Pattern Analysis ==========

    async def rebuild_patterns(self) -> RebuildReport:
        """Run one pattern analysis pass over the stored event log."""
        return await self._patterns.rebuild()

    def _schedule_rebuild(self) -> None:
        if self._rebuild_task is not None and not self._rebuild_task.done():
            return
        self._rebuild_task = asyncio.create_task(self._delayed_rebuild())

    async def _delayed_rebuild(self) -> None:
        await asyncio.sleep(self._config.rebuild_interval_seconds)
        if not self._running:
            return
        try:
            await self.rebuild_patterns()
        except StorageError:
            logger.warning("Scheduled pattern rebuild failed", exc_info=True)

    # ========== Recording ==========

    def start_recording(self) -> bool:
        return self._recorder.start()

    def add_action(self, action: Action) -> bool:
        return self._recorder.add_action(action)

    async def stop_recording(self) -> Workflow | None:
        return await self._recorder.stop()

    async def accept_suggestion(self, suggestion: AutomationSuggestion) -> Workflow | None:
        """Turn an automation suggestion into a two-step workflow.

        Uses its own recorder so a manual recording in progress is not
        disturbed.
        """
        first = await self._catalog.derive(suggestion.current)
        second = await self._catalog.derive(suggestion.next)
        if first is None or second is None:
            return None
        return await WorkflowRecorder(self._storage, self._clock).record([first, second])

    # ========== Workflows ==========

    async def list_workflows(self) -> list[Workflow]:
        workflows = await self._storage.get_workflows()
        return list(workflows.values())

    async def execute_workflow(self, workflow_id: str) -> Workflow | None:
        return await self._executor.execute_workflow(workflow_id)

    def cancel_execution(self) -> int:
        return self._executor.cancel()

    async def wait_idle(self) -> None:
        """Wait for queued workflow steps to finish."""
        await self._executor.wait_idle()

    async def detect_workflow_match(self) -> Workflow | None:
        """Workflow whose steps match the tail of the current window."""
        actions = []
        for event in self._window.snapshot():
            action = await self._catalog.derive(event)
            if action is not None:
                actions.append(action)
        workflows = await self._storage.get_workflows()
        return detect_workflow_match(actions, workflows.values())

    async def execute_action(self, action: Action) -> bool:
        """Perform a single (e.g. predicted) action.

        Returns:
            True if the action ran or was queued, False if it failed
        """
        if action.type is ActionType.WORKFLOW:
            return await self.execute_workflow(action.id) is not None
        try:
            await self._action_executor(action)
        except Exception:
            logger.warning("Error executing action %s", action.id, exc_info=True)
            return False
        return True
