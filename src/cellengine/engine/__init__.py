"""Engine components for sequence analysis, prediction and automation."""

from cellengine.engine.action_catalog import ActionCatalog
from cellengine.engine.action_dispatch import (
    ActionExecutionError,
    ActionExecutor,
    DispatchingActionExecutor,
    resolve_url,
)
from cellengine.engine.confidence import calculate_confidence
from cellengine.engine.pattern_store import PatternStore, RebuildReport, count_ngrams
from cellengine.engine.predictor import Predictor
from cellengine.engine.repetition_watcher import RepetitionWatcher
from cellengine.engine.sequence_window import SequenceWindow
from cellengine.engine.similarity import signature_similarity
from cellengine.engine.workflow_executor import ExecutorState, WorkflowExecutor
from cellengine.engine.workflow_matcher import detect_workflow_match
from cellengine.engine.workflow_recorder import RecorderState, WorkflowRecorder

__all__ = [
    "ActionCatalog",
    "ActionExecutionError",
    "ActionExecutor",
    "DispatchingActionExecutor",
    "ExecutorState",
    "PatternStore",
    "Predictor",
    "RebuildReport",
    "RecorderState",
    "RepetitionWatcher",
    "SequenceWindow",
    "WorkflowExecutor",
    "WorkflowRecorder",
    "calculate_confidence",
    "count_ngrams",
    "detect_workflow_match",
    "resolve_url",
    "signature_similarity",
]
