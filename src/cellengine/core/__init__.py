"""Core data models for cell-engine."""

from cellengine.core.action import Action, ActionType
from cellengine.core.config import KernelConfig
from cellengine.core.event import (
    CaptureSource,
    Event,
    MalformedSignatureError,
    make_signature,
    split_signature,
)
from cellengine.core.prediction import AutomationSuggestion, Prediction
from cellengine.core.workflow import MIN_WORKFLOW_ACTIONS, Workflow

__all__ = [
    # Events
    "Event",
    "CaptureSource",
    "MalformedSignatureError",
    "make_signature",
    "split_signature",
    # Actions and workflows
    "Action",
    "ActionType",
    "Workflow",
    "MIN_WORKFLOW_ACTIONS",
    # Outputs
    "Prediction",
    "AutomationSuggestion",
    # Config
    "KernelConfig",
]
