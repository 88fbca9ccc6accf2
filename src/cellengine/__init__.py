"""cell-engine - Sequence prediction and workflow automation kernel."""

from cellengine.core.action import Action, ActionType
from cellengine.core.config import KernelConfig
from cellengine.core.event import CaptureSource, Event, MalformedSignatureError
from cellengine.core.prediction import AutomationSuggestion, Prediction
from cellengine.core.workflow import Workflow
from cellengine.kernel import PredictionKernel
from cellengine.storage import InMemoryStorage, KernelStorage, SQLiteStorage, StorageError

__version__ = "0.1.0"

__all__ = [
    # Core models
    "Action",
    "ActionType",
    "AutomationSuggestion",
    "CaptureSource",
    "Event",
    "MalformedSignatureError",
    "Prediction",
    "Workflow",
    # Kernel
    "KernelConfig",
    "PredictionKernel",
    # Storage
    "InMemoryStorage",
    "KernelStorage",
    "SQLiteStorage",
    "StorageError",
    # Version
    "__version__",
]
