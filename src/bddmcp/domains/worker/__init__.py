"""Worker Bounded Context.

Per-worker isolation of registry snapshots, detection caches and
healing state for parallel scenario execution.
"""
from .aggregates import WorkerExecutionContext
from .manager import WorkerIsolationManager
from .services import NullBootstrapper, SubsystemBootstrapper
from .events import WorkerClosed, WorkerStarted

__all__ = [
    "WorkerExecutionContext",
    "WorkerIsolationManager",
    "NullBootstrapper", "SubsystemBootstrapper",
    "WorkerClosed", "WorkerStarted",
]
