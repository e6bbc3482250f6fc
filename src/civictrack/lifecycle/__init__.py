"""Report lifecycle: transition guard and orchestrator."""

from civictrack.lifecycle.guard import Actor, TransitionDecision, decide
from civictrack.lifecycle.orchestrator import LifecycleOrchestrator, LifecycleResult

__all__ = [
    "Actor",
    "LifecycleOrchestrator",
    "LifecycleResult",
    "TransitionDecision",
    "decide",
]
