"""Auto-assignment of new reports to officers."""

from civictrack.assignment.selector import AssignmentDecision, AssignmentSelector
from civictrack.assignment.workload import WorkloadAggregator

__all__ = ["AssignmentDecision", "AssignmentSelector", "WorkloadAggregator"]
