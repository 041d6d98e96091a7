"""Dashboard state: optimistic mutations, move progress and the priority list."""

from moovey.dashboard.notifier import Notifier, Notification
from moovey.dashboard.optimistic import OptimisticCoordinator, MutationResult, MutationState
from moovey.dashboard.move_tracker import MoveTracker
from moovey.dashboard.priority import PriorityTaskList
from moovey.dashboard.session import DashboardSession

__all__ = [
    "Notifier",
    "Notification",
    "OptimisticCoordinator",
    "MutationResult",
    "MutationState",
    "MoveTracker",
    "PriorityTaskList",
    "DashboardSession",
]
