"""
Python client for Cutshop with optimistic sheet updates.
"""

from .api import CutshopClient
from .errors import CutshopClientError
from .reconciler import OptimisticReconciler, PendingUpdate, RollbackPolicy
from .session import JobViewSession
from .poller import PeriodicRefresher, job_detail_refresher, recut_list_refresher

__all__ = [
    "CutshopClient",
    "CutshopClientError",
    "OptimisticReconciler",
    "PendingUpdate",
    "RollbackPolicy",
    "JobViewSession",
    "PeriodicRefresher",
    "job_detail_refresher",
    "recut_list_refresher",
]
