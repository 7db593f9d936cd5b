"""
TaskLib - Background work

Cancellable palette clustering on a worker executor.
"""

from INK_Libs.TaskLib.cluster_task import (
    ClusterRequest,
    ClusterResult,
    ClusterTaskHandle,
    ClusterTaskRunner,
)

__all__ = [
    "ClusterRequest",
    "ClusterResult",
    "ClusterTaskHandle",
    "ClusterTaskRunner",
]
