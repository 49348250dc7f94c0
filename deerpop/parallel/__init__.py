"""Work partitioning across processes and the bounded thread pool."""

from .partition import WorkAssignment, assign_work, partition_p_axis
from .pool import BoundedWorkerPool
from .process_group import LocalProcessGroup, MPIProcessGroup, ProcessGroup, make_process_group

__all__ = [
    "WorkAssignment",
    "assign_work",
    "partition_p_axis",
    "BoundedWorkerPool",
    "LocalProcessGroup",
    "MPIProcessGroup",
    "ProcessGroup",
    "make_process_group",
]
