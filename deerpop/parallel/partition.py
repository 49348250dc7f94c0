"""
Split the P axis of the grid into one contiguous slice per process.

Rank 0 computes a block size ``num_p // size``, hands ranks 1..size-1 one
block each (in rank order, starting at index 0) and keeps the remainder,
``(size-1)*block`` through ``num_p`` inclusive, for itself. After the
handshake the processes never talk to each other again.
"""

from dataclasses import dataclass
from typing import List

from deerpop.config import get_logger
from deerpop.parallel.process_group import ProcessGroup

logger = get_logger(__name__)


@dataclass(frozen=True)
class WorkAssignment:
    """Inclusive index range [lo, hi] over the P grid owned by one rank."""
    
    rank: int
    lo: int
    hi: int
    
    def indices(self) -> range:
        return range(self.lo, self.hi + 1)
    
    def __len__(self) -> int:
        return max(0, self.hi - self.lo + 1)
    
    @property
    def is_empty(self) -> bool:
        return self.hi < self.lo


def block_size(num_p: int, size: int) -> int:
    if size < 1:
        raise ValueError("number of processes must be at least 1")
    if num_p < 0:
        raise ValueError("num_p must be non-negative")
    return num_p // size


def coordinator_assignment(num_p: int, size: int) -> WorkAssignment:
    block = block_size(num_p, size)
    return WorkAssignment(rank=0, lo=(size - 1) * block, hi=num_p)


def sent_range(rank: int, block: int) -> tuple:
    """Half-open [lo, hi) bound rank 0 sends to ``rank`` >= 1."""
    return (rank - 1) * block, rank * block


def partition_p_axis(num_p: int, size: int) -> List[WorkAssignment]:
    """
    Every rank's assignment, indexed by rank.

    The union of the ranges is exactly [0, num_p] with no overlap.
    """
    block = block_size(num_p, size)
    assignments = [coordinator_assignment(num_p, size)]
    for rank in range(1, size):
        lo, hi = sent_range(rank, block)
        assignments.append(WorkAssignment(rank=rank, lo=lo, hi=hi - 1))
    return assignments


def assign_work(group: ProcessGroup, num_p: int) -> WorkAssignment:
    """
    Run the range handshake and return this process's assignment.

    The coordinator sends each other rank its [lo, hi) bound; every other
    rank blocks once for its bound and turns it into an inclusive range.
    """
    rank = group.self_rank()
    size = group.group_size()
    
    if rank == 0:
        block = block_size(num_p, size)
        for target in range(1, size):
            group.send(sent_range(target, block), target)
        assignment = coordinator_assignment(num_p, size)
    else:
        (lo, hi), source = group.receive()
        logger.debug(f"rank {rank} received [{lo}, {hi}) from rank {source}")
        assignment = WorkAssignment(rank=rank, lo=lo, hi=hi - 1)
    
    logger.info(
        f"[RANK {rank}/{size}] P indices [{assignment.lo}, {assignment.hi}] "
        f"({len(assignment)} values)"
    )
    return assignment
