"""
Process-group collaborators for the one-time range handshake.

Only three capabilities are used: rank/size queries, a point-to-point send
of an integer pair, and a blocking receive from any source.
"""

from typing import Optional, Tuple

import numpy as np

from deerpop.config import get_logger
from deerpop.exceptions import ProcessGroupError

logger = get_logger(__name__)

RANGE_TAG = 1

IntPair = Tuple[int, int]


class ProcessGroup:
    """Interface used by the work partitioner."""
    
    def initialize(self) -> None:
        raise NotImplementedError
    
    def group_size(self) -> int:
        raise NotImplementedError
    
    def self_rank(self) -> int:
        raise NotImplementedError
    
    def send(self, pair: IntPair, target: int) -> None:
        raise NotImplementedError
    
    def receive(self) -> Tuple[IntPair, int]:
        """Block for one pair from any rank; returns (pair, from_rank)."""
        raise NotImplementedError
    
    def finalize(self) -> None:
        raise NotImplementedError
    
    @property
    def is_coordinator(self) -> bool:
        return self.self_rank() == 0
    
    def __enter__(self):
        self.initialize()
        return self
    
    def __exit__(self, exc_type, exc, tb):
        self.finalize()


class LocalProcessGroup(ProcessGroup):
    """A single process that owns the whole grid."""
    
    def initialize(self) -> None:
        pass
    
    def group_size(self) -> int:
        return 1
    
    def self_rank(self) -> int:
        return 0
    
    def send(self, pair: IntPair, target: int) -> None:
        raise ProcessGroupError(f"local process group has no rank {target}")
    
    def receive(self) -> Tuple[IntPair, int]:
        raise ProcessGroupError("local process group has no peers to receive from")
    
    def finalize(self) -> None:
        pass


class MPIProcessGroup(ProcessGroup):
    """
    MPI_COMM_WORLD through mpi4py.

    mpi4py's automatic init/finalize is switched off so that ``initialize``
    and ``finalize`` are explicit, e.g.

        mpirun -n 4 python -m deerpop.cli run --mpi
    """
    
    def __init__(self):
        self._MPI = None
        self._comm = None
    
    def initialize(self) -> None:
        try:
            import mpi4py
            
            mpi4py.rc.initialize = False
            mpi4py.rc.finalize = False
            from mpi4py import MPI
            
            if not MPI.Is_initialized():
                MPI.Init()
        except (ImportError, RuntimeError) as e:
            raise ProcessGroupError(f"MPI initialization failed: {e}") from e
        
        self._MPI = MPI
        self._comm = MPI.COMM_WORLD
        logger.info(f"MPI initialized: rank {self.self_rank()} of {self.group_size()}")
    
    def _require(self):
        if self._comm is None:
            raise ProcessGroupError("MPI process group used before initialize()")
        return self._comm
    
    def group_size(self) -> int:
        return self._require().Get_size()
    
    def self_rank(self) -> int:
        return self._require().Get_rank()
    
    def send(self, pair: IntPair, target: int) -> None:
        buf = np.array(pair, dtype=np.int64)
        self._require().Send([buf, self._MPI.INT64_T], dest=target, tag=RANGE_TAG)
    
    def receive(self) -> Tuple[IntPair, int]:
        comm = self._require()
        buf = np.empty(2, dtype=np.int64)
        status = self._MPI.Status()
        comm.Recv([buf, self._MPI.INT64_T], source=self._MPI.ANY_SOURCE, tag=RANGE_TAG, status=status)
        return (int(buf[0]), int(buf[1])), status.Get_source()
    
    def finalize(self) -> None:
        if self._MPI is not None and not self._MPI.Is_finalized():
            self._MPI.Finalize()


def make_process_group(use_mpi: bool = False) -> ProcessGroup:
    """MPI group when requested, otherwise the single local process."""
    if use_mpi:
        return MPIProcessGroup()
    return LocalProcessGroup()
