"""Result records and their on-disk layouts."""

from pathlib import Path
from typing import NamedTuple, Union

import numpy as np

HEADER = ["time", "P", "alpha", "x", "m", "sumx", "sumx2", "summ", "summ2", "N"]

# Nine float64 fields followed by one int64 counter, no padding
RECORD_DTYPE = np.dtype(
    [
        ("time", "<f8"),
        ("P", "<f8"),
        ("alpha", "<f8"),
        ("x", "<f8"),
        ("m", "<f8"),
        ("sumx", "<f8"),
        ("sumx2", "<f8"),
        ("summ", "<f8"),
        ("summ2", "<f8"),
        ("N", "<i8"),
    ]
)


class ResultRecord(NamedTuple):
    """One summary row per (P, alpha) pair."""
    
    time: float
    P: float
    alpha: float
    x: float
    m: float
    sumx: float
    sumx2: float
    summ: float
    summ2: float
    N: int
    
    @classmethod
    def from_sample(
        cls, P: float, alpha: float, result, run_config
    ) -> "ResultRecord":
        """Build the record from a SampleResult and the run's RunConfig."""
        moments = result.moments
        return cls(
            time=run_config.horizon,
            P=P,
            alpha=alpha,
            x=result.m0,
            m=result.m1,
            sumx=moments.sumX,
            sumx2=moments.sumX2,
            summ=moments.sumM,
            summ2=moments.sumM2,
            N=run_config.number_iters,
        )
    
    def to_array(self) -> np.ndarray:
        """Single-element structured array in the binary layout."""
        return np.array([tuple(self)], dtype=RECORD_DTYPE)


def output_path(
    results_dir: Union[str, Path],
    prefix: str,
    rank: int,
    size: int,
    default_file: str,
    fmt: str = "csv",
) -> Path:
    """
    Name of this process's output stream.

    Multi-process runs write ``<prefix>-<rank>.dat``; a single process
    writes ``default_file``, with its suffix switched to ``.bin`` for the
    binary format.
    """
    if size > 1:
        name = f"{prefix}-{rank}.dat"
    elif fmt == "binary":
        name = Path(default_file).with_suffix(".bin").name
    else:
        name = default_file
    return Path(results_dir) / name


def read_binary_records(path: Union[str, Path]) -> np.ndarray:
    """Read every fixed-layout record from a binary output file."""
    return np.fromfile(Path(path), dtype=RECORD_DTYPE)
