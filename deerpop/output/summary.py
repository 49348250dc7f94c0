"""Load result files and turn moment sums into per-pair estimates."""

from pathlib import Path
from typing import Iterable, Union

import numpy as np
import pandas as pd

from deerpop.config import get_logger
from deerpop.output.records import HEADER, read_binary_records
from deerpop.sim.sampler import MomentAccumulator

logger = get_logger(__name__)

PathLike = Union[str, Path]


def load_records(paths: Union[PathLike, Iterable[PathLike]]) -> pd.DataFrame:
    """
    Read one or more output files into a single DataFrame.

    Files that start with the header line are read as text, anything else
    as binary records, whatever the suffix. Records arrive in no
    particular order, so the result is sorted by (P, alpha).

    Args:
        paths: A file path or an iterable of file paths
    
    Returns:
        DataFrame with the columns of HEADER
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]
    
    frames = []
    for path in paths:
        path = Path(path)
        if _is_text(path):
            df = pd.read_csv(path)
        else:
            df = pd.DataFrame(read_binary_records(path))
        logger.info(f"Loaded {len(df)} records from {path}")
        frames.append(df)
    
    if not frames:
        return pd.DataFrame(columns=HEADER)
    
    df = pd.concat(frames, ignore_index=True)
    return df.sort_values(["P", "alpha"]).reset_index(drop=True)


def _is_text(path: Path) -> bool:
    """True when the file starts with the CSV header line."""
    with open(path, "rb") as fh:
        head = fh.read(len(HEADER[0]) + 1)
    return head == (HEADER[0] + ",").encode()


def summarize_records(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add mean and standard deviation estimates for each (P, alpha) pair.

    The fund sums are stored rescaled by 1e-1 and 1e-2; the estimates are
    reported in original units.
    """
    out = df.copy()
    
    accumulators = [
        MomentAccumulator(
            sumX=float(row.sumx),
            sumX2=float(row.sumx2),
            sumM=float(row.summ),
            sumM2=float(row.summ2),
            n=int(row.N),
        )
        for row in out.itertuples(index=False)
    ]
    
    out["mean_x"] = [acc.mean_x for acc in accumulators]
    out["std_x"] = np.sqrt(_non_negative([acc.var_x for acc in accumulators]))
    out["mean_m"] = [acc.mean_m for acc in accumulators]
    out["std_m"] = np.sqrt(_non_negative([acc.var_m for acc in accumulators]))
    
    return out


def _non_negative(values) -> np.ndarray:
    # Guard against tiny negative values from cancellation
    return np.clip(np.asarray(values, dtype=float), 0.0, None)
