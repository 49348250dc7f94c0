"""
Sweep the (P, alpha) grid.

Each process takes the P slice handed out by the partitioner, and for every
P value in it submits one unit of work per alpha value to the bounded pool.
A unit runs the Monte Carlo sampler with its own random source and appends
one record to the process's sink.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
from tqdm import tqdm

from deerpop.config import Settings, cfg, get_logger, set_verbosity
from deerpop.output.records import ResultRecord, output_path
from deerpop.output.sink import ResultSink, open_sink
from deerpop.parallel.partition import WorkAssignment, assign_work
from deerpop.parallel.pool import BoundedWorkerPool
from deerpop.parallel.process_group import LocalProcessGroup, ProcessGroup
from deerpop.sim.params import RunConfig
from deerpop.sim.rng import run_seed_sequence, unit_source
from deerpop.sim.sampler import MonteCarloSampler

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """What one process did during the sweep."""
    
    assignment: WorkAssignment
    output: Path
    n_records: int
    peak_workers: int
    elapsed: float


def simulate_pair(
    settings: Settings,
    run_config: RunConfig,
    root: np.random.SeedSequence,
    p_index: int,
    P: float,
    alpha_index: int,
    alpha: float,
    sink: ResultSink,
) -> ResultRecord:
    """One unit of work: sample a (P, alpha) pair and append its record."""
    if run_config.verbosity >= 2:
        logger.debug(f"Simulation: {run_config.horizon},{P},{alpha}")
    
    sampler = MonteCarloSampler(settings.pair_parameters(P, alpha), run_config)
    result = sampler.sample(unit_source(root, p_index, alpha_index))
    
    record = ResultRecord.from_sample(P, alpha, result, run_config)
    sink.append(record)
    return record


def run_sweep(
    settings: Optional[Settings] = None,
    group: Optional[ProcessGroup] = None,
) -> SweepResult:
    """
    Run this process's share of the sweep to completion.

    Args:
        settings: Settings object. If None, uses global cfg
        group: An initialized process group. If None, a single local process
            owns the whole grid
    
    Returns:
        SweepResult for this process
    
    Raises:
        OutputStreamError: the output file cannot be opened
        NumericalSingularityError: a degenerate pair, only with CHECK_FINITE
    """
    if settings is None:
        settings = cfg
    if group is None:
        group = LocalProcessGroup()
    
    set_verbosity(settings.log_level)
    
    assignment = assign_work(group, settings.NUM_P)
    rank, size = group.self_rank(), group.group_size()
    
    path = output_path(
        settings.results_dir,
        settings.OUTPUT_PREFIX,
        rank,
        size,
        settings.DEFAULT_FILE,
        settings.OUTPUT_FORMAT,
    )
    
    root = run_seed_sequence(settings.RANDOM_STATE)
    if settings.RANDOM_STATE is None:
        logger.info(f"[RANK {rank}] Run seed entropy: {root.entropy}")
    
    grid = settings.grid()
    run_config = settings.run_config()
    
    logger.info(
        f"[RANK {rank}] Starting sweep: {len(assignment)} P values x "
        f"{grid.num_alpha + 1} alpha values, {run_config.number_iters} iterations, "
        f"{run_config.number_time_steps} time steps, {settings.MAX_WORKERS} workers "
        f"({settings.POOL_POLICY})"
    )
    
    t0 = time.perf_counter()
    show_progress = run_config.verbosity >= 1 and rank == 0
    
    with open_sink(path, settings.OUTPUT_FORMAT) as sink:
        with BoundedWorkerPool(settings.MAX_WORKERS, settings.POOL_POLICY) as pool:
            for p_index in tqdm(
                assignment.indices(), desc="P values", unit="P", disable=not show_progress
            ):
                P = grid.p_value(p_index)
                for alpha_index, alpha in grid.alphas():
                    pool.submit(
                        simulate_pair,
                        settings,
                        run_config,
                        root,
                        p_index,
                        P,
                        alpha_index,
                        alpha,
                        sink,
                    )
        n_records = sink.count
    
    elapsed = time.perf_counter() - t0
    logger.info(
        f"[RANK {rank}] ✓ Sweep finished: {n_records} records in {elapsed:.2f}s "
        f"(peak {pool.peak_live} concurrent workers) -> {path}"
    )
    
    return SweepResult(
        assignment=assignment,
        output=path,
        n_records=n_records,
        peak_workers=pool.peak_live,
        elapsed=elapsed,
    )
