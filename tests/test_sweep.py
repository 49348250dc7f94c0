"""Tests for settings, the grid sweep and the command-line interface."""

import logging

import pytest
import numpy as np
import pandas as pd
from pydantic import ValidationError

from deerpop.cli import main
from deerpop.config import Settings
from deerpop.exceptions import NumericalSingularityError, OutputStreamError
from deerpop.output.records import read_binary_records
from deerpop.output.summary import load_records, summarize_records
from deerpop.sim.params import ParameterGrid
from deerpop.sim.sweep import run_sweep

from test_parallel import QueueProcessGroup


def small_settings(tmp_path, **kwargs):
    """Fast settings writing into tmp_path."""
    values = dict(
        NUM_P=2,
        NUM_ALPHA=2,
        NUMBER_ITERS=5,
        NUMBER_TIME_STEPS=20,
        FINAL_TIME=1.0,
        MAX_WORKERS=2,
        RANDOM_STATE=2024,
        RESULTS_DIR=str(tmp_path),
        VERBOSITY=0,
    )
    values.update(kwargs)
    return Settings(**values)


def test_settings_defaults():
    """Test default run parameters."""
    settings = Settings()
    
    assert settings.NUM_P == 10
    assert settings.NUM_ALPHA == 10
    assert settings.MAX_WORKERS == 3
    assert settings.dt == pytest.approx(0.01)
    assert settings.run_config().horizon == pytest.approx(10.0)
    assert settings.grid().size == 121


def test_settings_validation():
    """Test settings validation."""
    with pytest.raises(ValidationError):
        Settings(NUMBER_ITERS=0)
    
    with pytest.raises(ValidationError):
        Settings(FINAL_TIME=0.0)
    
    with pytest.raises(ValidationError):
        Settings(MAX_WORKERS=0)
    
    with pytest.raises(ValidationError):
        Settings(P_MAX=1.0)


def test_settings_from_environment(monkeypatch):
    """Test environment overrides."""
    monkeypatch.setenv("DEERPOP_NUM_P", "3")
    monkeypatch.setenv("DEERPOP_POOL_POLICY", "batch")
    
    settings = Settings()
    
    assert settings.NUM_P == 3
    assert settings.POOL_POLICY == "batch"


def test_parameter_grid_values():
    """Test grid endpoints and spacing."""
    grid = ParameterGrid(430000.0, 530000.0, 10, 0.0, 0.15, 10)
    points = list(grid.points())
    
    assert len(points) == 121
    assert points[0][1] == 430000.0
    assert points[-1][1] == pytest.approx(530000.0)
    assert points[-1][3] == pytest.approx(0.15)
    assert grid.delta_p == pytest.approx(10000.0)


def test_end_to_end_scenario(tmp_path):
    """Test the reference sweep emits one record per (P, alpha) pair."""
    settings = Settings(
        P_MIN=430000.0,
        P_MAX=530000.0,
        NUM_P=10,
        ALPHA_MIN=0.0,
        ALPHA_MAX=0.15,
        NUM_ALPHA=10,
        NUMBER_ITERS=100,
        NUMBER_TIME_STEPS=1000,
        FINAL_TIME=10.0,
        RANDOM_STATE=1,
        RESULTS_DIR=str(tmp_path),
        VERBOSITY=0,
    )
    
    result = run_sweep(settings)
    
    df = pd.read_csv(result.output)
    assert result.output == tmp_path / "threaded_trial.csv"
    assert result.n_records == 121
    assert len(df) == 121
    assert (df["N"] == 100).all()
    assert np.allclose(df["time"], 10.0)
    assert len(df.groupby(["P", "alpha"])) == 121
    assert result.peak_workers <= 3
    
    # alpha = 0 keeps the population at ftilde on every replication
    no_noise = df[df["alpha"] == 0.0]
    assert np.allclose(no_noise["sumx"] / no_noise["N"], no_noise["x"], rtol=1e-9)


def test_sweep_deterministic_across_pool_sizes(tmp_path):
    """Test that a fixed seed gives the same records whatever the pool layout."""
    a = run_sweep(small_settings(tmp_path / "a", MAX_WORKERS=1, POOL_POLICY="batch"))
    b = run_sweep(small_settings(tmp_path / "b", MAX_WORKERS=4))
    
    pd.testing.assert_frame_equal(load_records(a.output), load_records(b.output), check_exact=True)


def test_sweep_binary_output(tmp_path):
    """Test the binary record mode."""
    result = run_sweep(small_settings(tmp_path, OUTPUT_FORMAT="binary", DEFAULT_FILE="trial.bin"))
    
    data = read_binary_records(result.output)
    assert len(data) == 9
    assert (data["N"] == 5).all()


def test_sweep_binary_default_name(tmp_path):
    """Test a single-process binary run with the default file name can be summarized."""
    result = run_sweep(small_settings(tmp_path, OUTPUT_FORMAT="binary"))
    
    assert result.output == tmp_path / "threaded_trial.bin"
    
    df = load_records(result.output)
    assert len(df) == 9
    assert (df["N"] == 5).all()
    
    summary = summarize_records(df)
    assert np.isfinite(summary["mean_x"]).all()
    
    summary_path = tmp_path / "summary.csv"
    assert main(["summarize", str(result.output), "--out", str(summary_path)]) == 0
    assert len(pd.read_csv(summary_path)) == 9


def test_sweep_debug_lines_follow_verbosity(tmp_path, caplog):
    """Test per-unit debug lines appear only at the highest verbosity."""
    settings = small_settings(tmp_path, VERBOSITY=2)
    assert settings.run_config().verbosity == 2
    
    with caplog.at_level(logging.DEBUG):
        run_sweep(settings)
    assert sum("Simulation:" in r.getMessage() for r in caplog.records) == 9
    
    caplog.clear()
    with caplog.at_level(logging.DEBUG):
        run_sweep(small_settings(tmp_path / "quiet", VERBOSITY=0))
    assert not any("Simulation:" in r.getMessage() for r in caplog.records)


def test_multi_process_sweep(tmp_path):
    """Test that ranks write separate streams that together cover the grid."""
    settings = small_settings(tmp_path, NUM_P=4, NUM_ALPHA=1)
    group = QueueProcessGroup.world(3)
    
    # Rank 0 sends every range before it starts its own slice
    results = [run_sweep(settings, g) for g in group]
    
    assert [r.output.name for r in results] == ["trial-0.dat", "trial-1.dat", "trial-2.dat"]
    assert sum(r.n_records for r in results) == 10
    
    df = load_records([r.output for r in results])
    grid = settings.grid()
    expected = sorted((P, alpha) for _, P, _, alpha in grid.points())
    assert list(zip(df["P"], df["alpha"])) == expected


def test_sweep_output_failure(tmp_path):
    """Test that an unopenable output stream aborts the run before any work."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    
    with pytest.raises(OutputStreamError):
        run_sweep(small_settings(blocker))


def test_sweep_strict_singularity(tmp_path):
    """Test CHECK_FINITE turns a degenerate pair into an error."""
    settings = small_settings(
        tmp_path,
        R1=1.0,
        HARVEST=0.5,
        ALPHA_MIN=0.0,
        ALPHA_MAX=1.0,
        NUM_ALPHA=1,
        CHECK_FINITE=True,
    )
    
    with pytest.raises(NumericalSingularityError):
        run_sweep(settings)


def test_sweep_writes_singular_values(tmp_path):
    """Test the default mode writes non-finite values for a degenerate pair."""
    settings = small_settings(tmp_path, R1=1.0, HARVEST=0.5, ALPHA_MIN=0.0, ALPHA_MAX=1.0, NUM_ALPHA=1)
    
    df = load_records(run_sweep(settings).output)
    
    assert len(df) == 6
    assert not np.isfinite(df.loc[df["alpha"] == 1.0, "x"]).any()
    assert np.isfinite(df.loc[df["alpha"] == 0.0, "x"]).all()


def test_cli_run_and_summarize(tmp_path):
    """Test the run and summarize subcommands."""
    code = main([
        "run", "--num-p", "1", "--num-alpha", "1", "--iters", "4", "--steps", "10",
        "--final-time", "1.0", "--seed", "3", "--output-dir", str(tmp_path), "-v", "0",
    ])
    assert code == 0
    
    output = tmp_path / "threaded_trial.csv"
    assert len(pd.read_csv(output)) == 4
    
    summary_path = tmp_path / "summary.csv"
    assert main(["summarize", str(output), "--out", str(summary_path)]) == 0
    
    summary = pd.read_csv(summary_path)
    assert {"mean_x", "std_x", "mean_m", "std_m"} <= set(summary.columns)


def test_cli_reports_fatal_errors(tmp_path):
    """Test that output failures become a non-zero exit status."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    
    assert main(["run", "--num-p", "0", "--num-alpha", "0", "--iters", "1", "--steps", "2",
                 "--output-dir", str(blocker), "-v", "0"]) == 1


def test_cli_rejects_invalid_settings(tmp_path):
    """Test that invalid flag values become a non-zero exit status."""
    assert main(["run", "--workers", "0", "--output-dir", str(tmp_path), "-v", "0"]) == 1
    assert main(["run", "--iters", "0", "--output-dir", str(tmp_path), "-v", "0"]) == 1
    assert not (tmp_path / "threaded_trial.csv").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
