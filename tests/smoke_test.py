"""
Smoke test for the complete sweep.

Runs the reference grid end to end (single process) and checks the records,
the summary and the plots.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd

from deerpop.config import Settings
from deerpop.output.summary import load_records, summarize_records
from deerpop.sim.sweep import run_sweep
from deerpop.viz.plots import plot_moment_surface


def test_pipeline(tmp_path):
    """Run smoke test on the reference grid."""
    results_dir = Path(tmp_path)
    print("=" * 70)
    print("Running Smoke Test")
    print("=" * 70)
    
    test_config = Settings(
        P_MIN=430000.0,
        P_MAX=530000.0,
        NUM_P=10,
        ALPHA_MIN=0.0,
        ALPHA_MAX=0.15,
        NUM_ALPHA=10,
        NUMBER_ITERS=100,
        NUMBER_TIME_STEPS=1000,
        FINAL_TIME=10.0,
        RESULTS_DIR=str(results_dir),
        RANDOM_STATE=42,
    )
    
    print("\nRunning sweep with test configuration...")
    result = run_sweep(test_config)
    
    print("\n" + "=" * 70)
    print("Running Assertions")
    print("=" * 70)
    
    # 1. Check output file exists and holds one record per pair
    assert result.output.exists(), f"Output file not found: {result.output}"
    df = load_records(result.output)
    assert len(df) == 121, f"Expected 121 records, got {len(df)}"
    assert (df["N"] == 100).all(), "Every record must carry N=100"
    assert np.allclose(df["time"], 10.0), "Every record must carry time=10"
    print(f"✓ {len(df)} records in {result.output}")
    
    # 2. Check summary statistics
    summary = summarize_records(df)
    for col in ["mean_x", "std_x", "mean_m", "std_m"]:
        assert col in summary.columns, f"Summary missing column: {col}"
    assert np.isfinite(summary["mean_x"]).all(), "Population means must be finite"
    print(f"  Mean population range: [{summary['mean_x'].min():.1f}, {summary['mean_x'].max():.1f}]")
    print(f"  Mean fund range: [{summary['mean_m'].min():.1f}, {summary['mean_m'].max():.1f}]")
    
    # 3. Check plot is written
    plot_path = Path(results_dir) / "mean_m_surface.png"
    plot_moment_surface(summary, "mean_m", plot_path)
    assert plot_path.exists() and plot_path.stat().st_size > 0, f"Plot not written: {plot_path}"
    print(f"✓ Plot exists: {plot_path}")
    
    print("\n" + "=" * 70)
    print("✓ All assertions passed!")
    print("=" * 70)


if __name__ == "__main__":
    try:
        test_pipeline(Path("results_test"))
        print("\n✅ Smoke test PASSED")
        sys.exit(0)
    except AssertionError as e:
        print(f"\n❌ Smoke test FAILED: {e}")
        sys.exit(1)
