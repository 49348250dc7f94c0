"""
Visualization of per-pair summaries over the (P, alpha) grid.
"""

from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from pathlib import Path as PathType

from deerpop.config import get_logger

logger = get_logger(__name__)

LABELS = {
    "mean_x": "Mean terminal deer population",
    "std_x": "Std. of terminal deer population",
    "mean_m": "Mean terminal fund balance",
    "std_m": "Std. of terminal fund balance",
}


def plot_moment_surface(
    summary_df: pd.DataFrame,
    column: str,
    outpath: PathType,
) -> None:
    """
    Heat map of one summary column over (P, alpha).
    
    Args:
        summary_df: Output of summarize_records
        column: Column to draw, e.g. "mean_m"
        outpath: Path to save plot
    """
    logger.info(f"Plotting {column} over the (P, alpha) grid...")
    
    surface = summary_df.pivot_table(index="alpha", columns="P", values=column)
    
    fig, ax = plt.subplots(figsize=(10, 6))
    mesh = ax.pcolormesh(
        surface.columns.values,
        surface.index.values,
        surface.values,
        shading="nearest",
        cmap="viridis",
    )
    fig.colorbar(mesh, ax=ax, label=LABELS.get(column, column))
    ax.set_xlabel("P (annual fund contribution)")
    ax.set_ylabel("alpha (noise amplitude)")
    ax.set_title(LABELS.get(column, column))
    
    plt.tight_layout()
    
    outpath = Path(outpath)
    outpath.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(outpath, dpi=150, bbox_inches="tight")
    plt.close(fig)
    
    logger.info(f"  ✓ Saved plot to {outpath}")
