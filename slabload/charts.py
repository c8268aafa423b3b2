from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .outcomes import STATUS_FAILED, STATUS_OK, STATUS_PROTOCOL_ERROR

LOGGER = logging.getLogger("slabload.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 300
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13

STATUS_COLORS = {
    STATUS_OK: "#2E86AB",
    STATUS_FAILED: "#F18F01",
    STATUS_PROTOCOL_ERROR: "#C73E1D",
}

ROLLING_WINDOW = 20


def render_upload_chart(df: pd.DataFrame, chart_path: Path) -> Path | None:
    """Plot per-attempt upload duration over the run, coloured by outcome."""
    if df.empty or "duration_s" not in df.columns:
        LOGGER.warning("No upload attempts recorded; skipping chart")
        return None

    df = df[df["duration_s"].notna() & (df["duration_s"] >= 0)].copy()
    if df.empty:
        LOGGER.warning("No valid upload durations after filtering")
        return None

    df["elapsed_min"] = (df["started_ts"] - df["started_ts"].min()) / 60.0
    df = df.sort_values("elapsed_min")

    fig, ax = plt.subplots(figsize=(12, 6))
    sns.scatterplot(
        data=df,
        x="elapsed_min",
        y="duration_s",
        hue="status",
        palette=STATUS_COLORS,
        alpha=0.6,
        s=18,
        ax=ax,
    )

    ok = df[df["status"] == STATUS_OK]
    if not ok.empty:
        rolling = ok["duration_s"].rolling(ROLLING_WINDOW, min_periods=1).mean()
        ax.plot(
            ok["elapsed_min"],
            rolling,
            linewidth=2.0,
            color="#1B4965",
            label=f"rolling mean ({ROLLING_WINDOW} uploads)",
        )

    ax.set_xlabel("Elapsed (minutes)", fontweight="semibold")
    ax.set_ylabel("Upload duration (seconds)", fontweight="semibold")
    ax.set_title("Upload Duration per Attempt", fontweight="bold", pad=15)
    ax.grid(True, alpha=0.3, linestyle="--")
    ax.legend(loc="upper right")

    chart_path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


__all__ = ["render_upload_chart"]
