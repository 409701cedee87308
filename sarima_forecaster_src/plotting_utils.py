# sarima_forecaster_src/plotting_utils.py

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Callable, Dict, List, Optional
import logging

from .file_utils import ensure_dir

logger = logging.getLogger(__name__)

# Fan-chart shading, widest interval drawn first
_BAND_ALPHAS = [0.18, 0.32, 0.45]


def forecast_frame(forecast) -> pd.DataFrame:
    """
    Tabulate a forecast for rendering or export.

    Returns
    -------
    pd.DataFrame
        Indexed by forecast period with columns ``mean``, ``lower_80``,
        ``upper_80``, ``lower_95``, ``upper_95`` (one pair per level).
    """
    data = {"mean": forecast.mean.to_numpy(dtype=float)}
    for lvl in forecast.levels:
        data[f"lower_{lvl}"] = forecast.lower[lvl].to_numpy(dtype=float)
        data[f"upper_{lvl}"] = forecast.upper[lvl].to_numpy(dtype=float)
    df = pd.DataFrame(data, index=forecast.mean.index.copy())
    df.index.name = "date"
    return df


def comparison_frame(forecast, actual: pd.Series) -> pd.DataFrame:
    """
    Forecast frame joined with the held-out actuals, position by position.

    Adds ``actual`` and ``error`` (``actual - mean``) columns.
    """
    df = forecast_frame(forecast)
    if len(actual) != len(df):
        raise ValueError(f"Expected {len(df)} actual values, got {len(actual)}")
    df.insert(0, "actual", np.asarray(actual, dtype=float))
    df["error"] = df["actual"] - df["mean"]
    return df


def plot_series(series: pd.Series, out_path: Path, title: str, ylabel: str = "") -> None:
    """Render a single monthly series as a line plot."""
    ensure_dir(out_path.parent)
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(series.index, series.to_numpy(dtype=float), color="black", linewidth=1)
    ax.set_title(title)
    ax.set_xlabel("Date")
    if ylabel:
        ax.set_ylabel(ylabel)
    fig.autofmt_xdate()
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def plot_decomposition(components: pd.DataFrame, out_path: Path, title: str = "Classical decomposition") -> None:
    """
    Render the four panels of a decomposition frame.

    Parameters
    ----------
    components : pd.DataFrame
        Output of ``transform_utils.decompose_series``
    out_path : Path
        File path to save the PNG (parents are created if missing)
    title : str
        Figure title
    """
    ensure_dir(out_path.parent)
    cols = ["observed", "trend", "seasonal", "resid"]
    fig, axes = plt.subplots(nrows=len(cols), ncols=1, figsize=(10, 8), sharex=True)
    for ax, col in zip(axes, cols):
        ax.plot(components.index, components[col].to_numpy(dtype=float), color="black", linewidth=1)
        ax.set_ylabel(col)
        ax.spines["top"].set_alpha(0)
        ax.tick_params(labelsize=7)
    axes[0].set_title(title)
    fig.autofmt_xdate()
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def plot_residual_diagnostics(residuals: pd.Series, out_path: Path, title: str = "Residuals", lags: int = 24) -> None:
    """
    Residual panel: time plot, ACF and histogram with a fitted normal density.
    """
    from statsmodels.graphics.tsaplots import plot_acf
    from scipy import stats

    resid = pd.Series(residuals, dtype=float).dropna()
    if resid.empty:
        logger.warning("Residual plot skipped: empty residual series.")
        return

    ensure_dir(out_path.parent)
    fig = plt.figure(figsize=(10, 6))
    ax_ts = fig.add_subplot(2, 1, 1)
    ax_acf = fig.add_subplot(2, 2, 3)
    ax_hist = fig.add_subplot(2, 2, 4)

    ax_ts.plot(resid.index, resid.to_numpy(), color="black", linewidth=0.8)
    ax_ts.axhline(0.0, color="gray", linewidth=0.8, linestyle="--")
    ax_ts.set_title(title)

    plot_acf(resid, ax=ax_acf, lags=int(min(lags, len(resid) - 1)), zero=False)
    ax_acf.set_title("ACF")

    ax_hist.hist(resid.to_numpy(), bins="auto", density=True, color="tab:blue", alpha=0.6)
    sd = float(np.std(resid, ddof=1)) if len(resid) > 1 else 0.0
    if sd > 0.0:
        grid = np.linspace(resid.min(), resid.max(), 200)
        ax_hist.plot(grid, stats.norm.pdf(grid, loc=float(resid.mean()), scale=sd), color="tab:red")
    ax_hist.set_title("Distribution")

    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def _draw_bands(ax, forecast) -> None:
    levels = sorted(forecast.levels, reverse=True)
    for i, lvl in enumerate(levels):
        alpha = _BAND_ALPHAS[min(i, len(_BAND_ALPHAS) - 1)]
        ax.fill_between(forecast.mean.index,
                        forecast.lower[lvl].to_numpy(dtype=float),
                        forecast.upper[lvl].to_numpy(dtype=float),
                        color="tab:blue", alpha=alpha, linewidth=0, label=f"{lvl}% interval")


def plot_forecast_vs_actual(forecast, actual: pd.Series, out_path: Path,
                            history: Optional[pd.Series] = None,
                            title: str = "Forecast vs actual") -> None:
    """
    Overlay the validation forecast, its intervals and the held-out actuals.

    When ``history`` is given, the training series is drawn for context.
    """
    ensure_dir(out_path.parent)
    fig, ax = plt.subplots(figsize=(10, 4))
    if history is not None:
        ax.plot(history.index, history.to_numpy(dtype=float), color="gray", linewidth=1, label="training")
    _draw_bands(ax, forecast)
    ax.plot(forecast.mean.index, np.asarray(actual, dtype=float), color="black", linewidth=1.5, label="actual")
    ax.plot(forecast.mean.index, forecast.mean.to_numpy(dtype=float), color="tab:red",
            linestyle="--", label=forecast.model_name or "forecast")
    ax.set_title(title)
    ax.legend(loc="upper left", fontsize=8)
    fig.autofmt_xdate()
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def plot_forecast_fan(forecast, out_path: Path, title: str = "Forecast") -> None:
    """Render history plus forecast with shaded prediction intervals."""
    ensure_dir(out_path.parent)
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(forecast.history.index, forecast.history.to_numpy(dtype=float), color="black", linewidth=1, label="observed")
    _draw_bands(ax, forecast)
    ax.plot(forecast.mean.index, forecast.mean.to_numpy(dtype=float), color="tab:blue", linewidth=1.5,
            label=forecast.model_name or "forecast")
    ax.set_title(title)
    ax.legend(loc="upper left", fontsize=8)
    fig.autofmt_xdate()
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def save_workflow_figures(result, figures_dir: Path, series_name: str = "series") -> List[Path]:
    """
    Render every workflow figure into ``figures_dir``.

    Each figure is rendered independently; a failure is logged and the
    remaining figures are still attempted.

    Returns
    -------
    List[Path]
        Paths of the figures that were written.
    """
    from .diagnostics_utils import model_residuals

    figures: Dict[str, Callable[[Path], None]] = {
        "series_raw.png": lambda p: plot_series(result.series, p, f"{series_name}"),
        "series_transformed.png": lambda p: plot_series(result.transformed, p, f"{series_name} (transformed)"),
        "decomposition.png": lambda p: plot_decomposition(result.decomposition, p),
        "series_differenced.png": lambda p: plot_series(
            result.differenced, p, f"{series_name} (d={result.diff_plan[0]}, D={result.diff_plan[1]})"),
        "residuals_train.png": lambda p: plot_residual_diagnostics(
            model_residuals(result.train_model), p, f"Residuals {result.train_model.order}"),
        "forecast_vs_actual.png": lambda p: plot_forecast_vs_actual(
            result.validation_forecast, result.test, p, history=result.train),
        "residuals_final.png": lambda p: plot_residual_diagnostics(
            model_residuals(result.final_model), p, f"Residuals {result.final_model.order} (full series)"),
        "forecast_final.png": lambda p: plot_forecast_fan(
            result.final_forecast, p, f"{series_name}: {result.final_model.order} forecast"),
    }

    written: List[Path] = []
    for fname, render in figures.items():
        out_path = figures_dir / fname
        try:
            render(out_path)
            written.append(out_path)
        except Exception as e:
            logger.warning("Failed to render %s: %s", fname, e)
            plt.close("all")
    logger.info("Saved %d figure(s) to %s", len(written), figures_dir)
    return written
