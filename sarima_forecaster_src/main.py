# sarima_forecaster_src/main.py

"""
Seasonal ARIMA modeling and evaluation of a monthly series.

Purpose
-------
- Load a two-column monthly CSV (timestamp, value)
- Log-transform and difference (lag 1, then lag 12) to remove trend and
  seasonality; run ADF and KPSS on the differenced series
- Hold out the last 24 months (or the last two calendar years), search
  seasonal ARIMA orders on the rest by AICc and forecast the hold-out
  window with 80% and 95% intervals
- Back-transform to the original scale and report accuracy
- Refit the selected order on the full series and forecast 24 months ahead

Workflow stages run strictly in order (preprocess -> test -> select ->
validate -> final forecast); a failing stage raises and nothing later runs.

Configuration-Driven Workflow
-----------------------------
Search bounds, differencing plan and evaluation settings are read from a
YAML file (``config/forecaster.yaml`` by default). CLI arguments override
configuration values where applicable.
"""

import argparse
import logging
import sys
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .config_utils import ConfigurationManager, get_config_value, initialize_config
from .data_utils import load_monthly_series_csv, split_holdout, validate_series_for_modeling
from .diagnostics_utils import diagnostics_frame, residual_diagnostics
from .errors import ConfigurationError, ForecasterError
from .file_utils import append_metrics_csv_row, ensure_dir, resolve_path, write_forecast_csv, write_frame_csv
from .forecasting_utils import (
    FittedModel, Forecast, forecast_sarima, hash_forecast, refit_sarima, run_order_search, to_original_scale
)
from .metrics_utils import AccuracyReport, evaluate_forecast
from .parsing_utils import parse_intervals_arg, validate_log_level, validate_transform
from .plotting_utils import comparison_frame, save_workflow_figures
from .stationarity_utils import StationarityResult, adaptive_differencing_plan, check_stationarity
from .transform_utils import (
    apply_differencing_plan, decompose_series, get_transform_description, log_transform
)

logger = logging.getLogger(__name__)


@dataclass
class WorkflowResult:
    """Outputs of every workflow stage, in the order they were produced."""

    series: pd.Series
    transformed: pd.Series
    decomposition: pd.DataFrame
    diff_plan: Tuple[int, int]
    differenced: pd.Series
    stationarity: Dict[str, StationarityResult]
    train: pd.Series
    test: pd.Series
    search_table: pd.DataFrame
    train_model: FittedModel
    validation_forecast: Forecast
    accuracy: AccuracyReport
    final_model: FittedModel
    final_forecast: Forecast
    diagnostics: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def _transform(series: pd.Series, transform: str) -> pd.Series:
    validate_transform(transform)
    if transform == "log":
        return log_transform(series)
    return series.copy()


def run_workflow(series: pd.Series,
                 config: Optional[ConfigurationManager] = None,
                 progress: bool = True) -> WorkflowResult:
    """
    Run the five workflow stages on an already loaded monthly series.

    Parameters
    ----------
    series : pd.Series
        Monthly series on the original scale (month-start DatetimeIndex)
    config : Optional[ConfigurationManager]
        Workflow configuration; in-code defaults when None
    progress : bool, default=True
        Show tqdm progress bars during the order search

    Returns
    -------
    WorkflowResult

    Raises
    ------
    DomainError
        If the log transform meets a non-positive value.
    NoConvergenceError
        If no candidate converges or the final refit fails.
    LengthMismatchError, ForecastScaleError
        If the validation forecast cannot be compared with the hold-out.
    """
    config = config if config is not None else ConfigurationManager()
    settings = config.get_workflow_settings()
    bounds = config.get_search_bounds()
    s = settings["seasonal_period"]
    transform = settings["transform"]

    # Stage 1: preprocess
    logger.info("Stage 1/5: preprocessing (%s)", get_transform_description(transform))
    validate_series_for_modeling(series, seasonal_period=s)
    transformed = _transform(series, transform)
    decomposition = decompose_series(transformed, period=s)
    if settings["adaptive_differencing"]:
        diff_plan = adaptive_differencing_plan(
            transformed, s=s, max_d=2, max_D=1, alpha=settings["alpha"],
            adf_regression=settings["adf_regression"], kpss_regression=settings["kpss_regression"],
        )
    else:
        diff_plan = (settings["d"], settings["D"])
    differenced = apply_differencing_plan(transformed, d=diff_plan[0], D=diff_plan[1], s=s)
    logger.info("Differenced series (d=%d, D=%d): %d observations", diff_plan[0], diff_plan[1], len(differenced))

    # Stage 2: stationarity tests (advisory)
    logger.info("Stage 2/5: stationarity tests")
    stationarity = check_stationarity(
        differenced, alpha=settings["alpha"], label="differenced series",
        adf_regression=settings["adf_regression"], kpss_regression=settings["kpss_regression"],
    )

    # Stage 3: order selection on the training split
    logger.info("Stage 3/5: order selection (%s search)", settings["strategy"])
    train, test = split_holdout(series, split=settings["split"], test_len=settings["test_months"],
                                years=settings["holdout_years"])
    logger.info("Hold-out (%s split): train %s to %s, test %s to %s", settings["split"],
                train.index[0].strftime("%Y-%m"), train.index[-1].strftime("%Y-%m"),
                test.index[0].strftime("%Y-%m"), test.index[-1].strftime("%Y-%m"))
    train_t = transformed.iloc[: len(train)].copy()
    outcome = run_order_search(
        train_t, bounds, seasonal_period=s, strategy=settings["strategy"],
        maxiter=settings["maxiter"], max_candidates=settings["max_candidates"], progress=progress,
    )
    search_table = outcome.table()
    logger.info("Top 5 models by AICc:\n%s", search_table.head().to_string(index=False))
    train_model = outcome.best_model()
    logger.info("Selected %s with AICc=%.3f", train_model.order, train_model.aicc)
    logger.info("Training model summary: %s", train_model.summary())
    logger.debug("%s", train_model.results.summary())

    # Stage 4: validation forecast and evaluation
    logger.info("Stage 4/5: validation forecast over %d months", len(test))
    validation_forecast = to_original_scale(
        forecast_sarima(train_model, len(test), settings["intervals"]), transform
    )
    accuracy = evaluate_forecast(validation_forecast, test, y_train=train, m=s)

    # Stage 5: refit on the full series and forecast ahead
    logger.info("Stage 5/5: refit on full series and forecast %d months", settings["horizon"])
    final_model = refit_sarima(transformed, train_model, maxiter=settings["maxiter"])
    logger.info("Final model summary: %s", final_model.summary())
    logger.debug("%s", final_model.results.summary())
    final_forecast = to_original_scale(
        forecast_sarima(final_model, settings["horizon"], settings["intervals"]), transform
    )

    diagnostics = {
        "train": residual_diagnostics(train_model, alpha=settings["alpha"]),
        "final": residual_diagnostics(final_model, alpha=settings["alpha"]),
    }

    return WorkflowResult(
        series=series.copy(),
        transformed=transformed,
        decomposition=decomposition,
        diff_plan=diff_plan,
        differenced=differenced,
        stationarity=stationarity,
        train=train,
        test=test,
        search_table=search_table,
        train_model=train_model,
        validation_forecast=validation_forecast,
        accuracy=accuracy,
        final_model=final_model,
        final_forecast=final_forecast,
        diagnostics=diagnostics,
    )


# (configuration key, CLI attribute) pairs; CLI values win over the file
_CLI_OVERRIDES: List[Tuple[str, str]] = [
    ("preprocessing.transform", "transform"),
    ("preprocessing.adaptive_differencing", "adaptive_differencing"),
    ("model.search.strategy", "strategy"),
    ("model.search.max_p", "max_p"),
    ("model.search.max_d", "max_d"),
    ("model.search.max_q", "max_q"),
    ("model.search.max_P", "max_P"),
    ("model.search.max_D", "max_D"),
    ("model.search.max_Q", "max_Q"),
    ("model.search.max_order", "max_order"),
    ("evaluation.split", "split"),
    ("evaluation.test_months", "test_months"),
    ("evaluation.holdout_years", "holdout_years"),
    ("evaluation.intervals", "intervals"),
    ("forecast.horizon", "horizon"),
]


def _apply_cli_overrides(manager: ConfigurationManager, args: Optional[argparse.Namespace]) -> ConfigurationManager:
    """Merge CLI values over the configuration file and re-validate."""
    if args is None:
        return manager
    cli = argparse.Namespace(**vars(args))
    if getattr(cli, "intervals", None):
        try:
            cli.intervals = parse_intervals_arg(cli.intervals)
        except ValueError as e:
            raise ConfigurationError(f"Invalid --intervals: {e}") from e

    overrides: Dict[str, Any] = {}
    for key_path, cli_param in _CLI_OVERRIDES:
        value = get_config_value(key_path, None, cli, cli_param, manager=manager)
        if value is None:
            continue
        node = overrides
        parts = key_path.split(".")
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value

    merged = manager.with_overrides(overrides)
    problems = merged.validate_configuration()
    if problems:
        raise ConfigurationError(f"Invalid settings after CLI overrides: {problems}")
    return merged


def _export_metrics(result: WorkflowResult, series_name: str, metrics_csv_path: Optional[Path]) -> None:
    """Append one row for the validation forecast and one for the final forecast."""
    if metrics_csv_path is None:
        return
    acc = result.accuracy.to_dict()
    row_validation = {
        "series": series_name,
        "model": str(result.train_model.order),
        "stage": "validation",
        **acc,
        "AICc": result.train_model.aicc,
        "forecast_hash": hash_forecast(result.validation_forecast.mean),
    }
    append_metrics_csv_row(metrics_csv_path, row_validation)
    row_final = {
        "series": series_name,
        "model": str(result.final_model.order),
        "stage": "final",
        "n": result.final_forecast.horizon,
        "AICc": result.final_model.aicc,
        "forecast_hash": hash_forecast(result.final_forecast.mean),
    }
    append_metrics_csv_row(metrics_csv_path, row_final)
    logger.info("Appended metrics to %s", metrics_csv_path)


def run_forecast_workflow(series_path: Path,
                          figures_dir: Path,
                          metrics_csv_path: Optional[Path],
                          args: Optional[argparse.Namespace] = None) -> WorkflowResult:
    """
    Execute the full workflow for one CSV file and write its outputs.

    Parameters
    ----------
    series_path : Path
        Input CSV with a timestamp column and a value column
    figures_dir : Path
        Output directory for figures and tables (created if missing)
    metrics_csv_path : Optional[Path]
        If provided, append evaluation metrics to this CSV
    args : Optional[argparse.Namespace]
        CLI arguments (config path and overrides)

    Returns
    -------
    WorkflowResult

    Workflow
    --------
    - Load configuration and apply CLI overrides
    - Load and validate the monthly series
    - Run the five workflow stages
    - Save figures (unless ``--no-plots``), the search trace, the
      validation comparison, diagnostics and the forecast CSV
    """
    logger.info("Starting forecast workflow for: %s", series_path)
    manager = initialize_config(getattr(args, "config", None) if args is not None else None)
    manager = _apply_cli_overrides(manager, args)

    series = load_monthly_series_csv(
        series_path,
        date_column=manager.get("data.date_column"),
        value_column=manager.get("data.value_column"),
        date_format=manager.get("data.date_format"),
    )
    result = run_workflow(series, manager)

    ensure_dir(figures_dir)
    write_frame_csv(result.search_table, figures_dir / "search_trace.csv", index=False)
    write_frame_csv(comparison_frame(result.validation_forecast, result.test), figures_dir / "validation_forecast.csv")
    diag = pd.concat([diagnostics_frame(d) for d in result.diagnostics.values()], ignore_index=True)
    write_frame_csv(diag, figures_dir / "residual_diagnostics.csv", index=False)

    if not getattr(args, "no_plots", False):
        save_workflow_figures(result, figures_dir, series_name=series.name or series_path.stem)

    forecast_csv = getattr(args, "forecast_csv", None) if args is not None else None
    forecast_path = resolve_path(forecast_csv, Path.cwd()) if forecast_csv else figures_dir / "forecast.csv"
    write_forecast_csv(result.final_forecast, forecast_path)

    _export_metrics(result, series_path.stem, metrics_csv_path)
    logger.info("Forecast workflow completed successfully")
    return result


def setup_cli_parser() -> argparse.ArgumentParser:
    """
    Set up the command-line argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="Seasonal ARIMA modeling and forecasting of a monthly series."
    )

    # Data and output arguments
    parser.add_argument(
        "--series-csv", type=str, required=True,
        help="Two-column CSV (timestamp, value) with one row per month."
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="YAML configuration file. Defaults to config/forecaster.yaml when present."
    )
    parser.add_argument(
        "--figures-dir", type=str, default="figures",
        help="Directory to write figure and table files."
    )
    parser.add_argument(
        "--metrics-csv", type=str, default=None,
        help="If provided, append evaluation metrics rows to this CSV."
    )
    parser.add_argument(
        "--forecast-csv", type=str, default=None,
        help="Where to write the final forecast (default: <figures-dir>/forecast.csv)."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity level."
    )
    parser.add_argument(
        "--no-plots", action="store_true", default=False,
        help="Skip rendering figures."
    )

    # Preprocessing and evaluation
    parser.add_argument(
        "--transform", choices=["log", "none"], default=None,
        help="Variance-stabilizing transform. Uses config default if not specified."
    )
    parser.add_argument(
        "--adaptive-differencing", action="store_true", default=None,
        help="Choose the diagnostic differencing plan from seasonal strength and ADF/KPSS."
    )
    parser.add_argument(
        "--split", choices=["last", "calendar"], default=None,
        help="Hold-out rule: the last --test-months months, or the last --holdout-years calendar years."
    )
    parser.add_argument(
        "--test-months", type=int, default=None,
        help="Length of the held-out window in months."
    )
    parser.add_argument(
        "--holdout-years", type=int, default=None,
        help="Calendar years held out when --split calendar is used."
    )
    parser.add_argument(
        "--horizon", type=int, default=None,
        help="Months to forecast after refitting on the full series."
    )
    parser.add_argument(
        "--intervals", type=str, default=None,
        help="Comma-separated predictive interval coverages (e.g., '80,95')."
    )

    # Order search controls
    parser.add_argument(
        "--strategy", choices=["grid", "stepwise"], default=None,
        help="Order search strategy. Uses config default if not specified."
    )
    for name, help_txt in [
        ("max-p", "Upper bound for the AR order p."),
        ("max-d", "Upper bound for the differencing order d (at most 2)."),
        ("max-q", "Upper bound for the MA order q."),
        ("max-P", "Upper bound for the seasonal AR order P."),
        ("max-D", "Upper bound for the seasonal differencing order D (at most 2)."),
        ("max-Q", "Upper bound for the seasonal MA order Q."),
        ("max-order", "Upper bound for p + q + P + Q."),
    ]:
        parser.add_argument(f"--{name}", dest=name.replace("-", "_"), type=int, default=None, help=help_txt)

    return parser


def setup_logging(log_level: str) -> None:
    """
    Configure logging with specified level and warning filters.

    Parameters
    ----------
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = validate_log_level(log_level)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Configure warnings based on log level
    if level == "DEBUG":
        warnings.resetwarnings()
        warnings.filterwarnings("default")
    else:
        from statsmodels.tools.sm_exceptions import ConvergenceWarning
        warnings.filterwarnings("ignore", category=ConvergenceWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)
        warnings.filterwarnings("ignore", category=UserWarning, module="statsmodels")


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the SARIMA forecasting application.

    Errors raised by the workflow are logged and turned into exit status 1.
    """
    parser = setup_cli_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    base_dir = Path.cwd()
    series_path = resolve_path(args.series_csv, base_dir)
    figures_dir = resolve_path(args.figures_dir, base_dir)
    metrics_csv_path: Optional[Path] = None
    if args.metrics_csv:
        metrics_csv_path = resolve_path(args.metrics_csv, base_dir)

    try:
        run_forecast_workflow(series_path, figures_dir, metrics_csv_path, args)
    except ForecasterError as e:
        logger.error("%s: %s", type(e).__name__, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
