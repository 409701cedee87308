# sarima_forecaster_src/__init__.py

"""
SARIMA Forecaster - seasonal ARIMA modeling of monthly series

Key Components
--------------
- config_utils: YAML configuration and CLI override support
- data_utils: CSV loading, validation and train/test split
- transform_utils: log transform, differencing, re-integration, decomposition
- stationarity_utils: ADF and KPSS tests, adaptive differencing plan
- forecasting_utils: order search by AICc, refit, forecasts and back-transform
- metrics_utils: forecast accuracy metrics
- diagnostics_utils: residual diagnostics (Ljung-Box, Jarque-Bera, Shapiro-Wilk)
- plotting_utils: plot-ready frames and matplotlib figures
- file_utils: paths, metrics and forecast CSV output
- main: workflow orchestration and CLI

Usage
-----
    # Command-line usage
    python -m sarima_forecaster_src.main --series-csv data/Electric_Production.csv

    # Programmatic usage
    from sarima_forecaster_src import load_monthly_series_csv, run_workflow
"""

__version__ = "1.0.0"

from .config_utils import ConfigurationManager, initialize_config, get_config_value
from .data_utils import load_monthly_series_csv, split_train_test
from .errors import (
    ForecasterError, DomainError, NoConvergenceError, LengthMismatchError,
    InputFormatError, ForecastScaleError, ConfigurationError,
)
from .forecasting_utils import (
    SeasonalOrder, SearchBounds, FittedModel, Forecast,
    optimize_sarima, select_sarima, refit_sarima, forecast_sarima, back_transform,
)
from .metrics_utils import AccuracyReport, evaluate_forecast
from .main import main, run_workflow, WorkflowResult

__all__ = [
    "main",
    "run_workflow",
    "WorkflowResult",
    "ConfigurationManager",
    "initialize_config",
    "get_config_value",
    "load_monthly_series_csv",
    "split_train_test",
    "SeasonalOrder",
    "SearchBounds",
    "FittedModel",
    "Forecast",
    "optimize_sarima",
    "select_sarima",
    "refit_sarima",
    "forecast_sarima",
    "back_transform",
    "AccuracyReport",
    "evaluate_forecast",
    "ForecasterError",
    "DomainError",
    "NoConvergenceError",
    "LengthMismatchError",
    "InputFormatError",
    "ForecastScaleError",
    "ConfigurationError",
    "__version__",
]
