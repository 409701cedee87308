# sarima_forecaster_src/metrics_utils.py

import math
import numpy as np
import pandas as pd
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Tuple, Union
import logging

from .errors import ForecastScaleError, LengthMismatchError

logger = logging.getLogger(__name__)

ArrayLike = Union[List[float], np.ndarray, pd.Series]


def to_1d_array(x: ArrayLike) -> np.ndarray:
    """
    Convert input to a flat float numpy array.

    Parameters
    ----------
    x : Union[List[float], np.ndarray, pd.Series]
        Input data to convert

    Returns
    -------
    np.ndarray
        1D float array (non-finite values are kept)
    """
    return np.asarray(x, dtype=float).ravel()


def _paired(y_true: ArrayLike, y_hat: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """
    Align actuals and forecasts position by position, dropping pairs where either is non-finite.
    """
    yt = to_1d_array(y_true)
    yh = to_1d_array(y_hat)
    n = min(len(yt), len(yh))
    yt, yh = yt[:n], yh[:n]
    keep = np.isfinite(yt) & np.isfinite(yh)
    return yt[keep], yh[keep]


def mean_error(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """Mean error, with errors defined as ``actual - forecast``."""
    yt, yh = _paired(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    return float(np.mean(yt - yh))


def mae(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Calculate Mean Absolute Error.

    Parameters
    ----------
    y_true : Union[List[float], np.ndarray, pd.Series]
        True values
    y_hat : Union[List[float], np.ndarray, pd.Series]
        Predicted values

    Returns
    -------
    float
        Mean absolute error, or NaN if no valid data
    """
    yt, yh = _paired(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    return float(np.mean(np.abs(yt - yh)))


def rmse(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Calculate Root Mean Square Error.

    RMSE penalizes large errors more heavily than MAE.

    Returns
    -------
    float
        Root mean square error, or NaN if no valid data
    """
    yt, yh = _paired(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    return float(np.sqrt(np.mean((yt - yh) ** 2)))


def mape(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Calculate Mean Absolute Percentage Error, in percent.

    Pairs with a zero actual value are excluded; NaN when none remain.
    """
    yt, yh = _paired(y_true, y_hat)
    keep = yt != 0.0
    if not keep.any():
        return float("nan")
    return float(np.mean(np.abs((yt[keep] - yh[keep]) / yt[keep])) * 100.0)


def mpe(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """Mean Percentage Error, in percent; the signed counterpart of ``mape``."""
    yt, yh = _paired(y_true, y_hat)
    keep = yt != 0.0
    if not keep.any():
        return float("nan")
    return float(np.mean((yt[keep] - yh[keep]) / yt[keep]) * 100.0)


def smape(y_true: ArrayLike, y_hat: ArrayLike, eps: float = 1e-12) -> float:
    """
    Calculate Symmetric Mean Absolute Percentage Error.

    Parameters
    ----------
    y_true : Union[List[float], np.ndarray, pd.Series]
        True values
    y_hat : Union[List[float], np.ndarray, pd.Series]
        Predicted values
    eps : float, default=1e-12
        Small value to prevent division by zero

    Returns
    -------
    float
        sMAPE as percentage (0-200), or NaN if no valid data
    """
    yt, yh = _paired(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    denom = np.maximum(np.abs(yt) + np.abs(yh), eps)
    return float(np.mean(2.0 * np.abs(yh - yt) / denom) * 100.0)


def mase_metric(y_true: ArrayLike, y_hat: ArrayLike, y_train: ArrayLike, m: int = 12) -> float:
    """
    Calculate Mean Absolute Scaled Error.

    The forecast MAE is scaled by the in-sample MAE of the seasonal naive
    forecast ``y_t = y_{t-m}`` on the training data.

    Parameters
    ----------
    y_true : Union[List[float], np.ndarray, pd.Series]
        True values
    y_hat : Union[List[float], np.ndarray, pd.Series]
        Predicted values
    y_train : Union[List[float], np.ndarray, pd.Series]
        Training data for scaling reference
    m : int, default=12
        Seasonal period for the naive forecast (12 for monthly data)

    Returns
    -------
    float
        MASE value, or NaN if computation is not possible

    Notes
    -----
    Values < 1 indicate the forecast is better than the in-sample seasonal naive forecast.
    """
    num = mae(y_true, y_hat)
    tr = to_1d_array(y_train)
    tr = tr[np.isfinite(tr)]
    if not np.isfinite(num) or len(tr) <= m:
        return float("nan")

    denom = np.mean(np.abs(tr[m:] - tr[:-m]))
    if not np.isfinite(denom) or denom <= 0.0:
        return float("nan")
    return float(num / denom)


def error_acf1(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """Lag-1 autocorrelation of the forecast errors."""
    yt, yh = _paired(y_true, y_hat)
    if yt.size < 3:
        return float("nan")
    e = (yt - yh) - np.mean(yt - yh)
    denom = float(np.sum(e * e))
    if denom <= 0.0:
        return float("nan")
    return float(np.sum(e[1:] * e[:-1]) / denom)


def theil_u(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Theil's U statistic relative to the no-change forecast.

    Compares the forecast's relative one-step changes with those of the
    naive forecast ``y_{t+1} = y_t``. Values < 1 mean the forecast beats
    the naive benchmark.
    """
    yt, yh = _paired(y_true, y_hat)
    n = len(yt)
    if n < 2 or np.any(yt[:-1] == 0.0):
        return float("nan")

    fpe = yh[1:] / yt[:-1] - 1.0
    ape = yt[1:] / yt[:-1] - 1.0
    denom = float(np.sum(ape ** 2))
    if denom <= 0.0:
        return float("nan")
    return float(math.sqrt(float(np.sum((fpe - ape) ** 2)) / denom))


@dataclass(frozen=True)
class AccuracyReport:
    """Forecast accuracy against held-out actuals, on the original scale."""

    ME: float
    RMSE: float
    MAE: float
    MPE: float
    MAPE: float
    MASE: float
    ACF1: float
    TheilU: float
    sMAPE: float
    n: int

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def to_frame(self, label: str = "Test set") -> pd.DataFrame:
        return pd.DataFrame([self.to_dict()], index=[label])


def evaluate_forecast(forecast,
                      actual: ArrayLike,
                      y_train: Optional[ArrayLike] = None,
                      m: int = 12) -> AccuracyReport:
    """
    Compare a forecast with the actual held-out values.

    Parameters
    ----------
    forecast : Forecast or array-like
        Back-transformed forecast (``scale="original"``), or bare point
        forecasts already on the original scale
    actual : Union[List[float], np.ndarray, pd.Series]
        Held-out actual values, position-aligned with the forecast
    y_train : Optional[ArrayLike]
        Training data on the original scale; enables MASE
    m : int, default=12
        Seasonal period used for MASE scaling

    Returns
    -------
    AccuracyReport

    Raises
    ------
    LengthMismatchError
        If the forecast horizon and ``len(actual)`` differ.
    ForecastScaleError
        If the forecast is still on the transformed scale.
    """
    mean = getattr(forecast, "mean", forecast)
    y_hat = to_1d_array(mean)
    y_true = to_1d_array(actual)

    if len(y_hat) != len(y_true):
        raise LengthMismatchError(
            f"Forecast horizon {len(y_hat)} does not match {len(y_true)} actual values"
        )
    if getattr(forecast, "scale", "original") != "original":
        raise ForecastScaleError(
            "Forecast is on the transformed scale; back-transform it before evaluation"
        )

    report = AccuracyReport(
        ME=mean_error(y_true, y_hat),
        RMSE=rmse(y_true, y_hat),
        MAE=mae(y_true, y_hat),
        MPE=mpe(y_true, y_hat),
        MAPE=mape(y_true, y_hat),
        MASE=mase_metric(y_true, y_hat, y_train, m=m) if y_train is not None else float("nan"),
        ACF1=error_acf1(y_true, y_hat),
        TheilU=theil_u(y_true, y_hat),
        sMAPE=smape(y_true, y_hat),
        n=int(len(y_true)),
    )
    logger.info("Accuracy over %d points: RMSE=%.4f MAE=%.4f MAPE=%.3f%% MASE=%.3f",
                report.n, report.RMSE, report.MAE, report.MAPE, report.MASE)
    return report
