# sarima_forecaster_src/transform_utils.py

import pandas as pd
import numpy as np
from typing import Sequence, Union
import logging

from .errors import DomainError

logger = logging.getLogger(__name__)


def log_transform(series: pd.Series) -> pd.Series:
    """
    Apply the natural-log variance-stabilizing transform element-wise.

    Parameters
    ----------
    series : pd.Series
        Strictly positive input series. The input is not modified.

    Returns
    -------
    pd.Series
        New series with ``log(x)`` values and the same index.

    Raises
    ------
    DomainError
        If any value is non-positive or non-finite.
    """
    values = series.to_numpy(dtype=float)
    bad = ~np.isfinite(values) | (values <= 0.0)
    if bad.any():
        first = series.index[int(np.flatnonzero(bad)[0])]
        raise DomainError(
            f"Log transform requires strictly positive finite values; "
            f"{int(bad.sum())} offending value(s), first at {first}"
        )
    return pd.Series(np.log(values), index=series.index.copy(), name=series.name)


def inverse_log_transform(series: pd.Series) -> pd.Series:
    """Inverse of ``log_transform``: ``exp(x)`` element-wise, returned as a new series."""
    return pd.Series(np.exp(series.to_numpy(dtype=float)), index=series.index.copy(), name=series.name)


def difference(series: pd.Series, lag: int = 1, order: int = 1) -> pd.Series:
    """
    Apply the discrete difference operator ``order`` times at step ``lag``.

    Each application computes ``x_t - x_{t-lag}`` and shortens the series
    by ``lag`` observations. ``lag=1`` removes trend; ``lag=12`` removes
    monthly seasonality.

    Parameters
    ----------
    series : pd.Series
        Input series (not modified)
    lag : int, default=1
        Step size of the difference
    order : int, default=1
        Number of times the operator is applied; 0 returns a copy

    Returns
    -------
    pd.Series
        Differenced series of length ``len(series) - lag * order``

    Raises
    ------
    ValueError
        If ``lag < 1``, ``order < 0`` or the series is too short.
    """
    if lag < 1:
        raise ValueError("lag must be >= 1")
    if order < 0:
        raise ValueError("order must be >= 0")
    if len(series) <= lag * order:
        raise ValueError(
            f"Series of length {len(series)} is too short for {order} difference(s) at lag {lag}"
        )

    out = series.copy()
    for _ in range(order):
        out = (out - out.shift(lag)).iloc[lag:]
    return out


def integrate(diffed: pd.Series,
              initial_values: Union[Sequence[float], np.ndarray, pd.Series],
              lag: int = 1) -> np.ndarray:
    """
    Invert a single difference at ``lag`` given the first ``lag`` original observations.

    The reconstruction is ``x_t = x_{t-lag} + y_t`` seeded with
    ``initial_values``, so ``integrate(difference(x, lag), x[:lag], lag)``
    reproduces ``x``.

    Returns
    -------
    np.ndarray
        Reconstructed values of length ``lag + len(diffed)``.

    Raises
    ------
    ValueError
        If ``len(initial_values) != lag``.
    """
    init = np.asarray(initial_values, dtype=float).ravel()
    if lag < 1:
        raise ValueError("lag must be >= 1")
    if len(init) != lag:
        raise ValueError(f"Expected {lag} initial value(s), got {len(init)}")

    y = np.asarray(diffed, dtype=float).ravel()
    out = np.empty(lag + len(y), dtype=float)
    out[:lag] = init
    for t in range(len(y)):
        out[lag + t] = out[t] + y[t]
    return out


def apply_differencing_plan(series: pd.Series, d: int = 1, D: int = 1, s: int = 12) -> pd.Series:
    """
    Apply ``d`` ordinary differences followed by ``D`` seasonal differences at lag ``s``.

    With the defaults this removes trend and monthly seasonality from a
    log-transformed series (lag-1 difference, then lag-12 difference).
    """
    out = difference(series, lag=1, order=d) if d > 0 else series.copy()
    if D > 0:
        out = difference(out, lag=s, order=D)
    logger.debug("Differencing plan d=%d, D=%d, s=%d: %d -> %d observations", d, D, s, len(series), len(out))
    return out


def decompose_series(series: pd.Series, period: int = 12, model: str = "additive") -> pd.DataFrame:
    """
    Classical decomposition into trend, seasonal and remainder components.

    Parameters
    ----------
    series : pd.Series
        Series spanning at least two full seasonal cycles
    period : int, default=12
        Seasonal period
    model : str, default="additive"
        ``"additive"`` or ``"multiplicative"``

    Returns
    -------
    pd.DataFrame
        Columns ``observed``, ``trend``, ``seasonal``, ``resid``; the trend
        and remainder are NaN at the ends where the centred moving average
        is undefined.
    """
    from statsmodels.tsa.seasonal import seasonal_decompose

    if len(series) < 2 * period:
        raise ValueError(f"Decomposition needs at least {2 * period} observations, got {len(series)}")
    res = seasonal_decompose(series, model=model, period=period)
    return pd.DataFrame(
        {
            "observed": res.observed,
            "trend": res.trend,
            "seasonal": res.seasonal,
            "resid": res.resid,
        },
        index=series.index,
    )


def get_transform_description(transform: str) -> str:
    """
    Get a human-readable description of a transformation.

    Parameters
    ----------
    transform : str
        Transformation type

    Returns
    -------
    str
        Description of the transformation
    """
    descriptions = {
        "none": "Original series (no transformation)",
        "log": "Natural log (variance stabilizing)",
    }
    return descriptions.get(transform, f"Unknown transformation: {transform}")
