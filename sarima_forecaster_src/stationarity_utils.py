# sarima_forecaster_src/stationarity_utils.py

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.stattools import adfuller, kpss

from .transform_utils import difference

logger = logging.getLogger(__name__)

# Seasonal-strength threshold above which one seasonal difference is taken
SEASONAL_STRENGTH_THRESHOLD = 0.64


@dataclass(frozen=True)
class StationarityResult:
    """Outcome of a single stationarity hypothesis test."""

    test: str
    statistic: float
    p_value: float
    lags: int
    alpha: float = 0.05
    critical_values: Dict[str, float] = field(default_factory=dict)

    @property
    def stationary(self) -> bool:
        """Verdict at ``alpha``: ADF rejects a unit root, KPSS fails to reject stationarity."""
        if self.test == "ADF":
            return self.p_value < self.alpha
        return self.p_value >= self.alpha

    @property
    def interpretation(self) -> str:
        verdict = "stationary" if self.stationary else "non-stationary"
        return f"{self.test}: statistic={self.statistic:.4f}, p-value={self.p_value:.4f} -> {verdict}"


def _clean(series: Union[pd.Series, np.ndarray]) -> pd.Series:
    s = pd.Series(series, dtype=float).replace([np.inf, -np.inf], np.nan).dropna()
    if len(s) < 8:
        raise ValueError(f"Stationarity tests need at least 8 finite observations, got {len(s)}")
    return s


def default_adf_lags(n: int) -> int:
    """Fixed ADF lag order ``trunc((n - 1) ** (1/3))``."""
    return int(max(n - 1, 0) ** (1.0 / 3.0))


def default_kpss_lags(n: int) -> int:
    """Short KPSS truncation lag ``trunc(4 * (n / 100) ** 0.25)``."""
    return int(4.0 * (n / 100.0) ** 0.25)


def adf_test(series: Union[pd.Series, np.ndarray],
             alpha: float = 0.05,
             regression: str = "ct",
             maxlag: Optional[int] = None) -> StationarityResult:
    """
    Run the Augmented Dickey-Fuller (ADF) test for unit roots.

    Parameters
    ----------
    series : Union[pd.Series, np.ndarray]
        Input series. NaNs are dropped prior to testing.
    alpha : float, default=0.05
        Significance level used for the verdict.
    regression : str, default="ct"
        Deterministic terms of the test regression: ``"c"`` (constant) or
        ``"ct"`` (constant and linear trend).
    maxlag : Optional[int]
        Number of lagged differences; ``default_adf_lags(n)`` when None.

    Returns
    -------
    StationarityResult
        Test statistic, p-value, lag order and critical values.

    Notes
    -----
    - ADF null hypothesis: the series has a unit root (non-stationary)
    - Lower p-values (< alpha) suggest rejection of null (series is stationary)
    - The lag order is fixed, not selected by an information criterion
    """
    s = _clean(series)
    lags = default_adf_lags(len(s)) if maxlag is None else int(maxlag)
    stat, pval, usedlag, _nobs, crit = adfuller(s, maxlag=lags, regression=regression, autolag=None)
    return StationarityResult(
        test="ADF",
        statistic=float(stat),
        p_value=float(pval),
        lags=int(usedlag),
        alpha=alpha,
        critical_values={k: float(v) for k, v in crit.items()},
    )


def kpss_test(series: Union[pd.Series, np.ndarray],
              regression: str = "c",
              alpha: float = 0.05,
              nlags: Optional[int] = None) -> StationarityResult:
    """
    Run the KPSS test for level (``"c"``) or trend (``"ct"``) stationarity.

    ``nlags`` is the Newey-West truncation lag; ``default_kpss_lags(n)``
    when None.

    Notes
    -----
    - KPSS null hypothesis: the series is stationary
    - statsmodels reports p-values from a lookup table bounded to
      [0.01, 0.10]; the boundary value is kept when the statistic falls
      outside the table.
    """
    s = _clean(series)
    lags = default_kpss_lags(len(s)) if nlags is None else int(nlags)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", InterpolationWarning)
        stat, pval, lags, crit = kpss(s, regression=regression, nlags=lags)
    return StationarityResult(
        test="KPSS",
        statistic=float(stat),
        p_value=float(pval),
        lags=int(lags),
        alpha=alpha,
        critical_values={k: float(v) for k, v in crit.items()},
    )


def check_stationarity(series: pd.Series,
                       alpha: float = 0.05,
                       label: str = "series",
                       adf_regression: str = "ct",
                       kpss_regression: str = "c") -> Dict[str, StationarityResult]:
    """
    Run ADF and KPSS on ``series`` and log both outcomes.

    The results are diagnostic: nothing here changes the differencing plan.
    """
    results = {
        "adf": adf_test(series, alpha=alpha, regression=adf_regression),
        "kpss": kpss_test(series, regression=kpss_regression, alpha=alpha),
    }
    for res in results.values():
        logger.info("%s on %s", res.interpretation, label)
    if not tests_agree_stationary(results):
        logger.warning("ADF and KPSS do not both indicate stationarity for %s", label)
    return results


def tests_agree_stationary(results: Dict[str, StationarityResult]) -> bool:
    """True when both ADF and KPSS indicate stationarity."""
    return results["adf"].stationary and results["kpss"].stationary


def seasonal_strength(series: pd.Series, period: int = 12) -> float:
    """
    Strength of seasonality from an STL decomposition.

    Defined as ``max(0, 1 - Var(R) / Var(S + R))`` where ``S`` is the
    seasonal component and ``R`` the remainder. Values near 1 indicate
    strong seasonality.
    """
    from statsmodels.tsa.seasonal import STL

    if len(series) < 2 * period + 1:
        return 0.0
    res = STL(pd.Series(series, dtype=float).to_numpy(), period=period, robust=True).fit()
    var_r = float(np.var(res.resid))
    var_sr = float(np.var(res.seasonal + res.resid))
    if var_sr <= 0.0:
        return 0.0
    return max(0.0, 1.0 - var_r / var_sr)


def adaptive_differencing_plan(series: pd.Series,
                               s: int = 12,
                               max_d: int = 2,
                               max_D: int = 1,
                               alpha: float = 0.05,
                               adf_regression: str = "ct",
                               kpss_regression: str = "c") -> Tuple[int, int]:
    """
    Choose differencing orders from the data instead of a fixed plan.

    One seasonal difference is taken when the STL seasonal strength
    exceeds ``SEASONAL_STRENGTH_THRESHOLD``. Ordinary differences are then
    added until ADF and KPSS agree the series is stationary, or ``max_d``
    is reached.

    Parameters
    ----------
    series : pd.Series
        (Transformed) input series
    s : int, default=12
        Seasonal period
    max_d, max_D : int
        Upper bounds for the ordinary and seasonal orders
    alpha : float, default=0.05
        Significance level of both tests
    adf_regression, kpss_regression : str
        Deterministic terms of the two tests

    Returns
    -------
    Tuple[int, int]
        ``(d, D)``
    """
    D = 0
    x = series.copy()
    if max_D >= 1:
        strength = seasonal_strength(series, period=s)
        logger.info("Seasonal strength (STL): %.3f", strength)
        if strength > SEASONAL_STRENGTH_THRESHOLD and len(series) > 2 * s:
            D = 1
            x = difference(x, lag=s, order=1)

    d = 0
    while True:
        try:
            results = {
                "adf": adf_test(x, alpha=alpha, regression=adf_regression),
                "kpss": kpss_test(x, regression=kpss_regression, alpha=alpha),
            }
        except ValueError as e:
            logger.warning("Stopping adaptive differencing at d=%d: %s", d, e)
            break
        if tests_agree_stationary(results) or d >= max_d:
            break
        x = difference(x, lag=1, order=1)
        d += 1

    logger.info("Adaptive differencing selected d=%d, D=%d", d, D)
    return d, D


def summarize_results(results: Dict[str, StationarityResult]) -> pd.DataFrame:
    """Tabulate stationarity results for printing or export."""
    rows = [
        {
            "test": r.test,
            "statistic": r.statistic,
            "p_value": r.p_value,
            "lags": r.lags,
            "stationary": r.stationary,
        }
        for r in results.values()
    ]
    return pd.DataFrame(rows)
