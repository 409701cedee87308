import numpy as np
import pandas as pd
import pytest


def make_seasonal_series(n: int = 120,
                         seed: int = 42,
                         base: float = 200.0,
                         slope: float = 0.3,
                         amplitude: float = 8.0,
                         sigma: float = 1.0,
                         theta: float = -0.4,
                         Theta: float = -0.6,
                         start: str = "2009-01-01") -> pd.Series:
    """
    Monthly trend + sinusoid(12) + noise, where the noise follows an airline
    process ARIMA(0,1,1)(0,1,1)[12] so one ordinary and one seasonal
    difference make it stationary.
    """
    rng = np.random.default_rng(seed)
    s = 12
    e = rng.normal(0.0, sigma, size=n + s + 1)
    w = e[s + 1:] + theta * e[s:-1] + Theta * e[1:-s] + theta * Theta * e[:-(s + 1)]
    z = np.zeros(n)
    for t in range(n):
        z[t] = w[t] + (z[t - s] if t >= s else 0.0)
    noise = np.cumsum(z)
    t = np.arange(n, dtype=float)
    vals = base + slope * t + amplitude * np.sin(2.0 * np.pi * t / s) + noise
    idx = pd.date_range(start, periods=n, freq="MS")
    return pd.Series(vals, index=idx, name="value")


@pytest.fixture
def seasonal_series() -> pd.Series:
    return make_seasonal_series()


@pytest.fixture(scope="module")
def airline_model():
    """Airline model fitted on the log of a 96-month synthetic series."""
    from sarima_forecaster_src.forecasting_utils import FittedModel, SeasonalOrder, fit_candidate

    series = np.log(make_seasonal_series(n=96))
    order = SeasonalOrder(0, 1, 1, 0, 1, 1, 12)
    cand, res = fit_candidate(series, order)
    assert res is not None
    return FittedModel.from_results(order, res, series)
