import numpy as np
import pandas as pd
import pytest

from sarima_forecaster_src.stationarity_utils import (
    adaptive_differencing_plan, adf_test, check_stationarity, default_adf_lags, default_kpss_lags, kpss_test,
    seasonal_strength, summarize_results, tests_agree_stationary
)
from sarima_forecaster_src.transform_utils import apply_differencing_plan


def _monthly(vals):
    return pd.Series(vals, index=pd.date_range("2000-01-01", periods=len(vals), freq="MS"))


def test_adf_rejects_unit_root_for_white_noise():
    rng = np.random.default_rng(42)
    res = adf_test(_monthly(rng.normal(0, 1, size=240)))
    assert res.test == "ADF"
    assert res.p_value < 0.05
    assert res.stationary
    assert set(res.critical_values) == {"1%", "5%", "10%"}


def test_integrated_series_is_not_stationary():
    rng = np.random.default_rng(42)
    trend = _monthly(np.cumsum(np.cumsum(rng.normal(0, 1, size=240))))
    assert not adf_test(trend).stationary
    kp = kpss_test(trend)
    assert kp.test == "KPSS"
    assert not kp.stationary
    # Boundary p-value from the lookup table is kept
    assert kp.p_value == pytest.approx(0.01)


def test_check_stationarity_on_differenced_series(seasonal_series):
    diffed = apply_differencing_plan(np.log(seasonal_series), d=1, D=1, s=12)
    results = check_stationarity(diffed, alpha=0.01)
    assert set(results) == {"adf", "kpss"}
    assert results["adf"].stationary
    assert results["kpss"].stationary
    assert tests_agree_stationary(results)
    table = summarize_results(results)
    assert list(table["test"]) == ["ADF", "KPSS"]


def test_too_short_series_raises():
    with pytest.raises(ValueError):
        adf_test(_monthly([1.0, 2.0, 3.0]))


def test_seasonal_strength_and_adaptive_plan(seasonal_series):
    t = np.arange(120, dtype=float)
    rng = np.random.default_rng(42)
    seasonal = _monthly(10.0 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 0.5, size=120))
    assert seasonal_strength(seasonal, period=12) > 0.9

    d, D = adaptive_differencing_plan(np.log(seasonal_series), s=12, max_d=2, max_D=1, alpha=0.05)
    assert D == 1
    assert 0 <= d <= 2


def test_trend_stationary_series_passes_adf_with_trend_term():
    rng = np.random.default_rng(42)
    trend = _monthly(10.0 + 0.5 * np.arange(240) + rng.normal(0, 1, size=240))
    assert adf_test(trend).stationary
    assert not kpss_test(trend).stationary


@pytest.mark.parametrize("n,adf_lags,kpss_lags", [(107, 4, 4), (240, 6, 4), (500, 7, 5)])
def test_default_lag_orders_are_fixed(n, adf_lags, kpss_lags):
    assert default_adf_lags(n) == adf_lags
    assert default_kpss_lags(n) == kpss_lags
    x = _monthly(np.random.default_rng(7).normal(0, 1, size=n))
    assert adf_test(x).lags == adf_lags
    assert kpss_test(x).lags == kpss_lags


def test_explicit_lag_orders_are_used():
    x = _monthly(np.random.default_rng(7).normal(0, 1, size=120))
    assert adf_test(x, maxlag=2).lags == 2
    assert kpss_test(x, nlags=3).lags == 3
    assert adf_test(x, regression="c").stationary
