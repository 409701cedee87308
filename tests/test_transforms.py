import numpy as np
import pandas as pd
import pytest

from sarima_forecaster_src.errors import DomainError
from sarima_forecaster_src.transform_utils import (
    apply_differencing_plan, decompose_series, difference, integrate, inverse_log_transform, log_transform
)


def _series(vals, start="2020-01-01"):
    idx = pd.date_range(start, periods=len(vals), freq="MS")
    return pd.Series(np.asarray(vals, dtype=float), index=idx, name="x")


def test_log_transform_roundtrip_and_copy():
    s = _series([1.0, 2.0, 10.0, 100.0])
    out = log_transform(s)
    assert np.allclose(out.to_numpy(), np.log(s.to_numpy()))
    assert out.index.equals(s.index)
    back = inverse_log_transform(out)
    assert np.allclose(back.to_numpy(), s.to_numpy())
    # Input untouched
    assert s.iloc[0] == 1.0


@pytest.mark.parametrize("bad", [0.0, -3.0, np.nan])
def test_log_transform_rejects_non_positive(bad):
    s = _series([1.0, 2.0, bad, 4.0])
    with pytest.raises(DomainError):
        log_transform(s)


def test_domain_error_is_value_error():
    with pytest.raises(ValueError):
        log_transform(_series([1.0, 0.0]))


def test_difference_lengths_and_values():
    s = _series(np.arange(30, dtype=float) ** 2)
    d1 = difference(s, lag=1)
    assert len(d1) == 29
    assert d1.iloc[0] == 1.0
    d12 = difference(s, lag=12)
    assert len(d12) == 18
    assert d12.index[0] == s.index[12]
    d2 = difference(s, lag=1, order=2)
    assert np.allclose(d2.to_numpy(), 2.0)
    assert difference(s, lag=1, order=0).equals(s)


def test_difference_rejects_bad_arguments():
    s = _series(np.arange(12, dtype=float))
    with pytest.raises(ValueError):
        difference(s, lag=0)
    with pytest.raises(ValueError):
        difference(s, lag=1, order=-1)
    with pytest.raises(ValueError):
        difference(s, lag=12)


@pytest.mark.parametrize("lag", [1, 12])
def test_integrate_inverts_difference(lag):
    rng = np.random.default_rng(42)
    s = _series(100.0 + np.cumsum(rng.normal(0, 1, size=60)))
    diffed = difference(s, lag=lag)
    rebuilt = integrate(diffed, s.iloc[:lag].to_numpy(), lag=lag)
    assert len(rebuilt) == len(s)
    assert np.allclose(rebuilt, s.to_numpy())


def test_integrate_requires_lag_initial_values():
    s = _series(np.arange(24, dtype=float))
    with pytest.raises(ValueError):
        integrate(difference(s, lag=12), s.iloc[:11].to_numpy(), lag=12)


def test_differencing_plan_removes_trend_and_season(seasonal_series):
    out = apply_differencing_plan(seasonal_series, d=1, D=1, s=12)
    assert len(out) == len(seasonal_series) - 13
    # A pure linear trend plus a period-12 sinusoid is annihilated exactly
    t = np.arange(48, dtype=float)
    det = _series(5.0 + 0.7 * t + 3.0 * np.sin(2 * np.pi * t / 12))
    assert np.allclose(apply_differencing_plan(det, d=1, D=1, s=12).to_numpy(), 0.0, atol=1e-9)


def test_decompose_series_columns(seasonal_series):
    comp = decompose_series(np.log(seasonal_series), period=12)
    assert list(comp.columns) == ["observed", "trend", "seasonal", "resid"]
    assert len(comp) == len(seasonal_series)
    # Centred moving average leaves NaNs at both ends only
    assert comp["trend"].iloc[:6].isna().all()
    assert comp["trend"].iloc[6:-6].notna().all()
    with pytest.raises(ValueError):
        decompose_series(seasonal_series.iloc[:20], period=12)
