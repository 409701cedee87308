import csv
import importlib
import types
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

main_mod = importlib.import_module("sarima_forecaster_src.main")
from sarima_forecaster_src.config_utils import ConfigurationManager
from sarima_forecaster_src.errors import ConfigurationError
from sarima_forecaster_src.forecasting_utils import SearchOutcome, SeasonalOrder, fit_candidate

AIRLINE = SeasonalOrder(0, 1, 1, 0, 1, 1, 12)


def _airline_only_search(endog, bounds, seasonal_period=12, strategy="grid", maxiter=200,
                         max_candidates=94, progress=True):
    """Order search stand-in that fits only pure differencing and the airline model."""
    outcome = SearchOutcome(endog=endog.copy(), burn=13)
    for order in (SeasonalOrder(0, 1, 0, 0, 1, 0, 12), AIRLINE):
        cand, res = fit_candidate(endog, order, maxiter=maxiter, burn=13)
        outcome.record(cand, res)
    return outcome


def _write_series(path: Path, series: pd.Series) -> Path:
    df = pd.DataFrame({"DATE": series.index.strftime("%m/%d/%Y"), "IPG2211A2N": series.to_numpy()})
    df.to_csv(path, index=False)
    return path


def _args(**overrides):
    base = dict(config=None, no_plots=True, forecast_csv=None, test_months=24, horizon=12, intervals="80,95")
    base.update(overrides)
    return types.SimpleNamespace(**base)


def test_run_forecast_workflow_end_to_end(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, seasonal_series):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(main_mod, "run_order_search", _airline_only_search)
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text('data:\n  date_format: "%m/%d/%Y"\n', encoding="utf-8")
    series_csv = _write_series(tmp_path / "electricity.csv", seasonal_series)
    figures = tmp_path / "figures"
    metrics = tmp_path / "metrics.csv"

    result = main_mod.run_forecast_workflow(series_csv, figures, metrics, _args(config=str(cfg)))

    assert result.train_model.order == AIRLINE
    assert result.final_model.order == AIRLINE
    assert result.diff_plan == (1, 1)
    assert len(result.differenced) == len(seasonal_series) - 13
    assert len(result.train) == 96 and len(result.test) == 24
    assert result.validation_forecast.scale == "original"
    assert result.validation_forecast.horizon == 24
    assert result.final_forecast.horizon == 12
    assert result.final_forecast.mean.index[0] == pd.Timestamp("2019-01-01")
    assert np.isfinite(result.accuracy.MAPE)
    assert result.accuracy.MAPE < 10.0
    assert set(result.diagnostics) == {"train", "final"}

    forecast = pd.read_csv(figures / "forecast.csv")
    assert len(forecast) == 12
    assert list(forecast.columns) == ["date", "mean", "lower_80", "upper_80", "lower_95", "upper_95"]
    assert (forecast["mean"] > 0).all()

    trace = pd.read_csv(figures / "search_trace.csv")
    assert trace["order"].iloc[0] == str(AIRLINE)
    assert len(trace) == 2
    assert (figures / "validation_forecast.csv").exists()
    assert (figures / "residual_diagnostics.csv").exists()
    assert not list(figures.glob("*.png"))

    with metrics.open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["stage"] for r in rows] == ["validation", "final"]
    assert rows[0]["model"] == str(AIRLINE)
    assert len(rows[0]["forecast_hash"]) == 16


def test_run_workflow_without_transform(monkeypatch: pytest.MonkeyPatch, seasonal_series):
    monkeypatch.setattr(main_mod, "run_order_search", _airline_only_search)
    config = ConfigurationManager().with_overrides({
        "preprocessing": {"transform": "none"},
        "evaluation": {"test_months": 12, "intervals": [95]},
        "forecast": {"horizon": 6},
    })
    result = main_mod.run_workflow(seasonal_series, config, progress=False)
    assert result.transformed.equals(seasonal_series)
    assert result.validation_forecast.levels == (95,)
    assert result.final_forecast.horizon == 6
    assert result.accuracy.n == 12


def test_cli_overrides_are_validated():
    manager = ConfigurationManager()
    merged = main_mod._apply_cli_overrides(manager, _args(strategy="grid", max_P=1))
    assert merged.get("model.search.strategy") == "grid"
    assert merged.get("model.search.max_P") == 1
    assert merged.get("evaluation.intervals") == [80, 95]
    assert manager.get("model.search.strategy") == "stepwise"
    with pytest.raises(ConfigurationError):
        main_mod._apply_cli_overrides(manager, _args(max_d=3))


def test_cli_parser_accepts_case_sensitive_bounds():
    args = main_mod.setup_cli_parser().parse_args(
        ["--series-csv", "x.csv", "--max-P", "2", "--max-p", "4", "--adaptive-differencing"]
    )
    assert args.max_P == 2
    assert args.max_p == 4
    assert args.adaptive_differencing is True
    assert args.transform is None


def test_main_exits_nonzero_on_bad_input(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    bad = tmp_path / "bad.csv"
    bad.write_text("date,value\n2020-01-01,1\n2020-02-01,oops\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main_mod.main(["--series-csv", str(bad), "--figures-dir", str(tmp_path / "figs"), "--no-plots"])
    assert exc.value.code == 1


def test_calendar_split_holds_out_whole_years(monkeypatch: pytest.MonkeyPatch, seasonal_series):
    monkeypatch.setattr(main_mod, "run_order_search", _airline_only_search)
    config = ConfigurationManager().with_overrides({
        "evaluation": {"split": "calendar"},
        "forecast": {"horizon": 6},
    })
    # 2009-01 .. 2018-01
    result = main_mod.run_workflow(seasonal_series.iloc[:109], config, progress=False)
    assert len(result.test) == 13
    assert result.train.index[-1] == pd.Timestamp("2016-12-01")
    assert result.test.index[0] == pd.Timestamp("2017-01-01")
    assert result.validation_forecast.horizon == 13
    assert result.accuracy.n == 13


def test_cli_split_overrides():
    merged = main_mod._apply_cli_overrides(ConfigurationManager(), _args(split="calendar", holdout_years=3))
    assert merged.get("evaluation.split") == "calendar"
    assert merged.get("evaluation.holdout_years") == 3
    with pytest.raises(ConfigurationError):
        main_mod._apply_cli_overrides(ConfigurationManager(), _args(holdout_years=0))

    args = main_mod.setup_cli_parser().parse_args(["--series-csv", "x.csv", "--split", "calendar", "--holdout-years", "1"])
    assert args.split == "calendar"
    assert args.holdout_years == 1


@pytest.mark.parametrize("intervals", ["150", "abc", "80,0"])
def test_bad_intervals_become_configuration_error(intervals):
    with pytest.raises(ConfigurationError):
        main_mod._apply_cli_overrides(ConfigurationManager(), _args(intervals=intervals))


def test_main_exits_nonzero_on_bad_intervals(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, seasonal_series):
    monkeypatch.chdir(tmp_path)
    series_csv = _write_series(tmp_path / "electricity.csv", seasonal_series)
    with pytest.raises(SystemExit) as exc:
        main_mod.main(["--series-csv", str(series_csv), "--figures-dir", str(tmp_path / "figs"),
                       "--intervals", "150", "--no-plots"])
    assert exc.value.code == 1
    assert not (tmp_path / "figs").exists()
