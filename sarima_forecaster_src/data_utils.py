# sarima_forecaster_src/data_utils.py

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Optional, Tuple, Union
import logging

from helpers.temporal import calendar_holdout, to_monthly_index

from .errors import InputFormatError

logger = logging.getLogger(__name__)


def load_monthly_series_csv(series_path: Union[str, Path],
                            date_column: Optional[str] = None,
                            value_column: Optional[str] = None,
                            date_format: Optional[str] = None) -> pd.Series:
    """
    Load a monthly series from a two-column CSV (timestamp, value).

    Malformed rows are not dropped: the first unparseable timestamp or value
    raises ``InputFormatError`` naming the offending row.

    Parameters
    ----------
    series_path : Union[str, Path]
        CSV file with a header row.
    date_column : Optional[str]
        Name of the timestamp column. Defaults to the first column.
    value_column : Optional[str]
        Name of the value column. Defaults to the second column.
    date_format : Optional[str]
        strptime format for the timestamp column (e.g. ``"%m/%d/%Y"``);
        inferred by pandas when None.

    Returns
    -------
    pd.Series
        Float series with a regular month-start DatetimeIndex (``freq="MS"``),
        named after the value column.

    Raises
    ------
    InputFormatError
        If the file is missing, has fewer than two columns, contains an
        unparseable row, or is not a regular monthly sequence.
    """
    series_path = Path(series_path)
    if not series_path.is_file():
        raise InputFormatError(f"Series CSV not found: {series_path}")

    logger.info("Loading monthly series from: %s", series_path)
    try:
        df = pd.read_csv(series_path, dtype=str, skipinitialspace=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise InputFormatError(f"Failed to parse CSV {series_path}: {e}") from e

    if df.shape[1] < 2:
        raise InputFormatError("Series CSV must contain a timestamp column and a value column.")

    date_col = date_column or df.columns[0]
    value_col = value_column or df.columns[1]
    for col in (date_col, value_col):
        if col not in df.columns:
            raise InputFormatError(f"Column '{col}' not found in {series_path}; columns are {list(df.columns)}")
    if df.empty:
        raise InputFormatError(f"No data rows found in {series_path}")

    dates = pd.to_datetime(df[date_col], format=date_format, errors="coerce")
    values = pd.to_numeric(df[value_col], errors="coerce")

    # Line numbers are 1-based and count the header row
    bad_dates = dates.isna()
    if bad_dates.any():
        i = int(np.flatnonzero(bad_dates.to_numpy())[0])
        raise InputFormatError(f"Row {i + 2}: unparseable timestamp {df[date_col].iloc[i]!r}")
    bad_values = ~np.isfinite(values.to_numpy(dtype=float))
    if bad_values.any():
        i = int(np.flatnonzero(bad_values)[0])
        raise InputFormatError(f"Row {i + 2}: unparseable value {df[value_col].iloc[i]!r}")

    series = pd.Series(values.to_numpy(dtype=float), index=pd.DatetimeIndex(dates), name=str(value_col))
    series = series.sort_index()
    try:
        series = to_monthly_index(series)
    except ValueError as e:
        raise InputFormatError(f"{series_path}: {e}") from e

    logger.info("Loaded %d monthly observations (%s to %s)",
                len(series), series.index[0].strftime("%Y-%m"), series.index[-1].strftime("%Y-%m"))
    return series


def split_train_test(series: pd.Series, test_len: int = 24) -> Tuple[pd.Series, pd.Series]:
    """
    Split a series into a training part and a held-out window of the last ``test_len`` points.

    Raises
    ------
    InputFormatError
        If ``test_len`` is not positive or leaves no training data.
    """
    if test_len < 1:
        raise InputFormatError("test_len must be a positive integer")
    if test_len >= len(series):
        raise InputFormatError(f"test_len={test_len} leaves no training data for a series of length {len(series)}")
    train = series.iloc[:-test_len].copy()
    test = series.iloc[-test_len:].copy()
    return train, test


def split_holdout(series: pd.Series, split: str = "last", test_len: int = 24, years: int = 2) -> Tuple[pd.Series, pd.Series]:
    """
    Split off the hold-out window by the configured rule.

    ``"last"`` holds out the final ``test_len`` observations; ``"calendar"``
    holds out the last ``years`` calendar years, so the training part ends
    in a December (a series ending in January 2018 with ``years=2`` gets a
    13-month test window).

    Raises
    ------
    InputFormatError
        If the rule is unknown or leaves an empty part.
    """
    if split == "last":
        return split_train_test(series, test_len=test_len)
    if split == "calendar":
        try:
            return calendar_holdout(series, years=years)
        except ValueError as e:
            raise InputFormatError(f"Calendar hold-out of {years} year(s) failed: {e}") from e
    raise InputFormatError(f"Unknown split rule '{split}'; expected 'last' or 'calendar'")


def validate_series_for_modeling(series: pd.Series, seasonal_period: int = 12, min_seasons: int = 2) -> None:
    """
    Validate that a series is long enough and finite for seasonal modeling.

    Raises
    ------
    InputFormatError
        If the series is empty, contains non-finite values, or spans fewer
        than ``min_seasons`` seasonal cycles.
    """
    if series.empty:
        raise InputFormatError("Series cannot be empty")
    if not np.isfinite(series.to_numpy(dtype=float)).all():
        raise InputFormatError("Series contains missing or non-finite values")
    min_obs = seasonal_period * min_seasons
    if len(series) < min_obs:
        raise InputFormatError(f"Insufficient observations: {len(series)} < {min_obs}")
    if not isinstance(series.index, pd.DatetimeIndex):
        logger.warning("Series does not have DatetimeIndex")
