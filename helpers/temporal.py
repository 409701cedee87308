# -*- coding: utf-8 -*-
"""
Temporal utilities for monthly series indexing and calendar windows.

Functions
---------
- to_monthly_index(series): Normalise a monthly series to a month-start
  DatetimeIndex with ``freq="MS"``.
- is_regular_monthly(index): True when consecutive entries are exactly one
  month apart.
- window(series, start, end): Inclusive calendar slice, like R's ``window``.
- calendar_holdout(series, years): Split into a training part ending in the
  December ``years`` years before the last observation's year, and a test
  part starting the following January.
"""

from __future__ import annotations

from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd

DateLike = Union[str, pd.Timestamp]


def _ensure_datetime_index(s: pd.Series) -> pd.Series:
    """
    Ensure a DatetimeIndex for the input series.

    - If PeriodIndex, convert to Timestamp index at period start.
    - Leaves DatetimeIndex unchanged.
    """
    if isinstance(s.index, pd.PeriodIndex):
        s = s.copy()
        s.index = s.index.to_timestamp(how="start")
    elif not isinstance(s.index, pd.DatetimeIndex):
        raise TypeError("Expected a Series with DatetimeIndex or PeriodIndex.")
    return s


def is_regular_monthly(index: pd.DatetimeIndex) -> bool:
    """Return True when every step of ``index`` is exactly one calendar month."""
    if len(index) < 2:
        return True
    months = np.asarray(index.year, dtype=np.int64) * 12 + np.asarray(index.month, dtype=np.int64)
    return bool((np.diff(months) == 1).all())


def to_monthly_index(series: pd.Series) -> pd.Series:
    """
    Return a copy of ``series`` indexed at month start with ``freq="MS"``.

    Parameters
    ----------
    series : pd.Series
        Monthly series with DatetimeIndex or PeriodIndex. Any day within the
        month is accepted (e.g. month-end stamps).

    Returns
    -------
    pd.Series
        Copy with a regular month-start index.

    Raises
    ------
    TypeError
        If the index is not datetime-like.
    ValueError
        If the observations are not exactly one month apart.
    """
    if not isinstance(series, pd.Series):
        raise TypeError("series must be a pandas Series")

    s = _ensure_datetime_index(series)
    if not is_regular_monthly(s.index):
        raise ValueError("Series is not a regular monthly sequence (gaps or duplicate months).")

    out = s.copy()
    out.index = pd.date_range(
        start=s.index[0].to_period("M").to_timestamp(how="start"),
        periods=len(s),
        freq="MS",
        name=s.index.name,
    )
    return out


def window(series: pd.Series, start: Optional[DateLike] = None, end: Optional[DateLike] = None) -> pd.Series:
    """Inclusive calendar slice of a monthly series; either bound may be omitted."""
    s = _ensure_datetime_index(series)
    lo = pd.Timestamp(start) if start is not None else s.index[0]
    hi = pd.Timestamp(end) if end is not None else s.index[-1]
    out = s.loc[(s.index >= lo) & (s.index <= hi)]
    return to_monthly_index(out) if len(out) else out.copy()


def calendar_holdout(series: pd.Series, years: int = 2) -> Tuple[pd.Series, pd.Series]:
    """
    Split a monthly series on a calendar-year boundary.

    The training part ends in December of ``last_year - years``; the test
    part starts in January of ``last_year - years + 1`` and runs to the end.
    For a series ending in 2018 with ``years=2`` this gives a training window
    up to 2016-12 and a test window from 2017-01.
    """
    if years < 1:
        raise ValueError("years must be >= 1")
    s = _ensure_datetime_index(series)
    last_year = int(s.index[-1].year)
    train = window(s, end=pd.Timestamp(year=last_year - years, month=12, day=31))
    test = window(s, start=pd.Timestamp(year=last_year - years + 1, month=1, day=1))
    if train.empty or test.empty:
        raise ValueError("Calendar hold-out produced an empty training or test window.")
    return train, test
