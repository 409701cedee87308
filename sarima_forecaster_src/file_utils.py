# sarima_forecaster_src/file_utils.py

import csv
import pandas as pd
from pathlib import Path
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

METRICS_HEADER: List[str] = [
    "series", "model", "stage", "n", "ME", "RMSE", "MAE", "MPE", "MAPE", "MASE",
    "ACF1", "TheilU", "sMAPE", "AICc", "forecast_hash",
]


def ensure_dir(path: Path) -> None:
    """
    Create directory if it doesn't exist, including all parent directories.

    Parameters
    ----------
    path : Path
        Directory path to create
    """
    path.mkdir(parents=True, exist_ok=True)


def resolve_path(path_str: str, base_dir: Path) -> Path:
    """
    Resolve a path string relative to a base directory if not absolute.

    Examples
    --------
    >>> resolve_path("data/file.csv", Path("/project"))
    PosixPath('/project/data/file.csv')
    >>> resolve_path("/absolute/path.csv", Path("/project"))
    PosixPath('/absolute/path.csv')
    """
    path = Path(path_str)
    return path if path.is_absolute() else (base_dir / path)


def append_metrics_csv_row(csv_path: Optional[Path],
                           row: Dict[str, Any],
                           header: Optional[List[str]] = None) -> None:
    """
    Append a single metrics row to CSV, creating the header on first write.

    Parameters
    ----------
    csv_path : Optional[Path]
        Path to metrics CSV file (None to skip writing)
    row : Dict[str, Any]
        Metric values; keys outside ``header`` are ignored
    header : Optional[List[str]]
        Column names; defaults to ``METRICS_HEADER``

    Raises
    ------
    OSError
        If the file cannot be written.
    """
    if csv_path is None:
        return
    header = header or METRICS_HEADER

    csv_path.parent.mkdir(parents=True, exist_ok=True)
    exists = csv_path.exists() and csv_path.stat().st_size > 0

    with csv_path.open("a", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=header, extrasaction="ignore")
        if not exists:
            writer.writeheader()
        writer.writerow(row)
    logger.debug("Appended metrics row to %s", csv_path)


def write_frame_csv(df: pd.DataFrame, csv_path: Path, index: bool = True) -> Path:
    """Write a DataFrame to CSV, creating parent directories; returns the path."""
    ensure_dir(csv_path.parent)
    df.to_csv(csv_path, index=index, float_format="%.6f")
    logger.info("Wrote %d rows to %s", len(df), csv_path)
    return csv_path


def write_forecast_csv(forecast, csv_path: Path) -> Path:
    """
    Write a forecast as CSV with columns date, mean, lower_<lvl>, upper_<lvl>.
    """
    from .plotting_utils import forecast_frame

    return write_frame_csv(forecast_frame(forecast), csv_path, index=True)
