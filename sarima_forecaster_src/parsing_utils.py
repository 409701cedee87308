# sarima_forecaster_src/parsing_utils.py

from typing import Optional, List
import logging

logger = logging.getLogger(__name__)


def parse_intervals_arg(s: Optional[str], default: str = "80,95") -> List[int]:
    """
    Parse a CLI intervals argument like '80,95' into sorted unique integer coverage levels.

    Fractions are accepted as well ('0.8,0.95').

    Parameters
    ----------
    s : str, optional
        CLI intervals argument (e.g., "80,95" or "90")
    default : str, default="80,95"
        Used when ``s`` is empty

    Returns
    -------
    List[int]
        Sorted list of unique coverage levels between 1 and 99

    Raises
    ------
    ValueError
        If an entry is not a number or lies outside (0, 100).

    Examples
    --------
    >>> parse_intervals_arg("80,95")
    [80, 95]
    >>> parse_intervals_arg("0.9")
    [90]
    """
    from .forecasting_utils import normalize_levels

    txt = (s or default).strip()
    try:
        vals = [float(x.strip()) for x in txt.split(",") if x.strip() != ""]
    except ValueError as e:
        raise ValueError(f"Invalid intervals '{txt}': expected comma-separated numbers") from e
    return normalize_levels(vals)


def validate_transform(transform: str) -> str:
    """
    Validate the variance-stabilizing transform name.

    Raises
    ------
    ValueError
        If the transformation type is not supported
    """
    valid_transforms = ["log", "none"]
    if transform not in valid_transforms:
        raise ValueError(f"Invalid transform '{transform}'. Must be one of: {valid_transforms}")
    return transform


def validate_log_level(log_level: str) -> str:
    """
    Validate and normalize logging level specification.

    Parameters
    ----------
    log_level : str
        Logging level to validate

    Returns
    -------
    str
        Validated logging level

    Raises
    ------
    ValueError
        If the logging level is not supported
    """
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    level_upper = log_level.upper()
    if level_upper not in valid_levels:
        raise ValueError(f"Invalid log level '{log_level}'. Must be one of: {valid_levels}")
    return level_upper
