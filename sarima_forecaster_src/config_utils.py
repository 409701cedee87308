# sarima_forecaster_src/config_utils.py

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "forecaster.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "data": {
        "date_column": None,
        "value_column": None,
        "date_format": None,
    },
    "preprocessing": {
        "transform": "log",
        "d": 1,
        "D": 1,
        "adaptive_differencing": False,
        "alpha": 0.05,
        "adf_regression": "ct",
        "kpss_regression": "c",
    },
    "model": {
        "seasonal_period": 12,
        "search": {
            "strategy": "stepwise",
            "max_p": 5,
            "max_d": 2,
            "max_q": 5,
            "max_P": 2,
            "max_D": 1,
            "max_Q": 2,
            "max_order": 5,
            "max_candidates": 94,
            "maxiter": 200,
        },
    },
    "evaluation": {
        "split": "last",
        "test_months": 24,
        "holdout_years": 2,
        "intervals": [80, 95],
    },
    "forecast": {
        "horizon": 24,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigurationManager:
    """
    YAML-backed configuration with dot-path access.

    The file is deep-merged over ``DEFAULT_CONFIG`` so a partial file only
    needs to name the keys it changes.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path is not None else None
        self._data = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_path is not None:
            self._data = _deep_merge(self._data, self._read_yaml(self.config_path))

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as fh:
                loaded = yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse configuration file {path}: {e}") from e
        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")
        return loaded

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a value by dot-separated path, e.g. ``model.search.max_p``.

        Returns ``default`` when any path segment is missing.
        """
        node: Any = self._data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def with_overrides(self, overrides: Dict[str, Any]) -> "ConfigurationManager":
        """Return a new manager with ``overrides`` (nested dict) merged over this configuration."""
        clone = ConfigurationManager.__new__(ConfigurationManager)
        clone.config_path = self.config_path
        clone._data = _deep_merge(self._data, overrides)
        return clone

    def validate_configuration(self) -> Dict[str, List[str]]:
        """
        Validate the merged configuration.

        Returns
        -------
        Dict[str, List[str]]
            Mapping of section name to a list of problems; empty when valid.
        """
        errors: Dict[str, List[str]] = {}

        def _add(section: str, msg: str) -> None:
            errors.setdefault(section, []).append(msg)

        transform = self.get("preprocessing.transform")
        if transform not in ("log", "none"):
            _add("preprocessing", f"transform must be 'log' or 'none', got {transform!r}")
        for key in ("d", "D"):
            val = self.get(f"preprocessing.{key}")
            if not isinstance(val, int) or not 0 <= val <= 2:
                _add("preprocessing", f"{key} must be an integer in [0, 2], got {val!r}")
        alpha = self.get("preprocessing.alpha")
        if not isinstance(alpha, (int, float)) or not 0.0 < float(alpha) < 1.0:
            _add("preprocessing", f"alpha must be in (0, 1), got {alpha!r}")
        for key in ("adf_regression", "kpss_regression"):
            val = self.get(f"preprocessing.{key}")
            if val not in ("c", "ct"):
                _add("preprocessing", f"{key} must be 'c' or 'ct', got {val!r}")

        s = self.get("model.seasonal_period")
        if not isinstance(s, int) or s < 2:
            _add("model", f"seasonal_period must be an integer >= 2, got {s!r}")
        strategy = self.get("model.search.strategy")
        if strategy not in ("grid", "stepwise"):
            _add("model", f"search.strategy must be 'grid' or 'stepwise', got {strategy!r}")
        for key in ("max_p", "max_d", "max_q", "max_P", "max_D", "max_Q", "max_order", "max_candidates", "maxiter"):
            val = self.get(f"model.search.{key}")
            if not isinstance(val, int) or val < 0:
                _add("model", f"search.{key} must be a non-negative integer, got {val!r}")
        for key in ("max_d", "max_D"):
            val = self.get(f"model.search.{key}")
            if isinstance(val, int) and val > 2:
                _add("model", f"search.{key} must not exceed 2, got {val}")

        split = self.get("evaluation.split")
        if split not in ("last", "calendar"):
            _add("evaluation", f"split must be 'last' or 'calendar', got {split!r}")
        holdout_years = self.get("evaluation.holdout_years")
        if not isinstance(holdout_years, int) or holdout_years < 1:
            _add("evaluation", f"holdout_years must be a positive integer, got {holdout_years!r}")
        test_months = self.get("evaluation.test_months")
        if not isinstance(test_months, int) or test_months < 1:
            _add("evaluation", f"test_months must be a positive integer, got {test_months!r}")
        intervals = self.get("evaluation.intervals")
        if not isinstance(intervals, list) or not intervals:
            _add("evaluation", "intervals must be a non-empty list")
        horizon = self.get("forecast.horizon")
        if not isinstance(horizon, int) or horizon < 1:
            _add("forecast", f"horizon must be a positive integer, got {horizon!r}")
        return errors

    def get_search_bounds(self):
        """Build a ``SearchBounds`` from the ``model.search`` section."""
        from .forecasting_utils import SearchBounds

        return SearchBounds(
            max_p=int(self.get("model.search.max_p")),
            max_d=int(self.get("model.search.max_d")),
            max_q=int(self.get("model.search.max_q")),
            max_P=int(self.get("model.search.max_P")),
            max_D=int(self.get("model.search.max_D")),
            max_Q=int(self.get("model.search.max_Q")),
            max_order=int(self.get("model.search.max_order")),
        )

    def get_workflow_settings(self) -> Dict[str, Any]:
        """Flat view of the settings the workflow stages consume."""
        return {
            "transform": self.get("preprocessing.transform"),
            "d": int(self.get("preprocessing.d")),
            "D": int(self.get("preprocessing.D")),
            "adaptive_differencing": bool(self.get("preprocessing.adaptive_differencing")),
            "alpha": float(self.get("preprocessing.alpha")),
            "adf_regression": self.get("preprocessing.adf_regression"),
            "kpss_regression": self.get("preprocessing.kpss_regression"),
            "seasonal_period": int(self.get("model.seasonal_period")),
            "strategy": self.get("model.search.strategy"),
            "max_candidates": int(self.get("model.search.max_candidates")),
            "maxiter": int(self.get("model.search.maxiter")),
            "split": self.get("evaluation.split"),
            "test_months": int(self.get("evaluation.test_months")),
            "holdout_years": int(self.get("evaluation.holdout_years")),
            "intervals": list(self.get("evaluation.intervals")),
            "horizon": int(self.get("forecast.horizon")),
        }

    def get_configuration_summary(self) -> Dict[str, Any]:
        return {
            "source": str(self.config_path) if self.config_path else "defaults",
            "sections": sorted(self._data.keys()),
        }


# Initialize the global configuration manager
config_manager: Optional[ConfigurationManager] = None


def get_config(config_path: Optional[Union[str, Path]] = None) -> ConfigurationManager:
    """
    Build a configuration manager from ``config_path``.

    When no path is given, ``config/forecaster.yaml`` relative to the working
    directory is used if present; otherwise the in-code defaults apply.
    """
    if config_path is None and DEFAULT_CONFIG_PATH.is_file():
        config_path = DEFAULT_CONFIG_PATH
    return ConfigurationManager(config_path)


def initialize_config(config_path: Optional[Union[str, Path]] = None) -> ConfigurationManager:
    """
    Initializes the global configuration manager.

    The configuration is validated; validation problems raise
    ``ConfigurationError`` so that a broken file never silently falls back
    to defaults.
    """
    global config_manager
    manager = get_config(config_path)
    validation_errors = manager.validate_configuration()
    if validation_errors:
        raise ConfigurationError(f"Configuration validation failed: {validation_errors}")
    config_manager = manager
    logger.info("Configuration loaded from %s", manager.get_configuration_summary()["source"])
    return manager


def get_config_value(key_path: str, default=None, args=None, cli_param=None,
                     manager: Optional[ConfigurationManager] = None):
    """
    Retrieves a configuration value, providing support for command-line overrides.
    The function prioritizes values in the following order:
    1. CLI argument (if provided)
    2. Configuration file (``manager`` if given, else the global manager)
    3. Default value
    """
    # First priority: CLI argument
    if args and cli_param and hasattr(args, cli_param):
        cli_value = getattr(args, cli_param)
        if cli_value is not None:
            return cli_value

    # Second priority: Configuration file
    source = manager if manager is not None else config_manager
    if source:
        config_value = source.get(key_path, None)
        if config_value is not None:
            return config_value

    # Third priority: Default value
    return default
