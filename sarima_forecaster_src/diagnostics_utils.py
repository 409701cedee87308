# sarima_forecaster_src/diagnostics_utils.py

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.stats.stattools import jarque_bera

logger = logging.getLogger(__name__)


class DiagnosticTest(Enum):
    """Residual diagnostic tests run on a fitted model."""
    LJUNG_BOX = "ljung_box"
    JARQUE_BERA = "jarque_bera"
    SHAPIRO_WILK = "shapiro_wilk"


@dataclass
class DiagnosticResult:
    """Results from a single diagnostic test."""

    test_name: str
    test_type: DiagnosticTest
    statistic: float
    p_value: float
    lags: Optional[int] = None
    significance_level: float = 0.05

    @property
    def is_significant(self) -> bool:
        return bool(np.isfinite(self.p_value) and self.p_value < self.significance_level)

    @property
    def interpretation(self) -> str:
        if not np.isfinite(self.p_value):
            return f"{self.test_name}: not available"
        if self.test_type == DiagnosticTest.LJUNG_BOX:
            verdict = "residual autocorrelation present" if self.is_significant else "residuals consistent with white noise"
        else:
            verdict = "residuals not normal" if self.is_significant else "residuals consistent with normality"
        return f"{self.test_name}: statistic={self.statistic:.4f}, p-value={self.p_value:.4f} -> {verdict}"


def model_residuals(model) -> pd.Series:
    """
    One-step residuals of a fitted model with the diffuse burn-in period removed.

    The first ``d + D*s`` residuals of a differenced state-space model are
    dominated by initialization and are not part of the diagnostic sample.
    """
    resid = pd.Series(model.results.resid, copy=True)
    burn = int(getattr(model.results, "loglikelihood_burn", 0) or 0)
    return resid.iloc[burn:].dropna()


def default_ljungbox_lags(n: int, seasonal_period: int = 12) -> int:
    """Ljung-Box lag count ``min(2*s, n/5)``, with a floor of 10 lags for non-seasonal models."""
    base = 2 * seasonal_period if seasonal_period >= 2 else 10
    return int(max(1, min(base, n // 5)))


def ljung_box_test(residuals: Union[pd.Series, np.ndarray],
                   lags: int,
                   model_df: int = 0,
                   alpha: float = 0.05) -> DiagnosticResult:
    """
    Ljung-Box portmanteau test at a single lag count.

    ``model_df`` (number of estimated ARMA coefficients) is subtracted from
    the degrees of freedom; ``lags`` is raised to ``model_df + 1`` when it
    would otherwise leave no degrees of freedom.
    """
    resid = pd.Series(residuals, dtype=float).dropna()
    lags = max(int(lags), int(model_df) + 1)
    if len(resid) <= lags:
        logger.warning("Ljung-Box skipped: %d residuals for %d lags", len(resid), lags)
        return DiagnosticResult("Ljung-Box", DiagnosticTest.LJUNG_BOX, float("nan"), float("nan"), lags, alpha)

    df_lb = acorr_ljungbox(resid, lags=[lags], model_df=int(model_df), return_df=True)
    return DiagnosticResult(
        test_name="Ljung-Box",
        test_type=DiagnosticTest.LJUNG_BOX,
        statistic=float(df_lb["lb_stat"].iloc[-1]),
        p_value=float(df_lb["lb_pvalue"].iloc[-1]),
        lags=lags,
        significance_level=alpha,
    )


def jarque_bera_test(residuals: Union[pd.Series, np.ndarray], alpha: float = 0.05) -> DiagnosticResult:
    """Jarque-Bera normality test of the residuals."""
    resid = pd.Series(residuals, dtype=float).dropna()
    jb_stat, jb_pvalue, _skew, _kurt = jarque_bera(resid.to_numpy())
    return DiagnosticResult("Jarque-Bera", DiagnosticTest.JARQUE_BERA, float(jb_stat), float(jb_pvalue), None, alpha)


def shapiro_wilk_test(residuals: Union[pd.Series, np.ndarray], alpha: float = 0.05) -> DiagnosticResult:
    """Shapiro-Wilk normality test (scipy); NaN result for fewer than 3 residuals."""
    resid = pd.Series(residuals, dtype=float).dropna()
    if len(resid) < 3:
        return DiagnosticResult("Shapiro-Wilk", DiagnosticTest.SHAPIRO_WILK, float("nan"), float("nan"), None, alpha)
    stat, pval = stats.shapiro(resid.to_numpy())
    return DiagnosticResult("Shapiro-Wilk", DiagnosticTest.SHAPIRO_WILK, float(stat), float(pval), None, alpha)


def residual_diagnostics(model, lags: Optional[int] = None, alpha: float = 0.05) -> Dict[str, Any]:
    """
    Residual checks for a fitted SARIMA model.

    Parameters
    ----------
    model : FittedModel
        Fitted model whose one-step residuals are tested
    lags : Optional[int]
        Ljung-Box lag count; defaults to ``min(2*s, n/5)``
    alpha : float, default=0.05
        Significance level used for the verdicts

    Returns
    -------
    Dict[str, Any]
        ``ljung_box``, ``jarque_bera`` and ``shapiro_wilk`` DiagnosticResults,
        plus ``n_residuals``, ``residual_mean`` and ``residual_std``.

    Notes
    -----
    - Ljung-Box degrees of freedom are reduced by ``p + q + P + Q``
    - A significant Ljung-Box result is logged as a warning but does not
      invalidate the model
    """
    resid = model_residuals(model)
    if resid.empty:
        raise ValueError("Cannot run diagnostics on an empty residual series")

    n_lags = lags if lags is not None else default_ljungbox_lags(len(resid), model.order.s)
    results: Dict[str, Any] = {
        "model": str(model.order),
        "n_residuals": int(len(resid)),
        "residual_mean": float(np.mean(resid)),
        "residual_std": float(np.std(resid, ddof=1)) if len(resid) > 1 else float("nan"),
        "ljung_box": ljung_box_test(resid, n_lags, model_df=model.order.total_order, alpha=alpha),
        "jarque_bera": jarque_bera_test(resid, alpha=alpha),
        "shapiro_wilk": shapiro_wilk_test(resid, alpha=alpha),
    }

    for key in ("ljung_box", "jarque_bera", "shapiro_wilk"):
        logger.info("%s [%s]", results[key].interpretation, results["model"])
    if results["ljung_box"].is_significant:
        logger.warning("Residuals of %s show autocorrelation (Ljung-Box p=%.4f)",
                       results["model"], results["ljung_box"].p_value)
    return results


def diagnostics_frame(results: Dict[str, Any]) -> pd.DataFrame:
    """Tabulate the test results of ``residual_diagnostics`` for export."""
    rows = []
    for key in ("ljung_box", "jarque_bera", "shapiro_wilk"):
        r = results.get(key)
        if r is None:
            continue
        rows.append({
            "model": results.get("model", ""),
            "test": r.test_name,
            "statistic": r.statistic,
            "p_value": r.p_value,
            "lags": r.lags,
            "significant": r.is_significant,
        })
    return pd.DataFrame(rows)
