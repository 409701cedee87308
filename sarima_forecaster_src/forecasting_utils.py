# sarima_forecaster_src/forecasting_utils.py

import hashlib
import logging
import warnings
from dataclasses import dataclass, field, replace
from itertools import product
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from tqdm.auto import tqdm

from statsmodels.tsa.statespace.sarimax import SARIMAX

from .errors import NoConvergenceError

logger = logging.getLogger(__name__)

# Polynomial roots closer than this to the unit circle count as non-stationary / non-invertible
UNIT_CIRCLE_TOLERANCE = 1e-3

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_NOT_CONVERGED = "not_converged"
STATUS_NON_STATIONARY = "non_stationary"
STATUS_NON_INVERTIBLE = "non_invertible"
STATUS_NON_FINITE = "non_finite"


@dataclass(frozen=True)
class SeasonalOrder:
    """
    Structural hypothesis of a seasonal ARIMA model: ``ARIMA(p,d,q)(P,D,Q)[s]``.

    ``s`` may be 0 only when there are no seasonal terms.
    """

    p: int
    d: int
    q: int
    P: int = 0
    D: int = 0
    Q: int = 0
    s: int = 12

    def __post_init__(self):
        for name in ("p", "d", "q", "P", "D", "Q", "s"):
            val = getattr(self, name)
            if not isinstance(val, (int, np.integer)) or val < 0:
                raise ValueError(f"SeasonalOrder.{name} must be a non-negative integer, got {val!r}")
        if (self.P or self.D or self.Q) and self.s < 2:
            raise ValueError("Seasonal terms require a seasonal period s >= 2")

    @property
    def order(self) -> Tuple[int, int, int]:
        return (int(self.p), int(self.d), int(self.q))

    @property
    def seasonal_order(self) -> Tuple[int, int, int, int]:
        if not (self.P or self.D or self.Q):
            return (0, 0, 0, 0)
        return (int(self.P), int(self.D), int(self.Q), int(self.s))

    @property
    def total_order(self) -> int:
        """Number of ARMA coefficients ``p + q + P + Q``."""
        return int(self.p + self.q + self.P + self.Q)

    @property
    def differencing(self) -> int:
        return int(self.d + self.D)

    def as_tuple(self) -> Tuple[int, int, int, int, int, int]:
        return (int(self.p), int(self.d), int(self.q), int(self.P), int(self.D), int(self.Q))

    def __str__(self) -> str:
        return f"ARIMA({self.p},{self.d},{self.q})({self.P},{self.D},{self.Q})[{self.s}]"


@dataclass(frozen=True)
class SearchBounds:
    """Upper bounds of the order search; ``max_order`` bounds ``p + q + P + Q``."""

    max_p: int = 5
    max_d: int = 2
    max_q: int = 5
    max_P: int = 2
    max_D: int = 1
    max_Q: int = 2
    max_order: int = 5

    def __post_init__(self):
        for name in ("max_p", "max_d", "max_q", "max_P", "max_D", "max_Q", "max_order"):
            val = getattr(self, name)
            if not isinstance(val, (int, np.integer)) or val < 0:
                raise ValueError(f"SearchBounds.{name} must be a non-negative integer, got {val!r}")
        if self.max_d > 2 or self.max_D > 2:
            raise ValueError("Differencing bounds max_d and max_D must not exceed 2")

    def contains(self, order: SeasonalOrder) -> bool:
        return (
            order.p <= self.max_p and order.d <= self.max_d and order.q <= self.max_q
            and order.P <= self.max_P and order.D <= self.max_D and order.Q <= self.max_Q
            and order.total_order <= self.max_order
        )


@dataclass(frozen=True)
class CandidateResult:
    """Outcome of fitting one candidate order: a score on success, a reason on failure."""

    order: SeasonalOrder
    status: str
    aicc: float = float("nan")
    aic: float = float("nan")
    bic: float = float("nan")
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    def rank_key(self) -> Tuple:
        """
        Ordering key: AICc, then lower total order, then lower differencing.

        Failed candidates sort after every successful one.
        """
        score = round(self.aicc, 8) if self.ok and np.isfinite(self.aicc) else float("inf")
        return (0 if self.ok else 1, score, self.order.total_order, self.order.differencing, self.order.as_tuple())


@dataclass(frozen=True)
class FittedModel:
    """
    A SeasonalOrder with its estimated coefficients and information criteria.

    ``results`` is the underlying statsmodels results object and ``endog``
    the series the model was fit on; both are excluded from comparison.
    """

    order: SeasonalOrder
    params: pd.Series = field(compare=False)
    aicc: float
    aic: float
    bic: float
    loglike: float
    sigma2: float
    nobs: int
    results: Any = field(repr=False, compare=False)
    endog: pd.Series = field(repr=False, compare=False)

    @classmethod
    def from_results(cls, order: SeasonalOrder, results: Any, endog: pd.Series,
                     scored: Optional["CandidateResult"] = None) -> "FittedModel":
        """
        Wrap a statsmodels results object.

        When ``scored`` is given its information criteria (the ones the
        search ranked on) are kept; otherwise statsmodels' own are used.
        """
        params = pd.Series(results.params, copy=True)
        if scored is not None:
            aicc, aic, bic = scored.aicc, scored.aic, scored.bic
        else:
            aicc, aic, bic = float(results.aicc), float(results.aic), float(results.bic)
        return cls(
            order=order,
            params=params,
            aicc=float(aicc),
            aic=float(aic),
            bic=float(bic),
            loglike=float(results.llf),
            sigma2=float(params.get("sigma2", np.nan)),
            nobs=int(results.nobs),
            results=results,
            endog=endog.copy(),
        )

    @property
    def residuals(self) -> pd.Series:
        return pd.Series(self.results.resid, copy=True)

    @property
    def fitted_values(self) -> pd.Series:
        return pd.Series(self.results.fittedvalues, copy=True)

    def summary(self) -> Dict[str, Any]:
        """Plain-data summary for logging and rendering."""
        return {
            "model": str(self.order),
            "coefficients": {k: float(v) for k, v in self.params.items() if k != "sigma2"},
            "sigma2": self.sigma2,
            "loglike": self.loglike,
            "AIC": self.aic,
            "AICc": self.aicc,
            "BIC": self.bic,
            "nobs": self.nobs,
        }


@dataclass(frozen=True)
class Forecast:
    """
    Point forecasts with prediction intervals at one or more coverage levels.

    ``lower`` and ``upper`` are keyed by integer coverage percentage (e.g. 80, 95).
    ``fitted`` holds in-sample one-step fitted values after the diffuse
    burn-in and ``history`` the series the model was fit on. ``scale`` is ``"transformed"`` until
    ``back_transform`` maps every field to the original scale.
    """

    mean: pd.Series
    lower: Dict[int, pd.Series]
    upper: Dict[int, pd.Series]
    fitted: pd.Series
    history: pd.Series
    scale: str = "transformed"
    model_name: str = ""

    @property
    def horizon(self) -> int:
        return len(self.mean)

    @property
    def levels(self) -> Tuple[int, ...]:
        return tuple(sorted(self.lower))

    def interval_width(self, level: int) -> pd.Series:
        return self.upper[level] - self.lower[level]


def normalize_levels(levels: Iterable[Union[int, float]]) -> List[int]:
    """
    Normalize coverage levels given as fractions (0.8) or percentages (80) to integer percentages.

    Raises
    ------
    ValueError
        If a level lies outside (0, 100) or is not a whole percentage.
    """
    out = set()
    for lvl in levels:
        val = float(lvl)
        pct = val * 100.0 if 0.0 < val < 1.0 else val
        if not 0.0 < pct < 100.0:
            raise ValueError(f"Coverage level must lie in (0, 1) or (0, 100), got {lvl!r}")
        if abs(pct - round(pct)) > 1e-9:
            raise ValueError(f"Coverage level must be a whole percentage, got {lvl!r}")
        out.add(int(round(pct)))
    if not out:
        raise ValueError("At least one coverage level is required")
    return sorted(out)


def enumerate_orders(bounds: SearchBounds, seasonal_period: int = 12) -> List[SeasonalOrder]:
    """
    List every SeasonalOrder inside ``bounds`` in a fixed deterministic order.

    Seasonal terms are only enumerated when ``seasonal_period >= 2``.
    """
    seasonal = seasonal_period >= 2
    P_range = range(bounds.max_P + 1) if seasonal else range(1)
    D_range = range(bounds.max_D + 1) if seasonal else range(1)
    Q_range = range(bounds.max_Q + 1) if seasonal else range(1)

    orders: List[SeasonalOrder] = []
    for d, D, p, q, P, Q in product(range(bounds.max_d + 1), D_range, range(bounds.max_p + 1),
                                    range(bounds.max_q + 1), P_range, Q_range):
        if p + q + P + Q > bounds.max_order:
            continue
        orders.append(SeasonalOrder(p, d, q, P, D, Q, seasonal_period if seasonal else 0))
    return orders


def _polynomial_min_modulus(coefs: Sequence[float], sign: float) -> float:
    """
    Smallest root modulus of ``1 + sign * (c1 z + c2 z^2 + ...)``.

    Returns ``inf`` for a constant polynomial.
    """
    c = np.asarray(coefs, dtype=float)
    if c.size == 0 or not np.any(c):
        return float("inf")
    poly = np.concatenate(([1.0], sign * c))
    roots = np.roots(poly[::-1])
    if roots.size == 0:
        return float("inf")
    return float(np.min(np.abs(roots)))


def _lag_coefficients(params: pd.Series, prefix: str, n: int, step: int = 1) -> List[float]:
    return [float(params.get(f"{prefix}{step * i}", 0.0)) for i in range(1, n + 1)]


def check_roots(order: SeasonalOrder, params: pd.Series) -> str:
    """
    Check AR (stationarity) and MA (invertibility) polynomials of fitted parameters.

    Each polynomial is checked in its own lag variable (``B`` or ``B^s``).

    Returns
    -------
    str
        ``STATUS_OK``, ``STATUS_NON_STATIONARY`` or ``STATUS_NON_INVERTIBLE``.
    """
    limit = 1.0 + UNIT_CIRCLE_TOLERANCE
    ar = _lag_coefficients(params, "ar.L", order.p)
    sar = _lag_coefficients(params, "ar.S.L", order.P, step=order.s)
    if _polynomial_min_modulus(ar, -1.0) < limit or _polynomial_min_modulus(sar, -1.0) < limit:
        return STATUS_NON_STATIONARY
    ma = _lag_coefficients(params, "ma.L", order.q)
    sma = _lag_coefficients(params, "ma.S.L", order.Q, step=order.s)
    if _polynomial_min_modulus(ma, 1.0) < limit or _polynomial_min_modulus(sma, 1.0) < limit:
        return STATUS_NON_INVERTIBLE
    return STATUS_OK


def information_criteria(res: Any, burn: Optional[int] = None) -> Tuple[float, float, float]:
    """
    AICc, AIC and BIC from per-observation log-likelihoods after ``burn`` observations.

    With ``burn=None`` the model's own burn-in (``d + s*D``) is used. A
    common ``burn`` for all candidates scores models with different
    differencing orders on the same observations.

    Returns
    -------
    Tuple[float, float, float]
        ``(aicc, aic, bic)``; AICc is ``inf`` when too few observations remain.
    """
    own_burn = int(getattr(res, "loglikelihood_burn", 0) or 0)
    burn = own_burn if burn is None else max(int(burn), own_burn)
    llf_obs = np.asarray(res.llf_obs, dtype=float)[burn:]
    n = len(llf_obs)
    k = len(res.params)
    llf = float(np.sum(llf_obs))
    aic = -2.0 * llf + 2.0 * k
    bic = -2.0 * llf + k * np.log(n) if n > 0 else float("nan")
    aicc = aic + 2.0 * k * (k + 1) / (n - k - 1) if n - k - 1 > 0 else float("inf")
    return float(aicc), float(aic), float(bic)


def fit_candidate(endog: pd.Series,
                  order: SeasonalOrder,
                  maxiter: int = 200,
                  start_params: Optional[Sequence[float]] = None,
                  burn: Optional[int] = None) -> Tuple[CandidateResult, Optional[Any]]:
    """
    Fit one SARIMA candidate by maximum likelihood and classify the outcome.

    Fit exceptions, non-convergence, a non-finite AICc and fitted
    polynomials on or inside the unit circle all yield a failed
    ``CandidateResult``; nothing is raised.

    Parameters
    ----------
    endog : pd.Series
        Series to fit (transformed scale)
    order : SeasonalOrder
        Candidate order
    maxiter : int, default=200
        Optimizer iteration limit
    start_params : Optional[Sequence[float]]
        Optional starting parameters (e.g. from an earlier fit of the same order)
    burn : Optional[int]
        Leading observations excluded from the information criteria; see
        ``information_criteria``

    Returns
    -------
    Tuple[CandidateResult, Optional[Any]]
        The classified result and the statsmodels results object (None when
        the fit raised).

    Notes
    -----
    - Model is fit with simple_differencing=False to retain internal differencing behavior
    - No trend term is estimated; drift is handled through differencing
    """
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            model = SARIMAX(
                endog,
                order=order.order,
                seasonal_order=order.seasonal_order,
                trend="n",
                simple_differencing=False,
            )
            res = model.fit(disp=False, maxiter=maxiter, start_params=start_params)
    except Exception as e:
        logger.debug("Fit failed for %s: %s", order, e)
        return CandidateResult(order=order, status=STATUS_FAILED, message=str(e)), None
    for w in caught:
        logger.debug("%s: %s: %s", order, w.category.__name__, w.message)

    aicc, aic, bic = information_criteria(res, burn)
    retvals = getattr(res, "mle_retvals", None) or {}

    if not bool(retvals.get("converged", False)):
        status, message = STATUS_NOT_CONVERGED, "optimizer did not converge"
    elif not np.isfinite(aicc):
        status, message = STATUS_NON_FINITE, "non-finite information criterion"
    else:
        status = check_roots(order, pd.Series(res.params))
        message = "" if status == STATUS_OK else status.replace("_", "-") + " fitted polynomial"

    if status != STATUS_OK:
        logger.debug("Rejected %s: %s", order, message)
    return CandidateResult(order=order, status=status, aicc=aicc, aic=aic, bic=bic, message=message), res


@dataclass
class SearchOutcome:
    """
    Every candidate tried by an order search plus the best successful fit.

    Failures are recorded in ``trace`` alongside successes, so the outcome
    reduces to the best success instead of aborting on the first failure.
    """

    endog: pd.Series
    burn: Optional[int] = None
    trace: List[CandidateResult] = field(default_factory=list)
    _best: Optional[Tuple[CandidateResult, Any]] = field(default=None, repr=False)

    def record(self, cand: CandidateResult, results: Optional[Any]) -> None:
        self.trace.append(cand)
        if not cand.ok:
            return
        if self._best is None or cand.rank_key() < self._best[0].rank_key():
            self._best = (cand, results)

    def tried(self, order: SeasonalOrder) -> bool:
        return any(c.order == order for c in self.trace)

    def score_of(self, order: SeasonalOrder) -> Optional[CandidateResult]:
        for c in self.trace:
            if c.order == order:
                return c
        return None

    @property
    def n_converged(self) -> int:
        return sum(1 for c in self.trace if c.ok)

    def best_candidate(self) -> Optional[CandidateResult]:
        return self._best[0] if self._best is not None else None

    def best_model(self) -> FittedModel:
        """
        Reduce the search to its best converged candidate.

        Raises
        ------
        NoConvergenceError
            If no candidate converged.
        """
        if self._best is None:
            raise NoConvergenceError(
                f"No SARIMA candidate converged ({len(self.trace)} tried)"
            )
        cand, res = self._best
        return FittedModel.from_results(cand.order, res, self.endog, scored=cand)

    def table(self) -> pd.DataFrame:
        """Search trace as a DataFrame sorted by the ranking key, failures last."""
        rows = []
        for c in sorted(self.trace, key=lambda c: c.rank_key()):
            rows.append({
                "order": str(c.order),
                "p": c.order.p, "d": c.order.d, "q": c.order.q,
                "P": c.order.P, "D": c.order.D, "Q": c.order.Q,
                "total_order": c.order.total_order,
                "AICc": c.aicc, "AIC": c.aic, "BIC": c.bic,
                "status": c.status,
            })
        columns = ["order", "p", "d", "q", "P", "D", "Q", "total_order", "AICc", "AIC", "BIC", "status"]
        return pd.DataFrame(rows, columns=columns)


def _grid_search(outcome: SearchOutcome, orders: List[SeasonalOrder], maxiter: int, progress: bool) -> None:
    for order in tqdm(orders, desc="Grid search SARIMA", disable=not progress):
        cand, res = fit_candidate(outcome.endog, order, maxiter=maxiter, burn=outcome.burn)
        outcome.record(cand, res)


def _stepwise_neighbours(order: SeasonalOrder) -> List[SeasonalOrder]:
    """Orders one step away: each of p, q, P, Q by +/-1, and (p, q), (P, Q) jointly."""
    steps = []
    for dp, dq, dP, dQ in [
        (-1, 0, 0, 0), (1, 0, 0, 0), (0, -1, 0, 0), (0, 1, 0, 0),
        (0, 0, -1, 0), (0, 0, 1, 0), (0, 0, 0, -1), (0, 0, 0, 1),
        (-1, -1, 0, 0), (1, 1, 0, 0), (0, 0, -1, -1), (0, 0, 1, 1),
    ]:
        vals = (order.p + dp, order.q + dq, order.P + dP, order.Q + dQ)
        if min(vals) < 0:
            continue
        steps.append(SeasonalOrder(vals[0], order.d, vals[1], vals[2], order.D, vals[3], order.s))
    return steps


def _stepwise_search(outcome: SearchOutcome,
                     bounds: SearchBounds,
                     seasonal_period: int,
                     maxiter: int,
                     max_candidates: int,
                     progress: bool) -> None:
    """
    Neighbourhood search (Hyndman-Khandakar) run once per ``(d, D)`` pair.

    Each pair starts from four standard models and moves to the best
    neighbour while that improves the ranking key; at most
    ``max_candidates`` fits are made per pair.
    """
    seasonal = seasonal_period >= 2
    s = seasonal_period if seasonal else 0
    D_values = range(bounds.max_D + 1) if seasonal else range(1)

    def _clip(p, q, P, Q, d, D):
        if not seasonal:
            P = Q = 0
        return SeasonalOrder(min(p, bounds.max_p), d, min(q, bounds.max_q),
                             min(P, bounds.max_P), D, min(Q, bounds.max_Q), s)

    bar = tqdm(desc="Stepwise search SARIMA", disable=not progress)
    try:
        for d, D in product(range(bounds.max_d + 1), D_values):
            fits = 0

            def _try(order: SeasonalOrder) -> Optional[CandidateResult]:
                nonlocal fits
                if not bounds.contains(order) or outcome.tried(order) or fits >= max_candidates:
                    return outcome.score_of(order)
                cand, res = fit_candidate(outcome.endog, order, maxiter=maxiter, burn=outcome.burn)
                outcome.record(cand, res)
                fits += 1
                bar.update(1)
                return cand

            starts = [_clip(2, 2, 1, 1, d, D), _clip(0, 0, 0, 0, d, D),
                      _clip(1, 0, 1, 0, d, D), _clip(0, 1, 0, 1, d, D)]
            best: Optional[CandidateResult] = None
            for order in starts:
                cand = _try(order)
                if cand is not None and cand.ok and (best is None or cand.rank_key() < best.rank_key()):
                    best = cand
            if best is None:
                logger.debug("Stepwise: no converged start model for d=%d, D=%d", d, D)
                continue

            improved = True
            while improved and fits < max_candidates:
                improved = False
                for order in _stepwise_neighbours(best.order):
                    cand = _try(order)
                    if cand is not None and cand.ok and cand.rank_key() < best.rank_key():
                        best = cand
                        improved = True
                        break
    finally:
        bar.close()


def run_order_search(endog: pd.Series,
                     bounds: SearchBounds,
                     seasonal_period: int = 12,
                     strategy: str = "grid",
                     maxiter: int = 200,
                     max_candidates: int = 94,
                     progress: bool = True) -> SearchOutcome:
    """
    Search a bounded space of seasonal ARIMA orders and rank candidates by AICc.

    Parameters
    ----------
    endog : pd.Series
        Training series (transformed scale)
    bounds : SearchBounds
        Upper bounds for every order component and for ``p + q + P + Q``
    seasonal_period : int, default=12
        Seasonal period ``s`` (12 for monthly data)
    strategy : str, default="grid"
        ``"grid"`` fits every order inside the bounds; ``"stepwise"`` runs a
        neighbourhood search per ``(d, D)`` pair
    maxiter : int, default=200
        Optimizer iteration limit per candidate
    max_candidates : int, default=94
        Stepwise fit limit per ``(d, D)`` pair (ignored by the grid)
    progress : bool, default=True
        Show a tqdm progress bar

    Returns
    -------
    SearchOutcome
        All candidates with their scores or failure reasons.

    Notes
    -----
    - Both strategies enumerate a finite set, so the search terminates even
      when most candidates fail
    - Ties in AICc prefer lower ``p + q + P + Q``, then lower ``d + D``
    """
    # Every candidate is scored on the observations left after the largest differencing burn-in
    burn = bounds.max_d + (seasonal_period * bounds.max_D if seasonal_period >= 2 else 0)
    outcome = SearchOutcome(endog=endog.copy(), burn=burn)
    if strategy == "grid":
        orders = enumerate_orders(bounds, seasonal_period)
        logger.info("Grid search over %d candidate orders", len(orders))
        _grid_search(outcome, orders, maxiter, progress)
    elif strategy == "stepwise":
        _stepwise_search(outcome, bounds, seasonal_period, maxiter, max_candidates, progress)
    else:
        raise ValueError(f"Unknown search strategy '{strategy}'; expected 'grid' or 'stepwise'")

    n_failed = len(outcome.trace) - outcome.n_converged
    logger.info("Order search tried %d candidates: %d converged, %d rejected",
                len(outcome.trace), outcome.n_converged, n_failed)
    return outcome


def optimize_sarima(endog: pd.Series,
                    bounds: SearchBounds,
                    seasonal_period: int = 12,
                    strategy: str = "grid",
                    maxiter: int = 200,
                    max_candidates: int = 94,
                    progress: bool = True) -> pd.DataFrame:
    """
    Search SARIMA orders and return the ranked candidate table.

    Returns
    -------
    pd.DataFrame
        One row per candidate with columns ['order', 'p', 'd', 'q', 'P', 'D',
        'Q', 'total_order', 'AICc', 'AIC', 'BIC', 'status'], sorted ascending
        by AICc with failed candidates last.
    """
    return run_order_search(endog, bounds, seasonal_period, strategy, maxiter, max_candidates, progress).table()


def select_sarima(train: pd.Series,
                  bounds: SearchBounds,
                  seasonal_period: int = 12,
                  strategy: str = "grid",
                  maxiter: int = 200,
                  max_candidates: int = 94,
                  progress: bool = True) -> FittedModel:
    """
    Return the best converged SARIMA model for ``train`` by AICc.

    Raises
    ------
    NoConvergenceError
        If no candidate inside ``bounds`` converged.
    """
    outcome = run_order_search(train, bounds, seasonal_period, strategy, maxiter, max_candidates, progress)
    best = outcome.best_model()
    logger.info("Selected %s with AICc=%.3f", best.order, best.aicc)
    return best


def refit_sarima(endog: pd.Series, model: FittedModel, maxiter: int = 200) -> FittedModel:
    """
    Re-estimate the coefficients of an already selected order on new data.

    The order search is not re-run, so the refitted model keeps the
    structure that was validated on the hold-out window. The previous
    coefficients seed the optimizer.

    Raises
    ------
    NoConvergenceError
        If the refit raises or does not converge.
    """
    start = model.params.to_numpy(dtype=float) if len(model.params) else None
    cand, res = fit_candidate(endog, model.order, maxiter=maxiter, start_params=start)
    if res is None or cand.status in (STATUS_FAILED, STATUS_NOT_CONVERGED, STATUS_NON_FINITE):
        # A seeded start can stall; retry from the default start values
        cand, res = fit_candidate(endog, model.order, maxiter=maxiter)
    if res is None or cand.status in (STATUS_FAILED, STATUS_NOT_CONVERGED, STATUS_NON_FINITE):
        raise NoConvergenceError(f"Refit of {model.order} failed: {cand.message}")
    if not cand.ok:
        logger.warning("Refit of %s produced a %s", model.order, cand.message)
    refit = FittedModel.from_results(model.order, res, endog, scored=cand)
    logger.info("Refit %s on %d observations: AICc=%.3f", refit.order, len(endog), refit.aicc)
    return refit


def forecast_sarima(model: FittedModel,
                    horizon: int,
                    confidence_levels: Iterable[Union[int, float]] = (80, 95)) -> Forecast:
    """
    Forecast ``horizon`` steps past the end of the model's fit sample.

    Intervals come from the state-space forecast-error variance, which
    grows with lead time.

    Parameters
    ----------
    model : FittedModel
        Fitted model
    horizon : int
        Number of future points
    confidence_levels : Iterable[Union[int, float]], default=(80, 95)
        Coverage levels as fractions or percentages

    Returns
    -------
    Forecast
        Forecast on the scale the model was fit on (``scale="transformed"``).
    """
    if horizon < 1:
        raise ValueError("horizon must be >= 1")
    levels = normalize_levels(confidence_levels)

    fc = model.results.get_forecast(steps=horizon)
    mean = pd.Series(fc.predicted_mean, copy=True, name="mean")
    lower: Dict[int, pd.Series] = {}
    upper: Dict[int, pd.Series] = {}
    for lvl in levels:
        ci = fc.conf_int(alpha=1.0 - lvl / 100.0)
        lower[lvl] = pd.Series(ci.iloc[:, 0].to_numpy(dtype=float), index=mean.index, name=f"lower_{lvl}")
        upper[lvl] = pd.Series(ci.iloc[:, 1].to_numpy(dtype=float), index=mean.index, name=f"upper_{lvl}")

    # Fitted values inside the diffuse burn-in (d + s*D) are initialization artifacts
    burn = int(getattr(model.results, "loglikelihood_burn", 0) or 0)
    fitted = model.fitted_values.iloc[burn:].rename("fitted")

    return Forecast(
        mean=mean,
        lower=lower,
        upper=upper,
        fitted=fitted,
        history=model.endog.copy(),
        scale="transformed",
        model_name=str(model.order),
    )


def back_transform(forecast: Forecast, inverse_fn: Callable[[np.ndarray], np.ndarray] = np.exp) -> Forecast:
    """
    Map every field of a forecast back to the original scale.

    The inverse is applied to the point forecasts, every lower and upper
    bound, the fitted values and the history alike, so the result stays
    internally consistent.
    """
    def _apply(s: pd.Series) -> pd.Series:
        return pd.Series(inverse_fn(s.to_numpy(dtype=float)), index=s.index.copy(), name=s.name)

    return replace(
        forecast,
        mean=_apply(forecast.mean),
        lower={lvl: _apply(s) for lvl, s in forecast.lower.items()},
        upper={lvl: _apply(s) for lvl, s in forecast.upper.items()},
        fitted=_apply(forecast.fitted),
        history=_apply(forecast.history),
        scale="original",
    )


def to_original_scale(forecast: Forecast, transform: str) -> Forecast:
    """Back-transform a forecast according to the transform name ("log" or "none")."""
    if transform == "log":
        return back_transform(forecast, np.exp)
    if transform == "none":
        return replace(forecast, scale="original")
    raise ValueError(f"Unknown transform '{transform}'")


def hash_forecast(seq: Union[List[float], np.ndarray, pd.Series]) -> str:
    """
    Generate a hash fingerprint for a forecast sequence.

    Returns
    -------
    str
        16-character SHA-1 hash of the float64 values
    """
    arr = np.ascontiguousarray(np.asarray(seq, dtype=np.float64))
    return hashlib.sha1(arr.tobytes()).hexdigest()[:16]
