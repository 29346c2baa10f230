"""
estimation.py

Parameter estimation helpers built on the QDIM likelihood.

Structure:
1) Log-density factory for external samplers
2) Likelihood profiles over a parameter grid
3) Maximum-likelihood fit (scipy.optimize.minimize)
"""

import logging
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.optimize import OptimizeResult, minimize

from qdim import DECISION_TIME, PARAMETER_NAMES, QDIM, logpdf_conditions

logger = logging.getLogger(__name__)

# Conventional ranges; used only to keep the optimizer in a sensible region.
DEFAULT_BOUNDS = {
    "alpha": (0.05, 2.0),
    "lam": (0.05, 5.0),
    "w1": (0.0, 1.0),
    "m": (0.0, 1.0),
    "gamma": (-10.0, 10.0),
}
DEFAULT_START = {"alpha": 1.0, "lam": 1.0, "w1": 0.5, "m": 0.5, "gamma": 1.0}


# -----------------------
# 1. Log-density
# -----------------------

def _check_names(names: Sequence[str], fixed: Dict[str, float]):
    unknown = [n for n in list(names) + list(fixed) if n not in PARAMETER_NAMES]
    if unknown:
        raise ValueError(f"Unknown parameter names: {unknown}")
    missing = [n for n in PARAMETER_NAMES if n not in names and n not in fixed]
    if missing:
        raise ValueError(f"Parameters neither estimated nor fixed: {missing}")
    overlap = [n for n in names if n in fixed]
    if overlap:
        raise ValueError(f"Parameters both estimated and fixed: {overlap}")


def make_logdensity(outcomes1, outcomes2, won_first, n, data, *,
                    names: Sequence[str] = PARAMETER_NAMES,
                    fixed: Optional[Dict[str, float]] = None,
                    t: float = DECISION_TIME) -> Callable[[Sequence[float]], float]:
    """
    Build f(theta) -> total log-likelihood of the data.

    theta is ordered as `names`; parameters not in `names` are taken from
    `fixed`. The returned function is what an external sampler evaluates as its
    target density (priors are the sampler's business).
    """
    fixed = dict(fixed or {})
    names = tuple(names)
    _check_names(names, fixed)

    def logdensity(theta):
        theta = np.asarray(theta, dtype=float)
        if theta.shape != (len(names),):
            raise ValueError(f"Expected {len(names)} parameters {names}, got shape {theta.shape}.")
        params = dict(fixed)
        params.update(zip(names, theta.tolist()))
        return logpdf_conditions(QDIM(**params), outcomes1, outcomes2, won_first, n, data, t)

    return logdensity


# -----------------------
# 2. Likelihood profiles
# -----------------------

def loglikelihood_profile(model: QDIM, name: str, grid: Sequence[float],
                          outcomes1, outcomes2, won_first, n, data,
                          t: float = DECISION_TIME) -> pd.DataFrame:
    """
    Log-likelihood along one parameter, the others held at `model`.

    Returns a DataFrame with columns name, value, loglik (one row per grid
    value, in grid order).
    """
    if name not in PARAMETER_NAMES:
        raise ValueError(f"Unknown parameter name: {name}")
    logger.debug("Profiling %s over %d grid values", name, len(grid))

    rows = []
    for value in grid:
        ll = logpdf_conditions(model.replace(**{name: float(value)}),
                               outcomes1, outcomes2, won_first, n, data, t)
        rows.append({"name": name, "value": float(value), "loglik": ll})
    return pd.DataFrame(rows, columns=["name", "value", "loglik"])


def profile_argmax(profile: pd.DataFrame) -> float:
    """Grid value with the highest log-likelihood."""
    if profile.empty:
        raise ValueError("Empty profile.")
    return float(profile.loc[profile["loglik"].idxmax(), "value"])


# -----------------------
# 3. Maximum-likelihood fit
# -----------------------

def fit_qdim(outcomes1, outcomes2, won_first, n, data, *,
             x0: Optional[Dict[str, float]] = None,
             names: Sequence[str] = PARAMETER_NAMES,
             fixed: Optional[Dict[str, float]] = None,
             bounds: Optional[Dict[str, Tuple[float, float]]] = None,
             t: float = DECISION_TIME,
             maxiter: int = 2000) -> Tuple[QDIM, OptimizeResult]:
    """
    Maximum-likelihood estimate of the model parameters.

    Minimizes the negative total log-likelihood with bounded Nelder-Mead
    (the objective can be +inf, which gradient methods do not tolerate).

    Parameters:
    - names: parameters to estimate, the rest come from `fixed`
    - x0: starting values (defaults to DEFAULT_START)
    - bounds: per-parameter bounds (defaults to DEFAULT_BOUNDS)

    Returns (fitted QDIM, scipy OptimizeResult)
    """
    fixed = dict(fixed or {})
    names = tuple(names)
    start = dict(DEFAULT_START, **(x0 or {}))
    box = dict(DEFAULT_BOUNDS, **(bounds or {}))

    logdensity = make_logdensity(outcomes1, outcomes2, won_first, n, data,
                                 names=names, fixed=fixed, t=t)

    def loss(p):
        return -logdensity(p)

    p0 = np.array([start[name] for name in names], dtype=float)
    logger.info("Fitting %s from %s", names, np.round(p0, 4).tolist())
    res = minimize(loss, p0, method="Nelder-Mead",
                   bounds=[box[name] for name in names],
                   options={"maxiter": maxiter, "xatol": 1e-6, "fatol": 1e-8})
    if not res.success:
        logger.warning("Optimizer did not converge: %s", res.message)
    else:
        logger.info("Fit converged after %d iterations, -loglik=%.4f", res.nit, res.fun)

    params = dict(fixed)
    params.update(zip(names, res.x.tolist()))
    return QDIM(**params), res
