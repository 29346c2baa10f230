"""
qdim.py

Quantum dynamic inconsistency model (QDIM) for the two-stage gamble task.

The decision maker's cognitive state lives in a 4D space spanned by
(win/lose first gamble) x (accept/decline second gamble). The state evolves
under H = H1 + H2 (belief rotation plus belief/action entanglement) for a
decision time t, and choice probabilities are read off by projection.

The observable is the joint distribution of the planned choice (made before
the first gamble is resolved) and the final choice (made after), indexed as

    0: plan accept,  final accept
    1: plan accept,  final decline
    2: plan decline, final accept
    3: plan decline, final decline

Reference: Busemeyer, J. R., Wang, Z., & Shiffrin, R. M. (2015). Bayesian
model comparison favors quantum over standard decision theory account of
dynamic inconsistency. Decision, 2(1), 1.
"""

import logging
import math
from dataclasses import dataclass, fields, replace as _replace
from numbers import Real
from typing import List, Sequence

import numpy as np
import pandas as pd
from scipy.stats import multinomial

import operators as ops
from gambles import check_counts, get_utility_diffs

logger = logging.getLogger(__name__)

DECISION_TIME = np.pi / 2
PARAMETER_NAMES = ("alpha", "lam", "w1", "m", "gamma")


class ZeroProbabilityError(ValueError):
    """The conditioning event of a plan probability has probability zero."""


# =========================
# Model parameters
# =========================

@dataclass(frozen=True)
class QDIM:
    """
    Parameters of the quantum dynamic inconsistency model.

    alpha : utility curvature (alpha < 1 risk averse, alpha > 1 risk seeking)
    lam   : loss aversion multiplier
    w1    : decision weight of the first of two outcomes
    m     : probability of remembering and repeating the planned response
    gamma : entanglement between belief and action

    Conventional ranges are not enforced, only that every value is a finite
    real number, so the model can be evaluated anywhere a sampler proposes.
    """
    alpha: float
    lam: float
    w1: float
    m: float
    gamma: float

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, Real):
                raise TypeError(f"{f.name} must be a real number, got {type(value).__name__}.")
            if not math.isfinite(value):
                raise ValueError(f"{f.name} must be finite, got {value}.")
            object.__setattr__(self, f.name, float(value))

    def replace(self, **changes) -> "QDIM":
        """Return a new model with some parameters changed."""
        return _replace(self, **changes)

    def to_array(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in PARAMETER_NAMES])

    def to_frame(self) -> pd.DataFrame:
        """Parameter table (Parameter, Value) for display."""
        return pd.DataFrame({
            "Parameter": list(PARAMETER_NAMES),
            "Value": [getattr(self, name) for name in PARAMETER_NAMES],
        })


# =========================
# Evolution
# =========================

def hamiltonian(model: QDIM, outcomes1, outcomes2) -> np.ndarray:
    """H = H1(d_win, d_loss) + H2(gamma) for one gamble condition."""
    d_win, d_loss = get_utility_diffs(model, outcomes1, outcomes2)
    return ops.make_H1(d_win, d_loss) + ops.make_H2(model.gamma)


def evolution_operator(model: QDIM, outcomes1, outcomes2, t: float = DECISION_TIME) -> np.ndarray:
    """U = exp(-i t H) for one gamble condition."""
    return ops.unitary(hamiltonian(model, outcomes1, outcomes2), t)


def _plan_probability(U, P_joint, P_cond, atol) -> float:
    # P(plan accept | first outcome) on the outcome-unknown state
    num = ops.projection_probability(P_joint, U, ops.PSI_NEUTRAL, atol)
    den = ops.projection_probability(P_cond, U, ops.PSI_NEUTRAL, atol)
    if den == 0.0:
        raise ZeroProbabilityError(
            "Probability of the first-gamble outcome is zero on the neutral state; "
            "the plan probability is undefined."
        )
    return num / den


# =========================
# Choice predictions
# =========================

def predict_given_win(model: QDIM, outcomes1, outcomes2, t: float = DECISION_TIME,
                      atol: float = ops.IMAG_ATOL) -> List[float]:
    """
    Plan and final probability of accepting the second gamble, given a win.

    Returns [p_plan, p_final] where p_plan = P(accept and win) / P(win) on the
    neutral state and p_final = P(accept) after evolving the win state.
    """
    U = evolution_operator(model, outcomes1, outcomes2, t)
    p_plan = _plan_probability(U, ops.P_ACCEPT_WIN, ops.P_WIN, atol)
    p_final = ops.projection_probability(ops.P_ACCEPT, U, ops.PSI_WIN, atol)
    return [p_plan, p_final]


def predict_given_loss(model: QDIM, outcomes1, outcomes2, t: float = DECISION_TIME,
                       atol: float = ops.IMAG_ATOL) -> List[float]:
    """Plan and final probability of accepting the second gamble, given a loss."""
    U = evolution_operator(model, outcomes1, outcomes2, t)
    p_plan = _plan_probability(U, ops.P_ACCEPT_LOSS, ops.P_LOSS, atol)
    p_final = ops.projection_probability(ops.P_ACCEPT, U, ops.PSI_LOSS, atol)
    return [p_plan, p_final]


def predict_sure_thing(model: QDIM, outcomes1, outcomes2, t: float = DECISION_TIME,
                       atol: float = ops.IMAG_ATOL) -> List[float]:
    """
    Probability of accepting the second gamble in the three classic conditions.

    Returns [p_w, p_l, p]: after a known win, after a known loss, and with the
    first outcome unknown. The repetition parameter m plays no role here.
    """
    U = evolution_operator(model, outcomes1, outcomes2, t)
    return [
        ops.projection_probability(ops.P_ACCEPT, U, ops.PSI_WIN, atol),
        ops.projection_probability(ops.P_ACCEPT, U, ops.PSI_LOSS, atol),
        ops.projection_probability(ops.P_ACCEPT, U, ops.PSI_NEUTRAL, atol),
    ]


def joint_response(p_plan: float, p_final: float, m: float) -> np.ndarray:
    """
    Joint distribution of (planned, final) choices.

    With probability m the final choice repeats the plan; otherwise it is
    drawn independently with acceptance probability p_final.
    """
    return np.array([
        p_plan * (m + (1 - m) * p_final),
        p_plan * (1 - m) * (1 - p_final),
        (1 - p_plan) * (1 - m) * p_final,
        (1 - p_plan) * (m + (1 - m) * (1 - p_final)),
    ])


def predict(model: QDIM, outcomes1, outcomes2, won_first: bool, t: float = DECISION_TIME,
            atol: float = ops.IMAG_ATOL) -> np.ndarray:
    """
    Predicted joint response distribution for one gamble condition.

    Parameters
    ----------
    model : QDIM
    outcomes1, outcomes2 : [win, loss] of the first and second gamble
    won_first : whether the first gamble was won
    t : decision time

    Returns
    -------
    np.ndarray of 4 probabilities (aa, ad, da, dd)
    """
    branch = predict_given_win if won_first else predict_given_loss
    p_plan, p_final = branch(model, outcomes1, outcomes2, t, atol)
    return joint_response(p_plan, p_final, model.m)


# =========================
# Simulation and likelihood
# =========================

def sample(model: QDIM, outcomes1, outcomes2, won_first: bool, n: int,
           t: float = DECISION_TIME, rng=None) -> np.ndarray:
    """
    Simulate response counts for n trials of one condition.

    rng may be a numpy Generator, a seed or None.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}.")
    rng = np.random.default_rng(rng)
    theta = np.clip(predict(model, outcomes1, outcomes2, won_first, t), 0.0, 1.0)
    return rng.multinomial(int(n), theta / theta.sum())


def multinomial_logpmf(data, n: int, theta) -> float:
    """Multinomial log-probability of the counts; -inf for impossible data."""
    theta = np.asarray(theta, dtype=float)
    return float(multinomial.logpmf(np.asarray(data), n, theta / theta.sum()))


def logpdf(model: QDIM, outcomes1, outcomes2, won_first: bool, n: int, data,
           t: float = DECISION_TIME) -> float:
    """
    Multinomial log-likelihood of the response counts of one condition.

    Returns -inf (without raising) when a category with zero predicted
    probability has a positive count.
    """
    counts = check_counts(data, n)
    theta = np.clip(predict(model, outcomes1, outcomes2, won_first, t), 0.0, 1.0)
    return multinomial_logpmf(counts, n, theta)


def pdf(model: QDIM, outcomes1, outcomes2, won_first: bool, n: int, data,
        t: float = DECISION_TIME) -> float:
    return float(np.exp(logpdf(model, outcomes1, outcomes2, won_first, n, data, t)))


def loglikelihood(model: QDIM, data: tuple, t: float = DECISION_TIME) -> float:
    """
    Sampler-facing log-likelihood.

    data is the tuple (outcomes1, outcomes2, won_first, n, counts) of a single
    condition, or of parallel sequences for several conditions.
    """
    won_first = data[2]
    if np.ndim(won_first) == 0:
        return logpdf(model, *data, t=t)
    return logpdf_conditions(model, *data, t=t)


# =========================
# Batched conditions
# =========================

def _broadcast_n(n, n_conditions):
    if np.ndim(n) == 0:
        if n != int(n):
            raise ValueError(f"n must be a whole number of trials, got {n}.")
        return [int(n)] * n_conditions
    return list(n)


def _check_lengths(**sequences):
    lengths = {name: len(seq) for name, seq in sequences.items()}
    if len(set(lengths.values())) > 1:
        raise ValueError(f"Condition sequences must have equal length, got {lengths}.")


def predict_conditions(model: QDIM, outcomes1: Sequence, outcomes2: Sequence,
                       won_first: Sequence[bool], t: float = DECISION_TIME) -> List[np.ndarray]:
    """Joint response distribution for each condition."""
    _check_lengths(outcomes1=outcomes1, outcomes2=outcomes2, won_first=won_first)
    return [predict(model, o1, o2, wf, t) for o1, o2, wf in zip(outcomes1, outcomes2, won_first)]


def sample_conditions(model: QDIM, outcomes1: Sequence, outcomes2: Sequence,
                      won_first: Sequence[bool], n, t: float = DECISION_TIME,
                      rng=None) -> List[np.ndarray]:
    """
    Simulate response counts for each condition.

    n is either one trial count used for every condition or a sequence with
    one count per condition.
    """
    n = _broadcast_n(n, len(outcomes1))
    _check_lengths(outcomes1=outcomes1, outcomes2=outcomes2, won_first=won_first, n=n)
    rng = np.random.default_rng(rng)
    logger.debug("Sampling %d conditions", len(n))
    return [sample(model, o1, o2, wf, ni, t, rng)
            for o1, o2, wf, ni in zip(outcomes1, outcomes2, won_first, n)]


def logpdf_conditions(model: QDIM, outcomes1: Sequence, outcomes2: Sequence,
                      won_first: Sequence[bool], n, data: Sequence,
                      t: float = DECISION_TIME) -> float:
    """
    Total log-likelihood over independent conditions.

    Terms are summed in input order; reordering the sum (e.g. a parallel
    reduction) can change the result at the level of round-off.
    """
    n = _broadcast_n(n, len(outcomes1))
    _check_lengths(outcomes1=outcomes1, outcomes2=outcomes2, won_first=won_first, n=n, data=data)
    logger.debug("Evaluating log-likelihood over %d conditions", len(n))
    total = 0.0
    for o1, o2, wf, ni, d in zip(outcomes1, outcomes2, won_first, n, data):
        total += logpdf(model, o1, o2, wf, ni, d, t)
    return total


def pdf_conditions(model: QDIM, outcomes1: Sequence, outcomes2: Sequence,
                   won_first: Sequence[bool], n, data: Sequence,
                   t: float = DECISION_TIME) -> float:
    return float(np.exp(logpdf_conditions(model, outcomes1, outcomes2, won_first, n, data, t)))
