# operators.py
# Quantum-like operators for the two-stage gamble decision model

from typing import Sequence

import numpy as np
from scipy.linalg import expm

IMAG_ATOL = 1e-9


class NumericalConsistencyError(ArithmeticError):
    """A quantity that must be real (or an operator that must be Hermitian) is not."""


# =========================
# Basis states
# =========================
#
# Basis ordering of the 4D decision space:
#   0: win first gamble,  accept second gamble
#   1: win first gamble,  decline second gamble
#   2: lose first gamble, accept second gamble
#   3: lose first gamble, decline second gamble

PSI_WIN = np.array([np.sqrt(0.5), np.sqrt(0.5), 0.0, 0.0])
PSI_LOSS = np.array([0.0, 0.0, np.sqrt(0.5), np.sqrt(0.5)])
PSI_NEUTRAL = np.full(4, 0.5)


# =========================
# Operators: construction and basic algebra
# =========================

def projector(diagonal: Sequence[float]) -> np.ndarray:
    """
    Build a diagonal 0/1 projector on the decision space.

    Each entry selects (1) or drops (0) one basis state, so the projector
    represents an event such as "accept the second gamble" or "won the first
    gamble", i.e. a union of basis outcomes.
    """
    d = np.asarray(diagonal, dtype=float)
    if d.ndim != 1:
        raise ValueError("Projector diagonal must be one-dimensional.")
    if not np.all((d == 0.0) | (d == 1.0)):
        raise ValueError(f"Projector diagonal must contain only 0 and 1, got {d.tolist()}.")
    return np.diag(d)


# accept second gamble (any first outcome)
P_ACCEPT = projector([1, 0, 1, 0])
# accept second gamble and won first
P_ACCEPT_WIN = projector([1, 0, 0, 0])
# won first gamble
P_WIN = projector([1, 1, 0, 0])
# accept second gamble and lost first
P_ACCEPT_LOSS = projector([0, 0, 1, 0])
# lost first gamble
P_LOSS = projector([0, 0, 1, 1])


def dagger(A) -> np.ndarray:
    """Conjugate transpose A^† of a matrix or column vector."""
    return np.asarray(A).conj().T


def is_hermitian(A, atol: float = 1e-12) -> bool:
    """
    Check that A = A^† within tolerance.

    A Hamiltonian has to be Hermitian for exp(-i t H) to be unitary; otherwise
    the evolved decision state does not keep a probabilistic interpretation.
    """
    A = np.asarray(A)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        return False
    return np.allclose(A, dagger(A), atol=atol)


def is_unitary(U, atol: float = 1e-10) -> bool:
    """Check that U^† U = I within tolerance."""
    U = np.asarray(U)
    if U.ndim != 2 or U.shape[0] != U.shape[1]:
        return False
    return np.allclose(dagger(U) @ U, np.eye(U.shape[0]), atol=atol)


# =========================
# Hamiltonians
# =========================

def make_H1(d_win: float, d_loss: float) -> np.ndarray:
    """
    Hamiltonian rotating belief towards accepting or declining the second gamble.

    Block diagonal with one 2x2 block per first-gamble outcome. The utility
    advantage of accepting (d_win after a win, d_loss after a loss) is squashed
    by tanh(d/2), so extreme utility differences saturate the rotation instead
    of diverging. Each block is symmetric with zero trace.
    """
    hw = np.tanh(0.5 * d_win)
    hl = np.tanh(0.5 * d_loss)
    nw = np.sqrt(1.0 + hw ** 2)
    nl = np.sqrt(1.0 + hl ** 2)

    H = np.zeros((4, 4), dtype=float)
    H[0:2, 0:2] = [[hw / nw, 1.0 / nw],
                   [1.0 / nw, -hw / nw]]
    H[2:4, 2:4] = [[hl / nl, 1.0 / nl],
                   [1.0 / nl, -hl / nl]]
    return H


def make_H2(gamma: float) -> np.ndarray:
    """
    Hamiltonian coupling belief about the first outcome with the action.

    gamma is the entanglement parameter. The matrix rotates the "won first"
    components towards "accept second" (and "lost first" towards "decline"),
    modelling reduction of cognitive dissonance between belief and action.
    It does not depend on outcome magnitudes.
    """
    v = -gamma / np.sqrt(2.0)
    return np.array([[v, 0.0, v, 0.0],
                     [0.0, -v, 0.0, v],
                     [v, 0.0, -v, 0.0],
                     [0.0, v, 0.0, v]])


# =========================
# Evolution and measurement
# =========================

def unitary(H, t: float) -> np.ndarray:
    """
    Time-evolution operator U = exp(-i t H).

    Uses the Pade-based scipy.linalg.expm. Raises NumericalConsistencyError
    when H is not Hermitian, since U would then not be unitary.
    """
    H = np.asarray(H)
    if not is_hermitian(H):
        raise NumericalConsistencyError("Hamiltonian is not Hermitian; evolution would not be unitary.")
    return expm(-1j * t * H)


def evolve(U, psi) -> np.ndarray:
    """Apply the evolution operator to a state vector: U |psi>."""
    return np.asarray(U) @ np.asarray(psi, dtype=complex)


def projection_probability(P, U, psi, atol: float = IMAG_ATOL) -> float:
    """
    Probability of the event P after evolving psi with U.

    Computes (P U psi)^† (P U psi), the squared norm of the projected
    amplitude. The result is real in exact arithmetic; an imaginary part
    larger than atol means the operators are inconsistent and raises
    NumericalConsistencyError.
    """
    amp = np.asarray(P) @ evolve(U, psi)
    prob = np.vdot(amp, amp)
    if abs(prob.imag) > atol:
        raise NumericalConsistencyError(
            f"Projected probability has imaginary part {prob.imag:.3e} (atol={atol:.1e})."
        )
    return float(prob.real)
