"""
Tests for the decision-space operators.

Invariants:
    - H1 is symmetric and each 2x2 block has zero trace
    - H2 is symmetric for every gamma
    - exp(-i t (H1 + H2)) is unitary
    - projection probabilities lie in [0, 1]
"""

import numpy as np
import pytest
from hypothesis import given
from hypothesis import strategies as st

import operators as ops

finite = st.floats(min_value=-50, max_value=50, allow_nan=False, allow_infinity=False)
gammas = st.floats(min_value=-10, max_value=10, allow_nan=False, allow_infinity=False)


# ── Hamiltonians ─────────────────────────────────────────────────────────────

class TestMakeH1:
    def test_blocks(self):
        H1 = ops.make_H1(1.5, 2)
        assert H1[0, 0] == -H1[1, 1]
        assert H1[2, 2] == -H1[3, 3]
        assert H1[0, 1] == H1[1, 0]
        assert H1[3, 2] == H1[2, 3]
        assert np.array_equal(H1, H1.T)

    def test_off_block_zero(self):
        H1 = ops.make_H1(0.3, -0.7)
        assert np.all(H1[0:2, 2:4] == 0)
        assert np.all(H1[2:4, 0:2] == 0)

    def test_zero_advantage(self):
        H1 = ops.make_H1(0.0, 0.0)
        assert H1[0, 0] == 0.0
        assert H1[0, 1] == pytest.approx(1.0)

    def test_saturates(self):
        # tanh(0.5 d) -> 1, so the diagonal approaches 1/sqrt(2)
        H1 = ops.make_H1(1e6, -1e6)
        assert H1[0, 0] == pytest.approx(1 / np.sqrt(2))
        assert H1[2, 2] == pytest.approx(-1 / np.sqrt(2))

    @given(finite, finite)
    def test_symmetric_zero_trace(self, d_win, d_loss):
        H1 = ops.make_H1(d_win, d_loss)
        assert np.array_equal(H1, H1.T)
        assert H1[0, 0] + H1[1, 1] == 0.0
        assert H1[2, 2] + H1[3, 3] == 0.0


class TestMakeH2:
    def test_pattern(self):
        H2 = ops.make_H2(np.sqrt(2) * 2)
        assert H2[0, 0] == pytest.approx(-2)
        assert H2[1, 1] == pytest.approx(2)
        assert H2[1, 3] == pytest.approx(-2)
        assert H2[2, 0] == pytest.approx(-2)
        assert H2[2, 2] == pytest.approx(2)
        assert H2[3, 1] == pytest.approx(-2)
        assert H2[3, 3] == pytest.approx(-2)
        assert H2[0, 1] == 0.0

    @given(gammas)
    def test_symmetric(self, gamma):
        H2 = ops.make_H2(gamma)
        assert np.array_equal(H2, H2.T)


# ── Evolution ────────────────────────────────────────────────────────────────

class TestEvolution:
    @given(finite, finite, gammas)
    def test_unitary(self, d_win, d_loss, gamma):
        H = ops.make_H1(d_win, d_loss) + ops.make_H2(gamma)
        U = ops.unitary(H, np.pi / 2)
        assert ops.is_unitary(U, atol=1e-8)

    def test_zero_time_is_identity(self):
        H = ops.make_H1(0.5, -0.5) + ops.make_H2(1.0)
        assert np.allclose(ops.unitary(H, 0.0), np.eye(4))

    def test_non_hermitian_rejected(self):
        H = np.array([[0.0, 1.0], [0.0, 0.0]])
        with pytest.raises(ops.NumericalConsistencyError):
            ops.unitary(H, 1.0)

    def test_states_unit_norm(self):
        for psi in (ops.PSI_WIN, ops.PSI_LOSS, ops.PSI_NEUTRAL):
            assert np.linalg.norm(psi) == pytest.approx(1.0)

    @given(finite, finite, gammas)
    def test_projection_in_unit_interval(self, d_win, d_loss, gamma):
        U = ops.unitary(ops.make_H1(d_win, d_loss) + ops.make_H2(gamma), np.pi / 2)
        for P in (ops.P_ACCEPT, ops.P_WIN, ops.P_LOSS, ops.P_ACCEPT_WIN):
            p = ops.projection_probability(P, U, ops.PSI_NEUTRAL)
            assert -1e-12 <= p <= 1 + 1e-12

    def test_complementary_projectors_sum_to_one(self):
        U = ops.unitary(ops.make_H1(0.2, 0.9) + ops.make_H2(-1.3), np.pi / 2)
        p_win = ops.projection_probability(ops.P_WIN, U, ops.PSI_WIN)
        p_loss = ops.projection_probability(ops.P_LOSS, U, ops.PSI_WIN)
        assert p_win + p_loss == pytest.approx(1.0)


# ── Projectors ───────────────────────────────────────────────────────────────

class TestProjector:
    def test_idempotent(self):
        P = ops.projector([1, 0, 1, 0])
        assert np.array_equal(P @ P, P)

    def test_rejects_non_binary(self):
        with pytest.raises(ValueError):
            ops.projector([1, 0.5, 0, 0])

    def test_rejects_matrix(self):
        with pytest.raises(ValueError):
            ops.projector(np.eye(2))
