"""
Likelihood-based recovery of generating parameters.
"""

import numpy as np
import pytest

import estimation as est
import qdim
from qdim import QDIM

GAMBLES = [[2, -1], [5, -3], [0.5, -0.25], [2, -2], [5, -5], [0.5, -0.5]]
TRUE = dict(alpha=0.9, lam=2.0, w1=0.5, m=0.5, gamma=2.5)


@pytest.fixture(scope="module")
def conditions():
    outcomes = GAMBLES + GAMBLES
    won_first = [True] * len(GAMBLES) + [False] * len(GAMBLES)
    n = [20_000] * len(outcomes)
    data = qdim.sample_conditions(QDIM(**TRUE), outcomes, outcomes, won_first, n,
                                  rng=np.random.default_rng(410))
    return outcomes, outcomes, won_first, n, data


class TestProfile:
    @pytest.mark.parametrize("name,rtol", [
        ("gamma", 0.05),
        ("alpha", 0.05),
        ("w1", 0.05),
        ("m", 0.05),
        ("lam", 0.1),
    ])
    def test_recovers_parameter(self, conditions, name, rtol):
        true = TRUE[name]
        grid = np.linspace(0.8 * true, 1.2 * true, 100)
        profile = est.loglikelihood_profile(QDIM(**TRUE), name, grid, *conditions)
        assert est.profile_argmax(profile) == pytest.approx(true, rel=rtol)

    def test_profile_frame(self, conditions):
        grid = [2.0, 2.5, 3.0]
        profile = est.loglikelihood_profile(QDIM(**TRUE), "gamma", grid, *conditions)
        assert list(profile.columns) == ["name", "value", "loglik"]
        assert profile["value"].tolist() == grid
        assert (profile["name"] == "gamma").all()

    def test_unknown_name(self, conditions):
        with pytest.raises(ValueError):
            est.loglikelihood_profile(QDIM(**TRUE), "beta", [1.0], *conditions)

    def test_empty_profile(self):
        with pytest.raises(ValueError):
            est.profile_argmax(est.loglikelihood_profile(QDIM(**TRUE), "gamma", [], [], [], [], [], []))


class TestLogDensity:
    def test_matches_batched_logpdf(self, conditions):
        f = est.make_logdensity(*conditions)
        theta = [TRUE[name] for name in qdim.PARAMETER_NAMES]
        assert f(theta) == pytest.approx(qdim.logpdf_conditions(QDIM(**TRUE), *conditions))

    def test_fixed_parameters(self, conditions):
        fixed = {k: v for k, v in TRUE.items() if k != "gamma"}
        f = est.make_logdensity(*conditions, names=["gamma"], fixed=fixed)
        assert f([2.5]) == pytest.approx(qdim.logpdf_conditions(QDIM(**TRUE), *conditions))

    def test_wrong_theta_length(self, conditions):
        f = est.make_logdensity(*conditions)
        with pytest.raises(ValueError):
            f([1.0, 2.0])

    @pytest.mark.parametrize("names,fixed", [
        (["gamma"], {}),
        (["gamma", "beta"], {"alpha": 1.0, "lam": 1.0, "w1": 0.5, "m": 0.5}),
        (["gamma"], {"gamma": 1.0, "alpha": 1.0, "lam": 1.0, "w1": 0.5, "m": 0.5}),
    ])
    def test_bad_names(self, conditions, names, fixed):
        with pytest.raises(ValueError):
            est.make_logdensity(*conditions, names=names, fixed=fixed)


class TestFit:
    def test_fit_gamma(self, conditions):
        fixed = {k: v for k, v in TRUE.items() if k != "gamma"}
        model, res = est.fit_qdim(*conditions, names=["gamma"], fixed=fixed,
                                  x0={"gamma": 2.2}, bounds={"gamma": (1.5, 3.5)})
        assert res.success
        assert model.gamma == pytest.approx(TRUE["gamma"], rel=0.05)
        assert model.alpha == TRUE["alpha"]

    def test_fit_improves_on_start(self, conditions):
        fixed = {"lam": TRUE["lam"], "m": TRUE["m"]}
        start = {"alpha": 0.8, "w1": 0.45, "gamma": 2.3}
        model, res = est.fit_qdim(*conditions, names=["alpha", "w1", "gamma"], fixed=fixed, x0=start)
        start_ll = qdim.logpdf_conditions(QDIM(**fixed, **start), *conditions)
        assert -res.fun >= start_ll
        assert isinstance(model, QDIM)
