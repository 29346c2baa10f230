# -*- coding: utf-8 -*-
"""
Example workflow: quantum dynamic inconsistency model of a two-stage gamble.

Simulates planned/final choices for a set of gamble conditions, stores them
as a condition table, profiles the likelihood and refits the parameters.
"""

import logging

import numpy as np

import estimation as est
import gambles
import qdim

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

# ==========================================
# 1. Model and gamble conditions
# ==========================================

model = qdim.QDIM(alpha=0.9, lam=2.0, w1=0.5, m=0.6, gamma=2.5)
print(model.to_frame().to_string(index=False))

# Each first-stage gamble is also offered as the second-stage gamble;
# every condition is played once after a win and once after a loss.
gambles_ = [[2, -1], [5, -3], [0.5, -0.25], [2, -2], [5, -5], [0.5, -0.5]]
outcomes1 = gambles_ + gambles_
outcomes2 = gambles_ + gambles_
won_first = [True] * len(gambles_) + [False] * len(gambles_)
n_trials = 500

# ==========================================
# 2. Predictions
# ==========================================

preds = qdim.predict_conditions(model, outcomes1, outcomes2, won_first)
for o1, wf, p in zip(outcomes1, won_first, preds):
    print(o1, "win" if wf else "loss", np.round(p, 3))

# ==========================================
# 3. Simulate and store a condition table
# ==========================================

rng = np.random.default_rng(2015)
data = qdim.sample_conditions(model, outcomes1, outcomes2, won_first, n_trials, rng=rng)
n = [n_trials] * len(data)
df = gambles.conditions_to_frame(outcomes1, outcomes2, won_first, n, data)
gambles.save_conditions(df, "conditions.tsv")

# ==========================================
# 4. Likelihood profile and fit
# ==========================================

table = gambles.load_conditions("conditions.tsv")
conditions = gambles.frame_to_conditions(table)

grid = np.linspace(0.8 * model.gamma, 1.2 * model.gamma, 41)
profile = est.loglikelihood_profile(model, "gamma", grid, *conditions)
print("gamma profile maximum:", est.profile_argmax(profile))

fitted, res = est.fit_qdim(*conditions)
print(fitted.to_frame().to_string(index=False))
print("log-likelihood at fit:", -res.fun)
