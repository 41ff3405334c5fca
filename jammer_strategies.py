# jammer_strategies.py
"""
Jammer allocation policies.

Each policy maps (active set, current x, y) to a full row y[m, :] that
spends PJ[m] on the channels the jammer can target:
  uniform  (J1) : equal split over eligible channels
  topK     (J2) : top-K channels by perceived value x[o(i),i]·g[m,i],
                  power proportional to that score
  gradient (J3) : proportional to the positive part of ∂(−u)/∂y[m,:],
                  uniform fallback when no component is positive

Eligible = active, and additionally real when the objective is oracle.
With no eligible channel the jammer transmits nothing.
"""

from __future__ import annotations

import numpy as np

from jamming_game import attacker_gradient, eligible_channels, owner_power

__all__ = ["jam_uniform", "jam_topk", "jam_gradient", "apply_jammer_strategy", "STRATEGIES"]


def jam_uniform(m: int, x: np.ndarray, y: np.ndarray, params, active: np.ndarray) -> np.ndarray:
    y_new = np.zeros(params.N)
    eligible = eligible_channels(active, params)
    k = int(np.count_nonzero(eligible))
    if k == 0:
        return y_new
    y_new[eligible] = params.PJ[m] / k
    return y_new


def jam_topk(m: int, x: np.ndarray, y: np.ndarray, params, active: np.ndarray) -> np.ndarray:
    y_new = np.zeros(params.N)
    idx = np.flatnonzero(eligible_channels(active, params))
    if idx.size == 0:
        return y_new
    score = owner_power(x, params)[idx] * params.g[m, idx]
    # stable sort keeps lower channel index first among equal scores
    order = np.argsort(-score, kind="stable")[:min(params.top_k, idx.size)]
    targets, tscore = idx[order], score[order]
    total = tscore.sum()
    if total > 0:
        y_new[targets] = (tscore / total) * params.PJ[m]
    else:
        y_new[targets] = params.PJ[m] / targets.size
    return y_new


def jam_gradient(m: int, x: np.ndarray, y: np.ndarray, params, active: np.ndarray) -> np.ndarray:
    grad = np.maximum(attacker_gradient(m, x, y, params, active), 0.0)
    total = grad.sum()
    if total > 0:
        return (grad / total) * params.PJ[m]
    return jam_uniform(m, x, y, params, active)


STRATEGIES = {
    "uniform": jam_uniform,
    "topK": jam_topk,
    "gradient": jam_gradient,
}


def apply_jammer_strategy(m: int, x: np.ndarray, y: np.ndarray, params,
                          active: np.ndarray) -> np.ndarray:
    """Candidate row for jammer m under params.jammer_strategy."""
    try:
        policy = STRATEGIES[params.jammer_strategy]
    except KeyError:
        raise ValueError(f"Unknown jammer strategy: {params.jammer_strategy!r}")
    return policy(m, x, y, params, active)
