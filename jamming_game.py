# jamming_game.py
"""
Per-channel deception-jamming game: utilities, gradients, activation, projection.

Notation (one row per player, one column per channel):
  x[d, i] : defender d power on channel i        h[d, i] : defender gain
  y[m, i] : attacker m power on channel i        g[m, i] : attacker gain
  I_i     = σ² + Σ_m y[m, i]·g[m, i]             (interference + noise)
  SINR_i  = x[o(i), i]·h[o(i), i] / I_i          o(i) = owner of channel i

Defender utility:   u_d = Σ_{i owned by d} log(1 + SINR_i)
Attacker utility:   u_m = −Σ_d u_d   (real channels only if oracle,
                                      every non-inactive channel if deception)

This file contains ONLY the game primitives the best-response loop and the
jammer strategies depend on:
  - active_set, interference, sinr
  - defender_utility, attacker_utility
  - defender_gradient, attacker_gradient
  - project_to_budget (clamp-then-rescale, uniform fallback)
"""

from __future__ import annotations

import numpy as np

__all__ = [
    "owner_power",
    "active_set",
    "interference",
    "sinr",
    "defender_utility",
    "attacker_utility",
    "defender_gradient",
    "attacker_gradient",
    "eligible_channels",
    "project_to_budget",
    "DECOY_GRAD_BELOW_TAU",
    "DECOY_GRAD_ACTIVE",
]

# Decoys have no rate objective; a constant push keeps them funded near τ.
DECOY_GRAD_BELOW_TAU = 0.1
DECOY_GRAD_ACTIVE = 0.01


# ----------------------------- Common utilities -----------------------------

def owner_power(x: np.ndarray, params) -> np.ndarray:
    """x[o(i), i] for every channel i."""
    return x[params.owners, np.arange(params.N)]


def active_set(x: np.ndarray, params) -> np.ndarray:
    """
    Boolean mask of active channels:
      i ∈ A  ⇔  type(i) ≠ inactive  and  x[o(i), i] ≥ τ.
    Recomputed from scratch every call, no hysteresis.
    """
    return (params.types != "inactive") & (owner_power(x, params) >= params.tau)


def interference(y: np.ndarray, params) -> np.ndarray:
    """I_i = σ² + Σ_m y[m, i]·g[m, i]  (shape (N,))."""
    return params.sigma2 + np.sum(y * params.g, axis=0)


def sinr(x: np.ndarray, y: np.ndarray, params) -> np.ndarray:
    """Owner SINR per channel; 0 where the owner puts no power."""
    s = owner_power(x, params) * params.h[params.owners, np.arange(params.N)]
    out = s / interference(y, params)
    return np.where(owner_power(x, params) > 0, out, 0.0)


def defender_utility(d: int, x: np.ndarray, y: np.ndarray, params,
                     only_real: bool = True) -> float:
    """
    u_d = Σ log(1 + x[d,i] h[d,i] / I_i) over channels owned by d.
    only_real=True restricts to real channels, otherwise every non-inactive
    channel counts. Channels with x[d,i] ≤ 0 contribute nothing.
    """
    types = params.types
    mask = params.owners == d
    if only_real:
        mask &= types == "real"
    else:
        mask &= types != "inactive"
    mask &= x[d] > 0
    if not np.any(mask):
        return 0.0
    I = interference(y, params)
    return float(np.sum(np.log1p(x[d, mask] * params.h[d, mask] / I[mask])))


def attacker_utility(m: int, x: np.ndarray, y: np.ndarray, params) -> float:
    """
    Attacker m minimises total defender utility. An oracle jammer scores
    real channels only; a deceived jammer scores every non-inactive channel,
    so decoys look exactly as valuable as real traffic.
    """
    only_real = params.jammer_objective == "oracle"
    total = sum(defender_utility(d, x, y, params, only_real=only_real)
                for d in range(params.D))
    return -total


def defender_gradient(d: int, x: np.ndarray, y: np.ndarray, params) -> np.ndarray:
    """
    ∂u_d/∂x[d,i] = h[d,i] / (I_i + x[d,i] h[d,i])   on owned real channels
                 = 0.1 (x < τ) or 0.01 (x ≥ τ)      on owned decoys
                 = 0                                 elsewhere
    """
    grad = np.zeros(params.N)
    owned = params.owners == d
    types = params.types
    I = interference(y, params)

    real = owned & (types == "real")
    grad[real] = params.h[d, real] / (I[real] + x[d, real] * params.h[d, real])

    decoy = owned & (types == "decoy")
    grad[decoy] = np.where(x[d, decoy] < params.tau, DECOY_GRAD_BELOW_TAU, DECOY_GRAD_ACTIVE)
    return grad


def eligible_channels(active: np.ndarray, params) -> np.ndarray:
    """Channels a jammer may target: active, and real when the objective is oracle."""
    if params.jammer_objective == "oracle":
        return active & (params.types == "real")
    return active.copy()


def attacker_gradient(m: int, x: np.ndarray, y: np.ndarray, params,
                      active: np.ndarray) -> np.ndarray:
    """
    Descent direction on defender utility seen by jammer m:

      ∂(−u)/∂y[m,i] = s_i g[m,i] / (I_i (I_i + s_i)),   s_i = x[o(i),i] h[o(i),i]

    over eligible channels with positive owner power, zero elsewhere.
    """
    grad = np.zeros(params.N)
    xo = owner_power(x, params)
    mask = eligible_channels(active, params) & (xo > 0)
    if not np.any(mask):
        return grad
    I = interference(y, params)
    s = xo * params.h[params.owners, np.arange(params.N)]
    grad[mask] = (s[mask] * params.g[m, mask]) / (I[mask] * (I[mask] + s[mask]))
    return grad


# --------------------------- Budget projection ---------------------------

def project_to_budget(v: np.ndarray, budget: float) -> np.ndarray:
    """
    Map v onto {w ≥ 0, Σ w = budget} by clamping negatives to zero and
    rescaling. If nothing positive survives the clamp, split the budget
    uniformly over all slots.

    Not the Euclidean simplex projection (Duchi et al.); the damped
    best-response loop is tuned to this clamp-then-rescale map.
    """
    w = np.maximum(np.asarray(v, dtype=float), 0.0)
    s = w.sum()
    if s <= 0:
        return np.full(w.shape, budget / max(w.size, 1))
    return (budget / s) * w
