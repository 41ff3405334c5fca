# bestrespsolver.py
"""
Damped simultaneous best response for the multi-defender / multi-jammer
deception game.

State: x (D×N) defender powers, y (M×N) jammer powers, one row per player.
Each outer iteration:
  (i)   for d = 0..D−1 :  x̂_d = Π_{PT[d]}(x_d + η ∇_{x_d} u_d)
                          x_d ← (1−α) x_d + α x̂_d
  (ii)  A ← active set of the new x
  (iii) for m = 0..M−1 :  ŷ_m = strategy(m, A, x, y)
                            (independent jammer under the gradient
                             strategy: ŷ_m = Π_{PJ[m]}(y_m + η ∇(−u)))
                          y_m ← (1−α) y_m + α ŷ_m
  stop when max_{players, channels} |Δ| < ε  (converged)
  or after max_iter iterations (exhausted, still a valid result).

Π is the clamp-then-rescale map of jamming_game.project_to_budget; α damps
the coupled non-convex dynamics, which oscillate undamped.

Nothing eligible: a policy jammer with no eligible channel proposes ŷ_m = 0.
An independent gradient jammer in that state has ∇ = 0 on the eligible
set, so when y_m is also 0 Π falls back to the uniform split over all N
channels, decoys and inactive ones included (oracle jammers with no active
real channel end up with jammerWasteOnDecoys > 0 this way).

This file contains ONLY the solver and its initialisation:
  - initial_defender_allocation (decoys at τ, rest uniform / gain-weighted,
    or seeded random split)
  - initial_attacker_allocation (configured strategy against initial x)
  - solve_equilibrium (main entry)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Union

import numpy as np

from channel_model import EquilibriumParams, validate_params
from equilibrium_metrics import (
    ConvergenceEntry,
    EquilibriumResult,
    PlayerAllocation,
    channel_summary,
    compute_metrics,
    is_symmetric_equilibrium,
)
from jammer_strategies import apply_jammer_strategy
from jamming_game import (
    active_set,
    attacker_gradient,
    attacker_utility,
    defender_gradient,
    defender_utility,
    project_to_budget,
)

__all__ = [
    "solve_equilibrium",
    "initial_defender_allocation",
    "initial_attacker_allocation",
    "prepare_params",
]


def prepare_params(params: Union[EquilibriumParams, dict]) -> EquilibriumParams:
    """Private validated copy of the caller's parameters (wire dict accepted)."""
    if isinstance(params, dict):
        params = EquilibriumParams.from_dict(params)
    else:
        params = replace(params, channel_config=list(params.channel_config))
    return validate_params(params)


# ------------------------------ Initialisation ------------------------------

def initial_defender_allocation(params: EquilibriumParams, rng: np.random.Generator) -> np.ndarray:
    """
    Deterministic: each owned decoy gets min(τ, remaining / #decoys) in turn,
    the remainder is split over owned real channels (equally, or ∝ h[d,i]
    when gain_weighted_init is set).
    Random: owned non-inactive channels get a uniform-random weighted split.
    """
    x = np.zeros((params.D, params.N))
    types, owners = params.types, params.owners

    for d in range(params.D):
        owned = np.flatnonzero((owners == d) & (types != "inactive"))
        if owned.size == 0:
            continue
        budget = params.PT[d]

        if params.random_init:
            w = rng.random(owned.size)
            if w.sum() <= 0:
                w = np.ones(owned.size)
            x[d, owned] = (w / w.sum()) * budget
            continue

        decoys = owned[types[owned] == "decoy"]
        reals = owned[types[owned] == "real"]
        remaining = budget
        for i in decoys:
            x[d, i] = min(params.tau, remaining / max(1, decoys.size))
            remaining -= x[d, i]

        if reals.size == 0:
            continue
        weights = params.h[d, reals] if params.gain_weighted_init else np.ones(reals.size)
        if weights.sum() <= 0:
            weights = np.ones(reals.size)
        x[d, reals] = remaining * weights / weights.sum()

    return x


def initial_attacker_allocation(params: EquilibriumParams, x: np.ndarray) -> np.ndarray:
    """Every jammer plays its configured strategy once against the initial x (no prior jamming)."""
    y = np.zeros((params.M, params.N))
    active = active_set(x, params)
    for m in range(params.M):
        y[m] = apply_jammer_strategy(m, x, y, params, active)
    return y


# ------------------------------- Main solver -------------------------------

def solve_equilibrium(
    params: Union[EquilibriumParams, dict],
    step_size: float = 0.5,       # fixed ascent step η before projection
    verbose: bool = False,
    track_hist: bool = True,
    progress=None,                # callable: progress(i, total, metrics: dict, ctx: dict) -> bool(stop?)
    progress_every: int = 1,
    progress_ctx=None,
) -> EquilibriumResult:
    """
    Run the damped best-response loop to convergence or exhaustion.

    Raises ParameterError (a ValueError) before iterating if params are
    malformed. Non-convergence is reported, not raised: the returned result
    has converged=False and status 'exhausted' (or 'stopped' if the progress
    callback asked to stop).
    """
    params = prepare_params(params)
    D, M, N = params.D, params.M, params.N
    alpha, eps = params.alpha, params.epsilon

    logging.info(f"Running equilibrium: D={D}, M={M}, N={N}, strategy={params.jammer_strategy}, "
                 f"objective={params.jammer_objective}, mode={params.attacker_mode}")

    rng = np.random.default_rng(None if params.seed is None else params.seed % 2**64)
    x = initial_defender_allocation(params, rng)
    y = initial_attacker_allocation(params, x)

    # an independent jammer only deviates from the shared policy under the gradient strategy
    independent_ascent = (params.attacker_mode == "independent"
                          and params.jammer_strategy == "gradient")

    history = []
    status = "exhausted"
    max_change = np.inf
    it = 0

    for it in range(1, params.max_iter + 1):
        x_old = x.copy()
        y_old = y.copy()
        d_deltas = np.zeros(D)
        a_deltas = np.zeros(M)

        # (i) defenders
        for d in range(D):
            grad = defender_gradient(d, x, y, params)
            x_hat = project_to_budget(x[d] + step_size * grad, params.PT[d])
            x[d] = (1.0 - alpha) * x_old[d] + alpha * x_hat
            d_deltas[d] = np.max(np.abs(x[d] - x_old[d]))

        # (ii) visibility after the defenders moved
        active = active_set(x, params)

        # (iii) jammers, in index order against the partially updated y
        for m in range(M):
            if independent_ascent:
                grad = attacker_gradient(m, x, y, params, active)
                y_hat = project_to_budget(y[m] + step_size * grad, params.PJ[m])
            else:
                y_hat = apply_jammer_strategy(m, x, y, params, active)
            y[m] = (1.0 - alpha) * y_old[m] + alpha * y_hat
            a_deltas[m] = np.max(np.abs(y[m] - y_old[m]))

        max_change = float(max(d_deltas.max(), a_deltas.max()))
        u_def = [defender_utility(d, x, y, params, only_real=True) for d in range(D)]
        u_att = [attacker_utility(m, x, y, params) for m in range(M)]

        if track_hist:
            history.append(ConvergenceEntry(
                iter=it,
                max_change=max_change,
                defender_utilities=u_def,
                attacker_utilities=u_att,
                defender_deltas=d_deltas.tolist(),
                attacker_deltas=a_deltas.tolist(),
            ))

        if verbose and (it <= 20 or it % 50 == 0 or it == params.max_iter):
            print(f"[iter {it}] maxChange={max_change:.3e}, U_def={sum(u_def):.4f}, "
                  f"U_att={sum(u_att):.4f}, |A|={int(active.sum())}")

        if max_change < eps:
            status = "converged"
            logging.info(f"Converged at iteration {it} with maxChange={max_change}")
            break

        if progress and (it == 1 or (it % progress_every == 0) or it == params.max_iter):
            stop = progress(
                i=it, total=params.max_iter,
                metrics={
                    "maxChange": max_change,
                    "defenderUtility": float(sum(u_def)),
                    "attackerUtility": float(sum(u_att)),
                    "activeChannels": int(active.sum()),
                },
                ctx=progress_ctx or {},
            )
            if stop:
                status = "stopped"
                logging.info(f"Stopped by progress callback at iteration {it}")
                break

    if status == "exhausted":
        logging.info(f"No convergence after {it} iterations (maxChange={max_change:.3e})")

    return _build_result(params, x, y, it, max_change, status, history)


def _build_result(params, x, y, iterations, max_change, status, history) -> EquilibriumResult:
    active = active_set(x, params)
    defenders = [PlayerAllocation(player_id=d, allocation=x[d].copy(),
                                  utility=defender_utility(d, x, y, params, only_real=True))
                 for d in range(params.D)]
    attackers = [PlayerAllocation(player_id=m, allocation=y[m].copy(),
                                  utility=attacker_utility(m, x, y, params))
                 for m in range(params.M)]

    metrics = compute_metrics(x, y, params, active)
    metrics.symmetric_equilibrium = is_symmetric_equilibrium(x, params.epsilon)

    return EquilibriumResult(
        defenders=defenders,
        attackers=attackers,
        converged=(status == "converged"),
        iterations=iterations,
        max_change=max_change,
        convergence_history=history,
        channel_summary=channel_summary(x, y, params, active),
        metrics=metrics,
        status=status,
    )
