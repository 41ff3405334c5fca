# equilibrium_sweep.py
"""
Caller-side orchestration around the equilibrium engine.

  - sweep_params / run_sweep : re-run the engine while one parameter
    (ND, tau, N, M, D, PJ) moves over a range. Runs share no state, so the
    points are fanned out over a process pool.
  - compare_with_baselines   : second passes that fill the reserved metrics
        oracleGap               = U_real(oracle jammer) − U_real(deceived jammer)
        improvementOverNoDecoys = 100 · (U_real − U_real(ND=0)) / U_real(ND=0)
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from tqdm import tqdm

from bestrespsolver import prepare_params, solve_equilibrium
from channel_model import ChannelConfig, EquilibriumParams, count_channel_types
from equilibrium_metrics import EquilibriumResult

__all__ = [
    "SWEEP_VARIABLES",
    "SweepPoint",
    "SweepResult",
    "sweep_params",
    "sweep_range",
    "run_sweep",
    "compare_with_baselines",
]

SWEEP_VARIABLES = ("ND", "tau", "N", "M", "D", "PJ")
MAX_SWEEP_POINTS = 50
MIN_SWEEP_N = 4
# budget given to players added by an M / D sweep
DEFAULT_PLAYER_BUDGET = 10.0


@dataclass
class SweepPoint:
    variable: float
    U_real: float
    dilution_factor: float
    jammer_waste: float
    converged: bool
    iterations: int
    U_oracle: Optional[float] = None
    oracle_gap: Optional[float] = None

    def to_dict(self) -> dict:
        out = {
            "variable": self.variable,
            "U_real": self.U_real,
            "dilutionFactor": self.dilution_factor,
            "jammerWaste": self.jammer_waste,
            "converged": self.converged,
            "iterations": self.iterations,
        }
        if self.U_oracle is not None:
            out["U_oracle"] = self.U_oracle
            out["oracleGap"] = self.oracle_gap
        return out


@dataclass
class SweepResult:
    variable: str
    points: List[SweepPoint]
    baseline: SweepPoint
    best_point: SweepPoint
    oracle_baseline: Optional[SweepPoint] = field(default=None)

    def to_dict(self) -> dict:
        out = {
            "variable": self.variable,
            "points": [p.to_dict() for p in self.points],
            "baseline": self.baseline.to_dict(),
            "bestPoint": self.best_point.to_dict(),
        }
        if self.oracle_baseline is not None:
            out["oracleBaseline"] = self.oracle_baseline.to_dict()
        return out

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([p.to_dict() for p in self.points])


# --------------------------- Parameter rewriting ---------------------------

def _resize_rows(mat: np.ndarray, n_cols: int) -> np.ndarray:
    """Truncate columns, or pad them with unit gain."""
    mat = np.asarray(mat, dtype=float)
    if n_cols <= mat.shape[1]:
        return mat[:, :n_cols].copy()
    pad = np.ones((mat.shape[0], n_cols - mat.shape[1]))
    return np.hstack([mat, pad])


def sweep_params(params: EquilibriumParams, variable: str, value: float) -> EquilibriumParams:
    """
    Copy of params with `variable` moved to `value`:
      ND  : keep real channels; the first `value` non-real channels become
            decoys, the remaining non-real ones inactive
      tau : sensing threshold
      N   : channel count (≥ 4); new channels are inactive with unit gains
      M/D : player count; new players get budget 10 and unit gains,
            channels of removed defenders go to owner % D
      PJ  : total jammer budget, split evenly across attackers
    """
    p = params.copy()

    if variable == "ND":
        counts = count_channel_types(p.channel_config)
        target = min(int(round(value)), p.N - counts["real"])
        made = 0
        config = []
        for c in p.channel_config:
            if c.type == "real":
                config.append(c)
            elif made < target:
                made += 1
                config.append(ChannelConfig(type="decoy", owner=c.owner))
            else:
                config.append(ChannelConfig(type="inactive", owner=c.owner))
        p.channel_config = config

    elif variable == "tau":
        p.tau = float(value)

    elif variable == "N":
        new_n = max(MIN_SWEEP_N, int(round(value)))
        if new_n != p.N:
            p.h = _resize_rows(p.h, new_n)
            p.g = _resize_rows(p.g, new_n)
            if new_n > len(p.channel_config):
                extra = new_n - len(p.channel_config)
                p.channel_config = p.channel_config + [
                    ChannelConfig(type="inactive", owner=k % p.D) for k in range(extra)
                ]
            else:
                p.channel_config = p.channel_config[:new_n]
            p.N = new_n

    elif variable == "M":
        new_m = max(1, int(round(value)))
        if new_m > p.M:
            extra = new_m - p.M
            p.PJ = p.PJ + [DEFAULT_PLAYER_BUDGET] * extra
            p.g = np.vstack([p.g, np.ones((extra, p.N))])
        else:
            p.PJ = p.PJ[:new_m]
            p.g = p.g[:new_m].copy()
        p.M = new_m

    elif variable == "D":
        new_d = max(1, int(round(value)))
        if new_d > p.D:
            extra = new_d - p.D
            p.PT = p.PT + [DEFAULT_PLAYER_BUDGET] * extra
            p.h = np.vstack([p.h, np.ones((extra, p.N))])
        else:
            p.PT = p.PT[:new_d]
            p.h = p.h[:new_d].copy()
        p.channel_config = [
            ChannelConfig(type=c.type, owner=c.owner % new_d) if c.owner >= new_d else c
            for c in p.channel_config
        ]
        p.D = new_d

    elif variable == "PJ":
        per_attacker = float(value) / p.M
        p.PJ = [per_attacker] * p.M

    else:
        raise ValueError(f"Unknown sweep variable {variable!r}; expected one of {', '.join(SWEEP_VARIABLES)}")

    return p


def sweep_range(start: float, stop: float, step: float) -> List[float]:
    """Inclusive arithmetic range start, start+step, …, ≤ stop."""
    if step <= 0:
        raise ValueError("step must be positive")
    if stop < start:
        raise ValueError("stop must not be below start")
    n = int(np.floor((stop - start) / step + 1e-9)) + 1
    if n > MAX_SWEEP_POINTS:
        raise ValueError(f"sweep range exceeds maximum of {MAX_SWEEP_POINTS} points")
    return [round(start + k * step, 10) for k in range(n)]


# ------------------------------- Sweep runner -------------------------------

def _run_point(params: EquilibriumParams, variable: str, value: float,
               with_oracle: bool) -> SweepPoint:
    """One sweep point; a point whose parameters are rejected is recorded as zeros."""
    try:
        p = sweep_params(params, variable, value)
        res = solve_equilibrium(p, track_hist=False)
        point = SweepPoint(
            variable=value,
            U_real=res.metrics.total_real_throughput,
            dilution_factor=res.metrics.dilution_factor,
            jammer_waste=res.metrics.jammer_waste_on_decoys,
            converged=res.converged,
            iterations=res.iterations,
        )
        if with_oracle:
            oracle = solve_equilibrium(replace(p, jammer_objective="oracle"), track_hist=False)
            point.U_oracle = oracle.metrics.total_real_throughput
            point.oracle_gap = point.U_oracle - point.U_real
        return point
    except ValueError as e:
        logging.error(f"Sweep point {variable}={value} failed: {e}")
        return SweepPoint(variable=value, U_real=0.0, dilution_factor=0.0,
                          jammer_waste=0.0, converged=False, iterations=0)


def _run_point_star(job):
    return _run_point(*job)


def run_sweep(
    params,
    variable: str,
    values: Sequence[float],
    workers: Optional[int] = None,   # None: one per CPU, 1: run in-process
    with_oracle: bool = False,
    show_progress: bool = False,
) -> SweepResult:
    """
    Baseline run at values[0], then one independent run per value.
    The best point maximises U_real, starting from the baseline.
    """
    if variable not in SWEEP_VARIABLES:
        raise ValueError(f"Unknown sweep variable {variable!r}; expected one of {', '.join(SWEEP_VARIABLES)}")
    values = list(values)
    if not values:
        raise ValueError("values must not be empty")
    if len(values) > MAX_SWEEP_POINTS:
        raise ValueError(f"sweep range exceeds maximum of {MAX_SWEEP_POINTS} points")

    base = prepare_params(params)
    logging.info(f"Sweeping {variable} over {len(values)} points (workers={workers}, oracle={with_oracle})")

    baseline = _run_point(base, variable, values[0], with_oracle)
    oracle_baseline = None
    if with_oracle:
        oracle_baseline = _run_point(replace(base, jammer_objective="oracle"), variable, values[0], False)

    jobs = [(base, variable, v, with_oracle) for v in values]
    if workers == 1 or len(jobs) == 1:
        points = [_run_point_star(j) for j in tqdm(jobs, desc=f"sweep {variable}", disable=not show_progress)]
    else:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            points = list(tqdm(pool.map(_run_point_star, jobs), total=len(jobs),
                               desc=f"sweep {variable}", disable=not show_progress))

    best = baseline
    for point in points:
        if point.U_real > best.U_real:
            best = point

    return SweepResult(variable=variable, points=points, baseline=baseline,
                       best_point=best, oracle_baseline=oracle_baseline)


# ---------------------------- Comparison passes ----------------------------

def compare_with_baselines(params, oracle: bool = True, no_decoys: bool = True,
                           **solver_kwargs) -> EquilibriumResult:
    """
    Solve params as given, then run the requested comparison passes and
    fill metrics.oracle_gap / metrics.improvement_over_no_decoys.
    The oracle run is attached as result.oracle_result.
    """
    base = prepare_params(params)
    result = solve_equilibrium(base, **solver_kwargs)
    u_real = result.metrics.total_real_throughput

    if oracle:
        oracle_run = solve_equilibrium(replace(base, jammer_objective="oracle"), **solver_kwargs)
        result.oracle_result = oracle_run
        result.metrics.oracle_gap = oracle_run.metrics.total_real_throughput - u_real

    if no_decoys:
        plain = solve_equilibrium(sweep_params(base, "ND", 0), **solver_kwargs)
        u0 = plain.metrics.total_real_throughput
        result.metrics.improvement_over_no_decoys = 100.0 * (u_real - u0) / u0 if u0 > 0 else 0.0

    return result
