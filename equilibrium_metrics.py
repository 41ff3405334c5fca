# equilibrium_metrics.py
"""
Post-processing of a terminal (x, y) state into per-channel and aggregate
diagnostics, and the result containers returned by the solver.

Aggregate metrics:
  totalRealThroughput  = Σ_{i real, x>0} log2(1 + SINR_i)
  totalDecoyPower      = Σ_{i decoy} x[o(i), i]
  jammerWasteOnDecoys  = (Σ_{i decoy} Σ_m y[m, i]) / (Σ_i Σ_m y[m, i])
  dilutionFactor       = |A| / |R|   (1 when there are no real channels)
  symmetricEquilibrium = every defender row within 10·ε (L1) of defender 0

oracleGap and improvementOverNoDecoys are filled only by a caller that runs
the comparison passes (see equilibrium_sweep.compare_with_baselines).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from jamming_game import owner_power, sinr

__all__ = [
    "PlayerAllocation",
    "ConvergenceEntry",
    "ChannelSummary",
    "EquilibriumMetrics",
    "EquilibriumResult",
    "compute_metrics",
    "channel_summary",
    "is_symmetric_equilibrium",
]


@dataclass
class PlayerAllocation:
    player_id: int
    allocation: np.ndarray
    utility: float

    def to_dict(self) -> dict:
        return {"playerId": self.player_id,
                "allocation": [float(v) for v in self.allocation],
                "utility": float(self.utility)}


@dataclass
class ConvergenceEntry:
    iter: int
    max_change: float
    defender_utilities: List[float]
    attacker_utilities: List[float]
    defender_deltas: List[float]
    attacker_deltas: List[float]

    def to_dict(self) -> dict:
        return {
            "iter": self.iter,
            "maxChange": float(self.max_change),
            "defenderUtilities": [float(v) for v in self.defender_utilities],
            "attackerUtilities": [float(v) for v in self.attacker_utilities],
            "defenderDeltas": [float(v) for v in self.defender_deltas],
            "attackerDeltas": [float(v) for v in self.attacker_deltas],
        }


@dataclass
class ChannelSummary:
    channel: int
    owner: int
    channel_type: str
    total_defender_power: float
    total_attacker_power: float
    sinr: float
    rate: float
    h: float
    g: float
    is_active: bool

    def to_dict(self) -> dict:
        return {
            "channel": self.channel, "owner": self.owner, "channelType": self.channel_type,
            "totalDefenderPower": self.total_defender_power,
            "totalAttackerPower": self.total_attacker_power,
            "sinr": self.sinr, "rate": self.rate,
            "h": self.h, "g": self.g, "isActive": self.is_active,
        }


@dataclass
class EquilibriumMetrics:
    jammer_waste_on_decoys: float
    dilution_factor: float
    total_real_throughput: float
    total_decoy_power: float
    active_channel_count: int
    real_channel_count: int
    symmetric_equilibrium: bool = False
    oracle_gap: float = 0.0
    improvement_over_no_decoys: float = 0.0

    def to_dict(self) -> dict:
        return {
            "jammerWasteOnDecoys": self.jammer_waste_on_decoys,
            "dilutionFactor": self.dilution_factor,
            "oracleGap": self.oracle_gap,
            "improvementOverNoDecoys": self.improvement_over_no_decoys,
            "totalRealThroughput": self.total_real_throughput,
            "totalDecoyPower": self.total_decoy_power,
            "activeChannelCount": self.active_channel_count,
            "realChannelCount": self.real_channel_count,
            "symmetricEquilibrium": self.symmetric_equilibrium,
        }


@dataclass
class EquilibriumResult:
    """Everything a caller gets back from one run (converged or not)."""
    defenders: List[PlayerAllocation]
    attackers: List[PlayerAllocation]
    converged: bool
    iterations: int
    max_change: float
    convergence_history: List[ConvergenceEntry]
    channel_summary: List[ChannelSummary]
    metrics: EquilibriumMetrics
    status: str = "exhausted"
    oracle_result: Optional["EquilibriumResult"] = field(default=None, repr=False)

    @property
    def x(self) -> np.ndarray:
        return np.vstack([p.allocation for p in self.defenders])

    @property
    def y(self) -> np.ndarray:
        return np.vstack([p.allocation for p in self.attackers])

    def to_dict(self) -> dict:
        out = {
            "defenders": [p.to_dict() for p in self.defenders],
            "attackers": [p.to_dict() for p in self.attackers],
            "converged": self.converged,
            "status": self.status,
            "iterations": self.iterations,
            "maxChange": float(self.max_change),
            "convergenceHistory": [e.to_dict() for e in self.convergence_history],
            "channelSummary": [c.to_dict() for c in self.channel_summary],
            "metrics": self.metrics.to_dict(),
        }
        if self.oracle_result is not None:
            out["oracleResult"] = {
                "defenders": [p.to_dict() for p in self.oracle_result.defenders],
                "attackers": [p.to_dict() for p in self.oracle_result.attackers],
                "metrics": self.oracle_result.metrics.to_dict(),
            }
        return out


# ------------------------------- Builders -------------------------------

def compute_metrics(x: np.ndarray, y: np.ndarray, params, active: np.ndarray) -> EquilibriumMetrics:
    types = params.types
    real = types == "real"
    decoy = types == "decoy"
    xo = owner_power(x, params)
    jam = y.sum(axis=0)
    total_jam = float(jam.sum())

    s = sinr(x, y, params)
    rated = real & (xo > 0)
    throughput = float(np.sum(np.log2(1.0 + s[rated])))

    n_real = int(np.count_nonzero(real))
    n_active = int(np.count_nonzero(active))
    return EquilibriumMetrics(
        jammer_waste_on_decoys=float(jam[decoy].sum()) / total_jam if total_jam > 0 else 0.0,
        dilution_factor=n_active / n_real if n_real > 0 else 1.0,
        total_real_throughput=throughput,
        total_decoy_power=float(xo[decoy].sum()),
        active_channel_count=n_active,
        real_channel_count=n_real,
    )


def channel_summary(x: np.ndarray, y: np.ndarray, params, active: np.ndarray) -> List[ChannelSummary]:
    """One row per channel; g is the attacker-average gain on that channel."""
    xo = owner_power(x, params)
    s = sinr(x, y, params)
    rows = []
    for i, c in enumerate(params.channel_config):
        rows.append(ChannelSummary(
            channel=i,
            owner=c.owner,
            channel_type=c.type,
            total_defender_power=float(xo[i]),
            total_attacker_power=float(y[:, i].sum()),
            sinr=float(s[i]),
            rate=float(np.log2(1.0 + s[i])),
            h=float(params.h[c.owner, i]),
            g=float(params.g[:, i].mean()),
            is_active=bool(active[i]),
        ))
    return rows


def is_symmetric_equilibrium(x: np.ndarray, epsilon: float) -> bool:
    """
    Degenerate-outcome detector: True when every defender's row is within
    10·ε in L1 distance of defender 0. A single defender is never reported
    as symmetric.
    """
    if x.shape[0] <= 1:
        return False
    diffs = np.abs(x[1:] - x[0]).sum(axis=1)
    return bool(np.all(diffs <= 10.0 * epsilon))
