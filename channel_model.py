# channel_model.py
"""
Static description of a deception-jamming game.

  N channels, D defenders (transmitters), M attackers (jammers).
  Channel i has a fixed type ∈ {real, decoy, inactive} and an owner d < D.
  h[d][i] ≥ 0 : defender gain,   g[m][i] ≥ 0 : attacker gain.
  PT[d], PJ[m] : power budgets.

This file contains the parameter container, its validation, and the small
helpers that build parameter sets (defaults, random gains, channel counts).
"""

from __future__ import annotations

import math
from dataclasses import MISSING, dataclass, replace
from typing import Dict, List, Optional

import numpy as np

__all__ = [
    "ChannelConfig",
    "EquilibriumParams",
    "ParameterError",
    "validate_params",
    "default_params",
    "random_gains",
    "count_channel_types",
    "channel_counts_per_defender",
]

# ------------------------------- Limits / enums -------------------------------

MAX_N = 100
MAX_D = 20
MAX_M = 20
MAX_ITER = 1000
MAX_POWER = 10000.0

CHANNEL_TYPES = ("real", "decoy", "inactive")
JAMMER_STRATEGIES = ("uniform", "topK", "gradient")
JAMMER_OBJECTIVES = ("deception", "oracle")
ATTACKER_MODES = ("coordinated", "independent")
GAIN_DISTRIBUTIONS = ("uniform", "rayleigh", "custom")

# wire names used by the web client
_STRATEGY_ALIASES = {
    "uniform": "uniform", "J1": "uniform", "J1_uniform": "uniform",
    "topK": "topK", "topk": "topK", "J2": "topK", "J2_topK": "topK",
    "gradient": "gradient", "J3": "gradient", "J3_optimization": "gradient",
}

# camelCase (wire) -> attribute
_WIRE_NAMES = {
    "maxIter": "max_iter",
    "channelConfig": "channel_config",
    "jammerStrategy": "jammer_strategy",
    "jammerObjective": "jammer_objective",
    "attackerMode": "attacker_mode",
    "topK": "top_k",
    "randomInit": "random_init",
    "gainWeightedInit": "gain_weighted_init",
    "gainDistribution": "gain_distribution",
}


class ParameterError(ValueError):
    """Raised when a parameter set is rejected before any iteration starts."""

    def __init__(self, field_name: str, message: str):
        super().__init__(message)
        self.field = field_name


@dataclass(frozen=True)
class ChannelConfig:
    type: str
    owner: int

    def to_dict(self) -> dict:
        return {"type": self.type, "owner": self.owner}


@dataclass
class EquilibriumParams:
    """Complete input of one equilibrium run."""
    N: int
    D: int
    M: int
    PT: List[float]
    PJ: List[float]
    sigma2: float
    tau: float
    h: np.ndarray
    g: np.ndarray
    alpha: float
    max_iter: int
    epsilon: float
    channel_config: List[ChannelConfig]
    jammer_strategy: str = "uniform"
    jammer_objective: str = "deception"
    attacker_mode: str = "coordinated"
    top_k: int = 3
    random_init: bool = False
    seed: Optional[int] = None
    gain_weighted_init: bool = False
    gain_distribution: str = "uniform"

    def __post_init__(self):
        if isinstance(self.channel_config, (str, bytes, dict)) or not hasattr(self.channel_config, "__iter__"):
            raise ParameterError("channelConfig", "channelConfig must be an array")
        config = []
        for i, c in enumerate(self.channel_config):
            if isinstance(c, ChannelConfig):
                config.append(c)
            elif isinstance(c, dict) and "type" in c and "owner" in c:
                config.append(ChannelConfig(type=c["type"], owner=c["owner"]))
            else:
                raise ParameterError("channelConfig",
                                     f"channelConfig[{i}] must be an object with type and owner")
        self.channel_config = config
        if isinstance(self.jammer_strategy, str):
            self.jammer_strategy = _STRATEGY_ALIASES.get(self.jammer_strategy, self.jammer_strategy)

    # ---------------------------- conversions ----------------------------

    @classmethod
    def from_dict(cls, data: Dict) -> "EquilibriumParams":
        """Build from a wire dict (camelCase) or from keyword-style names."""
        if not isinstance(data, dict):
            raise ParameterError("body", "Request body must be an object")
        kwargs = {}
        for key, value in data.items():
            name = _WIRE_NAMES.get(key, key)
            if name in cls.__dataclass_fields__:
                kwargs[name] = value
        missing = [f.name for f in cls.__dataclass_fields__.values()
                   if f.name not in kwargs and f.default is MISSING]
        if missing:
            raise ParameterError(missing[0], f"{missing[0]} is required")
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {
            "N": self.N, "D": self.D, "M": self.M,
            "PT": [float(p) for p in self.PT],
            "PJ": [float(p) for p in self.PJ],
            "sigma2": self.sigma2, "tau": self.tau,
            "h": np.asarray(self.h, dtype=float).tolist(),
            "g": np.asarray(self.g, dtype=float).tolist(),
            "alpha": self.alpha, "maxIter": self.max_iter, "epsilon": self.epsilon,
            "channelConfig": [c.to_dict() for c in self.channel_config],
            "jammerStrategy": self.jammer_strategy,
            "jammerObjective": self.jammer_objective,
            "attackerMode": self.attacker_mode,
            "topK": self.top_k,
            "randomInit": self.random_init,
            "seed": self.seed,
            "gainWeightedInit": self.gain_weighted_init,
            "gainDistribution": self.gain_distribution,
        }

    def copy(self) -> "EquilibriumParams":
        """Independent copy (gain matrices and lists are not shared)."""
        return replace(
            self,
            PT=list(self.PT), PJ=list(self.PJ),
            h=np.array(self.h, dtype=float), g=np.array(self.g, dtype=float),
            channel_config=list(self.channel_config),
        )

    # ---------------------------- channel views ----------------------------

    @property
    def types(self) -> np.ndarray:
        return np.array([c.type for c in self.channel_config])

    @property
    def owners(self) -> np.ndarray:
        return np.array([c.owner for c in self.channel_config], dtype=int)


# -------------------------------- Validation ---------------------------------

def _check_int(value, name: str, lo: int, hi: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer, float)):
        raise ParameterError(name, f"{name} must be an integer")
    if not math.isfinite(value) or int(value) != value:
        raise ParameterError(name, f"{name} must be an integer")
    if value < lo or value > hi:
        raise ParameterError(name, f"{name} must be between {lo} and {hi}")
    return int(value)


def _check_number(value, name: str, lo: float, hi: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ParameterError(name, f"{name} must be a finite number")
    if not math.isfinite(value):
        raise ParameterError(name, f"{name} must be a finite number")
    if value < lo or value > hi:
        raise ParameterError(name, f"{name} must be between {lo} and {hi}")
    return float(value)


def _check_budgets(values, name: str, length: int) -> List[float]:
    if isinstance(values, (str, bytes)) or not hasattr(values, "__len__"):
        raise ParameterError(name, f"{name} must be an array")
    if len(values) != length:
        raise ParameterError(name, f"{name} must have length {length}, got {len(values)}")
    return [_check_number(v, f"{name}[{k}]", 0.0, MAX_POWER) for k, v in enumerate(values)]


def _check_bool(value, name: str) -> bool:
    if not isinstance(value, (bool, np.bool_)):
        raise ParameterError(name, f"{name} must be a boolean")
    return bool(value)


def _check_gains(mat, name: str, rows: int, cols: int) -> np.ndarray:
    try:
        raw = np.asarray(mat)
    except (TypeError, ValueError):
        raise ParameterError(name, f"{name} must be a 2D array of numbers")
    # numeric strings or objects would otherwise be coerced by the float cast
    if raw.dtype.kind not in "biuf":
        raise ParameterError(name, f"{name} must be a 2D array of numbers")
    arr = np.array(raw, dtype=float)
    if arr.ndim != 2 or arr.shape != (rows, cols):
        raise ParameterError(name, f"{name} must have shape ({rows}, {cols})")
    if not np.all(np.isfinite(arr)):
        raise ParameterError(name, f"{name} must contain finite numbers")
    if np.any(arr < 0):
        raise ParameterError(name, f"{name} must contain non-negative numbers")
    return arr


def validate_params(params: EquilibriumParams) -> EquilibriumParams:
    """
    Structural and range checks; raises ParameterError naming the first bad field.
    Normalises numeric fields in place (ints, float lists, numpy gain arrays).
    """
    params.N = _check_int(params.N, "N", 1, MAX_N)
    params.D = _check_int(params.D, "D", 1, MAX_D)
    params.M = _check_int(params.M, "M", 1, MAX_M)
    params.sigma2 = _check_number(params.sigma2, "sigma2", 1e-4, MAX_POWER)
    params.tau = _check_number(params.tau, "tau", 0.0, MAX_POWER)
    params.alpha = _check_number(params.alpha, "alpha", 0.01, 1.0)
    params.max_iter = _check_int(params.max_iter, "maxIter", 1, MAX_ITER)
    params.epsilon = _check_number(params.epsilon, "epsilon", 1e-7, 1.0)
    params.top_k = _check_int(params.top_k, "topK", 1, MAX_N)

    params.PT = _check_budgets(params.PT, "PT", params.D)
    params.PJ = _check_budgets(params.PJ, "PJ", params.M)
    params.h = _check_gains(params.h, "h", params.D, params.N)
    params.g = _check_gains(params.g, "g", params.M, params.N)

    if len(params.channel_config) != params.N:
        raise ParameterError("channelConfig",
                             f"channelConfig must have length {params.N}, got {len(params.channel_config)}")
    config = []
    for i, c in enumerate(params.channel_config):
        if c.type not in CHANNEL_TYPES:
            raise ParameterError("channelConfig",
                                 f"channelConfig[{i}].type must be one of {', '.join(CHANNEL_TYPES)}")
        owner = _check_int(c.owner, f"channelConfig[{i}].owner", 0, params.D - 1)
        config.append(ChannelConfig(type=c.type, owner=owner))
    params.channel_config = config

    if params.jammer_strategy not in JAMMER_STRATEGIES:
        raise ParameterError("jammerStrategy",
                             "jammerStrategy must be uniform, topK, or gradient")
    if params.jammer_objective not in JAMMER_OBJECTIVES:
        raise ParameterError("jammerObjective", "jammerObjective must be deception or oracle")
    if params.attacker_mode not in ATTACKER_MODES:
        raise ParameterError("attackerMode", "attackerMode must be coordinated or independent")
    if params.gain_distribution not in GAIN_DISTRIBUTIONS:
        raise ParameterError("gainDistribution", "gainDistribution must be uniform, rayleigh, or custom")
    if params.seed is not None:
        # any integer; the solver folds it into the generator's range
        params.seed = _check_int(params.seed, "seed", -math.inf, math.inf)
    params.random_init = _check_bool(params.random_init, "randomInit")
    params.gain_weighted_init = _check_bool(params.gain_weighted_init, "gainWeightedInit")
    return params


# ------------------------------ Builders / helpers ------------------------------

def default_params(N: int = 12) -> EquilibriumParams:
    """
    Two defenders, two jammers. Channel i belongs to defender i % 2;
    each defender gets 3 real channels, then 2 decoys, the rest inactive.
    """
    D, M = 2, 2
    config = []
    for i in range(N):
        owner = i % D
        pos = i // D
        if pos < 3:
            ctype = "real"
        elif pos < 5:
            ctype = "decoy"
        else:
            ctype = "inactive"
        config.append(ChannelConfig(type=ctype, owner=owner))

    return EquilibriumParams(
        N=N, D=D, M=M,
        PT=[10.0] * D, PJ=[10.0] * M,
        sigma2=1.0, tau=0.2,
        h=np.ones((D, N)), g=np.ones((M, N)),
        alpha=0.3, max_iter=100, epsilon=1e-3,
        channel_config=config,
        jammer_strategy="uniform", jammer_objective="deception",
        attacker_mode="coordinated", top_k=3,
        random_init=False,
    )


def random_gains(N: int, D: int, M: int, distribution: str = "uniform",
                 seed: Optional[int] = None):
    """
    Draw h (D×N) and g (M×N).
      uniform  : U[0.5, 2.0]
      rayleigh : Rayleigh(σ=1), i.e. sqrt(−2 ln(1−u))
    Returns (h, g).
    """
    rng = np.random.default_rng(seed)
    if distribution == "uniform":
        h = rng.uniform(0.5, 2.0, size=(D, N))
        g = rng.uniform(0.5, 2.0, size=(M, N))
    elif distribution == "rayleigh":
        h = rng.rayleigh(1.0, size=(D, N))
        g = rng.rayleigh(1.0, size=(M, N))
    else:
        raise ValueError(f"Unsupported gain distribution: {distribution!r}")
    return h, g


def count_channel_types(config) -> Dict[str, int]:
    counts = {t: 0 for t in CHANNEL_TYPES}
    for c in config:
        counts[c.type] += 1
    return counts


def channel_counts_per_defender(config, D: int) -> Dict[str, List[int]]:
    real = [0] * D
    decoy = [0] * D
    for c in config:
        if c.type == "real":
            real[c.owner] += 1
        elif c.type == "decoy":
            decoy[c.owner] += 1
    return {"real": real, "decoy": decoy}
