"""
SMC-PHD filter configuration.
"""

import warnings
from dataclasses import dataclass, fields
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from ..exceptions import ConfigurationError, UnsupportedOptionError


MODES = ("standard", "search")
BIRTH_STRATEGIES = ("expansion", "mixture", "obs_oriented")
RESAMPLE_METHODS = ("systematic", "multinomial", "stratified", "residual")

# Per-measurement birth allocation for obs_oriented, by mode. Not validated.
DEFAULT_PARTICLES_PER_MEASUREMENT = {"standard": 100, "search": 10}

# Short-form configuration keys -> PHDConfig fields
CONFIG_KEYS = {
    "type": "mode",
    "Np": "n_particles",
    "J_k": "n_birth",
    "lambda": "clutter_rate",
    "Pdeath": "death_prob",
    "PD": "detection_prob",
    "Pbirth": "birth_prob",
    "P_conf": "confirm_prob",
    "Np_conf": "n_confirm",
    "resampling_strategy": "resample_method",
    "resample_strategy": "resample_method",
}


@dataclass
class PHDConfig:
    """
    Scalar settings of an SMC-PHD filter.

    Attributes:
        clutter_rate: Clutter intensity per unit volume (lambda), Poisson clutter
        mode: "standard" PHD, or "search" with track confirmation
        n_particles: Particles kept after each resample (Np)
        birth_strategy: How birth particles are generated
        n_birth: Birth particles per step (J_k); expansion, search obs_oriented
        death_prob: Probability a target disappears between steps (Pdeath)
        detection_prob: Probability a target is detected (PD)
        birth_prob: Birth probability for the mixture strategy (Pbirth)
        confirm_prob: Confirmation threshold on pi_j in search mode (P_conf)
        n_confirm: Particles per spawned track (Np_conf, default n_particles)
        resample_method: Resampling algorithm
        k: Time index or interval passed to transition and likelihood (> 0)
        birth_mass: Total weight given to birth particles each step
        particles_per_measurement: obs_oriented allocation per measurement
                                   (default 100 standard, 10 search)
        allow_experimental: Must be True to use obs_oriented
    """
    clutter_rate: float
    mode: Literal["standard", "search"] = "standard"
    n_particles: int = 1
    birth_strategy: Literal["expansion", "mixture", "obs_oriented"] = "expansion"
    n_birth: Optional[int] = None
    death_prob: float = 0.005
    detection_prob: float = 0.9
    birth_prob: Optional[float] = None
    confirm_prob: float = 0.9
    n_confirm: Optional[int] = None
    resample_method: Literal["systematic", "multinomial", "stratified", "residual"] = "systematic"
    k: float = 1
    birth_mass: float = 0.2
    particles_per_measurement: Optional[int] = None
    allow_experimental: bool = False

    def __post_init__(self):
        self._check_options()
        self._check_ranges()
        self._check_strategy_requirements()

        if self.n_confirm is None:
            self.n_confirm = self.n_particles
        if self.particles_per_measurement is None:
            self.particles_per_measurement = DEFAULT_PARTICLES_PER_MEASUREMENT[self.mode]

    def _check_options(self):
        for name, value, allowed in (
            ("mode", self.mode, MODES),
            ("birth_strategy", self.birth_strategy, BIRTH_STRATEGIES),
            ("resample_method", self.resample_method, RESAMPLE_METHODS),
        ):
            if value not in allowed:
                raise UnsupportedOptionError(
                    f"Unknown {name}: {value!r} (expected one of {list(allowed)})"
                )

    def _check_ranges(self):
        _check_count("n_particles", self.n_particles)
        for name in ("n_birth", "n_confirm", "particles_per_measurement"):
            value = getattr(self, name)
            if value is not None:
                _check_count(name, value)

        for name in ("death_prob", "detection_prob", "confirm_prob"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
        if self.birth_prob is not None and not 0.0 < self.birth_prob <= 1.0:
            raise ConfigurationError(f"birth_prob must lie in (0, 1], got {self.birth_prob}")

        if not self.clutter_rate > 0.0:
            raise ConfigurationError(f"clutter_rate must be positive, got {self.clutter_rate}")
        if not self.k > 0:
            raise ConfigurationError(f"k must be positive, got {self.k}")
        if self.birth_mass < 0.0:
            raise ConfigurationError(f"birth_mass must be non-negative, got {self.birth_mass}")

    def _check_strategy_requirements(self):
        if self.birth_strategy == "expansion" and self.n_birth is None:
            raise ConfigurationError(
                'Birth strategy is "expansion" but no number of birth particles (n_birth) is given'
            )
        if self.birth_strategy == "mixture" and self.birth_prob is None:
            raise ConfigurationError(
                'Birth strategy is "mixture" but no birth probability (birth_prob) is given'
            )
        if self.birth_strategy == "obs_oriented":
            if not self.allow_experimental:
                raise ConfigurationError(
                    'Birth strategy "obs_oriented" is experimental; '
                    'pass allow_experimental=True to use it'
                )
            if self.mode == "search" and self.n_birth is None:
                raise ConfigurationError(
                    'Search-mode "obs_oriented" births need n_birth for the generic birth batch'
                )
            warnings.warn(
                'Birth strategy "obs_oriented" is experimental; its per-measurement '
                'particle allocation is not a validated default.',
                UserWarning,
                stacklevel=4,
            )

    @property
    def survival_prob(self) -> float:
        return 1.0 - self.death_prob

    @property
    def confirms_tracks(self) -> bool:
        """True when the search-mode track confirmation path is active."""
        return self.mode == "search"

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> Tuple["PHDConfig", Dict[str, Any]]:
        """
        Build a config from a map using field names or short-form keys (Np, lambda, ...).

        Returns:
            config: PHDConfig
            rest: Entries that are not config fields (particles, function handles)
        """
        names = {f.name for f in fields(cls)}
        kwargs = {}
        rest = {}
        for key, value in mapping.items():
            name = CONFIG_KEYS.get(key, key)
            if name in names:
                if name == "resample_method" and isinstance(value, str):
                    value = value.replace("_resampling", "")
                kwargs[name] = value
            else:
                rest[key] = value

        if "clutter_rate" not in kwargs:
            raise ConfigurationError("Clutter rate (lambda) is required")
        return cls(**kwargs), rest


def _check_count(name: str, value):
    if isinstance(value, bool) or int(value) != value or value <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value}")
