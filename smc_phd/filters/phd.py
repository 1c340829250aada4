"""
Sequential Monte Carlo PHD filter.

- "standard": generic SMC-PHD filter of Vo, Singh & Doucet (2005)
- "search":   PHD filter parameterised to detect, initialise and confirm
              targets, after Horridge & Maskell (2011)

The filter holds one particle cloud and is driven one scan at a time by
`predict` and `update`, or over a whole measurement sequence by `filter`.
"""

import warnings
import numpy as np
from typing import Any, List, Mapping, Optional, Sequence
from numpy.random import Generator, default_rng

from .base import PHDResult, PHDUpdateResult, Track
from .birth import make_birth_strategy
from .cloud import ParticleCloud
from .config import PHDConfig
from .update import PHDUpdater
from ..models.base import MultiTargetModel
from ..exceptions import ConfigurationError, SizeMismatchError


# Short-form function handle keys -> model fields
HANDLE_KEYS = {
    "sys": "transition",
    "sys_noise": "noise_sampler",
    "obs_model": "observation_transform",
    "likelihood": "likelihood",
    "gen_x0": "birth_sampler",
    "gen_x1": "birth_sampler_near",
}


class SMCPHDFilter:
    """
    Particle PHD filter for multi-target tracking.

    Attributes:
        model: MultiTargetModel providing dynamics, observation and birth
        config: PHDConfig
        cloud: ParticleCloud holding the current PHD approximation
        k: Time index or interval passed to the model
    """

    def __init__(
        self,
        model: MultiTargetModel,
        config: PHDConfig,
        particles: Optional[np.ndarray] = None,
        weights: Optional[np.ndarray] = None,
        seed: Optional[int] = None,
        rng: Optional[Generator] = None,
    ):
        """
        Args:
            model: MultiTargetModel
            config: PHDConfig
            particles: [Np, nx] Initial particles (default: drawn from the birth density)
            weights: [Np] Initial weights (default: uniform 1/Np)
            seed: Random seed (ignored if rng is provided)
            rng: NumPy random generator

        Raises:
            MissingDependencyError: a required model function is missing
            SizeMismatchError: particles or weights disagree with n_particles
        """
        self.model = model
        self.config = config
        self.rng = default_rng(seed) if rng is None else rng
        self.k = config.k

        self.birth = make_birth_strategy(config)
        self.updater = PHDUpdater(config)
        model.require(*self.updater.required, *self.birth.required)

        particles, weights = self._initial_cloud(particles, weights)
        self.cloud = ParticleCloud(particles, weights, capacity=self.birth.capacity())

    @classmethod
    def from_dict(
        cls,
        mapping: Mapping[str, Any],
        model: Optional[MultiTargetModel] = None,
        seed: Optional[int] = None,
        rng: Optional[Generator] = None,
    ) -> "SMCPHDFilter":
        """
        Build a filter from a single configuration map.

        Accepts PHDConfig field names or short-form keys (Np, J_k, lambda,
        PD, Pdeath, ...). Function handles (sys, sys_noise, obs_model,
        likelihood, gen_x0, gen_x1) are collected into a MultiTargetModel
        unless `model` is given; then `state_dim` and `obs_dim` entries are
        required.
        """
        config, rest = PHDConfig.from_dict(mapping)

        particles = rest.pop("particles", None)
        weights = rest.pop("w", rest.pop("weights", None))

        if model is None:
            handles = {HANDLE_KEYS.get(key, key): value for key, value in rest.items()}
            if "state_dim" not in handles or "obs_dim" not in handles:
                raise ConfigurationError(
                    "state_dim and obs_dim are required when no model is given"
                )
            model = MultiTargetModel(
                state_dim=int(handles.pop("state_dim")),
                obs_dim=int(handles.pop("obs_dim")),
                **{name: handles[name] for name in HANDLE_KEYS.values() if name in handles},
            )

        return cls(model, config, particles=particles, weights=weights, seed=seed, rng=rng)

    def _initial_cloud(self, particles, weights):
        Np = self.config.n_particles
        nx = self.model.state_dim

        if particles is None:
            self.model.require("sample_birth")
            particles = self.model.sample_birth(Np, self.rng)
        else:
            particles = np.asarray(particles, dtype=np.float64)
            if particles.shape != (Np, nx):
                raise SizeMismatchError(
                    f"Supplied particle set has shape {particles.shape}, expected "
                    f"(n_particles={Np}, state_dim={nx}); particles are rows"
                )

        if weights is None:
            weights = np.full(Np, 1.0 / Np)
        else:
            weights = np.asarray(weights, dtype=np.float64)
            if weights.shape != (Np,):
                raise SizeMismatchError(
                    f"Supplied weights have shape {weights.shape} for {Np} particles"
                )
            if np.all(weights == 0):
                warnings.warn(
                    "Initial weights are all zero. Using uniform weights 1/Np.",
                    RuntimeWarning,
                )
                weights = np.full(Np, 1.0 / Np)

        return particles, weights

    def _as_measurements(self, measurements) -> np.ndarray:
        """
        Coerce a scan to an [M, ny] array; None or an empty sequence means no
        measurements. A flat sequence is read as M scalars only when ny == 1.
        """
        ny = self.model.obs_dim
        if measurements is None:
            return np.zeros((0, ny))
        Z = np.asarray(measurements, dtype=np.float64)
        if Z.size == 0:
            return np.zeros((0, ny))
        if Z.ndim == 1 and ny == 1:
            return Z[:, np.newaxis]
        if Z.ndim != 2 or Z.shape[1] != ny:
            raise SizeMismatchError(
                f"Measurement set has shape {Z.shape}, expected (M, obs_dim={ny})"
            )
        return Z

    # -------------------------------------------------------------------------
    # Recursion
    # -------------------------------------------------------------------------

    def predict(self, measurements=None, k: Optional[float] = None):
        """
        Propagate survivors and inject birth particles.

        Args:
            measurements: [M, ny] Current scan. Only the obs_oriented birth
                          strategy looks at it.
            k: Time index or interval for this step (default: keep current)
        """
        if k is not None:
            if not k > 0:
                raise ConfigurationError(f"k must be positive, got {k}")
            self.k = k
        Z = self._as_measurements(measurements)
        self.birth.predict(self.cloud, self.model, self.k, self.rng, measurements=Z)

    def update(self, measurements=None, rhi=None) -> PHDUpdateResult:
        """
        Reweight the predicted cloud against a scan and resample to Np.

        Args:
            measurements: [M, ny] Current scan (M may be 0)
            rhi: [M] Measurement availability mask (search mode)

        Returns:
            PHDUpdateResult with the expected target count, normalizers and,
            in search mode, confirmation statistics and spawned tracks
        """
        Z = self._as_measurements(measurements)
        return self.updater.update(self.cloud, self.model, Z, self.k, self.rng, rhi=rhi)

    def step(self, measurements=None, rhi=None, k: Optional[float] = None) -> PHDUpdateResult:
        """Run predict then update on one scan."""
        self.predict(measurements, k=k)
        return self.update(measurements, rhi=rhi)

    def filter(
        self,
        measurement_sets: Sequence,
        rhi_sets: Optional[Sequence] = None,
        return_particles: bool = False,
    ) -> PHDResult:
        """
        Run the filter over a sequence of scans.

        Args:
            measurement_sets: T scans, each [M_t, ny] (M_t may vary, or be 0)
            rhi_sets: T measurement masks (search mode, optional)
            return_particles: If True, store particle history

        Returns:
            PHDResult
        """
        T = len(measurement_sets)
        nx = self.model.state_dim
        Np = self.config.n_particles

        expected_counts = np.zeros(T)
        means = np.zeros((T, nx))
        covariances = np.zeros((T, nx, nx))
        ess_history = np.zeros(T)
        tracks: List[List[Track]] = []

        if return_particles:
            particles_history = np.zeros((T, Np, nx))
            weights_history = np.zeros((T, Np))

        for t in range(T):
            rhi = None if rhi_sets is None else rhi_sets[t]
            result = self.step(measurement_sets[t], rhi=rhi)

            expected_counts[t] = result.expected_count
            means[t] = self.cloud.mean()
            covariances[t] = self.cloud.covariance()
            ess_history[t] = result.ess
            tracks.append(result.new_tracks)

            if return_particles:
                particles_history[t] = self.cloud.particles
                weights_history[t] = self.cloud.weights

        result = PHDResult(
            expected_counts=expected_counts,
            means=means,
            covariances=covariances,
            ess=ess_history,
            tracks=tracks,
        )

        if return_particles:
            result.particles = particles_history
            result.weights = weights_history

        return result

    # -------------------------------------------------------------------------
    # Estimates
    # -------------------------------------------------------------------------

    @property
    def particles(self) -> np.ndarray:
        return self.cloud.particles

    @property
    def weights(self) -> np.ndarray:
        return self.cloud.weights

    @property
    def expected_count(self) -> float:
        """Expected number of targets (total PHD mass)."""
        return self.cloud.total_mass

    def mean(self) -> np.ndarray:
        """[nx] Mass-normalized state estimate."""
        return self.cloud.mean()

    def __repr__(self) -> str:
        return (f"SMCPHDFilter(mode={self.config.mode!r}, "
                f"birth={self.config.birth_strategy!r}, Np={self.config.n_particles})")
