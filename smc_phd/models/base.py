"""
Multi-target model capability interface.

The PHD filter owns no dynamics or sensor physics. It consumes a
MultiTargetModel: a bundle of pure functions for propagation, process noise,
observation, likelihood and birth sampling. All functions operate on batched
inputs where the first axis is the particle axis. Results are checked against
the documented shapes and never reshaped, so a handle that returns
transposed `[nx, N]` arrays raises SizeMismatchError.
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, Optional
from numpy.random import Generator

from ..exceptions import MissingDependencyError, SizeMismatchError


# Capability name -> dataclass field holding the function handle
CAPABILITIES = {
    "propagate": "transition",
    "sample_process_noise": "noise_sampler",
    "observe": "observation_transform",
    "evaluate_likelihood": "likelihood",
    "sample_birth": "birth_sampler",
    "sample_birth_near": "birth_sampler_near",
}


def _checked(capability: str, value, shape) -> np.ndarray:
    """Convert a handle result to float64 and insist on the expected shape."""
    value = np.asarray(value, dtype=np.float64)
    if value.shape != tuple(shape):
        raise SizeMismatchError(
            f"{CAPABILITIES[capability]} returned shape {value.shape}, expected {tuple(shape)}"
        )
    return value


@dataclass
class MultiTargetModel:
    """
    Multi-target model definition.

    Dynamics:    x_k = f(k, x_{k-1}, v_k),  v_k from the noise sampler
    Observation: y = h(x), scored against z by g(z | y)
    Birth:       x ~ b(x), optionally x ~ b(x | z) near a measurement

    Attributes:
        state_dim: State dimension (nx)
        obs_dim: Observation dimension (ny)

        transition: f(k, x, noise), maps (scalar, [N, nx], [N, nx]) -> [N, nx]
        noise_sampler: maps (n, Generator) -> [n, nx] process noise
        observation_transform: h(x), maps [N, nx] -> [N, ny] (noise free)
        likelihood: g(k, y, z), maps (scalar, [N, ny], [ny]) -> [N] densities
        birth_sampler: maps (n, Generator) -> [n, nx]
        birth_sampler_near: maps ([ny], n, Generator) -> [n, nx]

        dynamics_jacobian, dynamics_cov, obs_jacobian, obs_cov,
        birth_mean, birth_cov: Optional linear-Gaussian description, used by
        closed-form reference filters.
    """
    # Dimensions
    state_dim: int
    obs_dim: int

    # Function handles
    transition: Optional[Callable[[float, np.ndarray, np.ndarray], np.ndarray]] = None
    noise_sampler: Optional[Callable[[int, Generator], np.ndarray]] = None
    observation_transform: Optional[Callable[[np.ndarray], np.ndarray]] = None
    likelihood: Optional[Callable[[float, np.ndarray, np.ndarray], np.ndarray]] = None
    birth_sampler: Optional[Callable[[int, Generator], np.ndarray]] = None
    birth_sampler_near: Optional[Callable[[np.ndarray, int, Generator], np.ndarray]] = None

    # Optional: linear-Gaussian description
    dynamics_jacobian: Optional[Callable[[float], np.ndarray]] = None
    dynamics_cov: Optional[Callable[[float], np.ndarray]] = None
    obs_jacobian: Optional[np.ndarray] = None
    obs_cov: Optional[np.ndarray] = None
    birth_mean: Optional[np.ndarray] = None
    birth_cov: Optional[np.ndarray] = None

    def has(self, capability: str) -> bool:
        """Return True if the function behind `capability` is set."""
        return getattr(self, CAPABILITIES[capability]) is not None

    def require(self, *capabilities: str):
        """
        Check that every named capability is available.

        Raises:
            MissingDependencyError: naming all missing function handles
        """
        missing = [c for c in capabilities if not self.has(c)]
        if missing:
            fields = ", ".join(f"{c} ({CAPABILITIES[c]})" for c in missing)
            raise MissingDependencyError(f"Model is missing required functions: {fields}")

    # -------------------------------------------------------------------------
    # Dynamics
    # -------------------------------------------------------------------------

    def sample_process_noise(self, n: int, rng: Generator) -> np.ndarray:
        """Draw [n, nx] process noise samples."""
        return _checked("sample_process_noise", self.noise_sampler(n, rng), (n, self.state_dim))

    def propagate(self, k: float, x: np.ndarray, noise: np.ndarray) -> np.ndarray:
        """
        Push particles through the transition function.

        Args:
            k: Time index or interval
            x: [N, nx] particles
            noise: [N, nx] process noise

        Returns:
            x_next: [N, nx]
        """
        return _checked("propagate", self.transition(k, x, noise), x.shape)

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    def observe(self, x: np.ndarray) -> np.ndarray:
        """Project [N, nx] particles to [N, ny] measurement space."""
        return _checked("observe", self.observation_transform(x), (x.shape[0], self.obs_dim))

    def evaluate_likelihood(self, k: float, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        """
        Likelihood g(z | x) for all projected particles.

        Args:
            k: Time index or interval
            y: [N, ny] projected particles
            z: [ny] single measurement

        Returns:
            g: [N] densities
        """
        return _checked("evaluate_likelihood", self.likelihood(k, y, z), (y.shape[0],))

    # -------------------------------------------------------------------------
    # Birth
    # -------------------------------------------------------------------------

    def sample_birth(self, n: int, rng: Generator) -> np.ndarray:
        """Draw [n, nx] particles from the birth density."""
        return _checked("sample_birth", self.birth_sampler(n, rng), (n, self.state_dim))

    def sample_birth_near(self, z: np.ndarray, n: int, rng: Generator) -> np.ndarray:
        """Draw [n, nx] birth particles in the vicinity of measurement z."""
        return _checked("sample_birth_near", self.birth_sampler_near(z, n, rng), (n, self.state_dim))

    def __repr__(self) -> str:
        return f"MultiTargetModel(nx={self.state_dim}, ny={self.obs_dim})"
