"""
Particle cloud storage for the PHD filter.

The cloud lives in a preallocated arena. Prediction writes survivors and
birth particles into index ranges of the arena instead of concatenating
arrays; only the first `size` rows are active.
"""

import numpy as np
from typing import Optional


class ParticleCloud:
    """
    Weighted particle approximation of a PHD intensity.

    Attributes:
        size: Number of active particles (Np_total)
        birth_offset: Index of the first birth particle in the active slice
                      (equal to `size` when no births are present)
    """

    def __init__(self, particles: np.ndarray, weights: np.ndarray, capacity: Optional[int] = None):
        """
        Args:
            particles: [N, nx] Initial particles
            weights: [N] Initial weights
            capacity: Arena rows to reserve (default N)
        """
        particles = np.asarray(particles, dtype=np.float64)
        weights = np.asarray(weights, dtype=np.float64)
        n, nx = particles.shape

        capacity = max(n, capacity or n)
        self._particles = np.zeros((capacity, nx))
        self._weights = np.zeros(capacity)
        self._particles[:n] = particles
        self._weights[:n] = weights

        self.size = n
        self.birth_offset = n

    @property
    def state_dim(self) -> int:
        return self._particles.shape[1]

    @property
    def capacity(self) -> int:
        return self._particles.shape[0]

    @property
    def particles(self) -> np.ndarray:
        """[size, nx] view of the active particles."""
        return self._particles[:self.size]

    @property
    def weights(self) -> np.ndarray:
        """[size] view of the active weights."""
        return self._weights[:self.size]

    @property
    def total_mass(self) -> float:
        """Sum of weights: expected number of targets."""
        return float(np.sum(self.weights))

    @property
    def n_births(self) -> int:
        return self.size - self.birth_offset

    def reserve(self, capacity: int):
        """Grow the arena to hold at least `capacity` particles, keeping contents."""
        if capacity <= self.capacity:
            return
        new_capacity = max(capacity, 2 * self.capacity)
        particles = np.zeros((new_capacity, self.state_dim))
        weights = np.zeros(new_capacity)
        particles[:self.size] = self.particles
        weights[:self.size] = self.weights
        self._particles = particles
        self._weights = weights

    def resize(self, size: int, birth_offset: Optional[int] = None):
        """Set the active particle count (growing the arena if needed)."""
        self.reserve(size)
        self.size = size
        self.birth_offset = size if birth_offset is None else birth_offset

    def assign(self, particles: np.ndarray, weights: np.ndarray):
        """Replace the active set, e.g. after resampling. Births are cleared."""
        n = particles.shape[0]
        self.reserve(n)
        self._particles[:n] = particles
        self._weights[:n] = weights
        self.size = n
        self.birth_offset = n

    def mean(self) -> np.ndarray:
        """[nx] Mass-normalized weighted mean of the active particles."""
        mass = self.total_mass
        if mass <= 0.0:
            return np.mean(self.particles, axis=0)
        w = self.weights / mass
        return np.sum(w[:, np.newaxis] * self.particles, axis=0)

    def covariance(self) -> np.ndarray:
        """[nx, nx] Mass-normalized weighted covariance of the active particles."""
        mass = self.total_mass
        w = self.weights / mass if mass > 0.0 else np.full(self.size, 1.0 / self.size)
        diff = self.particles - self.mean()
        P = np.einsum('n,ni,nj->ij', w, diff, diff)
        return 0.5 * (P + P.T)

    def copy(self) -> "ParticleCloud":
        return ParticleCloud(self.particles.copy(), self.weights.copy())

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return (f"ParticleCloud(size={self.size}, births={self.n_births}, "
                f"mass={self.total_mass:.4f})")
