"""
PHD filter result containers.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Track:
    """
    Candidate target spawned by the search-mode update.

    Attributes:
        particles: [Np_conf, nx] Particles localised around the measurement
        weights: [Np_conf] Uniform weights 1/Np_conf
        existence_prob: Confirmation statistic pi_j at spawn time
        measurement_index: Index of the spawning measurement in its scan
        measurement: [ny] The spawning measurement
    """
    particles: np.ndarray
    weights: np.ndarray
    existence_prob: float
    measurement_index: int
    measurement: np.ndarray

    @property
    def n_particles(self) -> int:
        return self.particles.shape[0]

    @property
    def mean(self) -> np.ndarray:
        """[nx] Weighted particle mean."""
        w = self.weights / np.sum(self.weights)
        return np.sum(w[:, np.newaxis] * self.particles, axis=0)

    @property
    def covariance(self) -> np.ndarray:
        """[nx, nx] Weighted particle covariance."""
        w = self.weights / np.sum(self.weights)
        diff = self.particles - self.mean
        P = np.einsum('n,ni,nj->ij', w, diff, diff)
        return 0.5 * (P + P.T)


@dataclass
class PHDUpdateResult:
    """
    Diagnostics of one PHD update.

    Attributes:
        expected_count: Total posterior mass N_k (expected number of targets)
        normalizers: [M] Per-measurement normalizers C_k(z_j)
        confirmation: [M] Confirmation statistics pi_j (search mode only)
        new_tracks: Tracks spawned from critical measurements
        critical: Indices of measurements with pi_j > P_conf
        ess: Effective sample size of the normalized weights before resampling
        n_particles_total: Cloud size before resampling (Np_total)
    """
    expected_count: float
    normalizers: np.ndarray
    confirmation: Optional[np.ndarray] = None
    new_tracks: List[Track] = field(default_factory=list)
    critical: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=int))
    ess: float = np.nan
    n_particles_total: int = 0


@dataclass
class PHDResult:
    """
    History of a PHD filter run.

    Attributes:
        expected_counts: [T] Posterior N_k per step
        means: [T, nx] Mass-normalized cloud means
        covariances: [T, nx, nx] Mass-normalized cloud covariances
        ess: [T] Effective sample size before each resample
        tracks: T lists of tracks spawned at each step (search mode)
        particles: [T, Np, nx] Particle history (optional)
        weights: [T, Np] Weight history (optional)
    """
    expected_counts: np.ndarray
    means: np.ndarray
    covariances: Optional[np.ndarray] = None
    ess: Optional[np.ndarray] = None
    tracks: List[List[Track]] = field(default_factory=list)

    particles: Optional[np.ndarray] = None
    weights: Optional[np.ndarray] = None

    @property
    def T(self) -> int:
        """Number of time steps (measurement scans)."""
        return self.expected_counts.shape[0]

    @property
    def state_dim(self) -> int:
        """State dimension."""
        return self.means.shape[1]

    @property
    def n_tracks(self) -> int:
        """Total number of spawned tracks."""
        return sum(len(step) for step in self.tracks)

    def average_ess(self) -> float:
        """Return average ESS if available."""
        if self.ess is None:
            return np.nan
        return np.mean(self.ess)
