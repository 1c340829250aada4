"""
Resampling algorithms for particle filters.

Index functions take normalized weights and return `n_samples` indices into
the weighted set. The output size may differ from the input size, which the
PHD filter needs to shrink an expanded cloud (or a track slice) back to a
fixed particle count.
"""

import warnings
import numpy as np
from numpy.random import Generator
from typing import Optional, Tuple

from ..exceptions import UnsupportedOptionError


def _clipped_cdf(weights: np.ndarray) -> np.ndarray:
    """Cumulative weights clamped to [0, 1] with the last entry exactly 1."""
    cdf = np.minimum(np.cumsum(weights), 1.0)
    cdf[-1] = 1.0
    return cdf


def systematic_resample(
    weights: np.ndarray,
    rng: Generator,
    n_samples: Optional[int] = None,
) -> np.ndarray:
    """
    Systematic resampling.

    Deterministic spacing with single random offset. Low variance.

    Args:
        weights: [N] Normalized weights (must sum to 1)
        rng: NumPy random generator
        n_samples: Number of indices to draw (default N)

    Returns:
        indices: [n_samples] Resampled particle indices
    """
    N = len(weights)
    M = N if n_samples is None else n_samples

    cdf = _clipped_cdf(weights)

    # Systematic positions
    u0 = rng.uniform(0.0, 1.0 / M)
    u = u0 + np.arange(M) / M

    # Find indices
    indices = np.searchsorted(cdf, u, side='left')
    indices = np.minimum(indices, N - 1)

    return indices


def stratified_resample(
    weights: np.ndarray,
    rng: Generator,
    n_samples: Optional[int] = None,
) -> np.ndarray:
    """
    Stratified resampling.

    Independent random draw within each stratum. Slightly higher variance
    than systematic but still good.

    Args:
        weights: [N] Normalized weights (must sum to 1)
        rng: NumPy random generator
        n_samples: Number of indices to draw (default N)

    Returns:
        indices: [n_samples] Resampled particle indices
    """
    N = len(weights)
    M = N if n_samples is None else n_samples

    cdf = _clipped_cdf(weights)

    # Stratified positions: uniform in each stratum [i/M, (i+1)/M)
    u = (np.arange(M) + rng.uniform(0.0, 1.0, M)) / M

    indices = np.searchsorted(cdf, u, side='left')
    indices = np.minimum(indices, N - 1)

    return indices


def multinomial_resample(
    weights: np.ndarray,
    rng: Generator,
    n_samples: Optional[int] = None,
) -> np.ndarray:
    """
    Multinomial resampling.

    Standard resampling with replacement. Higher variance than systematic.

    Args:
        weights: [N] Normalized weights (must sum to 1)
        rng: NumPy random generator
        n_samples: Number of indices to draw (default N)

    Returns:
        indices: [n_samples] Resampled particle indices
    """
    N = len(weights)
    M = N if n_samples is None else n_samples
    p = np.maximum(weights, 0.0)
    return rng.choice(N, size=M, replace=True, p=p / p.sum())


def residual_resample(
    weights: np.ndarray,
    rng: Generator,
    n_samples: Optional[int] = None,
) -> np.ndarray:
    """
    Residual resampling.

    Deterministic replication of floor(M * w_i), then multinomial on residuals.

    Args:
        weights: [N] Normalized weights (must sum to 1)
        rng: NumPy random generator
        n_samples: Number of indices to draw (default N)

    Returns:
        indices: [n_samples] Resampled particle indices
    """
    N = len(weights)
    M = N if n_samples is None else n_samples

    # Deterministic part
    n_copies = np.floor(M * weights).astype(int)
    indices = np.repeat(np.arange(N), n_copies)

    # Residual weights
    n_residual = M - len(indices)
    if n_residual > 0:
        residual_weights = np.maximum(M * weights - n_copies, 0.0)
        residual_weights = residual_weights / residual_weights.sum()

        residual_indices = rng.choice(N, size=n_residual, replace=True, p=residual_weights)
        indices = np.concatenate([indices, residual_indices])

    return indices.astype(int)


RESAMPLERS = {
    "systematic": systematic_resample,
    "stratified": stratified_resample,
    "multinomial": multinomial_resample,
    "residual": residual_resample,
}


def get_resampler(method: str):
    """Look up a resampling index function by name."""
    try:
        return RESAMPLERS[method]
    except KeyError:
        raise UnsupportedOptionError(
            f"Unknown resample method: {method!r} "
            f"(expected one of {sorted(RESAMPLERS)})"
        ) from None


def resample(
    particles: np.ndarray,
    weights: np.ndarray,
    n_samples: int,
    method: str,
    rng: Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Resample a weighted particle set to `n_samples` equally weighted particles.

    Weights need not be normalized. If they carry no mass at all, indices are
    drawn uniformly and a RuntimeWarning is issued.

    Args:
        particles: [N, nx] Particles
        weights: [N] Non-negative weights
        n_samples: Output particle count
        method: Resampling algorithm name
        rng: NumPy random generator

    Returns:
        particles: [n_samples, nx] Resampled particles (a copy)
        weights: [n_samples] Uniform weights 1/n_samples
    """
    resample_fn = get_resampler(method)

    total = np.sum(weights)
    if not np.isfinite(total) or total <= 0.0:
        warnings.warn(
            "Resampling a particle set with zero total weight. "
            "Drawing particles uniformly.",
            RuntimeWarning,
        )
        indices = rng.integers(0, len(weights), size=n_samples)
    else:
        indices = resample_fn(weights / total, rng, n_samples)

    return particles[indices], np.full(n_samples, 1.0 / n_samples)


def effective_sample_size(weights: np.ndarray) -> float:
    """
    Compute effective sample size (ESS).

    ESS = 1 / sum(w_i^2), where weights are normalized.

    Args:
        weights: [N] Normalized weights (must sum to 1)

    Returns:
        ESS value in [1, N]
    """
    return 1.0 / np.sum(weights ** 2)
