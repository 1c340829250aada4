"""
Linear Gaussian multi-target model.

x_k = A @ x_{k-1} + v_k,  v_k ~ N(0, Q)
z   = C @ x_k + w_k,      w_k ~ N(0, R)
x   ~ N(m_b, P_b) for newly born targets
"""

import numpy as np
from scipy import stats
from typing import Sequence, Union
from numpy.random import Generator

from .base import MultiTargetModel


def _gaussian_sampler(mean: np.ndarray, cov: np.ndarray):
    """Return (n, rng) -> [n, d] samples from N(mean, cov)."""
    d = mean.shape[0]
    chol = np.linalg.cholesky(cov + 1e-12 * np.eye(d))

    def sample(n: int, rng: Generator) -> np.ndarray:
        return mean + rng.standard_normal((n, d)) @ chol.T

    return sample


def _near_measurement_sampler(C: np.ndarray, R: np.ndarray, birth_sampler):
    """
    Measurement-centred birth sampler.

    Observed components are placed at z + N(0, R) through the pseudo-inverse
    of C; components C cannot see keep their birth-density draw.
    """
    ny = C.shape[0]
    C_pinv = np.linalg.pinv(C)
    R_chol = np.linalg.cholesky(R + 1e-12 * np.eye(ny))

    def sample_near(z: np.ndarray, n: int, rng: Generator) -> np.ndarray:
        x = birth_sampler(n, rng)                                  # [n, nx]
        z_draw = z + rng.standard_normal((n, ny)) @ R_chol.T       # [n, ny]
        return x + (z_draw - x @ C.T) @ C_pinv.T

    return sample_near


def make_linear_gaussian_model(
    A: np.ndarray,
    C: np.ndarray,
    Q: np.ndarray,
    R: np.ndarray,
    birth_mean: np.ndarray,
    birth_cov: np.ndarray,
) -> MultiTargetModel:
    """
    Create a linear Gaussian multi-target model.

    Dynamics:    x_k = A @ x_{k-1} + v_k,  v_k ~ N(0, Q)
    Observation: z = C @ x_k + w_k,        w_k ~ N(0, R)

    Args:
        A: [nx, nx] State transition matrix
        C: [ny, nx] Observation matrix
        Q: [nx, nx] Process noise covariance
        R: [ny, ny] Observation noise covariance
        birth_mean: [nx] Birth density mean
        birth_cov: [nx, nx] Birth density covariance

    Returns:
        MultiTargetModel instance
    """
    A = np.asarray(A, dtype=np.float64)
    C = np.asarray(C, dtype=np.float64)
    Q = np.asarray(Q, dtype=np.float64)
    R = np.asarray(R, dtype=np.float64)
    m_b = np.asarray(birth_mean, dtype=np.float64)
    P_b = np.asarray(birth_cov, dtype=np.float64)

    nx = A.shape[0]
    ny = C.shape[0]

    # Ensure symmetry
    Q = 0.5 * (Q + Q.T)
    R = 0.5 * (R + R.T)
    P_b = 0.5 * (P_b + P_b.T)

    def transition(k: float, x: np.ndarray, noise: np.ndarray) -> np.ndarray:
        """x: [N, nx] -> [N, nx]"""
        return x @ A.T + noise

    def observation_transform(x: np.ndarray) -> np.ndarray:
        """x: [N, nx] -> [N, ny]"""
        return x @ C.T

    def likelihood(k: float, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        """N(z; y_i, R) for every projected particle y_i."""
        return np.atleast_1d(stats.multivariate_normal.pdf(y - z, mean=np.zeros(ny), cov=R))

    birth_sampler = _gaussian_sampler(m_b, P_b)

    return MultiTargetModel(
        state_dim=nx,
        obs_dim=ny,
        transition=transition,
        noise_sampler=_gaussian_sampler(np.zeros(nx), Q),
        observation_transform=observation_transform,
        likelihood=likelihood,
        birth_sampler=birth_sampler,
        birth_sampler_near=_near_measurement_sampler(C, R, birth_sampler),
        dynamics_jacobian=lambda k: A,
        dynamics_cov=lambda k: Q,
        obs_jacobian=C,
        obs_cov=R,
        birth_mean=m_b,
        birth_cov=P_b,
    )


def make_constant_velocity_model(
    dim: int = 2,
    q: float = 0.01,
    r: float = 1.0,
    birth_mean: Union[Sequence[float], np.ndarray, None] = None,
    birth_cov: Union[Sequence[float], np.ndarray, None] = None,
) -> MultiTargetModel:
    """
    Constant velocity dynamics with positional observations.

    State: [p_1, ..., p_dim, v_1, ..., v_dim]. The time index k passed to the
    transition is used as the sampling interval dt, so the same model serves
    irregularly spaced scans.

    Args:
        dim: Number of spatial dimensions
        q: Process noise intensity (white-noise acceleration)
        r: Position measurement noise variance
        birth_mean: [2*dim] Birth density mean (default zeros)
        birth_cov: [2*dim, 2*dim] Birth covariance, or [2*dim] diagonal
                   (default identity)

    Returns:
        MultiTargetModel instance
    """
    nx = 2 * dim
    ny = dim

    C = np.hstack([np.eye(dim), np.zeros((dim, dim))])
    R = r * np.eye(ny)

    m_b = np.zeros(nx) if birth_mean is None else np.asarray(birth_mean, dtype=np.float64)
    if birth_cov is None:
        P_b = np.eye(nx)
    else:
        P_b = np.asarray(birth_cov, dtype=np.float64)
        if P_b.ndim == 1:
            P_b = np.diag(P_b)

    def F(dt: float) -> np.ndarray:
        """[nx, nx] transition matrix for interval dt."""
        return np.block([
            [np.eye(dim), dt * np.eye(dim)],
            [np.zeros((dim, dim)), np.eye(dim)],
        ])

    def Q(dt: float) -> np.ndarray:
        """[nx, nx] white-noise acceleration covariance for interval dt."""
        return q * np.block([
            [dt**3 / 3 * np.eye(dim), dt**2 / 2 * np.eye(dim)],
            [dt**2 / 2 * np.eye(dim), dt * np.eye(dim)],
        ])

    # Unit-interval noise, rescaled per call through the Cholesky of Q(dt)
    def transition(k: float, x: np.ndarray, noise: np.ndarray) -> np.ndarray:
        """x: [N, nx] -> [N, nx]; noise drawn for dt = 1 and rescaled to dt = k."""
        L1 = np.linalg.cholesky(Q(1.0))
        Lk = np.linalg.cholesky(Q(k))
        scaled = np.linalg.solve(L1, noise.T).T @ Lk.T
        return x @ F(k).T + scaled

    def likelihood(k: float, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        """N(z; y_i, R) for every projected particle y_i."""
        return np.atleast_1d(stats.multivariate_normal.pdf(y - z, mean=np.zeros(ny), cov=R))

    birth_sampler = _gaussian_sampler(m_b, P_b)

    return MultiTargetModel(
        state_dim=nx,
        obs_dim=ny,
        transition=transition,
        noise_sampler=_gaussian_sampler(np.zeros(nx), Q(1.0)),
        observation_transform=lambda x: x @ C.T,
        likelihood=likelihood,
        birth_sampler=birth_sampler,
        birth_sampler_near=_near_measurement_sampler(C, R, birth_sampler),
        dynamics_jacobian=F,
        dynamics_cov=Q,
        obs_jacobian=C,
        obs_cov=R,
        birth_mean=m_b,
        birth_cov=P_b,
    )
