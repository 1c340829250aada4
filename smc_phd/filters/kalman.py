"""
Kalman filter for linear Gaussian single-target models.

Closed-form reference for the particle PHD filter: with one target,
PD = 1 and vanishing clutter, the PHD posterior cloud should match the
Kalman posterior within sampling error.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from ..models.base import MultiTargetModel
from ..exceptions import MissingDependencyError


@dataclass
class KalmanResult:
    """
    Attributes:
        means: [T, nx] Filtered means (m_1, ..., m_T)
        covariances: [T, nx, nx] Filtered covariances
        log_likelihood: Total log marginal likelihood
    """
    means: np.ndarray
    covariances: np.ndarray
    log_likelihood: float


class KalmanFilter:
    """
    Standard Kalman Filter for linear Gaussian models.

    Reads F(k), Q(k), H and R from a MultiTargetModel built by one of the
    linear-Gaussian factories.
    """

    def filter(
        self,
        model: MultiTargetModel,
        observations: np.ndarray,
        m0: Optional[np.ndarray] = None,
        P0: Optional[np.ndarray] = None,
        k: float = 1,
    ) -> KalmanResult:
        """
        Run Kalman filter on observations.

        Args:
            model: MultiTargetModel with a linear-Gaussian description
            observations: [T, ny] Observations (y_1, ..., y_T)
            m0: [nx] Prior mean (default: model birth mean)
            P0: [nx, nx] Prior covariance (default: model birth covariance)
            k: Time interval passed to F(k) and Q(k)

        Returns:
            KalmanResult
        """
        if model.dynamics_jacobian is None or model.obs_jacobian is None:
            raise MissingDependencyError("Kalman filter needs a linear-Gaussian model description")

        T = observations.shape[0]
        nx = model.state_dim

        F = model.dynamics_jacobian(k)
        Q = model.dynamics_cov(k)
        H = model.obs_jacobian
        R = model.obs_cov

        m = model.birth_mean if m0 is None else np.asarray(m0, dtype=np.float64)
        P = model.birth_cov if P0 is None else np.asarray(P0, dtype=np.float64)

        means = np.zeros((T, nx))
        covariances = np.zeros((T, nx, nx))
        log_likelihoods = np.zeros(T)

        for t in range(T):
            m_pred, P_pred = self.predict(m, P, F, Q)
            m, P, log_likelihoods[t] = self.update(m_pred, P_pred, observations[t], H, R)
            means[t] = m
            covariances[t] = P

        return KalmanResult(
            means=means,
            covariances=covariances,
            log_likelihood=float(np.sum(log_likelihoods)),
        )

    @staticmethod
    def predict(m: np.ndarray, P: np.ndarray, F: np.ndarray, Q: np.ndarray) -> tuple:
        """
        Prediction step.

        Returns:
            m_pred: [nx] Predicted mean
            P_pred: [nx, nx] Predicted covariance
        """
        m_pred = F @ m
        P_pred = F @ P @ F.T + Q
        P_pred = 0.5 * (P_pred + P_pred.T)  # Symmetrize
        return m_pred, P_pred

    @staticmethod
    def update(
        m_pred: np.ndarray,
        P_pred: np.ndarray,
        y: np.ndarray,
        H: np.ndarray,
        R: np.ndarray,
    ) -> tuple:
        """
        Kalman update step.

        Args:
            m_pred: [nx] Predicted mean
            P_pred: [nx, nx] Predicted covariance
            y: [ny] Observation
            H: [ny, nx] Observation matrix
            R: [ny, ny] Observation noise covariance

        Returns:
            m_upd: [nx] Updated mean
            P_upd: [nx, nx] Updated covariance
            log_lik: Log likelihood of observation
        """
        nx = len(m_pred)
        ny = len(y)

        # Innovation
        v = y - H @ m_pred
        S = H @ P_pred @ H.T + R
        S = 0.5 * (S + S.T)

        # Kalman gain: solve S @ K.T = H @ P_pred
        K = np.linalg.solve(S, H @ P_pred).T

        m_upd = m_pred + K @ v

        # Joseph form
        IKH = np.eye(nx) - K @ H
        P_upd = IKH @ P_pred @ IKH.T + K @ R @ K.T
        P_upd = 0.5 * (P_upd + P_upd.T)

        S_chol = np.linalg.cholesky(S)
        S_logdet = 2.0 * np.sum(np.log(np.diag(S_chol)))
        solved = np.linalg.solve(S_chol, v)
        log_lik = -0.5 * (ny * np.log(2 * np.pi) + S_logdet + np.sum(solved ** 2))

        return m_upd, P_upd, log_lik
