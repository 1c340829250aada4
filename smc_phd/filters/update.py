"""
Update step of the SMC-PHD filter.

Standard update, Eqs. (27-28) of Vo, Singh & Doucet (2005):

    C_k(z) = sum_i PD g(z | x_i) w_i
    w_i'   = w_i [ (1 - PD) + sum_z PD g(z | x_i) / (lambda + C_k(z)) ]

Search update, Horridge & Maskell (2011): every measurement carries a mask
rhi_j and a confirmation statistic

    pi_j = sum_i PD rhi_j g(z_j | x_i) w_i / (lambda + C_k(z_j))

Measurements with pi_j > P_conf spin their share of the posterior off into
a new track; the main cloud keeps the missed-detection term plus the
contributions of the remaining measurements.
"""

import numpy as np
from numpy.random import Generator
from typing import List, Optional, Tuple

from .base import PHDUpdateResult, Track
from .cloud import ParticleCloud
from .config import PHDConfig
from ..models.base import MultiTargetModel
from ..exceptions import SizeMismatchError
from ..utils.resampling import resample, effective_sample_size


def likelihood_matrix(
    model: MultiTargetModel,
    k: float,
    particles: np.ndarray,
    measurements: np.ndarray,
) -> np.ndarray:
    """
    Evaluate g(z_j | x_i) for every particle and measurement.

    Args:
        model: MultiTargetModel
        k: Time index or interval
        particles: [N, nx] particles
        measurements: [M, ny] measurement set

    Returns:
        g: [N, M]
    """
    N = particles.shape[0]
    M = measurements.shape[0]
    g = np.zeros((N, M))
    if M == 0:
        return g

    y = model.observe(particles)  # [N, ny]
    for j in range(M):
        g[:, j] = model.evaluate_likelihood(k, y, measurements[j])
    return g


class PHDUpdater:
    """
    Multi-object likelihood reweighting, resampling and track spawning.

    The track confirmation path runs when config.mode is "search".
    """

    required = ("observe", "evaluate_likelihood")

    def __init__(self, config: PHDConfig):
        self.config = config

    def reweight(
        self,
        weights: np.ndarray,
        g: np.ndarray,
        rhi: Optional[np.ndarray] = None,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Split the posterior weights into missed-detection and per-measurement terms.

        The standard posterior weight vector is `missed + contributions.sum(0)`.

        Args:
            weights: [N] predicted weights
            g: [N, M] likelihood matrix
            rhi: [M] measurement mask (default all ones)

        Returns:
            missed: [N] (1 - PD) w_i
            contributions: [M, N] PD rhi_j g_ij w_i / (lambda + C_k(z_j))
            normalizers: [M] C_k(z_j)
        """
        PD = self.config.detection_prob
        M = g.shape[1]
        if rhi is None:
            rhi = np.ones(M)

        missed = (1.0 - PD) * weights

        gw = PD * rhi[np.newaxis, :] * g * weights[:, np.newaxis]   # [N, M]
        normalizers = np.sum(gw, axis=0)                             # [M]
        contributions = (gw / (self.config.clutter_rate + normalizers)).T

        return missed, contributions, normalizers

    def update(
        self,
        cloud: ParticleCloud,
        model: MultiTargetModel,
        measurements: np.ndarray,
        k: float,
        rng: Generator,
        rhi: Optional[np.ndarray] = None,
    ) -> PHDUpdateResult:
        """
        Reweight the cloud against a measurement set and resample it to Np.

        Args:
            cloud: Predicted particle cloud (mutated in place)
            model: MultiTargetModel
            measurements: [M, ny] measurement set (M may be 0)
            k: Time index or interval
            rng: NumPy random generator
            rhi: [M] availability mask, search mode only (default all ones)

        Returns:
            PHDUpdateResult
        """
        cfg = self.config
        M = measurements.shape[0]
        n_total = cloud.size

        if cfg.confirms_tracks:
            rhi = self._check_mask(rhi, M)
        else:
            rhi = None

        g = likelihood_matrix(model, k, cloud.particles, measurements)
        missed, contributions, normalizers = self.reweight(cloud.weights, g, rhi)

        confirmation = None
        critical = np.zeros(0, dtype=int)
        new_tracks: List[Track] = []

        if cfg.confirms_tracks:
            confirmation = np.sum(contributions, axis=1)   # pi_j
            critical = np.flatnonzero(confirmation > cfg.confirm_prob)
            new_tracks = [
                self._spawn_track(cloud, contributions[j], confirmation[j], j, measurements[j], rng)
                for j in critical
            ]

        keep = np.ones(M, dtype=bool)
        keep[critical] = False
        posterior = missed + np.sum(contributions[keep], axis=0)

        # Resample to Np and rescale by the total mass
        N_k = float(np.sum(posterior))
        ess = effective_sample_size(posterior / N_k) if N_k > 0.0 else np.nan
        particles, weights = resample(
            cloud.particles, posterior, cfg.n_particles, cfg.resample_method, rng
        )
        cloud.assign(particles, weights * N_k)

        return PHDUpdateResult(
            expected_count=N_k,
            normalizers=normalizers,
            confirmation=confirmation,
            new_tracks=new_tracks,
            critical=critical,
            ess=ess,
            n_particles_total=n_total,
        )

    def _spawn_track(
        self,
        cloud: ParticleCloud,
        track_weights: np.ndarray,
        existence_prob: float,
        index: int,
        measurement: np.ndarray,
        rng: Generator,
    ) -> Track:
        """Resample the measurement's weight slice down to Np_conf particles."""
        particles, weights = resample(
            cloud.particles, track_weights, self.config.n_confirm,
            self.config.resample_method, rng,
        )
        return Track(
            particles=particles,
            weights=weights,
            existence_prob=float(existence_prob),
            measurement_index=int(index),
            measurement=np.array(measurement, copy=True),
        )

    @staticmethod
    def _check_mask(rhi: Optional[np.ndarray], M: int) -> np.ndarray:
        if rhi is None:
            return np.ones(M)
        rhi = np.asarray(rhi).reshape(-1)
        if rhi.shape[0] != M:
            raise SizeMismatchError(
                f"Measurement mask has {rhi.shape[0]} entries for {M} measurements"
            )
        return (rhi == 1).astype(np.float64)
