"""
Filtering algorithms.
"""

from .base import Track, PHDUpdateResult, PHDResult
from .cloud import ParticleCloud
from .config import PHDConfig
from .birth import (
    BirthStrategy,
    ExpansionBirth,
    MixtureBirth,
    ObservationOrientedBirth,
    make_birth_strategy,
)
from .update import PHDUpdater, likelihood_matrix
from .phd import SMCPHDFilter
from .kalman import KalmanFilter, KalmanResult

__all__ = [
    "Track",
    "PHDUpdateResult",
    "PHDResult",
    "ParticleCloud",
    "PHDConfig",
    "BirthStrategy",
    "ExpansionBirth",
    "MixtureBirth",
    "ObservationOrientedBirth",
    "make_birth_strategy",
    "PHDUpdater",
    "likelihood_matrix",
    "SMCPHDFilter",
    "KalmanFilter",
    "KalmanResult",
]
