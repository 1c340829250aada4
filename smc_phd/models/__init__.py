"""
Multi-target model definitions.
"""

from .base import MultiTargetModel
from .linear_gaussian import make_linear_gaussian_model, make_constant_velocity_model

__all__ = [
    "MultiTargetModel",
    "make_linear_gaussian_model",
    "make_constant_velocity_model",
]
