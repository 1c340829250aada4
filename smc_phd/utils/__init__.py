"""
Utility functions.
"""

from .resampling import (
    systematic_resample,
    stratified_resample,
    multinomial_resample,
    residual_resample,
    get_resampler,
    resample,
    effective_sample_size,
)

__all__ = [
    "systematic_resample",
    "stratified_resample",
    "multinomial_resample",
    "residual_resample",
    "get_resampler",
    "resample",
    "effective_sample_size",
]
