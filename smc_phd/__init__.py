"""
Sequential Monte Carlo PHD Filtering Library.

A NumPy-based library for multi-target tracking with:
- Particle PHD filter (standard and track-confirming "search" mode)
- Expansion, mixture and measurement-driven birth strategies
- Resampling schemes (systematic, multinomial, stratified, residual)
- Linear Gaussian models and a Kalman reference filter
"""

from . import exceptions
from . import models
from . import filters
from . import utils

__version__ = "0.1.0"
