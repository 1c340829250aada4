"""
Prediction step of the SMC-PHD filter.

Each birth strategy propagates the surviving particles through the model
dynamics, scales their mass by the survival probability and writes birth
particles into the cloud arena behind them.

Expansion follows Eqs. (25-26) of Vo, Singh & Doucet (2005) with
e_k|k-1 = 1 - Pdeath, no spawning, and the dynamics as proposal. Mixture
follows Section 5 of Horridge & Maskell (2011).
"""

import numpy as np
from numpy.random import Generator
from typing import Optional, Tuple

from .cloud import ParticleCloud
from .config import PHDConfig
from ..models.base import MultiTargetModel
from ..exceptions import UnsupportedOptionError


def propagate_particles(
    model: MultiTargetModel,
    k: float,
    particles: np.ndarray,
    rng: Generator,
) -> np.ndarray:
    """Sample x_k ~ f(x_k | x_{k-1}) for [N, nx] particles."""
    n = particles.shape[0]
    if n == 0:
        return particles.copy()
    noise = model.sample_process_noise(n, rng)
    return model.propagate(k, particles, noise)


class BirthStrategy:
    """
    Base class for prediction with birth particle injection.

    Subclasses implement `predict`, which mutates the cloud in place.
    """

    name = None
    required: Tuple[str, ...] = ("propagate", "sample_process_noise", "sample_birth")

    def __init__(self, config: PHDConfig):
        self.config = config

    def capacity(self) -> int:
        """Arena rows needed by a typical prediction."""
        return self.config.n_particles

    def predict(
        self,
        cloud: ParticleCloud,
        model: MultiTargetModel,
        k: float,
        rng: Generator,
        measurements: Optional[np.ndarray] = None,
    ):
        raise NotImplementedError

    def _predict_survivors(self, cloud: ParticleCloud, model: MultiTargetModel, k: float, rng: Generator):
        """Propagate all active particles and scale weights by 1 - Pdeath."""
        cloud.particles[:] = propagate_particles(model, k, cloud.particles, rng)
        cloud.weights[:] *= self.config.survival_prob

    def _append_births(self, cloud: ParticleCloud, births: np.ndarray):
        """Write births after the survivors, sharing birth_mass equally."""
        n_surv = cloud.size
        n_births = births.shape[0]
        cloud.resize(n_surv + n_births, birth_offset=n_surv)
        if n_births > 0:
            cloud.particles[n_surv:] = births
            cloud.weights[n_surv:] = self.config.birth_mass / n_births


class ExpansionBirth(BirthStrategy):
    """
    Append J_k birth particles to the propagated survivors.

    Np_total becomes Np + J_k; every birth particle weighs birth_mass / J_k.
    """

    name = "expansion"

    def capacity(self) -> int:
        return self.config.n_particles + self.config.n_birth

    def predict(self, cloud, model, k, rng, measurements=None):
        self._predict_survivors(cloud, model, k, rng)
        self._append_births(cloud, model.sample_birth(self.config.n_birth, rng))


class MixtureBirth(BirthStrategy):
    """
    Keep Np fixed and split it between survivors and births.

    The survivor count is Binomial(Np, ps / (Pbirth + ps)) with ps = 1 - Pdeath.
    A random subset of that size is propagated, the remaining slots are
    overwritten by birth particles. Survivor mass is rescaled to
    ps * prior_mass (spread evenly if the subset holds no weight) and birth
    mass to birth_mass.
    """

    name = "mixture"

    def predict(self, cloud, model, k, rng, measurements=None):
        n = cloud.size
        ps = self.config.survival_prob
        prior_mass = cloud.total_mass

        n_surv = int(rng.binomial(n, ps / (self.config.birth_prob + ps)))
        n_births = n - n_surv

        keep = rng.permutation(n)[:n_surv]
        survivors = propagate_particles(model, k, cloud.particles[keep], rng)
        surv_weights = cloud.weights[keep]

        kept_mass = np.sum(surv_weights)
        if kept_mass > 0.0:
            surv_weights = surv_weights * (ps * prior_mass / kept_mass)
        elif n_surv > 0:
            # Subset drew only zero-weight particles; spread the surviving mass evenly
            surv_weights = np.full(n_surv, ps * prior_mass / n_surv)

        cloud.resize(n_surv, birth_offset=n_surv)
        cloud.particles[:] = survivors
        cloud.weights[:] = surv_weights

        births = model.sample_birth(n_births, rng) if n_births > 0 else np.zeros((0, cloud.state_dim))
        self._append_births(cloud, births)


class ObservationOrientedBirth(BirthStrategy):
    """
    Seed birth particles around the current measurements. Experimental.

    Draws `particles_per_measurement` particles near each measurement. When
    the track confirmation path is active a second batch of n_birth particles
    from the generic birth density is appended so that targets missed by the
    sensor can still be born. All birth particles share birth_mass equally.
    """

    name = "obs_oriented"

    @property
    def n_generic(self) -> int:
        return self.config.n_birth if self.config.confirms_tracks else 0

    @property
    def required(self) -> Tuple[str, ...]:
        """The generic birth sampler is only needed for the search-mode batch."""
        caps = ("propagate", "sample_process_noise", "sample_birth_near")
        return caps + ("sample_birth",) if self.n_generic > 0 else caps

    def capacity(self) -> int:
        return self.config.n_particles + self.n_generic

    def predict(self, cloud, model, k, rng, measurements=None):
        self._predict_survivors(cloud, model, k, rng)

        per_measurement = self.config.particles_per_measurement
        batches = []
        if measurements is not None:
            for z in measurements:
                batches.append(model.sample_birth_near(z, per_measurement, rng))
        if self.n_generic > 0:
            batches.append(model.sample_birth(self.n_generic, rng))

        if batches:
            births = np.concatenate(batches, axis=0)
        else:
            births = np.zeros((0, cloud.state_dim))
        self._append_births(cloud, births)


BIRTH_STRATEGIES = {
    cls.name: cls for cls in (ExpansionBirth, MixtureBirth, ObservationOrientedBirth)
}


def make_birth_strategy(config: PHDConfig) -> BirthStrategy:
    """Instantiate the birth strategy named by config.birth_strategy."""
    try:
        cls = BIRTH_STRATEGIES[config.birth_strategy]
    except KeyError:
        raise UnsupportedOptionError(
            f"Birth strategy {config.birth_strategy!r} not defined "
            f"(expected one of {sorted(BIRTH_STRATEGIES)})"
        ) from None
    return cls(config)
