"""Transmission rule for a pair of co-present persons."""

from datetime import timedelta

import numpy as np

from .models import PandemicConfig


class TransmissionPolicy:
    """Decides whether co-presence causes an infection.

    A pair is eligible only when exactly one of the two is infected and their
    overlap lasted strictly longer than the threshold. Eligible pairs then get
    one Bernoulli trial.
    """

    def __init__(self, config: PandemicConfig) -> None:
        self.probability = config.transmission_probability
        self.threshold = config.transmission_threshold

    def is_eligible(self, person_infected: bool, other_infected: bool, overlap: timedelta) -> bool:
        """Check whether a pair should be tested for transmission."""
        if person_infected == other_infected:
            return False
        return overlap > self.threshold

    def trial(self, rng: np.random.Generator) -> bool:
        """Draw one transmission trial. Advances the generator by exactly one draw."""
        return bool(rng.random() < self.probability)
