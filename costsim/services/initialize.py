from __future__ import annotations

from typing import List

import numpy as np

from costsim.services.params import SimParams


def initialize_sample(params: SimParams) -> List[np.random.SeedSequence]:
    """
    One independent seed sequence per firm, all derived from params.seed.

    Firms draw from their own generators, so a firm's economics, its random
    pools and its random starting mix do not depend on how many workers run
    the sample or in which order.
    """
    root = np.random.SeedSequence(params.seed)
    return root.spawn(params.num_firms)


def starting_decision(params: SimParams, dect0: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Benchmark mix (STARTMIX 0) or all products minus a random EXCLUDE share (STARTMIX 1)."""
    if params.startmix == 0:
        return np.array(dect0, dtype=float)

    decision = np.ones(params.co)
    decision[rng.random(params.co) < params.exclude] = 0.0
    return decision
