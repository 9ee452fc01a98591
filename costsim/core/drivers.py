from __future__ import annotations

from enum import IntEnum
from typing import Sequence, Tuple

import numpy as np

from costsim.core.errors import ConfigurationError


class DriverPolicy(IntEnum):
    BIG_POOL = 0    # the single biggest resource of the pool
    INDEXED = 1     # the `num` biggest resources of the pool


def select_drivers(
    pools: Sequence[Sequence[int]],
    rcc: np.ndarray,
    r: int,
    num: int = 1,
) -> Tuple[Tuple[int, ...], ...]:
    """
    Choose the driver resources of every pool from the benchmark resource costs.

    Pools are re-sorted by descending cost first (stable), so the result does
    not depend on the order the pool builder appended resources in.
    """
    try:
        policy = DriverPolicy(r)
    except ValueError:
        raise ConfigurationError(f"Invalid value of r: {r}") from None

    num_to_take = 1 if policy is DriverPolicy.BIG_POOL else num
    if num_to_take < 1:
        raise ConfigurationError("NUM must be positive.")

    drivers = []
    for pool in pools:
        ordered = sorted(pool, key=lambda res: -rcc[res])
        drivers.append(tuple(ordered[:num_to_take]))
    return tuple(drivers)
