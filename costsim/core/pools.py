from __future__ import annotations

import logging
from enum import IntEnum
from typing import Callable, Dict, List, Tuple

import numpy as np

from costsim.core.errors import ConfigurationError
from costsim.core.firm import FirmContext

logger = logging.getLogger(__name__)

Pools = List[List[int]]


class PoolingPolicy(IntEnum):
    SIZE_ONLY = 0
    CORRELATION_THRESHOLD = 1
    RANDOM_FILL = 2
    SEQUENTIAL_CORRELATION = 3


def _value(rcc: np.ndarray, resources) -> float:
    return float(sum(rcc[res] for res in resources))


def size_only(firm: FirmContext, a: int, cc: float, misc_pool_size: float, rng) -> Pools:
    """Seed a-1 pools with the biggest resources, everything else is miscellaneous."""
    rank = [int(res) for res in firm.initial_rank]
    pools = [[res] for res in rank[:a - 1]]
    pools.append(rank[a - 1:])
    return pools


def correlation_threshold(firm: FirmContext, a: int, cc: float, misc_pool_size: float, rng) -> Pools:
    """
    Seed a-1 pools by size, then hand each remaining resource to the big pool
    whose seed it is most correlated with, best matches first, until the
    correlation drops below `cc` or what is left falls under `misc_pool_size`.
    """
    rcc = firm.initial_rcc
    corr = firm.pearson_corr
    rank = [int(res) for res in firm.initial_rank]
    big = rank[:a - 1]
    misc = rank[a - 1:]
    pools: Pools = [[res] for res in big] + [[]]

    # (resource, big pool, correlation) with the best big pool for each candidate
    candidates: List[Tuple[int, int, float]] = []
    for res in misc:
        row = [corr[seed, res] for seed in big]
        best = int(np.argmax(row))
        candidates.append((res, best, float(row[best])))
    candidates.sort(key=lambda c: c[2], reverse=True)

    # never consider the last positive-value candidate, or the zero-value tail after it,
    # so that at least one resource with value can stay in the miscellaneous pool
    remaining_value = np.cumsum([rcc[c[0]] for c in candidates][::-1])[::-1]
    zero_tail = np.flatnonzero(remaining_value == 0.0)
    limit = int(zero_tail[0]) - 1 if zero_tail.size else len(candidates)

    total = float(rcc.sum())
    cutoff_reached = _value(rcc, misc) / total < misc_pool_size
    k = 0
    while k < limit and not cutoff_reached:
        res, pool, correl = candidates[k]
        if correl < cc:
            break
        pools[pool].append(res)
        misc.remove(res)
        cutoff_reached = _value(rcc, misc) / total < misc_pool_size
        k += 1

    if misc:
        pools[-1].extend(misc)
    else:
        res, pool, _ = candidates[-1]
        pools[pool].remove(res)
        pools[-1].append(res)

    return pools


def random_fill(firm: FirmContext, a: int, cc: float, misc_pool_size: float, rng) -> Pools:
    """
    Seed a-1 pools by size and deal the next biggest resources to random big
    pools while the miscellaneous share stays above `misc_pool_size`. The
    miscellaneous pool always keeps some value.
    """
    rcc = firm.initial_rcc
    rank = [int(res) for res in firm.initial_rank]
    pools: Pools = [[res] for res in rank[:a - 1]] + [[]]
    misc = rank[a - 1:]

    total = float(rcc.sum())
    while _value(rcc, misc) / total > misc_pool_size and _value(rcc, misc[1:]) > 0.0:
        pool = int(rng.integers(0, a - 1))
        pools[pool].append(misc.pop(0))

    pools[-1].extend(misc)
    return pools


def sequential_correlation(firm: FirmContext, a: int, cc: float, misc_pool_size: float, rng) -> Pools:
    """
    Fill pools one at a time: grow the current pool with the resources most
    correlated with its seed, then seed the next pool with the biggest
    resource left.
    """
    rcc = firm.initial_rcc
    corr = firm.pearson_corr
    rank = [int(res) for res in firm.initial_rank]
    pools: Pools = [[] for _ in range(a)]

    pools[0].append(rank[0])
    remaining = rank[1:]

    # zero resources go straight to the miscellaneous pool, but only when
    # enough nonzero resources exist to give every pool one
    num_zero = sum(1 for res in remaining if rcc[res] == 0.0)
    if len(rcc) - num_zero >= a:
        while remaining and rcc[remaining[-1]] == 0.0:
            pools[-1].append(remaining.pop())

    total = float(rcc.sum())
    for current in range(a - 1):
        seed = pools[current][0]
        to_be_filled = a - (current + 1)

        correlations = [float(corr[res, seed]) for res in remaining]
        while (
            max(correlations) > cc
            and len(remaining) > to_be_filled
            and _value(rcc, remaining) / total > misc_pool_size
        ):
            best = correlations.index(max(correlations))
            pools[current].append(remaining.pop(best))
            correlations.pop(best)

        pools[current + 1].append(remaining.pop(0))

    pools[-1].extend(remaining)
    return pools


POOLING_STRATEGIES: Dict[PoolingPolicy, Callable[..., Pools]] = {
    PoolingPolicy.SIZE_ONLY: size_only,
    PoolingPolicy.CORRELATION_THRESHOLD: correlation_threshold,
    PoolingPolicy.RANDOM_FILL: random_fill,
    PoolingPolicy.SEQUENTIAL_CORRELATION: sequential_correlation,
}


def build_pools(
    firm: FirmContext,
    a: int,
    p: int,
    cc: float,
    misc_pool_size: float,
    rng=None,
) -> Tuple[Tuple[int, ...], ...]:
    """
    Partition the firm's resources into `a` activity cost pools using pooling
    policy `p`. The last pool is the miscellaneous pool. Assumes 1 <= a <= R.

    `rng` only needs an `integers(low, high)` method and is consumed by the
    random fill policy alone.
    """
    try:
        policy = PoolingPolicy(p)
    except ValueError:
        raise ConfigurationError(f"Invalid value of p: {p}") from None

    if a == 1:
        pools = [[int(res) for res in firm.initial_rank]]
    else:
        if policy is PoolingPolicy.RANDOM_FILL and rng is None:
            raise ConfigurationError("Random fill pooling needs a random number generator.")
        pools = POOLING_STRATEGIES[policy](firm, a, cc, misc_pool_size, rng)

    logger.debug("firm %s: a=%d p=%d pools=%s", firm.id, a, p, pools)
    return tuple(tuple(pool) for pool in pools)
