from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence, Tuple

import numpy as np

import costsim.core.allocator as alloc
import costsim.core.equilibrium as eq
from costsim.core.drivers import DriverPolicy, select_drivers
from costsim.core.errors import ConfigurationError
from costsim.core.firm import FirmContext
from costsim.core.pools import PoolingPolicy, build_pools

if TYPE_CHECKING:
    from costsim.services.params import SimParams


def format_pools(pools: Sequence[Sequence[int]]) -> str:
    """Render pools (or drivers) as {{0; 1}; {2}}."""
    inner = "; ".join("{" + "; ".join(str(res) for res in pool) + "}" for pool in pools)
    return "{" + inner + "}"


@dataclass(frozen=True, eq=False)
class CostSystem:
    """
    A cost system built from limited information: which resources go into
    which activity cost pool (`pools`, B) and which resources drive each pool
    (`drivers`, D), both fixed from the firm's benchmark mix.
    """
    firm: FirmContext
    a: int                                   # number of activity cost pools
    p: int                                   # pooling policy
    r: int                                   # driver policy
    pools: Tuple[Tuple[int, ...], ...]
    drivers: Tuple[Tuple[int, ...], ...]

    @classmethod
    def build(
        cls,
        firm: FirmContext,
        a: int,
        p: int,
        r: int,
        params: SimParams | None = None,
        rng=None,
        *,
        cc: float | None = None,
        misc_pool_size: float | None = None,
        num: int | None = None,
    ) -> "CostSystem":
        """
        Assign resources to pools and choose drivers. Pooling thresholds come
        from `params` unless given explicitly.
        """
        if params is not None:
            cc = params.cc if cc is None else cc
            misc_pool_size = params.misc_pool_size if misc_pool_size is None else misc_pool_size
            num = params.num if num is None else num
        if cc is None or misc_pool_size is None:
            raise ConfigurationError("A cost system needs CC and MISCPOOLSIZE, from params or explicitly.")
        num = 1 if num is None else num

        R = firm.num_resources
        if p not in set(PoolingPolicy):
            raise ConfigurationError(f"Invalid value of p: {p}")
        if r not in set(DriverPolicy):
            raise ConfigurationError(f"Invalid value of r: {r}")
        if not 1 <= a <= R:
            raise ConfigurationError(
                f"Number of activity cost pools ({a}) must be between 1 and the number of resources ({R})."
            )
        if r == DriverPolicy.INDEXED and (num < 1 or num * a > R):
            raise ConfigurationError(
                f"Indexed drivers need {num} x {a} resources but the firm has {R}."
            )

        pools = build_pools(firm, a, p, cc, misc_pool_size, rng)
        drivers = select_drivers(pools, firm.initial_rcc, r, num)
        return cls(firm=firm, a=a, p=p, r=r, pools=pools, drivers=drivers)

    @property
    def misc_pool_share(self) -> float:
        """Share of benchmark resource cost that sits in the miscellaneous pool."""
        rcc = self.firm.initial_rcc
        return float(sum(rcc[res] for res in self.pools[-1]) / rcc.sum())

    @property
    def pools_as_string(self) -> str:
        return format_pools(self.pools)

    @property
    def drivers_as_string(self) -> str:
        return format_pools(self.drivers)

    def calc_reported_costs(self, decision) -> np.ndarray:
        return alloc.calc_reported_costs(self, decision)

    def equilibrium_check(self, start, hysteresis: float = 0.0, max_iter: int | None = None):
        return eq.equilibrium_check(self, start, hysteresis, max_iter=max_iter)
