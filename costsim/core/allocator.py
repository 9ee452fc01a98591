from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

import numpy as np

from costsim.core.drivers import DriverPolicy
from costsim.core.errors import InvariantViolation

if TYPE_CHECKING:
    from costsim.core.costsys import CostSystem


def _usable_drivers(drivers: List[int], fallback: int, r: int, tru: np.ndarray) -> List[int]:
    if r == DriverPolicy.BIG_POOL:
        # swap any idle driver for the pool's first active resource
        return [fallback if tru[res] == 0.0 else res for res in drivers]

    active = [res for res in drivers if tru[res] != 0.0]
    return active or [fallback]


def calc_reported_costs(cost_system: CostSystem, decision) -> np.ndarray:
    """
    Reported unit cost of every product when the firm implements `decision`.

    The firm observes the resources it consumed under the decision, pools
    their cost as per the cost system's pools, divides each pool over its
    drivers and charges products by their driver consumption. NaN or inf
    results are returned as-is for the caller to classify.
    """
    firm = cost_system.firm
    res_cons_pat = firm.res_cons_pat

    # resources used by this product mix, in units and in dollars
    q = firm.mxq * np.asarray(decision, dtype=float)
    tru = res_cons_pat @ q
    rcc_f = firm.rcu * tru

    rates: Dict[int, float] = {}
    with np.errstate(divide="ignore", invalid="ignore"):
        for pool, drivers in zip(cost_system.pools, cost_system.drivers):
            pool_cost = float(sum(rcc_f[res] for res in pool))
            # empty pools have no drivers under this mix, nothing to allocate
            if not pool_cost > 0.0:
                continue

            fallback = next((res for res in pool if tru[res] > 0.0), None)
            if fallback is None:
                raise InvariantViolation(
                    f"firm {firm.id}: pool {list(pool)} has cost {pool_cost} but no resource in use"
                )

            usable = _usable_drivers(list(drivers), fallback, cost_system.r, tru)
            share = pool_cost / len(usable)
            for res in usable:
                if res in rates:
                    raise InvariantViolation(f"firm {firm.id}: resource {res} drives more than one pool")
                rates[res] = share / tru[res]

        pc_r = np.zeros(firm.num_products)
        for res, rate in rates.items():
            pc_r += res_cons_pat[res, :] * rate

    return pc_r


def calc_true_costs(cost_system: CostSystem) -> np.ndarray:
    """Benchmark unit costs (PC_B) of the firm behind the cost system."""
    return cost_system.firm.true_costs


def mean_percent_error(pc_b: np.ndarray, pc_r: np.ndarray) -> float:
    """Mean of |PC_B - PC_R| / PC_B over products."""
    pc_b = np.asarray(pc_b, dtype=float)
    pc_r = np.asarray(pc_r, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.mean(np.abs(pc_b - pc_r) / pc_b))
