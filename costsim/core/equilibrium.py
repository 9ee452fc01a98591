from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Set, Tuple

import numpy as np

import costsim.core.allocator as alloc
from costsim.core.errors import InvariantViolation

if TYPE_CHECKING:
    from costsim.core.costsys import CostSystem

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Terminal outcome of iterating a cost system from a starting decision."""
    NAN = "NaN"                     # reported costs came out non-numeric
    CYCLE = "Cycle"                 # the decisions repeat without settling
    ZERO_MIX = "ZeroMix"            # death spiral, nothing left to produce
    EQUILIBRIUM = "Equilibrium"     # the decision reproduces itself

    def __str__(self) -> str:
        return self.value


def next_decision(margins: np.ndarray, q: np.ndarray, hysteresis: float) -> np.ndarray:
    """
    Keep a produced product unless its margin is at or below 1 - hysteresis;
    add an unproduced product only if its margin is above 1 + hysteresis.
    """
    mar_drop = 1.0 - hysteresis
    mar_make = 1.0 + hysteresis
    produced = q > 0.0
    keep = produced & ~(margins <= mar_drop)
    add = ~produced & (margins > mar_make)
    return (keep | add).astype(float)


def equilibrium_check(
    cost_system: CostSystem,
    start,
    hysteresis: float = 0.0,
    max_iter: int | None = None,
) -> Tuple[Outcome, np.ndarray]:
    """
    Implement `start`, read reported costs, re-decide, and repeat until the
    decision settles, dies out, repeats or turns non-numeric.

    Returns the outcome and the last decision the firm derived. For a cycle
    that is the decision seen for the second time.
    """
    firm = cost_system.firm
    P = firm.num_products
    if max_iter is None:
        max_iter = 2 ** P + 1

    decf0 = np.asarray(start, dtype=float).copy()
    q0 = firm.mxq * decf0
    past: Set[Tuple[float, ...]] = {tuple(decf0)}

    for iteration in range(1, max_iter + 1):
        pc_r = alloc.calc_reported_costs(cost_system, decf0)

        if np.isnan(pc_r).any():
            logger.debug("firm %s: NaN costs after %d iterations", firm.id, iteration)
            return Outcome.NAN, np.full(P, np.nan)

        with np.errstate(divide="ignore", invalid="ignore"):
            margins = firm.sp / pc_r
        decf1 = next_decision(margins, q0, hysteresis)
        q1 = firm.mxq * decf1

        if np.array_equal(decf1, decf0):
            outcome = Outcome.EQUILIBRIUM
        elif not q1.any():
            outcome = Outcome.ZERO_MIX
        elif tuple(decf1) in past:
            outcome = Outcome.CYCLE
        else:
            past.add(tuple(decf1))
            decf0, q0 = decf1, q1
            continue

        logger.debug("firm %s: %s after %d iterations", firm.id, outcome, iteration)
        return outcome, decf1

    raise InvariantViolation(
        f"firm {firm.id}: no terminal outcome after {max_iter} iterations over {P} products"
    )
