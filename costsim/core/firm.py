from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from costsim.services.params import SimParams

MXQ_LOW, MXQ_HIGH = 10, 40      # capacity range per product (inclusive)
CONS_SCALE = 10.0               # units scale of the resource consumption pattern


def _frozen(arr) -> np.ndarray:
    out = np.array(arr, dtype=float)
    out.flags.writeable = False
    return out


def rank_resources(rcc: np.ndarray) -> np.ndarray:
    """Resource indexes by descending cost, ties kept in index order."""
    return np.argsort(-np.asarray(rcc, dtype=float), kind="stable")


@dataclass(frozen=True, eq=False)
class FirmContext:
    """
    Benchmark economics of one firm. Read-only once built, so any number of
    cost systems (and worker processes) can share it.
    """
    id: int
    res_cons_pat: np.ndarray    # R x P units of resource per unit of product
    rcu: np.ndarray             # unit resource prices
    mxq: np.ndarray             # product capacities
    sp: np.ndarray              # selling prices
    initial_rcc: np.ndarray     # resource costs at the benchmark mix
    initial_rank: np.ndarray    # resources by descending initial_rcc
    pearson_corr: np.ndarray    # R x R correlation of resource consumption
    mar: np.ndarray | None = None
    dect0: np.ndarray | None = None
    g: float = 0.0
    d: float = 0.0

    @classmethod
    def from_arrays(
        cls,
        res_cons_pat,
        rcu,
        mxq,
        sp,
        initial_rcc,
        pearson_corr=None,
        id: int = 0,
        mar=None,
        dect0=None,
        g: float = 0.0,
        d: float = 0.0,
    ) -> "FirmContext":
        """Build a context from plain arrays; ranking and correlations are derived when omitted."""
        res_cons_pat = _frozen(res_cons_pat)
        initial_rcc = _frozen(initial_rcc)
        if pearson_corr is None:
            pearson_corr = resource_correlations(res_cons_pat)

        rank = rank_resources(initial_rcc)
        rank.flags.writeable = False

        return cls(
            id=id,
            res_cons_pat=res_cons_pat,
            rcu=_frozen(rcu),
            mxq=_frozen(mxq),
            sp=_frozen(sp),
            initial_rcc=initial_rcc,
            initial_rank=rank,
            pearson_corr=_frozen(pearson_corr),
            mar=None if mar is None else _frozen(mar),
            dect0=None if dect0 is None else _frozen(dect0),
            g=float(g),
            d=float(d),
        )

    @property
    def num_resources(self) -> int:
        return int(self.res_cons_pat.shape[0])

    @property
    def num_products(self) -> int:
        return int(self.res_cons_pat.shape[1])

    @property
    def true_costs(self) -> np.ndarray:
        """Benchmark unit cost of each product (PC_B)."""
        return self.rcu @ self.res_cons_pat

    def quantities(self, decision) -> np.ndarray:
        return self.mxq * np.asarray(decision, dtype=float)

    def total_cost(self, decision) -> float:
        return float(self.rcu @ (self.res_cons_pat @ self.quantities(decision)))

    def revenue(self, decision) -> float:
        return float(self.sp @ self.quantities(decision))

    def benchmark_summary(self) -> dict:
        dect0 = self.dect0 if self.dect0 is not None else np.ones(self.num_products)
        revenue = self.revenue(dect0)
        total_cost = self.total_cost(dect0)
        return {
            "revenue": revenue,
            "total_cost": total_cost,
            "profit": revenue - total_cost,
            "num_products": int(np.count_nonzero(dect0 == 1.0)),
        }


def resource_correlations(res_cons_pat: np.ndarray) -> np.ndarray:
    """Pearson correlation between resource consumption rows; constant rows correlate 0."""
    res_cons_pat = np.asarray(res_cons_pat, dtype=float)
    n = res_cons_pat.shape[0]
    if res_cons_pat.shape[1] < 2:
        return np.eye(n)

    with np.errstate(divide="ignore", invalid="ignore"):
        corr = np.corrcoef(res_cons_pat)
    corr = np.nan_to_num(np.atleast_2d(corr), nan=0.0)
    corr = np.clip(corr, -1.0, 1.0)
    np.fill_diagonal(corr, 1.0)
    return corr


def _consumption_pattern(params: SimParams, rng: np.random.Generator, density: float) -> np.ndarray:
    R, P = params.rcp, params.co

    # every resource row is correlated with one baseline product vector
    baseline = rng.normal(size=P)
    rho = np.concatenate([
        rng.uniform(params.cor1lb, params.cor1ub, size=params.disp1),
        rng.uniform(params.cor2lb, params.cor2ub, size=R - params.disp1),
    ])
    noise = rng.normal(size=(R, P))
    raw = rho[:, None] * baseline[None, :] + np.sqrt(1.0 - rho[:, None] ** 2) * noise
    cons = np.ceil(CONS_SCALE * np.abs(raw))
    cons[cons == 0.0] = 1.0

    # sparsify, then repair so no product is free and no resource is idle
    cons = cons * (rng.uniform(size=(R, P)) < density)
    for j in np.flatnonzero(cons.sum(axis=0) == 0.0):
        cons[rng.integers(0, R), j] = float(rng.integers(1, int(CONS_SCALE) + 1))
    for i in np.flatnonzero(cons.sum(axis=1) == 0.0):
        cons[i, rng.integers(0, P)] = float(rng.integers(1, int(CONS_SCALE) + 1))

    return cons


def _capacity_costs(params: SimParams, rng: np.random.Generator, g: float) -> np.ndarray:
    # the DISP1 big resources share g of TR, the rest share (1 - g)
    big = rng.uniform(0.01, 1.0, size=params.disp1)
    small = rng.uniform(0.01, 1.0, size=params.rcp - params.disp1)
    big = g * params.tr * big / big.sum()
    if small.size:
        small = (1.0 - g) * params.tr * small / small.sum()
    rcc = np.concatenate([big, small])
    return -np.sort(-rcc)


def spawn_firm(params: SimParams, firm_id: int, rng: np.random.Generator) -> FirmContext:
    """Vectorized generation of one synthetic firm and its benchmark mix."""
    g = float(rng.uniform(params.disp2_min, params.disp2_max))
    d = float(rng.uniform(params.dns_min, params.dns_max))

    rcc_cap = _capacity_costs(params, rng, g)
    cons = _consumption_pattern(params, rng, d)
    mxq = rng.integers(MXQ_LOW, MXQ_HIGH + 1, size=params.co).astype(float)

    # unit prices so that producing at full capacity uses exactly rcc_cap
    rcu = rcc_cap / (cons @ mxq)
    pc_b = rcu @ cons

    mar = rng.uniform(params.marlb, params.marub, size=params.co)
    sp = mar * pc_b

    dect0 = (mar > 1.0).astype(float)
    if not dect0.any():
        dect0[int(np.argmax(mar))] = 1.0

    initial_rcc = rcu * (cons @ (mxq * dect0))

    return FirmContext.from_arrays(
        res_cons_pat=cons,
        rcu=rcu,
        mxq=mxq,
        sp=sp,
        initial_rcc=initial_rcc,
        id=firm_id,
        mar=mar,
        dect0=dect0,
        g=g,
        d=d,
    )
