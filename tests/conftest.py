"""
Shared fixtures: small hand-built firms whose pools, drivers and reported
costs can be worked out on paper, plus a sample parameter set for runs over
generated firms.
"""

import numpy as np
import pytest

from costsim.core.costsys import CostSystem
from costsim.core.firm import FirmContext
from costsim.services.params import SimParams


class FixedRng:
    """Stands in for numpy's Generator, returning pre-set integers in order."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def integers(self, low, high=None):
        self.calls.append((low, high))
        return self.values.pop(0)


def make_firm(rcc, corr=None, res_cons_pat=None, rcu=None, mxq=None, sp=None):
    rcc = np.asarray(rcc, dtype=float)
    R = len(rcc)
    if res_cons_pat is None:
        res_cons_pat = np.ones((R, 2))
    res_cons_pat = np.asarray(res_cons_pat, dtype=float)
    P = res_cons_pat.shape[1]
    return FirmContext.from_arrays(
        res_cons_pat=res_cons_pat,
        rcu=np.ones(R) if rcu is None else rcu,
        mxq=np.ones(P) if mxq is None else mxq,
        sp=np.ones(P) if sp is None else sp,
        initial_rcc=rcc,
        pearson_corr=np.eye(R) if corr is None else corr,
    )


def symmetric(n, entries):
    corr = np.eye(n)
    for (i, j), value in entries.items():
        corr[i, j] = corr[j, i] = value
    return corr


@pytest.fixture
def fixed_rng():
    return FixedRng


@pytest.fixture
def five_resources_corr():
    # big resources 0 and 1; 2 leans to 0, 3 leans to 1, 4 is weakly tied to both
    return symmetric(5, {
        (0, 1): 0.3,
        (0, 2): 0.9, (1, 2): 0.1,
        (0, 3): 0.2, (1, 3): 0.7,
        (0, 4): 0.1, (1, 4): 0.3,
    })


@pytest.fixture
def two_product_firm():
    """Each product uses its own resource; a single pool mis-charges whichever product the driver ignores."""
    def _make(sp):
        return make_firm(
            rcc=[2.0, 1.0],
            res_cons_pat=[[1.0, 0.0], [0.0, 1.0]],
            sp=sp,
        )
    return _make


@pytest.fixture
def single_pool_system():
    def _make(firm):
        return CostSystem(firm=firm, a=1, p=0, r=0, pools=((0, 1),), drivers=((0,),))
    return _make


@pytest.fixture
def params():
    return SimParams(
        tr=1_000_000.0,
        co=4,
        rcp=10,
        num_firms=2,
        disp1=3,
        disp2_min=0.4,
        disp2_max=0.7,
        dns_min=0.4,
        dns_max=0.7,
        acp=(1, 2, 3),
        pacp=(0, 1, 2, 3),
        pdr=(0, 1),
        num=2,
        misc_pool_size=0.2,
        cor1lb=0.2,
        cor1ub=0.8,
        cor2lb=-0.2,
        cor2ub=0.5,
        cc=0.4,
        marlb=0.5,
        marub=2.0,
        startmix=0,
        exclude=0.25,
        use_seed=True,
        seed=11,
        hysteresis=0.0,
    )
