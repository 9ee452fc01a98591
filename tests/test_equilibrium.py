import numpy as np
import pytest

import costsim.core.allocator as alloc
from conftest import make_firm
from costsim.core.costsys import CostSystem
from costsim.core.equilibrium import Outcome, equilibrium_check, next_decision
from costsim.core.errors import InvariantViolation
from costsim.core.firm import spawn_firm
from costsim.services.initialize import starting_decision


class TestNextDecision:
    def test_produced_product_at_margin_one_is_dropped(self):
        # drop threshold is inclusive: margin <= 1 - hysteresis
        np.testing.assert_array_equal(next_decision(np.array([1.0]), np.array([5.0]), 0.0), [0.0])

    def test_unproduced_product_at_margin_one_stays_out(self):
        # add threshold is strict: margin > 1 + hysteresis
        np.testing.assert_array_equal(next_decision(np.array([1.0]), np.array([0.0]), 0.0), [0.0])

    def test_without_hysteresis_produce_iff_margin_above_one(self):
        margins = np.array([0.99, 1.01, 0.99, 1.01])
        q = np.array([3.0, 3.0, 0.0, 0.0])
        np.testing.assert_array_equal(next_decision(margins, q, 0.0), [0.0, 1.0, 0.0, 1.0])

    def test_hysteresis_dead_band_carries_the_current_state(self):
        margins = np.array([0.9, 1.0, 1.1, 1.0, 1.11])
        q = np.array([1.0, 1.0, 0.0, 0.0, 0.0])
        np.testing.assert_array_equal(next_decision(margins, q, 0.1), [0.0, 1.0, 0.0, 0.0, 1.0])

    def test_free_product_is_always_worth_making(self):
        with np.errstate(divide="ignore"):
            margins = np.array([1.0]) / np.array([0.0])
        np.testing.assert_array_equal(next_decision(margins, np.array([0.0]), 0.5), [1.0])


def test_equilibrium(two_product_firm, single_pool_system):
    cs = single_pool_system(two_product_firm(sp=[5.0, 1.5]))
    outcome, decision = equilibrium_check(cs, [1, 1])
    assert outcome is Outcome.EQUILIBRIUM
    np.testing.assert_array_equal(decision, [1.0, 1.0])


def test_equilibrium_is_idempotent(two_product_firm, single_pool_system):
    cs = single_pool_system(two_product_firm(sp=[5.0, 1.5]))
    # (1, 0) makes product 1 look free, the firm adds it and settles
    outcome, decision = equilibrium_check(cs, [1, 0])
    assert outcome is Outcome.EQUILIBRIUM
    np.testing.assert_array_equal(decision, [1.0, 1.0])

    again, same = cs.equilibrium_check(decision)
    assert again is Outcome.EQUILIBRIUM
    np.testing.assert_array_equal(same, decision)


def test_zero_mix():
    firm = make_firm([1.0, 1.0], res_cons_pat=[[1.0, 1.0], [1.0, 1.0]], sp=[1.0, 1.0])
    cs = CostSystem(firm=firm, a=1, p=0, r=0, pools=((0, 1),), drivers=((0,),))
    # both products cost 2 against a price of 1
    outcome, decision = equilibrium_check(cs, [1, 1])
    assert outcome is Outcome.ZERO_MIX
    np.testing.assert_array_equal(decision, [0.0, 0.0])


def test_cycle_returns_the_repeated_decision(two_product_firm, single_pool_system):
    cs = single_pool_system(two_product_firm(sp=[1.5, 1.5]))
    # (1, 1): costs [2, 0] -> drop product 0 -> (0, 1)
    # (0, 1): driver idle, costs [0, 1] -> add product 0 -> (1, 1), seen before
    outcome, decision = equilibrium_check(cs, [1, 1])
    assert outcome is Outcome.CYCLE
    np.testing.assert_array_equal(decision, [1.0, 1.0])

    outcome, decision = equilibrium_check(cs, [0, 1])
    assert outcome is Outcome.CYCLE
    np.testing.assert_array_equal(decision, [0.0, 1.0])


def test_nan_costs_stop_the_loop(monkeypatch, two_product_firm, single_pool_system):
    cs = single_pool_system(two_product_firm(sp=[5.0, 1.5]))
    monkeypatch.setattr(alloc, "calc_reported_costs", lambda cost_system, decision: np.array([np.nan, 1.0]))
    outcome, decision = equilibrium_check(cs, [1, 1])
    assert outcome is Outcome.NAN
    assert np.isnan(decision).all()


def test_iteration_cap_surfaces_as_invariant_violation(two_product_firm, single_pool_system):
    cs = single_pool_system(two_product_firm(sp=[1.5, 1.5]))
    with pytest.raises(InvariantViolation):
        equilibrium_check(cs, [1, 1], max_iter=1)


def test_start_decision_is_not_modified(two_product_firm, single_pool_system):
    cs = single_pool_system(two_product_firm(sp=[1.5, 1.5]))
    start = np.array([1.0, 1.0])
    equilibrium_check(cs, start)
    np.testing.assert_array_equal(start, [1.0, 1.0])


@pytest.mark.parametrize("hysteresis", [0.0, 0.05])
def test_generated_firms_always_reach_an_outcome(params, hysteresis):
    params = params.replace(startmix=1)
    rng = np.random.default_rng(21)
    for firm_id in range(4):
        firm = spawn_firm(params, firm_id, rng)
        for a in params.acp:
            for p in params.pacp:
                for r in params.pdr:
                    cs = CostSystem.build(firm, a, p, r, params, rng)
                    start = starting_decision(params, firm.dect0, rng)
                    outcome, decision = cs.equilibrium_check(start, hysteresis)
                    assert outcome in set(Outcome)
                    assert decision.shape == (params.co,)
                    if outcome is Outcome.EQUILIBRIUM:
                        again, same = cs.equilibrium_check(decision, hysteresis)
                        assert again is Outcome.EQUILIBRIUM
                        np.testing.assert_array_equal(same, decision)
