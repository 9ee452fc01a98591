import numpy as np
import pytest

from conftest import make_firm
from costsim.core.errors import ConfigurationError
from costsim.core.firm import spawn_firm
from costsim.core.pools import PoolingPolicy, build_pools

RCC = [100.0, 80.0, 10.0, 6.0, 4.0]
RCC_ZERO_TAIL = [100.0, 80.0, 10.0, 6.0, 0.0]


def as_lists(pools):
    return [list(pool) for pool in pools]


def test_single_pool_holds_every_resource_in_ranked_order():
    firm = make_firm([5.0, 80.0, 15.0, 100.0])
    for p in PoolingPolicy:
        pools = build_pools(firm, a=1, p=p, cc=0.4, misc_pool_size=0.2)
        assert as_lists(pools) == [[3, 1, 2, 0]]


def test_size_only_seeds_top_resource_and_pools_the_rest():
    # R=4 with costs [100, 80, 15, 5], a=2: pool 0 = {0}, misc = {1, 2, 3}
    firm = make_firm([100.0, 80.0, 15.0, 5.0])
    pools = build_pools(firm, a=2, p=0, cc=0.4, misc_pool_size=0.2)
    assert as_lists(pools) == [[0], [1, 2, 3]]


def test_ranking_ties_keep_index_order():
    firm = make_firm([10.0, 50.0, 10.0, 50.0])
    pools = build_pools(firm, a=3, p=0, cc=0.4, misc_pool_size=0.2)
    assert as_lists(pools) == [[1], [3], [0, 2]]


class TestCorrelationThreshold:
    def test_assigns_best_matches_until_misc_floor(self, five_resources_corr):
        firm = make_firm(RCC, corr=five_resources_corr)
        pools = build_pools(firm, a=3, p=1, cc=0.5, misc_pool_size=0.05)
        assert as_lists(pools) == [[0, 2], [1, 3], [4]]

    def test_stops_at_first_correlation_below_cutoff(self, five_resources_corr):
        firm = make_firm(RCC, corr=five_resources_corr)
        pools = build_pools(firm, a=3, p=1, cc=0.8, misc_pool_size=0.001)
        assert as_lists(pools) == [[0, 2], [1], [3, 4]]

    def test_moves_last_resource_back_when_misc_would_be_empty(self, five_resources_corr):
        firm = make_firm(RCC, corr=five_resources_corr)
        pools = build_pools(firm, a=3, p=1, cc=0.0, misc_pool_size=0.001)
        # resource 4 was assigned to pool 1 and handed back to misc
        assert as_lists(pools) == [[0, 2], [1, 3], [4]]

    def test_zero_value_tail_keeps_last_positive_resource_in_misc(self, five_resources_corr):
        # known edge case: the zero resource and the last positive one are never considered
        firm = make_firm(RCC_ZERO_TAIL, corr=five_resources_corr)
        pools = build_pools(firm, a=3, p=1, cc=0.0, misc_pool_size=0.001)
        assert as_lists(pools) == [[0, 2], [1], [3, 4]]


class TestRandomFill:
    def test_deals_to_random_big_pools_until_floor(self, fixed_rng):
        rng = fixed_rng([1, 0, 1])
        pools = build_pools(make_firm(RCC), a=3, p=2, cc=0.4, misc_pool_size=0.02, rng=rng)
        assert as_lists(pools) == [[0, 3], [1, 2], [4]]
        # big pool index drawn from [0, a-2]
        assert rng.calls == [(0, 2), (0, 2)]

    def test_never_leaves_misc_without_value(self, fixed_rng):
        rng = fixed_rng([0, 0, 0])
        pools = build_pools(make_firm(RCC_ZERO_TAIL), a=3, p=2, cc=0.4, misc_pool_size=0.001, rng=rng)
        assert as_lists(pools) == [[0, 2], [1], [3, 4]]

    def test_requires_a_generator(self):
        with pytest.raises(ConfigurationError):
            build_pools(make_firm(RCC), a=3, p=2, cc=0.4, misc_pool_size=0.02)


class TestSequentialCorrelation:
    def test_grows_each_pool_from_its_seed(self, five_resources_corr):
        corr = five_resources_corr.copy()
        corr[0, 4] = corr[4, 0] = 0.6
        corr[1, 3] = corr[3, 1] = 0.95
        firm = make_firm(RCC, corr=corr)
        pools = build_pools(firm, a=3, p=3, cc=0.5, misc_pool_size=0.02)
        # pool 1 cannot take resource 3: it is needed to seed the misc pool
        assert as_lists(pools) == [[0, 2, 4], [1], [3]]

    def test_sweeps_zero_resources_into_misc(self, five_resources_corr):
        firm = make_firm(RCC_ZERO_TAIL, corr=five_resources_corr)
        pools = build_pools(firm, a=3, p=3, cc=0.5, misc_pool_size=0.02)
        assert as_lists(pools) == [[0, 2], [1], [4, 3]]


def test_invalid_policy_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        build_pools(make_firm(RCC), a=2, p=4, cc=0.4, misc_pool_size=0.2)


@pytest.mark.parametrize("p", list(PoolingPolicy))
@pytest.mark.parametrize("a", [1, 2, 3, 5, 10])
def test_pools_partition_the_resources(params, p, a):
    rng = np.random.default_rng(3)
    for firm_id in range(5):
        firm = spawn_firm(params, firm_id, rng)
        pools = build_pools(firm, a=a, p=p, cc=params.cc, misc_pool_size=params.misc_pool_size, rng=rng)

        assert len(pools) == a
        flat = [res for pool in pools for res in pool]
        assert sorted(flat) == list(range(params.rcp))
