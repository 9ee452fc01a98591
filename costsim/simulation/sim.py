from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from itertools import product
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

import costsim.services.output as out
from costsim.core.allocator import mean_percent_error
from costsim.core.costsys import CostSystem
from costsim.core.firm import FirmContext, spawn_firm
from costsim.services.initialize import initialize_sample, starting_decision
from costsim.services.params import SimParams

logger = logging.getLogger(__name__)


@dataclass
class SimulationResults:
    params: SimParams
    firm_sum: pd.DataFrame
    firm_rescon: pd.DataFrame
    firm_product: pd.DataFrame
    costsys_sum: pd.DataFrame
    costsys_error: pd.DataFrame
    costsys_loop: pd.DataFrame

    @property
    def outcome_shares(self) -> pd.DataFrame:
        """Share of each outcome per (PACP, ACP, PDR) configuration."""
        df = self.costsys_loop
        if df.empty:
            return pd.DataFrame()
        counts = df.groupby(["PACP", "ACP", "PDR"])["outcome"].value_counts(normalize=True)
        return counts.unstack(fill_value=0.0).reset_index()


def cost_system_configs(params: SimParams) -> List[Tuple[int, int, int]]:
    """(a, p, r) combinations, nested ACP > PACP > PDR."""
    return list(product(params.acp, params.pacp, params.pdr))


def run_firm(params: SimParams, firm_id: int, seed_seq: np.random.SeedSequence) -> Dict[str, List[Dict]]:
    """
    Generate one firm, build all of its cost systems and iterate each from a
    starting decision. Returns rows for every output table.
    """
    rng = np.random.default_rng(seed_seq)
    firm: FirmContext = spawn_firm(params, firm_id, rng)

    records: Dict[str, List[Dict]] = {name: [] for name in out.OUTPUT_FILES}
    for name, row in out.firm_rows(firm, params).items():
        records[name].append(row)

    pc_b = firm.true_costs
    for cost_sys_id, (a, p, r) in enumerate(cost_system_configs(params), start=1):
        cs = CostSystem.build(firm, a, p, r, params, rng)
        records["costsys_sum"].append(out.costsys_row(firm_id, cost_sys_id, cs))

        start = starting_decision(params, firm.dect0, rng)

        # error in reported costs from implementing the starting decision
        pc_r = cs.calc_reported_costs(start)
        mpe = mean_percent_error(pc_b, pc_r)
        records["costsys_error"].append(out.error_row(firm_id, cost_sys_id, cs, start, pc_b, pc_r, mpe))

        # the firm then keeps re-deciding on reported costs
        outcome, ending = cs.equilibrium_check(start, params.hysteresis)
        records["costsys_loop"].append(out.loop_row(firm_id, cost_sys_id, cs, start, ending, outcome))

    return records


def _run_firm_args(args) -> Dict[str, List[Dict]]:
    return run_firm(*args)


def simulate_sample(params: SimParams | None = None, workers: int = 1) -> SimulationResults:
    """
    Simulate the whole sample of firms. With workers > 1 firms run in a
    process pool; results are identical to a serial run.
    """
    params = SimParams.from_config() if params is None else params
    seeds = initialize_sample(params)
    jobs = [(params, firm_id, seeds[firm_id - 1]) for firm_id in range(1, params.num_firms + 1)]

    records: Dict[str, List[Dict]] = {name: [] for name in out.OUTPUT_FILES}

    def collect(firm_records: Dict[str, List[Dict]], firm_id: int) -> None:
        for name, rows in firm_records.items():
            records[name].extend(rows)
        logger.info("Finished firm %03d of %d", firm_id, params.num_firms)

    if workers > 1:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            for (_, firm_id, _), firm_records in zip(jobs, pool.map(_run_firm_args, jobs)):
                collect(firm_records, firm_id)
    else:
        for job in jobs:
            collect(run_firm(*job), job[1])

    frames = out.to_frames(records)
    return SimulationResults(params=params, **frames)
