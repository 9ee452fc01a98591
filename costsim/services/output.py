from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List

import numpy as np
import pandas as pd

from costsim.core.costsys import CostSystem
from costsim.core.equilibrium import Outcome
from costsim.core.firm import FirmContext

if TYPE_CHECKING:
    from costsim.services.params import SimParams
    from costsim.simulation.sim import SimulationResults

logger = logging.getLogger(__name__)

# table name -> csv file
OUTPUT_FILES: Dict[str, str] = {
    "firm_sum": "Firm_SUM.csv",
    "firm_rescon": "Firm_RESCON.csv",
    "firm_product": "Firm_PRODUCT.csv",
    "costsys_sum": "CostSys_SUM.csv",
    "costsys_error": "CostSys_ERROR.csv",
    "costsys_loop": "CostSys_LOOP.csv",
}


def _indexed(prefix: str, values) -> Dict[str, float]:
    return {f"{prefix}{i}": float(v) for i, v in enumerate(values)}


def _costsys_keys(firm_id: int, cost_sys_id: int, cs: CostSystem) -> Dict:
    return {"FirmID": firm_id, "CostSysID": cost_sys_id, "PACP": cs.p, "ACP": cs.a, "PDR": cs.r}


def product_ranks(firm: FirmContext):
    """
    Products ranked by total benchmark profit (unproduced products get rank
    value CO) and by margin, both descending.
    """
    P = firm.num_products
    dect0 = firm.dect0 if firm.dect0 is not None else np.ones(P)
    mar = firm.mar if firm.mar is not None else firm.sp / firm.true_costs

    # unit profit is SP (1 - 1/MAR), times the benchmark quantity
    profit = firm.sp * (1.0 - 1.0 / mar) * (firm.mxq * dect0)
    rank_values = np.where(dect0 == 1.0, np.arange(P), P)
    by_val = rank_values[np.argsort(-profit, kind="stable")]
    by_mar = np.argsort(-mar, kind="stable")
    return by_val, by_mar


def firm_rows(firm: FirmContext, params: SimParams) -> Dict[str, Dict]:
    """One row for each of the firm-level tables."""
    summary = firm.benchmark_summary()
    keys = {"FirmID": firm.id, "g": firm.g, "d": firm.d}

    firm_sum = {
        **keys,
        "numRCP": params.rcp,
        "numCO": params.co,
        "BenchmarkRevenue": round(summary["revenue"], 2),
        "BenchmarkTotCost": round(summary["total_cost"], 2),
        "BenchmarkProfit": round(summary["profit"], 2),
        "NumProdInBenchmarkMix": summary["num_products"],
    }
    rescon = {**keys, **_indexed("RCC_", firm.initial_rcc), **_indexed("RCU_", firm.rcu)}

    by_val, by_mar = product_ranks(firm)
    mar = firm.mar if firm.mar is not None else firm.sp / firm.true_costs
    dect0 = firm.dect0 if firm.dect0 is not None else np.ones(firm.num_products)
    product = {
        **keys,
        **_indexed("MAR_", mar),
        **{f"MXQ_{i}": int(v) for i, v in enumerate(firm.mxq)},
        **_indexed("SP_", firm.sp),
        **{f"DECT0_{i}": int(v) for i, v in enumerate(dect0)},
        **{f"Rank_by_val_{i}": int(v) for i, v in enumerate(by_val)},
        **{f"Rank_by_mar_{i}": int(v) for i, v in enumerate(by_mar)},
    }
    return {"firm_sum": firm_sum, "firm_rescon": rescon, "firm_product": product}


def costsys_row(firm_id: int, cost_sys_id: int, cs: CostSystem) -> Dict:
    return {
        **_costsys_keys(firm_id, cost_sys_id, cs),
        "B": cs.pools_as_string,
        "D": cs.drivers_as_string,
    }


def error_row(
    firm_id: int,
    cost_sys_id: int,
    cs: CostSystem,
    start: np.ndarray,
    pc_b: np.ndarray,
    pc_r: np.ndarray,
    mpe: float,
) -> Dict:
    return {
        **_costsys_keys(firm_id, cost_sys_id, cs),
        **_indexed("startDecision_", start),
        **_indexed("PC_B_", pc_b),
        **_indexed("PC_R_", pc_r),
        "MPE": mpe,
    }


def loop_row(
    firm_id: int,
    cost_sys_id: int,
    cs: CostSystem,
    start: np.ndarray,
    ending: np.ndarray,
    outcome: Outcome,
) -> Dict:
    return {
        **_costsys_keys(firm_id, cost_sys_id, cs),
        **_indexed("startDecision_", start),
        **_indexed("endingDecision_", ending),
        "outcome": str(outcome),
    }


def to_frames(records: Dict[str, List[Dict]]) -> Dict[str, pd.DataFrame]:
    return {name: pd.DataFrame.from_records(records.get(name, [])) for name in OUTPUT_FILES}


def write_output(results: SimulationResults, out_dir: str | Path) -> List[Path]:
    """Write every result table as CSV, plus a replayable copy of the parameters."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    written: List[Path] = []
    for name, filename in OUTPUT_FILES.items():
        path = out_dir / filename
        getattr(results, name).to_csv(path, index=False, float_format="%.4f")
        written.append(path)

    stamp = datetime.now().strftime("%m-%d-%Y %Hh %Mm %Ss")
    params_copy = out_dir / f"input {stamp}, seed {results.params.seed}.txt"
    params_copy.write_text("\n".join(results.params.to_input_lines()) + "\n")
    written.append(params_copy)

    logger.info("Wrote %d files to %s", len(written), out_dir)
    return written
