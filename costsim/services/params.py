from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

import costsim.config as cfg
from costsim.core.errors import ConfigurationError

# input file name -> SimParams field
_FIELDS: Dict[str, str] = {
    "TR": "tr",
    "CO": "co",
    "RCP": "rcp",
    "NUM_FIRMS": "num_firms",
    "DISP1": "disp1",
    "DISP2_MIN": "disp2_min",
    "DISP2_MAX": "disp2_max",
    "DNS_MIN": "dns_min",
    "DNS_MAX": "dns_max",
    "ACP": "acp",
    "PACP": "pacp",
    "PDR": "pdr",
    "NUM": "num",
    "MISCPOOLSIZE": "misc_pool_size",
    "COR1LB": "cor1lb",
    "COR1UB": "cor1ub",
    "COR2LB": "cor2lb",
    "COR2UB": "cor2ub",
    "CC": "cc",
    "MARLB": "marlb",
    "MARUB": "marub",
    "STARTMIX": "startmix",
    "EXCLUDE": "exclude",
    "USESEED": "use_seed",
    "SEED": "seed",
    "HYSTERESIS": "hysteresis",
}

_LIST_PARAMS = {"ACP", "PACP", "PDR"}
_INT_PARAMS = {"CO", "RCP", "NUM_FIRMS", "DISP1", "NUM", "STARTMIX", "SEED"}


@dataclass(frozen=True)
class SimParams:
    tr: float
    co: int
    rcp: int
    num_firms: int
    disp1: int
    disp2_min: float
    disp2_max: float
    dns_min: float
    dns_max: float
    acp: Tuple[int, ...]
    pacp: Tuple[int, ...]
    pdr: Tuple[int, ...]
    num: int
    misc_pool_size: float
    cor1lb: float
    cor1ub: float
    cor2lb: float
    cor2ub: float
    cc: float
    marlb: float
    marub: float
    startmix: int
    exclude: float
    use_seed: bool
    seed: int
    hysteresis: float

    def __post_init__(self):
        # without USESEED the clock picks the seed, but we keep it so the run can be replayed
        if not self.use_seed:
            object.__setattr__(self, "seed", time.time_ns() % 2**32)
        self.validate()

    @classmethod
    def from_config(cls) -> "SimParams":
        """Build parameters from the (possibly dashboard-edited) config module."""
        values = {}
        for name, field_name in _FIELDS.items():
            value = getattr(cfg, name)
            if name in _LIST_PARAMS:
                value = tuple(int(v) for v in value)
            values[field_name] = value
        return cls(**values)

    def replace(self, **changes) -> "SimParams":
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        def check(ok: bool, msg: str) -> None:
            if not ok:
                raise ConfigurationError(msg)

        check(self.tr > 0.0, "Total resources must be positive.")
        check(self.co >= 1, "There must be at least one cost object.")
        check(self.rcp >= 1, "There must be at least one resource.")
        check(self.num_firms >= 1, "There must be at least one firm in the sample.")
        check(self.disp1 >= 1, "DISP1 must be positive.")
        for name in ("disp2_min", "disp2_max"):
            check(0.0 < getattr(self, name) < 1.0, "DISP2 must be between 0.0 and 1.0, exclusive.")
        for name in ("dns_min", "dns_max"):
            check(0.0 < getattr(self, name) < 1.0, f"{name.upper()} must be between 0.0 and 1.0, exclusive.")
        check(len(self.acp) > 0, "You must specify at least one value of ACP.")
        check(all(a >= 1 for a in self.acp), "Number of cost pools must be positive.")
        check(all(0 <= p <= 3 for p in self.pacp), "Valid values for PACP are 0, 1, 2, 3.")
        check(all(0 <= r <= 1 for r in self.pdr), "Valid values for PDR are 0 and 1.")
        check(self.num >= 1, "NUM must be positive.")
        check(0.0 < self.misc_pool_size < 1.0, "MISCPOOLSIZE must be between 0.0 and 1.0, exclusive.")
        for name in ("cor1lb", "cor1ub", "cor2lb", "cor2ub"):
            check(-1.0 <= getattr(self, name) <= 1.0, f"{name.upper()} must be between -1.0 and 1.0, inclusive.")
        check(0.0 <= self.cc <= 1.0, "CC must be between 0.0 and 1.0, inclusive.")
        check(self.marlb > 0.0 and self.marub > 0.0, "MARLB and MARUB must be positive.")
        check(self.startmix in (0, 1), "STARTMIX must be 0 or 1.")
        check(0.0 <= self.exclude <= 1.0, "EXCLUDE must be between 0 and 1, inclusive.")
        check(self.hysteresis >= 0.0, "HYSTERESIS must be greater than or equal to 0.")

        # cross-parameter constraints
        check(self.rcp >= self.co, "RCP must be greater than or equal to CO.")
        check(self.disp1 <= self.rcp, "DISP1 must be less than or equal to RCP.")
        check(self.disp2_min >= self.disp1 / self.rcp, "DISP2_MIN must be greater than or equal to (DISP1 / RCP).")
        check(self.disp2_max >= self.disp2_min, "DISP2_MAX must be greater than or equal to DISP2_MIN.")
        check(self.dns_max >= self.dns_min, "DNS_MAX must be greater than or equal to DNS_MIN.")
        check(max(self.acp) <= self.rcp,
              "Number of activity cost pools must be less than or equal to the number of resources.")
        check(self.num * max(self.acp) <= self.rcp,
              "Number of resources used in indexed drivers is greater than number of available resources.")
        check(self.cor1ub >= self.cor1lb, "COR1UB must be greater than or equal to COR1LB.")
        check(self.cor2ub >= self.cor2lb, "COR2UB must be greater than or equal to COR2LB.")
        check(self.marub >= self.marlb, "MARUB must be greater than or equal to MARLB.")

    def to_input_lines(self) -> List[str]:
        """Render the parameters in input-file format (seed pinned)."""
        lines = []
        for name, field_name in _FIELDS.items():
            value = getattr(self, field_name)
            if name == "USESEED":
                value = "TRUE"
            if isinstance(value, tuple):
                lines.append(",".join([name] + [str(v) for v in value]))
            else:
                lines.append(f"{name},{value}")
        return lines


def _parse_scalar(name: str, raw: str):
    raw = raw.strip()
    if name == "USESEED":
        if raw.upper() == "TRUE":
            return True
        if raw.upper() == "FALSE":
            return False
        raise ConfigurationError("Invalid value for USESEED in input file.")
    try:
        return int(raw) if name in _INT_PARAMS else float(raw)
    except ValueError:
        kind = "int" if name in _INT_PARAMS else "float"
        raise ConfigurationError(f"The string {raw!r} cannot be converted to {kind}") from None


def load_input_file(path: str | Path) -> SimParams:
    """
    Read parameters from a text file with one `NAME,value[,value...]` per line.

    Lines starting with `//` are comments. Only ACP, PACP and PDR accept lists.
    Every parameter must be present; unknown names are rejected.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Could not find input file: {path}")

    values: Dict[str, object] = {}
    for line in path.read_text().splitlines():
        if line.startswith("//") or not line.strip():
            continue

        parts = line.strip().split(",")
        if len(parts) < 2:
            raise ConfigurationError(
                f"The input line {line!r} is invalid. Enter parameter name, a comma, "
                "and then a value or comma-separated list of values"
            )

        name = parts[0].strip().upper()
        if name not in _FIELDS:
            raise ConfigurationError(f"The parameter name {name} is invalid.")

        if name in _LIST_PARAMS:
            try:
                value = tuple(int(v) for v in parts[1:])
            except ValueError:
                raise ConfigurationError(f"{name} must be a list of integers.") from None
        else:
            if len(parts) != 2:
                raise ConfigurationError(f"Looks like you entered multiple values for parameter {name}. Only 1 is allowed.")
            value = _parse_scalar(name, parts[1])

        values[_FIELDS[name]] = value

    missing = [name for name, field_name in _FIELDS.items() if field_name not in values]
    if missing:
        raise ConfigurationError("Parameters missing from input file: " + ", ".join(missing))

    return SimParams(**values)
