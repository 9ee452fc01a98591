import streamlit as st
import pandas as pd
import matplotlib.pyplot as plt

from costsim.plots import OUTCOME_ORDER, POLICY_NAMES, plot_error_by_pools, plot_outcome_shares

import importlib
import time

# Local modules
import costsim.config as cfg
import costsim.simulation.sim as sim_module
from costsim.core.errors import ConfigurationError
from costsim.services.output import OUTPUT_FILES
from costsim.services.params import SimParams

st.set_page_config(page_title="Cost System Simulation", layout="wide")

st.title("Cost System Distortion Simulation")

with st.sidebar:
    st.header("Configuration")
    # Core
    seed = st.number_input("Seed", min_value=0, value=cfg.SEED, step=1)
    NUM_FIRMS = st.number_input("Firms in sample", min_value=1, max_value=5000, value=int(cfg.NUM_FIRMS), step=1)
    workers = st.number_input("Worker processes", min_value=1, max_value=64, value=1, step=1)

    st.markdown("---")
    st.subheader("Firms")
    CO = st.number_input("Products (CO)", min_value=1, max_value=20, value=int(cfg.CO), step=1)
    RCP = st.number_input("Resources (RCP)", min_value=1, max_value=500, value=int(cfg.RCP), step=1)
    DISP1 = st.number_input("Big resources (DISP1)", min_value=1, max_value=500, value=int(cfg.DISP1), step=1)
    DISP2 = st.slider("Big resource share of TR (DISP2)", 0.01, 0.99, (float(cfg.DISP2_MIN), float(cfg.DISP2_MAX)))
    DNS = st.slider("Consumption density (DNS)", 0.01, 0.99, (float(cfg.DNS_MIN), float(cfg.DNS_MAX)))
    MAR = st.slider("True margin range (MAR)", 0.1, 5.0, (float(cfg.MARLB), float(cfg.MARUB)))

    st.markdown("---")
    st.subheader("Cost systems")
    ACP = st.multiselect("Activity cost pools (ACP)", options=list(range(1, 21)), default=list(cfg.ACP))
    PACP = st.multiselect("Pooling policies (PACP)", options=[0, 1, 2, 3], default=list(cfg.PACP),
                          format_func=lambda p: f"{p} - {POLICY_NAMES[p]}")
    PDR = st.multiselect("Driver policies (PDR)", options=[0, 1], default=list(cfg.PDR))
    NUM = st.number_input("Resources per indexed driver (NUM)", min_value=1, max_value=50, value=int(cfg.NUM), step=1)
    MISCPOOLSIZE = st.number_input("Miscellaneous pool floor", min_value=0.01, max_value=0.99, value=float(cfg.MISCPOOLSIZE), step=0.05)
    CC = st.number_input("Correlation cutoff (CC)", min_value=0.0, max_value=1.0, value=float(cfg.CC), step=0.05)

    st.markdown("---")
    st.subheader("Decisions")
    STARTMIX = st.radio("Starting mix", options=[0, 1], index=int(cfg.STARTMIX),
                        format_func=lambda s: "Benchmark" if s == 0 else "Random")
    EXCLUDE = st.number_input("Exclusion probability", min_value=0.0, max_value=1.0, value=float(cfg.EXCLUDE), step=0.05)
    HYSTERESIS = st.number_input("Hysteresis", min_value=0.0, max_value=1.0, value=float(cfg.HYSTERESIS), step=0.01, format="%.3f")

    st.markdown("---")
    run_btn = st.button("Run Simulation")

def set_config():
    # Assign chosen params to the config module
    cfg.SEED = int(seed)
    cfg.USESEED = True
    cfg.NUM_FIRMS = int(NUM_FIRMS)

    cfg.CO = int(CO)
    cfg.RCP = int(RCP)
    cfg.DISP1 = int(DISP1)
    cfg.DISP2_MIN, cfg.DISP2_MAX = DISP2
    cfg.DNS_MIN, cfg.DNS_MAX = DNS
    cfg.MARLB, cfg.MARUB = MAR

    cfg.ACP = sorted(ACP)
    cfg.PACP = sorted(PACP)
    cfg.PDR = sorted(PDR)
    cfg.NUM = int(NUM)
    cfg.MISCPOOLSIZE = float(MISCPOOLSIZE)
    cfg.CC = float(CC)

    cfg.STARTMIX = int(STARTMIX)
    cfg.EXCLUDE = float(EXCLUDE)
    cfg.HYSTERESIS = float(HYSTERESIS)

# =========================
# Run
# =========================
if run_btn:
    # 1) push sidebar values into cfg
    set_config()

    # 2) pick up any edits made to the simulation module while the app runs
    importlib.reload(sim_module)

    try:
        params = SimParams.from_config()
    except ConfigurationError as e:
        st.error(f"Invalid configuration: {e}")
        st.stop()

    with st.spinner("Simulating…"):
        t0 = time.perf_counter()
        results = sim_module.simulate_sample(params, workers=int(workers))
        runtime_s = time.perf_counter() - t0
    st.success("Done!")

    df_loop = results.costsys_loop
    c1, c2, c3 = st.columns(3)
    c1.metric("Runtime", f"{runtime_s:.3f} s")
    c2.metric("Cost systems", f"{len(df_loop)}")
    if not df_loop.empty:
        c3.metric("Equilibrium share", f"{(df_loop['outcome'] == 'Equilibrium').mean():.1%}")

    # =========================
    # Outcomes
    # =========================
    st.header("Outcomes")
    if not df_loop.empty:
        for fig in plot_outcome_shares(df_loop, show=False):
            st.pyplot(fig)

        shares = results.outcome_shares
        ordered = ["PACP", "ACP", "PDR"] + [o for o in OUTCOME_ORDER if o in shares.columns]
        st.dataframe(shares[ordered])

    # =========================
    # Cost error
    # =========================
    st.header("Reported cost error")
    df_error = results.costsys_error
    if not df_error.empty:
        c4, c5 = st.columns(2)
        with c4:
            st.pyplot(plot_error_by_pools(df_error, show=False))
        with c5:
            fig, ax = plt.subplots()
            ax.hist(df_error["MPE"].dropna(), bins=30)
            ax.set_xlabel("Mean percent error"); ax.set_ylabel("Count")
            ax.set_title("Distribution of MPE across cost systems")
            ax.grid(True)
            st.pyplot(fig)

    # =========================
    # Firms
    # =========================
    st.header("Firm benchmarks")
    st.dataframe(results.firm_sum)

    # =========================
    # Data and downloads
    # =========================
    for name, filename in OUTPUT_FILES.items():
        df: pd.DataFrame = getattr(results, name)
        with st.expander(filename):
            st.dataframe(df)
            st.download_button(
                f"Download {filename}",
                data=df.to_csv(index=False).encode("utf-8"),
                file_name=filename,
                mime="text/csv",
            )

else:
    st.info("Set parameters in the sidebar and click Run simulation.")
