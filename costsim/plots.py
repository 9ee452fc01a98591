import matplotlib.pyplot as plt

OUTCOME_ORDER = ["Equilibrium", "Cycle", "ZeroMix", "NaN"]
POLICY_NAMES = {0: "size", 1: "correlation", 2: "random", 3: "sequential"}


def _groups(df):
    if "PDR" in df.columns and df["PDR"].nunique() > 1:
        return [(f"PDR={r}", d) for r, d in df.groupby("PDR", sort=True)]
    return [("all", df)]


def plot_outcome_shares(df_loop, show: bool = True):
    """Stacked bars of outcome shares per pooling policy and pool count, one figure per driver policy."""
    figs = []
    for label, df in _groups(df_loop):
        tag = "" if label == "all" else f" [{label}]"
        shares = (
            df.groupby(["PACP", "ACP"])["outcome"]
            .value_counts(normalize=True)
            .unstack(fill_value=0.0)
            .reindex(columns=[o for o in OUTCOME_ORDER if o in set(df["outcome"])])
        )
        shares.index = [f"{POLICY_NAMES.get(p, p)} / a={a}" for p, a in shares.index]

        fig, ax = plt.subplots(figsize=(10, 4))
        shares.plot.bar(stacked=True, ax=ax)
        ax.set_xlabel("Pooling policy / pools"); ax.set_ylabel("Share of cost systems")
        ax.set_ylim(0, 1); ax.legend(title="Outcome", bbox_to_anchor=(1.02, 1), loc="upper left")
        ax.set_title(f"Outcomes by cost system design{tag}")
        fig.tight_layout()
        figs.append(fig)
        if show:
            plt.show()
    return figs


def plot_error_by_pools(df_error, show: bool = True):
    """Mean percent error in reported costs against the number of cost pools."""
    fig, ax = plt.subplots()
    for (p, r), d in df_error.groupby(["PACP", "PDR"], sort=True):
        mpe = d.groupby("ACP")["MPE"].mean()
        ax.plot(mpe.index, mpe.values, marker="o", label=f"{POLICY_NAMES.get(p, p)}, PDR={r}")
    ax.set_xlabel("Activity cost pools"); ax.set_ylabel("Mean percent error")
    ax.set_title("Cost error by number of pools")
    ax.legend(fontsize=8); ax.grid(True)
    fig.tight_layout()
    if show:
        plt.show()
    return fig
