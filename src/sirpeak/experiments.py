"""
===========================================================
experiments.py
Last Updated: 2026-10-18
===========================================================

Description:
    Parameter sweeps over (R0, delta_m, kappa): for every cell,
    optimise the intervention onset and collect the optimal
    onset, the resulting peak and the relative peak change
    phi = (peak* - V(1,0;R0)) / V(1,0;R0) into a tidy DataFrame.

Example Usage:
    from sirpeak.parameters import SweepParameters
    from sirpeak.experiments import run_sweep, pivot_for_plot
    df = run_sweep(SweepParameters(R0_values=(3.0,), kappa_step=0.05))
    X, Y, Z = pivot_for_plot(df, x="kappa", y="delta_fraction", value="phi")

Notes:
    - Rows are keyed by the numeric tuple (R0, delta_fraction,
      kappa); lookup() matches keys with np.isclose.
    - A kappa=0 row (phi=0, tau_m_opt=NaN) is added for every
      (R0, delta_m) pair so that curves start at the origin.
    - Cells are independent; the table does not depend on the
      order in which they are computed.
-----------------------------------------------------------
License: MIT
===========================================================
"""

import warnings
import numpy as np
import pandas as pd
from typing import Callable, Dict, Iterable, Optional, Tuple

from sirpeak.lyapunov import peak_no_intervention
from sirpeak.optimize import OptimizationError, optimize_onset, optimize_limit
from sirpeak.parameters import SweepParameters
from sirpeak.sir_intervention import peak_time_no_intervention

COLUMNS = ["R0", "delta_fraction", "delta_m", "kappa", "tau_m_opt", "peak_opt", "phi", "converged"]
KEY = ["R0", "delta_fraction", "kappa"]

ProgressCallback = Callable[[int, int, Tuple[float, float, float]], None]


def relative_peak_change(peak: float, R0: float) -> float:
    """phi: negative when the intervention lowers the peak"""
    baseline = peak_no_intervention(R0)
    return (peak - baseline) / baseline


def _baseline_row(R0, delta_fraction, delta_m):
    return {
        "R0": R0, "delta_fraction": delta_fraction, "delta_m": delta_m, "kappa": 0.0,
        "tau_m_opt": np.nan, "peak_opt": peak_no_intervention(R0), "phi": 0.0, "converged": True,
    }


def sweep_cell(R0: float,
               delta_fraction: float,
               kappa: float,
               params: SweepParameters,
               tau_peak: float) -> Dict:
    """Optimise one (R0, delta_m, kappa) cell and return its row"""
    delta_m = delta_fraction * tau_peak
    res = optimize_onset(R0, delta_m, kappa, N=params.N, dt=params.dt,
                         search_interval=(0.0, tau_peak),
                         xatol=params.xatol, maxiter=params.maxiter)
    return {
        "R0": R0, "delta_fraction": delta_fraction, "delta_m": delta_m, "kappa": kappa,
        "tau_m_opt": res.tau_m, "peak_opt": res.peak,
        "phi": relative_peak_change(res.peak, R0), "converged": res.converged,
    }


def run_sweep(params: SweepParameters, progress: Optional[ProgressCallback] = None) -> pd.DataFrame:
    """
    Optimise the intervention onset over the full (R0, delta_m, kappa) grid.

    Parameters
    ----------
    params : SweepParameters
        Grids and numerical settings (validated on construction)
    progress : callable, optional
        Called as progress(done, total, (R0, delta_fraction, kappa))
        after every optimised cell

    Returns
    -------
    pd.DataFrame
        One row per key, columns COLUMNS, sorted by KEY
    """
    records = []
    total = params.n_cells
    done = 0
    for R0 in params.R0_values:
        tau_peak = peak_time_no_intervention(R0, params.N, params.dt)
        for frac in params.delta_fractions:
            records.append(_baseline_row(R0, frac, frac * tau_peak))
            for kappa in params.kappas:
                key = (R0, frac, kappa)
                try:
                    records.append(sweep_cell(R0, frac, kappa, params, tau_peak))
                except OptimizationError as e:
                    if params.on_failure == "raise":
                        raise
                    warnings.warn(f"Optimization failed for (R0, delta_fraction, kappa)={key}: {e}",
                                  RuntimeWarning)
                    if params.on_failure == "mark":
                        records.append({
                            "R0": R0, "delta_fraction": frac, "delta_m": frac * tau_peak,
                            "kappa": kappa, "tau_m_opt": np.nan, "peak_opt": np.nan,
                            "phi": np.nan, "converged": False,
                        })
                done += 1
                if progress is not None:
                    progress(done, total, key)

    df = pd.DataFrame.from_records(records, columns=COLUMNS)
    return df.sort_values(KEY).reset_index(drop=True)


def run_limit_sweep(R0_values: Iterable[float], kappas: Iterable[float]) -> pd.DataFrame:
    """Optimal onset (as a susceptible fraction) for indefinitely long interventions"""
    records = []
    for R0 in R0_values:
        for kappa in kappas:
            res = optimize_limit(float(R0), float(kappa))
            records.append({
                "R0": float(R0), "kappa": float(kappa),
                "s_start_opt": res.s_start, "peak_opt": res.peak,
                "phi": relative_peak_change(res.peak, float(R0)),
            })
    df = pd.DataFrame.from_records(records, columns=["R0", "kappa", "s_start_opt", "peak_opt", "phi"])
    return df.sort_values(["R0", "kappa"]).reset_index(drop=True)


def lookup(df: pd.DataFrame, R0: float, delta_fraction: float, kappa: float) -> pd.Series:
    """Row for a numeric key; raises KeyError if absent"""
    mask = (np.isclose(df["R0"], R0)
            & np.isclose(df["delta_fraction"], delta_fraction)
            & np.isclose(df["kappa"], kappa))
    rows = df[mask]
    if rows.empty:
        raise KeyError(f"no row for (R0, delta_fraction, kappa)={(R0, delta_fraction, kappa)}")
    return rows.iloc[0]


def monotonic_violations(df: pd.DataFrame, tol: float = 1e-3) -> pd.DataFrame:
    """
    Rows whose optimised peak exceeds the peak at the next-lower kappa
    by more than tol, within each (R0, delta_fraction) group.
    """
    flagged = []
    for _, group in df.dropna(subset=["peak_opt"]).groupby(["R0", "delta_fraction"]):
        group = group.sort_values("kappa")
        increase = group["peak_opt"].diff()
        flagged.append(group[increase > tol])
    if not flagged:
        return df.iloc[0:0]
    return pd.concat(flagged).reset_index(drop=True)


def pivot_for_plot(df: pd.DataFrame, x: str, y: str, value: str):
    """Pivot a DataFrame to 2D arrays for plotting (heatmaps/contour)
    Return X_grid, Y_grid, Z_values
    """
    table = df.pivot_table(index=y, columns=x, values=value, aggfunc="first").sort_index().sort_index(axis=1)
    X, Y = np.meshgrid(table.columns.to_numpy(dtype=float), table.index.to_numpy(dtype=float))
    return X, Y, table.to_numpy(dtype=float)
