"""
===========================================================
figures.py
Last Updated: 2026-10-18
===========================================================
Visualization functions for intervention-timing analysis.

Time series and phase portraits of single trajectories,
and summaries of sweep results (phi and optimal onset
against intervention strength).
"""
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Optional
from matplotlib.axes import Axes

from sirpeak.lyapunov import (lyapunov, peak_no_intervention, infectious_on_trajectory,
                              peak_after_long_intervention, optimal_strict_susceptible,
                              strict_intervention_floor)
from sirpeak.sir_intervention import Trajectory


def plot_trajectory(traj: Trajectory,
                    R0: float,
                    tau_m: Optional[float] = None,
                    delta_m: Optional[float] = None,
                    ax: Optional[Axes] = None,
                    show: bool = True,
                    title: Optional[str] = None) -> Axes:
    """
    Plot s and i against time, shading the intervention window.

    Parameters
    ----------
    traj : Trajectory
        Simulated trajectory
    R0 : float
        Basic reproduction number (sets the V(1,0;R0) reference line)
    tau_m, delta_m : float, optional
        Intervention window to shade
    ax : matplotlib.axes.Axes, optional
        Axes to plot on. If None, creates new figure
    show : bool
        Whether to display the plot immediately
    title : str, optional
        Custom title

    Returns
    -------
    ax : matplotlib.axes.Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))

    ax.plot(traj.t, traj.s, 'b-', linewidth=2, label='Susceptible')
    ax.plot(traj.t, traj.i, 'r-', linewidth=2, label='Infectious')
    ax.axhline(y=peak_no_intervention(R0), color='gray', linestyle='--', alpha=0.6,
               label='Uncontrolled peak $V(1,0;R_0)$')

    if tau_m is not None and delta_m is not None:
        ax.axvspan(tau_m, tau_m + delta_m, color='orange', alpha=0.15, label='Intervention')

    ax.set_xlabel(r'Time $\tau$ (infectious periods)', fontsize=12)
    ax.set_ylabel('Fraction of population', fontsize=12)
    ax.set_title(title if title else f'SIR with intervention ($R_0$ = {R0:.2f})', fontsize=14)
    ax.legend(fontsize=11)
    ax.grid(True, alpha=0.3)

    if show:
        plt.tight_layout()
        plt.show()

    return ax


def plot_phase_portrait(traj: Trajectory,
                        R0: float,
                        ax: Optional[Axes] = None,
                        show: bool = True,
                        label: Optional[str] = None,
                        **plot_kwargs) -> Axes:
    """Plot the trajectory in the s-i plane with the threshold s = 1/R0"""
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 8))

    default_kwargs = {'linewidth': 2, 'alpha': 0.8}
    default_kwargs.update(plot_kwargs)
    ax.plot(traj.s, traj.i, label=label if label else f'$R_0$ = {R0:.2f}', **default_kwargs)

    # level set of V through the start of the trajectory
    s_grid = np.linspace(max(traj.s.min(), 1e-3), 1.0, 200)
    V0 = lyapunov(traj.s[0], traj.i[0], R0)
    i_level = V0 - peak_after_long_intervention(s_grid, R0)
    ax.plot(s_grid, np.clip(i_level, 0, None), color='gray', linestyle=':', alpha=0.6,
            label='Uncontrolled level set')
    ax.axvline(x=1.0 / R0, color='gray', linestyle='--', linewidth=1.5, alpha=0.6,
               label='Threshold ($s = 1/R_0$)')

    ax.set_xlabel('Susceptible (s)', fontsize=12)
    ax.set_ylabel('Infectious (i)', fontsize=12)
    ax.set_title('Phase portrait (s-i plane)', fontsize=14)
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=10)

    if show:
        plt.tight_layout()
        plt.show()

    return ax


def plot_phi_vs_kappa(df: pd.DataFrame, R0: Optional[float] = None,
                      ax: Optional[Axes] = None, show: bool = True) -> Axes:
    """Relative peak change phi against kappa, one line per duration"""
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))
    data = df if R0 is None else df[np.isclose(df["R0"], R0)]

    sns.lineplot(data=data, x="kappa", y="phi", hue="delta_fraction",
                 style="R0" if R0 is None else None, palette="viridis", ax=ax)
    ax.set_xlabel(r'Intervention strength $\kappa$', fontsize=12)
    ax.set_ylabel(r'Relative peak change $\Phi$', fontsize=12)
    ax.set_title(r'Peak reduction at optimal onset', fontsize=14)
    ax.grid(True, alpha=0.3)

    if show:
        plt.tight_layout()
        plt.show()
    return ax


def plot_optimal_onset(df: pd.DataFrame, R0: float, ax: Optional[Axes] = None, show: bool = True) -> Axes:
    """Optimal onset tau_m* against kappa for one R0"""
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))
    data = df[np.isclose(df["R0"], R0)].dropna(subset=["tau_m_opt"])

    sns.lineplot(data=data, x="kappa", y="tau_m_opt", hue="delta_fraction", palette="viridis", ax=ax)
    ax.set_xlabel(r'Intervention strength $\kappa$', fontsize=12)
    ax.set_ylabel(r'Optimal onset $\tau_m^*$', fontsize=12)
    ax.set_title(f'Optimal intervention onset ($R_0$ = {R0:.2f})', fontsize=14)
    ax.grid(True, alpha=0.3)

    if show:
        plt.tight_layout()
        plt.show()
    return ax


def plot_limit_curves(R0: float, n: int = 400, ax: Optional[Axes] = None, show: bool = True) -> Axes:
    """
    Peak before and after a strict, indefinitely long intervention as a
    function of the susceptible fraction at onset. The curves cross at
    the closed-form optimum, half the uncontrolled peak.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))

    s = np.linspace(1.0 / R0, 1.0, n)
    pre = infectious_on_trajectory(s, 1.0, 0.0, R0)
    post = peak_after_long_intervention(s, R0)
    s_opt = optimal_strict_susceptible(R0)

    ax.plot(s, pre, 'r-', linewidth=2, label='Peak before onset')
    ax.plot(s, post, 'b-', linewidth=2, label='Peak after lifting')
    ax.plot(s, np.maximum(pre, post), 'k--', linewidth=1, alpha=0.6, label='Global peak')
    ax.plot([s_opt], [strict_intervention_floor(R0)], 'ko', markersize=8, label='Optimum')

    ax.set_xlabel('Susceptible fraction at onset', fontsize=12)
    ax.set_ylabel('Peak prevalence', fontsize=12)
    ax.set_title(f'Strict, indefinitely long intervention ($R_0$ = {R0:.2f})', fontsize=14)
    ax.legend(fontsize=11)
    ax.grid(True, alpha=0.3)

    if show:
        plt.tight_layout()
        plt.show()
    return ax
