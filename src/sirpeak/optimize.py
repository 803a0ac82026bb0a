"""
===========================================================
optimize.py
Last Updated: 2026-10-18
===========================================================

Description:
    Search for the intervention onset that minimises the global
    peak prevalence, for fixed R0, duration and strength.

API:
    - optimize_onset(R0, delta_m, kappa, N, dt, search_interval) -> OnsetResult
    - optimize_limit(R0, kappa) -> LimitResult
    - refine_onset(R0, delta_m, kappa, N, dt, tau_m, half_width) -> OnsetResult

Notes:
    - Uses scipy's bounded Brent method (minimize_scalar,
      method="bounded"). The objective is a max() of two branches
      and is not smooth at the optimum; in flat regions the
      returned onset is an estimate. refine_onset() re-checks an
      optimum on a local grid when precision matters.
    - Failures raise OptimizationError; nothing is substituted.
      A simulation that odeint could not complete (IntegrationError)
      is reported the same way.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple
from scipy.optimize import minimize_scalar

from sirpeak.parameters import validate_model_inputs
from sirpeak.peak import peak_prevalence, limit_peak_prevalence
from sirpeak.sir_intervention import IntegrationError, peak_time_no_intervention


class OptimizationError(RuntimeError):
    """The minimiser failed or the objective was not finite"""


@dataclass
class OnsetResult:
    tau_m: float
    peak: float
    nfev: int
    converged: bool = True


@dataclass
class LimitResult:
    s_start: float
    peak: float
    nfev: int
    converged: bool = True


def _bounded_minimize(objective, bounds: Tuple[float, float], xatol: float, maxiter: int, label: str):
    lo, hi = float(bounds[0]), float(bounds[1])
    if not (np.isfinite(lo) and np.isfinite(hi)) or hi <= lo:
        raise ValueError(f"invalid search interval {bounds!r} for {label}")
    res = minimize_scalar(objective, bounds=(lo, hi), method="bounded",
                          options={"xatol": xatol, "maxiter": maxiter})
    if not res.success:
        raise OptimizationError(f"minimiser did not converge for {label}: {res.message}")
    if not (np.isfinite(res.x) and np.isfinite(res.fun)):
        raise OptimizationError(f"non-finite optimum for {label}: x={res.x!r}, f={res.fun!r}")
    return res


def optimize_onset(R0: float,
                   delta_m: float,
                   kappa: float,
                   N: float = 1e6,
                   dt: float = 0.1,
                   search_interval: Optional[Tuple[float, float]] = None,
                   xatol: float = 1e-4,
                   maxiter: int = 500) -> OnsetResult:
    """
    Find the onset tau_m minimising peak_prevalence(R0, tau_m, delta_m, kappa).

    Parameters
    ----------
    R0 : float
        Basic reproduction number
    delta_m, kappa : float
        Intervention duration and strength
    N, dt : float
        Population size and output step for the simulation
    search_interval : tuple, optional
        (lower, upper) bounds on tau_m. Defaults to
        [0, time-to-peak of the uncontrolled epidemic].
    xatol, maxiter
        Tolerance and iteration cap passed to the minimiser

    Returns
    -------
    OnsetResult

    Raises
    ------
    OptimizationError
        If the minimiser fails, the optimum is not finite, or a
        simulation inside the objective fails.
    """
    validate_model_inputs(R0, N)

    def objective(tau_m: float) -> float:
        return peak_prevalence(R0, tau_m, delta_m, kappa, N, dt)

    label = f"R0={R0:g}, delta_m={delta_m:g}, kappa={kappa:g}"
    try:
        if search_interval is None:
            search_interval = (0.0, peak_time_no_intervention(R0, N, dt))
        res = _bounded_minimize(objective, search_interval, xatol, maxiter, label)
    except IntegrationError as err:
        raise OptimizationError(f"simulation failed for {label}: {err}") from err
    return OnsetResult(tau_m=float(res.x), peak=float(res.fun), nfev=int(res.nfev))


def optimize_limit(R0: float, kappa: float, xatol: float = 1e-8, maxiter: int = 500) -> LimitResult:
    """Best onset susceptible fraction in [1/R0, 1] for an indefinitely long intervention"""
    if R0 <= 1:
        raise ValueError(f"R0 must exceed 1, got {R0!r}")

    def objective(s_start: float) -> float:
        return limit_peak_prevalence(R0, kappa, s_start)

    label = f"R0={R0:g}, kappa={kappa:g}, delta_m=inf"
    res = _bounded_minimize(objective, (1.0 / R0, 1.0), xatol, maxiter, label)
    return LimitResult(s_start=float(res.x), peak=float(res.fun), nfev=int(res.nfev))


def refine_onset(R0: float,
                 delta_m: float,
                 kappa: float,
                 N: float,
                 dt: float,
                 tau_m: float,
                 half_width: float,
                 n: int = 21) -> OnsetResult:
    """Evaluate the objective on a local grid around tau_m and keep the best point"""
    taus = np.linspace(max(0.0, tau_m - half_width), tau_m + half_width, n)
    try:
        peaks = np.array([peak_prevalence(R0, tau, delta_m, kappa, N, dt) for tau in taus])
    except IntegrationError as err:
        raise OptimizationError(f"simulation failed during refinement around tau_m={tau_m:g}: {err}") from err
    if not np.all(np.isfinite(peaks)):
        raise OptimizationError(f"non-finite peak during refinement around tau_m={tau_m:g}")
    best = int(np.argmin(peaks))
    return OnsetResult(tau_m=float(taus[best]), peak=float(peaks[best]), nfev=n)
