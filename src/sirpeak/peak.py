"""
===========================================================
peak.py
Last Updated: 2026-10-18
===========================================================

Description:
    Global peak prevalence reached under an intervention.

    The trajectory is only simulated up to the end of the
    intervention window. Afterwards the system is autonomous
    again with reproduction number R0, so the eventual peak is
    read off the conserved quantity V(s_end, i_end; R0) instead
    of integrating the unbounded tail.

API:
    - evaluate_intervention(R0, tau_m, delta_m, kappa, N, dt) -> PeakEvaluation
    - peak_prevalence(R0, tau_m, delta_m, kappa, N, dt) -> float
    - peak_prevalence_no_intervention(R0, N) -> float
    - limit_peak_prevalence(R0, kappa, s_start) -> float

Notes:
    - limit_peak_prevalence() is the delta_m -> infinity case,
      parametrised by the susceptible fraction at onset rather
      than by the onset time. It is purely algebraic.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from sirpeak.lyapunov import lyapunov, infectious_on_trajectory, final_susceptible
from sirpeak.parameters import validate_model_inputs
from sirpeak.sir_intervention import simulate, initial_state


@dataclass(frozen=True)
class PeakEvaluation:
    peak_during: float  # max i up to the end of the window
    peak_post: float    # eventual peak after the window (0 if none)
    s_end: float
    i_end: float

    @property
    def peak(self) -> float:
        return max(self.peak_during, self.peak_post)


def _post_window_peak(s_end: float, i_end: float, R0: float) -> float:
    """Peak still to come once transmission returns to R0"""
    if s_end <= 1.0 / R0:
        return 0.0
    return lyapunov(s_end, i_end, R0)


def evaluate_intervention(R0: float,
                          tau_m: float,
                          delta_m: float,
                          kappa: float,
                          N: float = 1e6,
                          dt: float = 0.1) -> PeakEvaluation:
    """Simulate through the end of the window, then fast-forward with V"""
    traj = simulate(R0, tau_m, delta_m, kappa, N, t_end=tau_m + delta_m, dt=dt)
    s_end, i_end = traj.final_state()
    return PeakEvaluation(peak_during=traj.peak(),
                          peak_post=_post_window_peak(s_end, i_end, R0),
                          s_end=s_end,
                          i_end=i_end)


def peak_prevalence(R0: float,
                    tau_m: float,
                    delta_m: float,
                    kappa: float,
                    N: float = 1e6,
                    dt: float = 0.1) -> float:
    """Global peak prevalence for one intervention configuration"""
    return evaluate_intervention(R0, tau_m, delta_m, kappa, N, dt).peak


def peak_prevalence_no_intervention(R0: float, N: float = 1e6, dt: Optional[float] = None) -> float:
    """
    Exact uncontrolled peak from the seeded initial state ((N-1)/N, 1/N).
    dt is accepted for call compatibility with peak_prevalence and unused:
    the value is closed-form.
    """
    validate_model_inputs(R0, N)
    s0, i0 = initial_state(N)
    return lyapunov(s0, i0, R0)


def limit_peak_prevalence(R0: float,
                          kappa: float,
                          s_start: float,
                          s0: float = 1.0,
                          i0: float = 0.0) -> float:
    """
    Peak prevalence for an indefinitely long intervention that starts
    when the uncontrolled trajectory through (s0, i0) reaches s_start.

    Parameters:
    R0: float. Basic reproduction number
    kappa: float. Intervention strength in [0, 1]
    s_start: float. Susceptible fraction at onset, in (0, s0]
    s0, i0: float. Point fixing the uncontrolled trajectory

    Returns:
    float. max(peak during the intervention, peak after it is lifted)
    """
    if R0 <= 1:
        raise ValueError(f"R0 must exceed 1, got {R0!r}")
    if not 0.0 <= kappa <= 1.0:
        raise ValueError(f"kappa must lie in [0, 1] for the long-intervention limit, got {kappa!r}")
    if not 0.0 < s_start <= s0:
        raise ValueError(f"s_start must lie in (0, {s0}], got {s_start!r}")

    i_start = max(infectious_on_trajectory(s_start, s0, i0, R0), 0.0)

    if kappa == 1.0:
        # no transmission during the window: s is frozen, i decays to 0
        peak_during = i_start
        s_end_int = s_start
    else:
        R_int = R0 * (1.0 - kappa)
        if s_start <= 1.0 / R_int:
            peak_during = i_start
        else:
            peak_during = lyapunov(s_start, i_start, R_int)
        s_end_int = final_susceptible(s_start, i_start, R_int)

    peak_post = _post_window_peak(s_end_int, 0.0, R0)
    return float(max(peak_during, peak_post))
