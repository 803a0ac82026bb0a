"""
===========================================================
sir_intervention.py
Last Updated: 2026-10-18
===========================================================

Description:
    Dimensionless SIR model with a time-bounded intervention
    (e.g. a lockdown). Time is measured in mean infectious
    periods, so the recovery rate is 1 and the transmission
    rate equals the reproduction number:

        ds/dτ = -R_eff(τ) s i
        di/dτ =  R_eff(τ) s i - i

    with R_eff = R0 (1 - kappa) inside the window
    [tau_m, tau_m + delta_m] and R_eff = R0 outside it.

    Defines:
        - effective_R(): reproduction number in force at time t
        - sir_intervention_rhs(), sir_rhs(): ODE right-hand sides
        - Trajectory: sampled (t, s, i) output
        - simulate(): integrate the system with scipy's odeint
        - IntegrationError: raised when odeint does not succeed

Example Usage:
    from sirpeak.sir_intervention import simulate
    traj = simulate(R0=3, tau_m=5.75, delta_m=10, kappa=1,
                    N=1e6, t_end=30, dt=0.1)
    traj.peak()

Notes:
    - The window is closed at both ends: only t > tau_m + delta_m
      counts as "after". This matches the reference numbers and
      is kept even though the right edge looks like an off-by-one.
    - odeint (LSODA) switches between stiff and non-stiff methods.
      simulate() integrates each piece between window edges on its
      own, with R_eff constant on the piece, and checks the solver
      status: a failed piece raises IntegrationError.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import warnings
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple
from scipy.integrate import odeint, ODEintWarning

from sirpeak.parameters import validate_model_inputs

# integrator tolerances; i0 = 1/N can be as small as 1e-7
RTOL = 1e-10
ATOL = 1e-12
# round-off allowed on the bounds 0 <= i and s + i <= 1
STATE_SLACK = 1e-8


def effective_R(t: float, R0: float, tau_m: float, delta_m: float, kappa: float) -> float:
    """Reproduction number in force at time t"""
    if t < tau_m or t > tau_m + delta_m:
        return R0
    return R0 * (1.0 - kappa)


def sir_intervention_rhs(y, t, R0, tau_m, delta_m, kappa):
    """
    Right-hand side of the SIR system with a windowed intervention.

    Parameters:
    y: array-like. Current state [s, i]
    t: float. Current time
    R0: float. Basic reproduction number
    tau_m, delta_m: float. Intervention onset and duration
    kappa: float. Fraction of transmission removed during the window

    Returns:
    list: derivatives [ds/dτ, di/dτ]
    """
    s, i = y
    R = effective_R(t, R0, tau_m, delta_m, kappa)
    ds = -R * s * i
    di = R * s * i - i
    return [ds, di]


def sir_rhs(y, t, R0):
    """Right-hand side of the uncontrolled SIR system"""
    s, i = y
    return [-R0 * s * i, R0 * s * i - i]


def initial_state(N: float) -> Tuple[float, float]:
    """One infectious individual in an otherwise susceptible population"""
    if N <= 1:
        raise ValueError(f"N must be greater than 1 (got {N!r})")
    return (N - 1.0) / N, 1.0 / N


@dataclass(frozen=True)
class Trajectory:
    """Sampled trajectory: strictly increasing t with matching s and i"""
    t: np.ndarray
    s: np.ndarray
    i: np.ndarray

    def __post_init__(self):
        # frozen private copies; the caller's arrays stay untouched
        for name in ("t", "s", "i"):
            arr = np.array(getattr(self, name), dtype=float)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)
        if not (len(self.t) == len(self.s) == len(self.i)):
            raise ValueError("t, s and i must have the same length")
        if len(self.t) > 1 and np.any(np.diff(self.t) <= 0):
            raise ValueError("trajectory times must be strictly increasing")

    def peak(self) -> float:
        return float(np.max(self.i))

    def peak_time(self) -> float:
        return float(self.t[int(np.argmax(self.i))])

    def final_state(self) -> Tuple[float, float]:
        return float(self.s[-1]), float(self.i[-1])

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({"t": self.t, "s": self.s, "i": self.i, "r": 1.0 - self.s - self.i})


def time_grid(t_start: float, t_end: float, dt: float, breakpoints: Iterable[float] = ()) -> np.ndarray:
    """
    Uniform grid with step dt from t_start, always ending exactly at
    t_end and containing every breakpoint inside [t_start, t_end].
    """
    if dt <= 0:
        raise ValueError(f"dt must be positive (got {dt!r})")
    if t_end < t_start:
        raise ValueError("t_end must not precede t_start")
    t = np.arange(t_start, t_end, dt)
    extra = [b for b in breakpoints if t_start <= b <= t_end]
    t = np.unique(np.concatenate([t, [t_start, t_end], extra]).astype(float))
    return t


class IntegrationError(RuntimeError):
    """The ODE solver did not complete a segment or left the state space"""


def _integrate_segment(y0, t: np.ndarray, R: float) -> np.ndarray:
    """
    Integrate ds/dτ = -R s i, di/dτ = R s i - i with constant R over the
    sample times t (t[0] is the time of y0). Raises IntegrationError
    instead of returning the solver's partial output.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ODEintWarning)
        solution, info = odeint(sir_rhs, y0, t, args=(R,), rtol=RTOL, atol=ATOL, full_output=True)
    span = f"[{t[0]:g}, {t[-1]:g}] with R={R:g}"
    if info["message"] != "Integration successful.":
        raise IntegrationError(f"odeint failed on {span}: {info['message']}")
    s, i = solution.T
    if not np.all(np.isfinite(solution)):
        raise IntegrationError(f"non-finite state on {span}")
    if np.any(s <= 0) or np.any(i < -STATE_SLACK) or np.any(s + i > 1.0 + STATE_SLACK):
        raise IntegrationError(f"state left 0 < s, 0 <= i, s + i <= 1 on {span}")
    return solution


def _segments(t_start: float, t_end: float, edges: Iterable[float]):
    """Consecutive (a, b) pieces of [t_start, t_end] split at the interior edges"""
    cuts = sorted({t_start, t_end, *(e for e in edges if t_start < e < t_end)})
    return list(zip(cuts[:-1], cuts[1:]))


def simulate(R0: float,
             tau_m: float,
             delta_m: float,
             kappa: float,
             N: float,
             t_end: float,
             dt: float = 0.1,
             t_start: float = 0.0) -> Trajectory:
    """
    Integrate the SIR system with intervention from (s0, i0) = ((N-1)/N, 1/N).

    The time axis is cut at tau_m and tau_m + delta_m and each piece is
    integrated separately with the reproduction number in force on it,
    so the solver never steps across a jump in R.

    Parameters
    ----------
    R0 : float
        Basic reproduction number (> 1)
    tau_m, delta_m, kappa : float
        Intervention onset, duration and strength
    N : float
        Population size; only sets the infectious seed 1/N
    t_end : float
        Last sampled time
    dt : float
        Step of the uniform output grid
    t_start : float
        Time of the initial condition

    Returns
    -------
    Trajectory

    Raises
    ------
    IntegrationError
        If odeint reports a failure on any piece.
    """
    validate_model_inputs(R0, N)
    if tau_m < 0 or delta_m < 0:
        raise ValueError("tau_m and delta_m must be non-negative")

    edges = (tau_m, tau_m + delta_m)
    t = time_grid(t_start, t_end, dt, breakpoints=edges)
    y = np.empty((len(t), 2))
    y[0] = initial_state(N)

    for a, b in _segments(t_start, t_end, edges):
        # a and b are both on the grid
        lo, hi = np.searchsorted(t, [a, b])
        R = effective_R(0.5 * (a + b), R0, tau_m, delta_m, kappa)
        y[lo:hi + 1] = _integrate_segment(y[lo], t[lo:hi + 1], R)

    return Trajectory(t=t, s=y[:, 0], i=y[:, 1])


def simulate_no_intervention(R0: float, N: float, t_end: float, dt: float = 0.1) -> Trajectory:
    """Uncontrolled epidemic from one infectious individual"""
    validate_model_inputs(R0, N)
    t = time_grid(0.0, t_end, dt)
    if len(t) == 1:
        s0, i0 = initial_state(N)
        return Trajectory(t=t, s=[s0], i=[i0])
    solution = _integrate_segment(initial_state(N), t, R0)
    return Trajectory(t=t, s=solution[:, 0], i=solution[:, 1])


def default_horizon(R0: float, N: float) -> float:
    """
    Horizon long enough to contain the uncontrolled peak: the early
    growth rate is R0 - 1, so the peak arrives after roughly
    ln(N) / (R0 - 1) time units.
    """
    return max(20.0, 3.0 * np.log(N) / (R0 - 1.0))


def peak_time_no_intervention(R0: float, N: float, dt: float = 0.1, t_end: Optional[float] = None) -> float:
    """Time of maximal prevalence of the uncontrolled epidemic"""
    validate_model_inputs(R0, N)
    if t_end is None:
        t_end = default_horizon(R0, N)
    traj = simulate_no_intervention(R0, N, t_end, dt)
    return traj.peak_time()


def time_at_susceptible(R0: float, N: float, s_target: float, dt: float = 0.1,
                        t_end: Optional[float] = None) -> float:
    """
    First time the uncontrolled trajectory reaches the susceptible
    fraction s_target (linear interpolation between samples).
    """
    validate_model_inputs(R0, N)
    if t_end is None:
        t_end = default_horizon(R0, N)
    traj = simulate_no_intervention(R0, N, t_end, dt)
    if s_target > traj.s[0]:
        return 0.0
    if s_target < traj.s[-1]:
        raise ValueError(f"s_target={s_target!r} is never reached before t={t_end:g}")
    # s is decreasing, np.interp wants increasing abscissae
    return float(np.interp(s_target, traj.s[::-1], traj.t[::-1]))
