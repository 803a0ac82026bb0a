"""
===========================================================
lyapunov.py
Last Updated: 2026-10-18
===========================================================

Description:
    Closed-form relations along trajectories of the dimensionless
    SIR system with a fixed reproduction number R:

        ds/dτ = -R s i,     di/dτ = R s i - i

    The quantity V(s, i; R) = s + i - (1 + ln(R s)) / R is
    conserved along every trajectory, and equals the peak
    prevalence of that trajectory once s has crossed 1/R.

API:
    - lyapunov(s, i, R)
    - peak_no_intervention(R0)
    - infectious_on_trajectory(s, s0, i0, R)
    - final_susceptible(s0, i0, R)
    - peak_after_long_intervention(s, R0)
    - optimal_strict_susceptible(R0)
    - strict_intervention_floor(R0)

Notes:
    - Lambert-W comes from scipy.special (branches k=0 and k=-1).
    - V is undefined for s <= 0; callers keep s strictly positive.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from scipy.special import lambertw

# branch point of the real Lambert-W function
_BRANCH_POINT = -np.exp(-1.0)
_ROUNDOFF = 1e-12


def _real_lambertw(x: float, k: int) -> float:
    """Real-valued Lambert-W on branch k (0 or -1) with domain checks"""
    x = float(x)
    if x < _BRANCH_POINT:
        if _BRANCH_POINT - x > _ROUNDOFF:
            raise ValueError(f"Lambert-W argument {x!r} is below -1/e")
        x = _BRANCH_POINT  # round-off at the branch point
    if k == -1 and x >= 0.0:
        raise ValueError(f"Lambert-W branch -1 requires a negative argument, got {x!r}")
    w = lambertw(x, k=k)
    if abs(w.imag) > 1e-9:
        raise ValueError(f"Lambert-W({x!r}, k={k}) has no real value")
    return float(w.real)


def lyapunov(s, i, R):
    """Conserved quantity V(s, i; R) of the SIR system with reproduction number R"""
    if R <= 0:
        raise ValueError(f"R must be positive, got {R!r}")
    s = np.asarray(s, dtype=float)
    if np.any(s <= 0):
        raise ValueError("V(s, i; R) requires s > 0")
    V = s + np.asarray(i, dtype=float) - (1.0 + np.log(R * s)) / R
    return float(V) if V.ndim == 0 else V


def peak_no_intervention(R0: float) -> float:
    """Peak prevalence of the uncontrolled epidemic, V(1, 0; R0)"""
    return lyapunov(1.0, 0.0, R0)


def strict_intervention_floor(R0: float) -> float:
    """
    Lowest peak reachable by a strict (kappa=1), indefinitely long
    intervention: half of the uncontrolled peak.
    """
    return 0.5 * peak_no_intervention(R0)


def infectious_on_trajectory(s, s0: float, i0: float, R: float):
    """
    Infectious fraction i(s) on the trajectory through (s0, i0)
    with reproduction number R.
    """
    if s0 <= 0:
        raise ValueError("s0 must be positive")
    s = np.asarray(s, dtype=float)
    i = s0 - s + i0 + np.log(s / s0) / R
    return float(i) if i.ndim == 0 else i


def final_susceptible(s0: float, i0: float, R: float) -> float:
    """
    Terminal susceptible fraction s_inf reached from (s0, i0) with
    reproduction number R, using the principal Lambert-W branch:

        s_inf = -W0(-s0 R exp(-(s0 + i0) R)) / R
    """
    if R <= 0:
        raise ValueError(f"R must be positive, got {R!r}")
    if s0 <= 0:
        raise ValueError("s0 must be positive")
    arg = -s0 * R * np.exp(-(s0 + i0) * R)
    return -_real_lambertw(arg, k=0) / R


def peak_after_long_intervention(s, R0: float):
    """Post-intervention peak V(s, 0; R0) when the window ends with i = 0"""
    return lyapunov(s, 0.0, R0)


def optimal_strict_susceptible(R0: float) -> float:
    """
    Susceptible fraction at which a strict, indefinitely long
    intervention should start. At this point the pre-window peak
    and the post-window peak are both V(1, 0; R0) / 2.

    The pre-peak branch of i(s) = i_opt is selected with W_{-1}.
    """
    if R0 <= 1:
        raise ValueError(f"R0 must exceed 1, got {R0!r}")
    i_opt = strict_intervention_floor(R0)
    arg = -R0 * np.exp(-R0 * (1.0 - i_opt))
    return -_real_lambertw(arg, k=-1) / R0
