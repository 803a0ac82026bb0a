"""
===============================================================================
parameters.py
Last Updated: 2026-10-18
===============================================================================
Parameters for the intervention-timing sweep

Grids over the basic reproduction number R0, the intervention duration
(as a fraction of the uncontrolled time-to-peak) and the intervention
strength kappa, plus the numerical settings shared by every cell of the
sweep. Malformed configuration is rejected here, before any simulation
is run.

All times are in units of the mean infectious period (dimensionless SIR).
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""

import numpy as np
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Tuple

FAILURE_POLICIES = ("mark", "skip", "raise")


def validate_model_inputs(R0: float, N: float) -> None:
    """Reject reproduction numbers without an outbreak and degenerate populations"""
    if not np.isfinite(R0) or R0 <= 1:
        raise ValueError(f"R0 must be a finite number greater than 1 (got {R0!r})")
    if not np.isfinite(N) or N <= 1:
        raise ValueError(f"N must be greater than 1 to seed one infectious individual (got {N!r})")


@dataclass
class SweepParameters:
    """
    Configuration of the (R0, delta_m, kappa) sweep.

    delta_m is given as a fraction of the time-to-peak of the
    uncontrolled epidemic for each R0. If `kappas` is None the
    strength grid is kappa_step, 2*kappa_step, ..., 1.
    """

    # ==================== Grids ==================================================
    R0_values: Tuple[float, ...] = (2.0, 3.0, 4.0)
    delta_fractions: Tuple[float, ...] = (0.25, 0.5, 1.0)
    kappa_step: float = 0.005
    kappas: Optional[Tuple[float, ...]] = None   # derived in __post_init__ if None

    # ==================== Model ==================================================
    N: float = 1e6      # population size, seeds i0 = 1/N
    dt: float = 0.1     # output step of the simulated trajectories

    # ==================== Optimizer ==============================================
    xatol: float = 1e-4     # absolute tolerance on tau_m
    maxiter: int = 500

    # ==================== Sweep bookkeeping ======================================
    on_failure: str = "mark"    # "mark", "skip" or "raise"
    output_path: Optional[str] = None

    def __post_init__(self):
        self.R0_values = tuple(float(r) for r in self.R0_values)
        self.delta_fractions = tuple(float(d) for d in self.delta_fractions)

        if not self.R0_values:
            raise ValueError("R0_values must not be empty")
        for R0 in self.R0_values:
            validate_model_inputs(R0, self.N)
        if not self.delta_fractions:
            raise ValueError("delta_fractions must not be empty")
        if any(d < 0 or not np.isfinite(d) for d in self.delta_fractions):
            raise ValueError("delta_fractions must be finite and non-negative")
        if self.dt <= 0:
            raise ValueError(f"dt must be positive (got {self.dt!r})")
        if self.xatol <= 0 or self.maxiter < 1:
            raise ValueError("xatol must be positive and maxiter at least 1")
        if self.on_failure not in FAILURE_POLICIES:
            raise ValueError(f"on_failure must be one of {FAILURE_POLICIES} (got {self.on_failure!r})")

        if self.kappas is None:
            if not 0 < self.kappa_step <= 1:
                raise ValueError(f"kappa_step must lie in (0, 1] (got {self.kappa_step!r})")
            n = int(round(1.0 / self.kappa_step))
            # rounded so that grid values are reproducible keys (0.005, 0.01, ...)
            self.kappas = tuple(float(k) for k in np.round(np.arange(1, n + 1) * self.kappa_step, 10)
                                if k <= 1.0 + 1e-12)
        else:
            self.kappas = tuple(float(k) for k in self.kappas)
        if not self.kappas:
            raise ValueError("kappa grid is empty")
        if any(k <= 0 or not np.isfinite(k) for k in self.kappas):
            raise ValueError("kappas must be finite and positive; the kappa=0 baseline is added by the sweep")

    @property
    def n_cells(self) -> int:
        """Number of optimizations the sweep will run"""
        return len(self.R0_values) * len(self.delta_fractions) * len(self.kappas)

    def to_dict(self) -> Dict:
        return asdict(self)

    def print_summary(self):
        """Print the sweep configuration"""
        print("=" * 60)
        print("INTERVENTION TIMING SWEEP:")
        print(f"R0 values: {', '.join(f'{r:g}' for r in self.R0_values)}")
        print(f"Duration (fraction of time-to-peak): {', '.join(f'{d:g}' for d in self.delta_fractions)}")
        print(f"Strength grid: {len(self.kappas)} values in [{min(self.kappas):g}, {max(self.kappas):g}]")
        print(f"Population size: {self.N:,.0f} (i0 = {1 / self.N:.1e})")
        print(f"Output step dt: {self.dt:g}")
        print(f"Optimizer: bounded Brent, xatol={self.xatol:g}, maxiter={self.maxiter}")
        print(f"Cells to optimize: {self.n_cells:,}")
        print("=" * 60)
