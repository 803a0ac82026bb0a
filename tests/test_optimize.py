"""Tests for sirpeak.optimize: onset optimisation."""

import numpy as np
import pytest

import sirpeak.optimize as optimize_module
import sirpeak.sir_intervention as sir_intervention
from sirpeak.lyapunov import (
    optimal_strict_susceptible,
    peak_no_intervention,
    strict_intervention_floor,
)
from sirpeak.optimize import (
    OptimizationError,
    optimize_limit,
    optimize_onset,
    refine_onset,
)
from sirpeak.peak import peak_prevalence
from sirpeak.sir_intervention import IntegrationError, peak_time_no_intervention

N = 1e6
DT = 0.1


@pytest.fixture(scope="module")
def tau_peak():
    return peak_time_no_intervention(3.0, N, DT)


class TestOptimizeLimit:

    def test_strict_matches_closed_form(self):
        res = optimize_limit(3.0, 1.0)
        assert res.s_start == pytest.approx(optimal_strict_susceptible(3.0), abs=1e-4)
        assert res.peak == pytest.approx(strict_intervention_floor(3.0), abs=1e-6)

    @pytest.mark.parametrize("R0", [1.5, 2.0, 4.0])
    def test_strict_halves_peak(self, R0):
        assert optimize_limit(R0, 1.0).peak == pytest.approx(peak_no_intervention(R0) / 2, abs=1e-6)

    def test_search_stays_in_bracket(self):
        res = optimize_limit(3.0, 0.4)
        assert 1 / 3.0 <= res.s_start <= 1.0

    def test_rejects_no_outbreak(self):
        with pytest.raises(ValueError):
            optimize_limit(1.0, 0.5)


class TestOptimizeOnset:

    def test_strict_long_intervention_approaches_floor(self, tau_peak):
        res = optimize_onset(3.0, 40.0, 1.0, N, DT, search_interval=(0.0, tau_peak))
        floor = strict_intervention_floor(3.0)
        assert res.peak >= floor - 1e-6
        assert res.peak == pytest.approx(floor, abs=5e-3)
        assert 0.0 < res.tau_m < tau_peak

    def test_result_is_objective_value(self, tau_peak):
        res = optimize_onset(3.0, 0.5 * tau_peak, 0.8, N, DT)
        assert res.peak == pytest.approx(peak_prevalence(3.0, res.tau_m, 0.5 * tau_peak, 0.8, N, DT), rel=1e-9)
        assert res.peak < peak_no_intervention(3.0)
        assert res.nfev > 0

    def test_weak_interventions_benefit_monotonically(self, tau_peak):
        delta_m = 0.25 * tau_peak
        peaks = [optimize_onset(3.0, delta_m, kappa, N, DT).peak for kappa in (0.1, 0.2, 0.3)]
        assert peaks[0] <= peak_no_intervention(3.0) + 1e-4
        assert np.all(np.diff(peaks) <= 1e-3)

    def test_refine_never_worse_than_centre(self, tau_peak):
        res = optimize_onset(3.0, 0.5 * tau_peak, 1.0, N, DT)
        refined = refine_onset(3.0, 0.5 * tau_peak, 1.0, N, DT, res.tau_m, half_width=0.05, n=11)
        assert abs(refined.tau_m - res.tau_m) <= 0.05 + 1e-12
        assert refined.peak <= peak_prevalence(3.0, max(res.tau_m - 0.05, 0.0), 0.5 * tau_peak, 1.0, N, DT)

    def test_iteration_cap_is_reported(self, tau_peak):
        with pytest.raises(OptimizationError):
            optimize_onset(3.0, 2.0, 0.5, N, DT, search_interval=(0.0, tau_peak), maxiter=1)

    def test_non_finite_objective_is_reported(self, monkeypatch):
        monkeypatch.setattr(optimize_module, "peak_prevalence", lambda *args: np.nan)
        with pytest.raises(OptimizationError):
            optimize_onset(3.0, 2.0, 0.5, N, DT, search_interval=(0.0, 5.0))

    def test_solver_failure_is_reported(self, monkeypatch):
        def failed_odeint(func, y0, t, **kwargs):
            return np.zeros((len(t), 2)), {"message": "Repeated error test failures (internal error)."}
        monkeypatch.setattr(sir_intervention, "odeint", failed_odeint)
        with pytest.raises(OptimizationError) as excinfo:
            optimize_onset(3.0, 2.0, 0.5, N, DT, search_interval=(0.0, 5.0))
        assert isinstance(excinfo.value.__cause__, IntegrationError)

    def test_solver_failure_in_default_interval_is_reported(self, monkeypatch):
        def failed_odeint(func, y0, t, **kwargs):
            return np.zeros((len(t), 2)), {"message": "Excess work done on this call."}
        monkeypatch.setattr(sir_intervention, "odeint", failed_odeint)
        with pytest.raises(OptimizationError):
            optimize_onset(3.0, 2.0, 0.5, N, DT)

    def test_solver_failure_during_refinement_is_reported(self, monkeypatch):
        def fail(*args):
            raise IntegrationError("odeint failed")
        monkeypatch.setattr(optimize_module, "peak_prevalence", fail)
        with pytest.raises(OptimizationError):
            refine_onset(3.0, 2.0, 0.5, N, DT, tau_m=4.0, half_width=0.1, n=3)

    @pytest.mark.parametrize("delta_fraction", [0.5, 1.0])
    @pytest.mark.parametrize("kappa", [0.5, 1.0])
    def test_strong_interventions_stay_within_bounds(self, tau_peak, delta_fraction, kappa):
        res = optimize_onset(3.0, delta_fraction * tau_peak, kappa, N, DT, search_interval=(0.0, tau_peak))
        assert np.isfinite(res.peak)
        assert 0.0 < res.peak < peak_no_intervention(3.0)
        assert 0.0 <= res.tau_m <= tau_peak

    def test_rejects_empty_interval(self):
        with pytest.raises(ValueError):
            optimize_onset(3.0, 2.0, 0.5, N, DT, search_interval=(5.0, 5.0))
