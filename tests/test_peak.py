"""Tests for sirpeak.peak: simulate-then-shortcut peak evaluation."""

import numpy as np
import pytest

from sirpeak.lyapunov import (
    optimal_strict_susceptible,
    peak_no_intervention,
    strict_intervention_floor,
)
from sirpeak.sir_intervention import peak_time_no_intervention
from sirpeak.peak import (
    evaluate_intervention,
    limit_peak_prevalence,
    peak_prevalence,
    peak_prevalence_no_intervention,
)

N = 1e6
DT = 0.1


@pytest.fixture(scope="module")
def baseline():
    return peak_prevalence_no_intervention(3.0, N)


class TestNoIntervention:

    def test_close_to_disease_free_value(self, baseline):
        assert baseline == pytest.approx(peak_no_intervention(3.0), abs=1e-5)
        assert baseline >= peak_no_intervention(3.0)

    def test_accepts_and_ignores_dt(self, baseline):
        assert peak_prevalence_no_intervention(3.0, N, DT) == baseline
        assert peak_prevalence_no_intervention(3.0, N, dt=0.01) == baseline

    def test_rejects_bad_inputs(self):
        with pytest.raises(ValueError):
            peak_prevalence_no_intervention(0.8, N)
        with pytest.raises(ValueError):
            peak_prevalence_no_intervention(3.0, 1.0)


# ═══════════════════════════════════════════════════════════════════════
# DEGENERATE INTERVENTIONS
# ═══════════════════════════════════════════════════════════════════════

class TestDegenerate:

    @pytest.mark.parametrize("tau_m", [0.0, 1.0, 3.0, 5.0])
    @pytest.mark.parametrize("kappa", [0.3, 1.0])
    def test_zero_duration_before_peak(self, tau_m, kappa, baseline):
        assert peak_prevalence(3.0, tau_m, 0.0, kappa, N, DT) == pytest.approx(baseline, abs=1e-6)

    @pytest.mark.parametrize("tau_m", [8.0, 12.0])
    def test_zero_duration_after_peak(self, tau_m, baseline):
        """The peak is now read off samples, so only dt-accuracy is expected."""
        assert peak_prevalence(3.0, tau_m, 0.0, 1.0, N, DT) == pytest.approx(baseline, abs=1e-3)

    @pytest.mark.parametrize("tau_m,delta_m", [(0.0, 2.0), (1.0, 3.0), (2.0, 3.0)])
    def test_zero_strength_before_peak(self, tau_m, delta_m, baseline):
        assert peak_prevalence(3.0, tau_m, delta_m, 0.0, N, DT) == pytest.approx(baseline, abs=1e-6)

    @pytest.mark.parametrize("tau_m,delta_m", [(2.0, 10.0), (6.0, 20.0)])
    def test_zero_strength_across_peak(self, tau_m, delta_m, baseline):
        assert peak_prevalence(3.0, tau_m, delta_m, 0.0, N, DT) == pytest.approx(baseline, abs=1e-3)


# ═══════════════════════════════════════════════════════════════════════
# TWO-PHASE EVALUATION
# ═══════════════════════════════════════════════════════════════════════

class TestEvaluateIntervention:

    def test_peak_is_max_of_phases(self):
        ev = evaluate_intervention(3.0, 4.0, 5.0, 0.6, N, DT)
        assert ev.peak == max(ev.peak_during, ev.peak_post)
        assert peak_prevalence(3.0, 4.0, 5.0, 0.6, N, DT) == ev.peak

    def test_no_post_peak_below_threshold(self):
        """Window ends after herd immunity: nothing left to peak."""
        ev = evaluate_intervention(3.0, 9.0, 10.0, 0.2, N, DT)
        assert ev.s_end <= 1 / 3.0
        assert ev.peak_post == 0.0
        assert ev.peak == ev.peak_during

    def test_intervention_helps(self, baseline):
        assert peak_prevalence(3.0, 5.0, 5.0, 1.0, N, DT) < baseline

    def test_never_below_strict_floor(self):
        for tau_m in np.linspace(0.0, 8.0, 9):
            assert peak_prevalence(3.0, tau_m, 40.0, 1.0, N, DT) >= strict_intervention_floor(3.0) - 1e-6

    def test_strict_window_outlasting_the_outbreak(self):
        """i dies out long before the window closes; s is held where the window began."""
        ev = evaluate_intervention(3.0, 4.5116, 40.0, 1.0, N, DT)
        assert 1 / 3.0 < ev.s_end < 1.0
        assert abs(ev.i_end) < 1e-10
        assert ev.peak_post > 0.0
        assert ev.peak >= strict_intervention_floor(3.0) - 1e-6


# ═══════════════════════════════════════════════════════════════════════
# LONG-INTERVENTION LIMIT
# ═══════════════════════════════════════════════════════════════════════

class TestLimit:

    def test_strict_optimum_hits_floor(self):
        s_opt = optimal_strict_susceptible(3.0)
        assert limit_peak_prevalence(3.0, 1.0, s_opt) == pytest.approx(strict_intervention_floor(3.0), abs=1e-9)

    @pytest.mark.parametrize("s_start", [0.4, 0.6, 0.8, 1.0])
    def test_zero_strength_is_uncontrolled(self, s_start):
        assert limit_peak_prevalence(3.0, 0.0, s_start) == pytest.approx(peak_no_intervention(3.0), abs=1e-9)

    def test_strict_bounded_by_floor(self):
        for s_start in np.linspace(1 / 3.0, 1.0, 11):
            peak = limit_peak_prevalence(3.0, 1.0, s_start)
            assert strict_intervention_floor(3.0) - 1e-9 <= peak <= peak_no_intervention(3.0) + 1e-9

    @pytest.mark.parametrize("kappa", [0.2, 0.5, 0.8])
    def test_partial_never_worse_than_uncontrolled(self, kappa):
        for s_start in np.linspace(1 / 3.0, 1.0, 11):
            assert limit_peak_prevalence(3.0, kappa, s_start) <= peak_no_intervention(3.0) + 1e-9

    def test_partial_long_intervention_can_beat_strict_floor(self):
        """With R_eff slightly above 1 the epidemic burns out slowly under the intervention."""
        peak = limit_peak_prevalence(3.0, 0.5, 0.9)
        assert peak == pytest.approx(0.0982, abs=1e-3)
        assert peak < strict_intervention_floor(3.0)

    def test_strict_start_at_threshold_keeps_peak(self):
        """Starting exactly at the peak cannot lower it."""
        assert limit_peak_prevalence(3.0, 1.0, 1 / 3.0) == pytest.approx(peak_no_intervention(3.0), abs=1e-12)

    @pytest.mark.parametrize("kappa", [-0.1, 1.5])
    def test_rejects_kappa_out_of_range(self, kappa):
        with pytest.raises(ValueError):
            limit_peak_prevalence(3.0, kappa, 0.8)

    def test_rejects_s_start_out_of_range(self):
        with pytest.raises(ValueError):
            limit_peak_prevalence(3.0, 0.5, 1.2)
        with pytest.raises(ValueError):
            limit_peak_prevalence(3.0, 0.5, 0.0)


# ═══════════════════════════════════════════════════════════════════════
# STRONG AND LATE INTERVENTIONS
# ═══════════════════════════════════════════════════════════════════════

class TestStrongLateGrid:
    """Long, strong windows starting anywhere up to the uncontrolled peak."""

    @pytest.mark.parametrize("R0", [2.0, 3.0])
    @pytest.mark.parametrize("delta_fraction", [0.5, 1.0])
    @pytest.mark.parametrize("kappa", [0.5, 0.9, 1.0])
    def test_peak_within_bounds(self, R0, delta_fraction, kappa):
        tau_peak = peak_time_no_intervention(R0, N, DT)
        upper = peak_prevalence_no_intervention(R0, N)
        for tau_m in np.linspace(0.0, tau_peak, 8):
            ev = evaluate_intervention(R0, tau_m, delta_fraction * tau_peak, kappa, N, DT)
            assert np.isfinite(ev.peak)
            assert 0.0 < ev.peak <= upper + 1e-8
            assert 0.0 < ev.s_end <= 1.0
            assert np.isfinite(ev.i_end)
