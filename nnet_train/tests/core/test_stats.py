"""
Tests for ObjectiveFunctionInfo phase bookkeeping and reports.
"""

import logging
import math

import pytest

from nnet_train.core.training import ObjectiveFunctionInfo
from nnet_train.errors import PhaseError


class TestUpdateStats:
    def test_one_phase_change_in_ten_calls(self):
        info = ObjectiveFunctionInfo()
        weights = [float(i + 1) for i in range(10)]
        objfs = [-0.5 * w for w in weights]

        for counter, (w, o) in enumerate(zip(weights, objfs), start=5):
            info.update_stats("output", 10, counter, w, o)

        assert len(info.reports) == 1
        report = info.reports[0]
        assert (report.start_minibatch, report.end_minibatch) == (0, 9)
        # counters 5..9 belong to phase 0
        assert report.tot_weight == pytest.approx(sum(weights[:5]))
        assert report.tot_objf == pytest.approx(sum(objfs[:5]))

        assert info.current_phase == 1
        assert info.tot_weight_this_phase == pytest.approx(sum(weights[5:]))
        assert info.tot_objf_this_phase == pytest.approx(sum(objfs[5:]))

        assert info.tot_weight == pytest.approx(sum(weights))
        assert info.tot_objf == pytest.approx(sum(objfs))

    def test_no_report_within_phase(self):
        info = ObjectiveFunctionInfo()
        for counter in range(10):
            info.update_stats("output", 10, counter, 1.0, -1.0)
        assert info.reports == []
        assert info.tot_weight_this_phase == 10.0

    def test_phase_jump_is_an_error(self):
        info = ObjectiveFunctionInfo()
        info.update_stats("output", 10, 0, 1.0, -1.0)
        with pytest.raises(PhaseError):
            info.update_stats("output", 10, 25, 1.0, -1.0)

    def test_phase_rewind_is_an_error(self):
        info = ObjectiveFunctionInfo()
        info.update_stats("output", 2, 2, 1.0, -1.0)
        with pytest.raises(PhaseError):
            info.update_stats("output", 2, 0, 1.0, -1.0)

    def test_aux_objf_accumulated(self):
        info = ObjectiveFunctionInfo()
        info.update_stats("output", 10, 0, 2.0, -1.0, -0.5)
        info.update_stats("output", 10, 1, 2.0, -1.0, -0.5)
        assert info.tot_aux_objf == pytest.approx(-1.0)
        assert info.tot_aux_objf_this_phase == pytest.approx(-1.0)


class TestReports:
    def test_phase_report_message(self, caplog):
        info = ObjectiveFunctionInfo()
        with caplog.at_level(logging.INFO):
            info.update_stats("output", 2, 0, 4.0, -2.0)
            info.update_stats("output", 2, 1, 4.0, -2.0)
            info.update_stats("output", 2, 2, 4.0, -2.0)

        assert (
            "Average objective function for 'output' for minibatches 0-1 "
            "is -0.5 over 8.0 frames." in caplog.text
        )

    def test_phase_report_with_aux(self, caplog):
        info = ObjectiveFunctionInfo()
        with caplog.at_level(logging.INFO):
            info.update_stats("output", 1, 0, 2.0, -1.0, -1.0)
            info.update_stats("output", 1, 1, 2.0, -1.0)

        assert "is -0.5 + -0.5 = -1.0 over 2.0 frames." in caplog.text

    def test_total_stats(self, caplog):
        info = ObjectiveFunctionInfo()
        info.update_stats("output", 100, 0, 10.0, -5.0)
        with caplog.at_level(logging.INFO):
            assert info.print_total_stats("output") is True

        assert "Overall average objective function for 'output' is -0.5" in caplog.text
        assert "log-prob-per-frame=-0.5" in caplog.text

    def test_total_stats_without_weight(self, caplog):
        info = ObjectiveFunctionInfo()
        with caplog.at_level(logging.INFO):
            assert info.print_total_stats("output") is False
        assert "log-prob-per-frame=nan" in caplog.text

    def test_zero_weight_phase_does_not_raise(self):
        info = ObjectiveFunctionInfo()
        info.update_stats("output", 1, 0, 0.0, -3.0)
        info.update_stats("output", 1, 1, 1.0, -1.0)
        assert math.isinf(info.reports[0].objf)
        assert info.reports[0].objf < 0
