"""
Objective-function statistics for training.

Accumulates per-output objective totals, reporting and resetting them at
the end of every phase (a fixed number of minibatches).
"""

from dataclasses import dataclass
from typing import List
import logging
import math

from ...errors import PhaseError

logger = logging.getLogger(__name__)


def _ratio(num: float, den: float) -> float:
    """num / den, with IEEE results instead of ZeroDivisionError."""
    if den == 0.0:
        if num == 0.0 or math.isnan(num):
            return math.nan
        return math.copysign(math.inf, num)
    return num / den


@dataclass
class PhaseReport:
    """Totals of one completed phase."""

    output_name: str
    start_minibatch: int
    end_minibatch: int
    tot_weight: float
    tot_objf: float
    tot_aux_objf: float = 0.0

    @property
    def objf(self) -> float:
        return _ratio(self.tot_objf, self.tot_weight)

    @property
    def aux_objf(self) -> float:
        return _ratio(self.tot_aux_objf, self.tot_weight)


class ObjectiveFunctionInfo:
    """
    Running objective totals of a single output.

    Features:
    - Phase-scoped totals, reported and reset at every phase change
    - All-time totals for the end-of-training summary
    - History of the phase reports emitted so far
    """

    def __init__(self):
        self.current_phase = 0

        self.tot_weight = 0.0
        self.tot_objf = 0.0
        self.tot_aux_objf = 0.0

        self.tot_weight_this_phase = 0.0
        self.tot_objf_this_phase = 0.0
        self.tot_aux_objf_this_phase = 0.0

        self.reports: List[PhaseReport] = []

    def update_stats(
        self,
        output_name: str,
        minibatches_per_phase: int,
        minibatch_counter: int,
        this_minibatch_weight: float,
        this_minibatch_tot_objf: float,
        this_minibatch_tot_aux_objf: float = 0.0,
    ):
        """
        Add one minibatch worth of objective.

        Args:
            output_name: Output the totals belong to, for the report
            minibatches_per_phase: Phase length in minibatches
            minibatch_counter: Index of this minibatch in the whole run
            this_minibatch_weight: Total weight (e.g. frames) of the minibatch
            this_minibatch_tot_objf: Total objective of the minibatch
            this_minibatch_tot_aux_objf: Total auxiliary objective, if any
        """
        phase = minibatch_counter // minibatches_per_phase
        if phase != self.current_phase:
            if phase != self.current_phase + 1:
                raise PhaseError(
                    f"Minibatch {minibatch_counter} of '{output_name}' is in phase "
                    f"{phase}, but the current phase is {self.current_phase}"
                )
            self.print_stats_for_this_phase(output_name, minibatches_per_phase)
            self.current_phase = phase
            self.tot_weight_this_phase = 0.0
            self.tot_objf_this_phase = 0.0
            self.tot_aux_objf_this_phase = 0.0

        self.tot_weight_this_phase += this_minibatch_weight
        self.tot_objf_this_phase += this_minibatch_tot_objf
        self.tot_aux_objf_this_phase += this_minibatch_tot_aux_objf
        self.tot_weight += this_minibatch_weight
        self.tot_objf += this_minibatch_tot_objf
        self.tot_aux_objf += this_minibatch_tot_aux_objf

    def print_stats_for_this_phase(
        self, output_name: str, minibatches_per_phase: int
    ) -> PhaseReport:
        start_minibatch = self.current_phase * minibatches_per_phase
        report = PhaseReport(
            output_name=output_name,
            start_minibatch=start_minibatch,
            end_minibatch=start_minibatch + minibatches_per_phase - 1,
            tot_weight=self.tot_weight_this_phase,
            tot_objf=self.tot_objf_this_phase,
            tot_aux_objf=self.tot_aux_objf_this_phase,
        )
        self.reports.append(report)

        prefix = (
            f"Average objective function for '{output_name}' for minibatches "
            f"{report.start_minibatch}-{report.end_minibatch} is"
        )
        if report.tot_aux_objf == 0.0:
            logger.info(f"{prefix} {report.objf} over {report.tot_weight} frames.")
        else:
            logger.info(
                f"{prefix} {report.objf} + {report.aux_objf} = "
                f"{report.objf + report.aux_objf} over {report.tot_weight} frames."
            )
        return report

    def print_total_stats(self, name: str) -> bool:
        """
        Log the all-time averages.

        Returns:
            True if any weight was accumulated
        """
        objf = _ratio(self.tot_objf, self.tot_weight)
        aux_objf = _ratio(self.tot_aux_objf, self.tot_weight)
        if self.tot_aux_objf == 0.0:
            logger.info(
                f"Overall average objective function for '{name}' is "
                f"{objf} over {self.tot_weight} frames."
            )
        else:
            logger.info(
                f"Overall average objective function for '{name}' is "
                f"{objf} + {aux_objf} = {objf + aux_objf} "
                f"over {self.tot_weight} frames."
            )
        logger.info(
            f"[this line is to be parsed by a script:] log-prob-per-frame={objf}"
        )
        return self.tot_weight != 0.0
