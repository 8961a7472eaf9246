import logging
import math
from typing import Tuple

from fastbackward.utils import constants

class StoppingCriteria:
    """
    Evaluates whether the backward search should terminate.

    Rules checked by the controller:
    - budget: the configured number of steps has been used.
    - improvement: a refit must beat the current best by more than the
      improvement tolerance, otherwise it is rejected and the search ends.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger

        self.selection_config = config.get('selection', {})
        self.max_steps = self.selection_config.get('steps', constants.DEFAULT_STEPS)
        self.tolerance = constants.IMPROVEMENT_TOLERANCE

    def budget_exhausted(self, iterations: int) -> Tuple[bool, str]:
        """
        Args:
            iterations: Number of loop iterations already started.
        """
        if iterations >= self.max_steps:
            return True, f"{constants.STOP_BUDGET} ({self.max_steps})"
        return False, ""

    def check_refit(self, new_value: float, best: float) -> Tuple[bool, str]:
        """
        Decide whether a refit is rejected.

        Returns:
            (bool, reason_string)
        """
        if math.isnan(new_value):
            return True, f"{constants.STOP_NO_IMPROVEMENT}: criterion undefined"
        if new_value >= best + self.tolerance:
            return True, f"{constants.STOP_NO_IMPROVEMENT}: {new_value:.4f} >= {best:.4f}"
        return False, ""
