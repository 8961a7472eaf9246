import math
import pytest
from unittest.mock import MagicMock
from fastbackward.elimination.stopping_criteria import StoppingCriteria
from fastbackward.utils import constants


@pytest.fixture
def mock_logger():
    return MagicMock()


class TestStoppingCriteria:

    def test_budget(self, mock_logger):
        stopper = StoppingCriteria({'selection': {'steps': 2}}, mock_logger)
        assert stopper.budget_exhausted(1) == (False, "")
        stop, reason = stopper.budget_exhausted(2)
        assert stop is True
        assert constants.STOP_BUDGET in reason

    def test_zero_steps_stops_immediately(self, mock_logger):
        stopper = StoppingCriteria({'selection': {'steps': 0}}, mock_logger)
        assert stopper.budget_exhausted(0)[0] is True

    def test_default_budget(self, mock_logger):
        stopper = StoppingCriteria({}, mock_logger)
        assert stopper.max_steps == constants.DEFAULT_STEPS

    def test_refit_must_improve(self, mock_logger):
        stopper = StoppingCriteria({}, mock_logger)
        assert stopper.check_refit(9.0, 10.0)[0] is False
        # Equal values are accepted; only an increase past the tolerance stops.
        assert stopper.check_refit(10.0, 10.0)[0] is False
        assert stopper.check_refit(10.0 + 1e-6, 10.0)[0] is True

    def test_undefined_refit_stops(self, mock_logger):
        stopper = StoppingCriteria({}, mock_logger)
        stop, reason = stopper.check_refit(math.nan, 10.0)
        assert stop is True
        assert "undefined" in reason
