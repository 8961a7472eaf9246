import pytest
from unittest.mock import MagicMock

from fastbackward.models.base import SelectableModel


class ScriptedModel(SelectableModel):
    """
    Model whose criterion is known exactly.

    deviance = base deviance + sum of the losses of the terms already removed;
    edf = 1 (intercept) + sum of the df of the terms still present.
    """

    def __init__(self, terms, losses, dfs=None, base_deviance=100.0, n=50,
                 nobs_after_drop=None, criterion_override=None, fit_log=None):
        self._terms = list(terms)
        self.losses = dict(losses)
        self.dfs = dict(dfs or {})
        self.base_deviance = base_deviance
        self.n = n
        self.nobs_after_drop = nobs_after_drop
        self.criterion_override = criterion_override
        self.fit_log = fit_log if fit_log is not None else []

    @property
    def formula(self):
        return "y ~ " + (" + ".join(self._terms) if self._terms else "1")

    @property
    def terms(self):
        return list(self._terms)

    @property
    def term_variables(self):
        return {t: frozenset(t.split(":")) for t in self._terms}

    @property
    def nobs(self):
        return self.n

    @property
    def deviance(self):
        removed = [t for t in self.losses if t not in self._terms]
        return self.base_deviance + sum(self.losses[t] for t in removed)

    def extract_criterion(self, scale=0.0, k=2.0):
        edf = 1.0 + sum(self.dfs.get(t, 1.0) for t in self._terms)
        if self.criterion_override is not None:
            return edf, self.criterion_override
        return edf, self.deviance + k * edf

    def refit_without(self, term):
        self.fit_log.append(term)
        remaining = [t for t in self._terms if t != term]
        n = self.nobs_after_drop if self.nobs_after_drop is not None else self.n
        return ScriptedModel(remaining, self.losses, self.dfs, self.base_deviance, n,
                             criterion_override=self.criterion_override, fit_log=self.fit_log)


@pytest.fixture
def mock_logger():
    return MagicMock()


@pytest.fixture
def scripted_model():
    """Factory for ScriptedModel instances."""
    return ScriptedModel


@pytest.fixture
def five_term_model():
    # Dropping C (df 3, loss 2) improves AIC by 4; every other removal worsens it by 8.
    return ScriptedModel(
        ["A", "B", "C", "D", "E"],
        losses={"A": 10.0, "B": 10.0, "C": 2.0, "D": 10.0, "E": 10.0},
        dfs={"C": 3.0},
    )
