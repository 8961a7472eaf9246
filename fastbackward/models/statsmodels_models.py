"""
statsmodels-backed implementations of the selectable-model capability.

Criterion extraction follows the classic definitions used by stepwise
selection:

- Linear models: ``n * log(RSS / n) + k * edf``, or Mallows' Cp
  ``RSS / scale - n + k * edf`` when a positive ``scale`` is supplied.
- Generalized linear models: ``AIC + (k - 2) * edf``.

``edf`` is the rank of the design matrix, so a term whose columns are fully
aliased with the rest of the design reports a zero degrees-of-freedom change.
"""

import abc
import logging
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from fastbackward.models import terms
from fastbackward.models.base import SelectableModel
from fastbackward.utils import constants

logger = logging.getLogger(__name__)


class StatsmodelsFormulaModel(SelectableModel):
    """
    Formula model refitted on the same data frame for every candidate.

    Rows with missing values in the variables a formula uses are dropped per
    fit. Candidate removals are scored on the rows of the current fit, while
    an accepted removal is refitted on the whole frame and so can change the
    number of rows in use.
    """

    def __init__(self, formula: str, data: pd.DataFrame, weights: Optional[str] = None,
                 fit_params: Optional[Dict[str, Any]] = None):
        self._desc = terms.parse_formula(formula)
        self._formula = self._desc.describe()
        self.data = data
        self.weights = weights
        self.fit_params = dict(fit_params or {})
        self.results = self._fit()

    @abc.abstractmethod
    def _fit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def _clone(self, formula: str, data: Optional[pd.DataFrame] = None) -> "StatsmodelsFormulaModel":
        raise NotImplementedError

    @property
    def formula(self) -> str:
        return self._formula

    @property
    def terms(self) -> List[str]:
        return terms.term_labels(self._desc)

    @property
    def term_variables(self) -> Dict[str, FrozenSet[str]]:
        return terms.term_variables(self._desc)

    @property
    def nobs(self) -> int:
        return int(self.results.nobs)

    @property
    def edf(self) -> float:
        return float(self.results.nobs - self.results.df_resid)

    def refit_without(self, term: str) -> "StatsmodelsFormulaModel":
        reduced = terms.formula_without(self._formula, term)
        logger.debug(f"Refitting without '{term}': {reduced}")
        return self._clone(reduced)

    def rows_in_use(self) -> pd.DataFrame:
        """The rows of ``data`` this fit was estimated on."""
        if self.nobs == len(self.data):
            return self.data
        return self.data.loc[self.results.model.data.row_labels]

    def _fit_for_drop(self, term: str) -> "StatsmodelsFormulaModel":
        # Score on the current rows; refit_without keeps the full frame so
        # an accepted step that gains rows is still caught.
        reduced = terms.formula_without(self._formula, term)
        logger.debug(f"Scoring removal of '{term}' on {self.nobs} rows: {reduced}")
        return self._clone(reduced, data=self.rows_in_use())

    def summary(self) -> str:
        return str(self.results.summary())

    def _weights_column(self) -> Optional[pd.Series]:
        return None if self.weights is None else self.data[self.weights]


class OLSFormulaModel(StatsmodelsFormulaModel):
    """Linear model (OLS, or WLS when a weights column is given)."""

    def _fit(self):
        if self.weights is None:
            model = smf.ols(self._formula, data=self.data)
        else:
            model = smf.wls(self._formula, data=self.data, weights=self._weights_column())
        return model.fit(**self.fit_params)

    def _clone(self, formula: str, data: Optional[pd.DataFrame] = None) -> "OLSFormulaModel":
        return OLSFormulaModel(formula, self.data if data is None else data, weights=self.weights,
                               fit_params=self.fit_params)

    @property
    def deviance(self) -> float:
        return float(self.results.ssr)

    def criterion_name(self, scale: float = 0.0) -> str:
        return constants.CP_COLUMN if scale > 0 else constants.AIC_COLUMN

    def extract_criterion(self, scale: float = 0.0, k: float = 2.0) -> Tuple[float, float]:
        n = float(self.results.nobs)
        edf = self.edf
        rss = float(self.results.ssr)
        if scale > 0:
            dev = rss / scale - n
        else:
            with np.errstate(divide="ignore"):
                dev = n * np.log(rss / n)
        return edf, float(dev + k * edf)


class GLMFormulaModel(StatsmodelsFormulaModel):
    """Generalized linear model; ``scale`` does not enter its criterion."""

    def __init__(self, formula: str, data: pd.DataFrame, family=None, weights: Optional[str] = None,
                 fit_params: Optional[Dict[str, Any]] = None):
        self.family = family if family is not None else sm.families.Gaussian()
        super().__init__(formula, data, weights=weights, fit_params=fit_params)

    def _fit(self):
        kwargs = {}
        if self.weights is not None:
            kwargs['var_weights'] = self._weights_column()
        model = smf.glm(self._formula, data=self.data, family=self.family, **kwargs)
        return model.fit(**self.fit_params)

    def _clone(self, formula: str, data: Optional[pd.DataFrame] = None) -> "GLMFormulaModel":
        return GLMFormulaModel(formula, self.data if data is None else data, family=self.family,
                               weights=self.weights, fit_params=self.fit_params)

    @property
    def deviance(self) -> float:
        return float(self.results.deviance)

    def extract_criterion(self, scale: float = 0.0, k: float = 2.0) -> Tuple[float, float]:
        edf = self.edf
        return edf, float(self.results.aic + (k - 2.0) * edf)
