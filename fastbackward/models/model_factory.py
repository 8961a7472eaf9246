import inspect
from typing import Any, Dict, List, Optional

import pandas as pd
import statsmodels.api as sm
from statsmodels.genmod.generalized_linear_model import GLM
from statsmodels.regression.linear_model import RegressionModel

from fastbackward.models.base import SelectableModel
from fastbackward.models.statsmodels_models import GLMFormulaModel, OLSFormulaModel


class ModelFactory:
    """
    Factory for creating selectable models with a unified interface.
    Handles distinction between linear models and generalized linear families.
    """

    # Fitted by least squares; criterion from the residual sum of squares
    LINEAR_MODELS = {'ols', 'linear', 'lm'}

    # Fitted by IRLS; criterion from the GLM log-likelihood
    GLM_FAMILIES = {
        'gaussian': sm.families.Gaussian,
        'binomial': sm.families.Binomial,
        'poisson': sm.families.Poisson,
        'gamma': sm.families.Gamma,
        'inverse_gaussian': sm.families.InverseGaussian,
        'negative_binomial': sm.families.NegativeBinomial,
        'tweedie': sm.families.Tweedie,
    }

    @classmethod
    def create(cls, formula: str, data: pd.DataFrame, family: str = 'ols',
               weights: Optional[str] = None, fit_params: Dict[str, Any] = None) -> SelectableModel:
        """
        Fit and return the starting model.
        """
        if fit_params is None:
            fit_params = {}
        name = family.lower()

        # 1. Linear models
        if name in cls.LINEAR_MODELS:
            valid_params = cls._filter_params(RegressionModel.fit, fit_params)
            return OLSFormulaModel(formula, data, weights=weights, fit_params=valid_params)

        # 2. Generalized linear models
        elif name in cls.GLM_FAMILIES:
            valid_params = cls._filter_params(GLM.fit, fit_params)
            return GLMFormulaModel(formula, data, family=cls.GLM_FAMILIES[name](),
                                   weights=weights, fit_params=valid_params)

        else:
            raise ValueError(f"Unknown model family: {family}. Available: {cls.get_available_families()}")

    @classmethod
    def get_available_families(cls) -> List[str]:
        """Return list of all supported family names."""
        return sorted(cls.LINEAR_MODELS) + list(cls.GLM_FAMILIES.keys())

    @staticmethod
    def _filter_params(fit_method, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `fit_method`.
        """
        sig = inspect.signature(fit_method)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.name != 'self' and p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]
        return {k: v for k, v in params.items() if k in valid_keys}
