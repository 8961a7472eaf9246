import math
import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from fastbackward.elimination import fast_backward
from fastbackward.models import GLMFormulaModel, OLSFormulaModel
from fastbackward.models.model_factory import ModelFactory
from fastbackward.utils.exceptions import ObservationCountError


@pytest.fixture
def regression_data():
    rng = np.random.default_rng(42)
    n = 80
    df = pd.DataFrame({f"x{i}": rng.normal(size=n) for i in range(1, 7)})
    df["g"] = rng.choice(["a", "b", "c"], size=n)
    df["y"] = 2.0 + 1.5 * df["x1"] - 2.0 * df["x2"] + 0.5 * df["x3"] + rng.normal(scale=1.0, size=n)
    return df


@pytest.fixture
def count_data():
    rng = np.random.default_rng(7)
    n = 150
    df = pd.DataFrame({f"x{i}": rng.normal(size=n) for i in range(1, 6)})
    df["y"] = rng.poisson(np.exp(0.5 + 0.6 * df["x1"] - 0.4 * df["x2"]))
    return df


FULL = "y ~ x1 + x2 + x3 + x4 + x5 + x6 + C(g)"


class TestOLSFormulaModel:

    def test_terms_and_counts(self, regression_data):
        model = OLSFormulaModel(FULL, regression_data)
        assert model.terms == ["x1", "x2", "x3", "x4", "x5", "x6", "C(g)"]
        assert model.nobs == 80
        assert model.edf == pytest.approx(9.0)

    def test_criterion_matches_statsmodels_aic(self, regression_data):
        model = OLSFormulaModel(FULL, regression_data)
        n = model.nobs
        edf, value = model.extract_criterion()
        # statsmodels' AIC carries the likelihood constants that the criterion leaves out.
        assert value == pytest.approx(model.results.aic - n * (1 + math.log(2 * math.pi)))
        assert model.deviance == pytest.approx(model.results.ssr)

    def test_cp_criterion(self, regression_data):
        model = OLSFormulaModel(FULL, regression_data)
        edf, value = model.extract_criterion(scale=2.0, k=2.0)
        assert model.criterion_name(2.0) == "Cp"
        assert value == pytest.approx(model.results.ssr / 2.0 - model.nobs + 2.0 * edf)

    def test_refit_without_does_not_mutate(self, regression_data):
        model = OLSFormulaModel(FULL, regression_data)
        reduced = model.refit_without("C(g)")
        assert "C(g)" not in reduced.terms
        assert "C(g)" in model.terms
        assert reduced.edf == pytest.approx(7.0)

    def test_drop_one_row(self, regression_data):
        model = OLSFormulaModel(FULL, regression_data)
        row = model.drop_one("C(g)")
        assert row.df == pytest.approx(2.0)
        assert row.resid_df == pytest.approx(80 - 7)
        assert row.deviance >= model.deviance

    def test_aliased_term_has_zero_df(self, regression_data):
        data = regression_data.assign(x7=regression_data["x1"] + regression_data["x2"])
        model = OLSFormulaModel("y ~ x1 + x2 + x7", data)
        assert model.drop_one("x7").df == pytest.approx(0.0, abs=1e-9)
        result = fast_backward(model, trace=0, steps=1)
        assert list(result.anova["Step"]) == ["", "- x7"]

    def test_weights_use_wls(self, regression_data):
        data = regression_data.assign(w=np.linspace(0.5, 1.5, len(regression_data)))
        model = OLSFormulaModel("y ~ x1 + x2", data, weights="w")
        assert isinstance(model.results.model, sm.WLS)
        assert model.refit_without("x2").weights == "w"

    def test_missing_values_change_row_count(self, regression_data):
        data = regression_data.copy()
        data.loc[:4, "x4"] = np.nan
        model = OLSFormulaModel("y ~ x1 + x4", data)
        assert model.nobs == 75
        assert model.refit_without("x4").nobs == 80


class TestGLMFormulaModel:

    def test_criterion_is_aic_with_penalty_shift(self, count_data):
        model = GLMFormulaModel("y ~ x1 + x2 + x3", count_data, family=sm.families.Poisson())
        edf, aic = model.extract_criterion(k=2.0)
        assert aic == pytest.approx(model.results.aic)
        _, bic = model.extract_criterion(k=math.log(model.nobs))
        assert bic == pytest.approx(model.results.aic + (math.log(model.nobs) - 2.0) * edf)
        assert model.criterion_name(scale=1.0) == "AIC"

    def test_deviance(self, count_data):
        model = GLMFormulaModel("y ~ x1", count_data, family=sm.families.Poisson())
        assert model.deviance == pytest.approx(model.results.deviance)


class TestBoundedSearchOnRealFits:

    @pytest.mark.parametrize("k", [2.0, None])
    def test_ols_bounded_matches_exhaustive(self, regression_data, k):
        k = k if k is not None else math.log(len(regression_data))
        model = OLSFormulaModel(FULL, regression_data)
        bounded = fast_backward(model, trace=0, k=k)
        exhaustive = fast_backward(model, trace=0, k=k, bounding=False)

        pd.testing.assert_frame_equal(bounded.anova, exhaustive.anova)
        assert bounded.formula == exhaustive.formula
        assert bounded.n_evaluated <= exhaustive.n_evaluated
        # The true signal survives.
        assert {"x1", "x2"} <= set(bounded.model.terms)

    def test_poisson_bounded_matches_exhaustive(self, count_data):
        model = ModelFactory.create("y ~ x1 + x2 + x3 + x4 + x5", count_data, family="poisson")
        bounded = fast_backward(model, trace=0)
        exhaustive = fast_backward(model, trace=0, bounding=False)
        pd.testing.assert_frame_equal(bounded.anova, exhaustive.anova)
        assert {"x1", "x2"} <= set(bounded.model.terms)

    def test_interaction_removed_before_main_effects(self, regression_data):
        model = OLSFormulaModel("y ~ x4 * x5 + x1", regression_data)
        result = fast_backward(model, trace=0)
        steps = list(result.anova["Step"])
        if "- x4" in steps or "- x5" in steps:
            assert steps.index("- x4:x5") < min(steps.index(s) for s in ("- x4", "- x5") if s in steps)

    def test_row_count_drift_is_fatal(self, regression_data):
        data = regression_data.copy()
        # On the complete rows x6 duplicates x1, so its removal is a zero-df change
        # that is taken at once; refitting without it brings back 30 rows.
        data["x6"] = 2.0 * data["x1"]
        data.loc[:29, "x6"] = np.nan
        model = OLSFormulaModel("y ~ x1 + x6", data)
        assert model.drop_one("x6").df == pytest.approx(0.0, abs=1e-9)
        assert model.refit_without("x6").nobs != model.nobs
        with pytest.raises(ObservationCountError):
            fast_backward(model, trace=0, scope="~ x1")

    def test_removal_with_missing_values_is_scored_on_current_rows(self, regression_data):
        rng = np.random.default_rng(3)
        data = regression_data.copy()
        noise = rng.normal(size=len(data))
        data["y"] = (2.0 + 1.5 * data["x1"] + 0.6 * data["x6"] + noise) / 10.0
        data.loc[:29, "x6"] = np.nan
        model = OLSFormulaModel("y ~ x1 + x6", data)
        assert model.nobs == 50

        row = model.drop_one("x6")
        complete = OLSFormulaModel("y ~ x1", data.dropna(subset=["x6"]))
        assert row.resid_df == pytest.approx(50 - 2)
        assert row.criterion == pytest.approx(complete.extract_criterion()[1])
        assert row.criterion > model.extract_criterion()[1]

        result = fast_backward(model, trace=0, scope="~ x1")
        assert result.formula == model.formula
        assert list(result.anova["Step"]) == [""]
