import abc
import math
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple

from fastbackward.utils import constants


@dataclass(frozen=True)
class CandidateRow:
    """
    One scored removal candidate.

    ``df`` is the number of effective degrees of freedom the removal gives up
    (NaN for the synthetic "no change" row).
    """
    term: str
    df: float
    deviance: float
    resid_df: float
    criterion: float


class SelectableModel(abc.ABC):
    """
    Capability interface the backward search needs from a fitted model.

    Implementations wrap a concrete fit (linear, generalized linear, ...) and
    never change it in place: ``refit_without`` always returns a new instance.
    """

    @property
    @abc.abstractmethod
    def formula(self) -> str:
        """Current formula in re-parseable text form."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def terms(self) -> List[str]:
        """Term labels in formula order, intercept excluded."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def term_variables(self) -> Dict[str, FrozenSet[str]]:
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def nobs(self) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def extract_criterion(self, scale: float = 0.0, k: float = 2.0) -> Tuple[float, float]:
        """Return ``(edf, criterion)`` for penalty multiplier ``k``."""
        raise NotImplementedError

    @abc.abstractmethod
    def refit_without(self, term: str) -> "SelectableModel":
        raise NotImplementedError

    @property
    def deviance(self) -> float:
        # Fits without a deviance fall back to the unpenalised criterion.
        return self.extract_criterion(k=0.0)[1]

    def criterion_name(self, scale: float = 0.0) -> str:
        return constants.AIC_COLUMN

    def baseline_row(self, scale: float = 0.0, k: float = 2.0) -> CandidateRow:
        """The synthetic "no change" row for the current model."""
        edf, value = self.extract_criterion(scale, k)
        return CandidateRow(
            term=constants.NO_CHANGE_LABEL,
            df=math.nan,
            deviance=self.deviance,
            resid_df=self.nobs - edf,
            criterion=value,
        )

    def drop_one(self, term: str, scale: float = 0.0, k: float = 2.0) -> CandidateRow:
        """Refit without ``term`` and score the reduced model."""
        edf, _ = self.extract_criterion(scale, k)
        reduced = self._fit_for_drop(term)
        reduced_edf, value = reduced.extract_criterion(scale, k)
        return CandidateRow(
            term=term,
            df=edf - reduced_edf,
            deviance=reduced.deviance,
            resid_df=self.nobs - reduced_edf,
            criterion=value,
        )

    def _fit_for_drop(self, term: str) -> "SelectableModel":
        # Candidate scores must share the rows of the current fit.
        return self.refit_without(term)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.formula!r})"
