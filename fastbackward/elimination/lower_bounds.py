import math
from typing import Dict, Iterable, Iterator, List, Tuple

from fastbackward.utils import constants


class LowerBoundTable:
    """
    Lower bounds on the criterion reachable by removing each term.

    Every bound starts uninformative (-inf). After a step drops a term that
    gave up ``df`` degrees of freedom, every bound moves down by ``df * k``:
    the next removal starts from a model whose penalty is already that much
    smaller, while its fit can only be worse than the one observed earlier.
    Observed criterion values replace the bounds of the terms evaluated.
    """

    def __init__(self, terms: Iterable[str]):
        self._bounds: Dict[str, float] = {term: -math.inf for term in terms}

    def __getitem__(self, term: str) -> float:
        return self._bounds.get(term, -math.inf)

    def __contains__(self, term: str) -> bool:
        return term in self._bounds

    def __iter__(self) -> Iterator[str]:
        return iter(self._bounds)

    def __len__(self) -> int:
        return len(self._bounds)

    def tighten(self, penalty: float) -> None:
        """Account for the penalty ``df * k`` already realised by the last drop."""
        for term in self._bounds:
            self._bounds[term] -= penalty

    def record(self, term: str, value: float) -> None:
        """Store an observed criterion value; non-finite values leave the bound alone."""
        if math.isfinite(value):
            self._bounds[term] = value

    def partition(self, terms: Iterable[str], best: float,
                  tolerance: float = constants.BOUND_TOLERANCE) -> Tuple[List[str], List[str]]:
        """Split ``terms`` into (worth evaluating, provably not improving)."""
        eligible, pruned = [], []
        for term in terms:
            (pruned if self[term] > best + tolerance else eligible).append(term)
        return eligible, pruned

    def order(self, terms: Iterable[str]) -> List[str]:
        """Terms by ascending bound; ties keep their given order."""
        return sorted(terms, key=lambda term: self[term])

    def snapshot(self) -> Dict[str, float]:
        return dict(self._bounds)
