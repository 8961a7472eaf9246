"""
Formula and scope algebra.

Terms are identified by the set of variables they are built from, so ``a:b`` and
``b:a`` name the same term. The intercept is never a term here: it is kept on
every refit and can not be dropped.
"""

from typing import Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from patsy import INTERCEPT, ModelDesc

from fastbackward.utils.exceptions import ScopeError

ScopeSpec = Optional[Union[str, Sequence[str]]]


class TermScope(NamedTuple):
    """Partition of a model's terms for one backward step."""
    drop: tuple
    retained: tuple


def parse_formula(formula: str) -> ModelDesc:
    return ModelDesc.from_formula(formula)


def parse_terms(formula: str) -> Tuple[List[str], Dict[str, FrozenSet[str]]]:
    """Ordered term labels and the variable set of each term."""
    desc = parse_formula(formula)
    return term_labels(desc), term_variables(desc)


def _variables(term) -> FrozenSet[str]:
    return frozenset(factor.name() for factor in term.factors)


def term_labels(desc: ModelDesc) -> List[str]:
    """Term labels in formula order, intercept excluded."""
    return [term.name() for term in desc.rhs_termlist if term != INTERCEPT]


def term_variables(desc: ModelDesc) -> Dict[str, FrozenSet[str]]:
    return {term.name(): _variables(term) for term in desc.rhs_termlist if term != INTERCEPT}


def label_variables(label: str) -> FrozenSet[str]:
    """Variable set of a single term label such as ``"x1:C(g)"``."""
    terms = [t for t in parse_formula(f"~ {label}").rhs_termlist if t != INTERCEPT]
    if len(terms) != 1:
        raise ScopeError(f"'{label}' does not describe a single term")
    return _variables(terms[0])


def formula_without(formula: str, label: str) -> str:
    """
    Return ``formula`` with the term ``label`` removed.

    Response and intercept are preserved. Raises ScopeError when the term is
    not part of the formula.
    """
    desc = parse_formula(formula)
    target = label_variables(label)
    rhs = [t for t in desc.rhs_termlist if t == INTERCEPT or _variables(t) != target]
    if len(rhs) == len(desc.rhs_termlist):
        raise ScopeError(f"Term '{label}' is not in formula '{formula}'")
    return ModelDesc(desc.lhs_termlist, rhs).describe()


def parse_scope(scope: ScopeSpec) -> List[FrozenSet[str]]:
    """
    Protected terms as variable sets.

    Accepts None (nothing protected), a formula string whose right-hand side
    lists the protected terms (the response, if any, is ignored) or a sequence
    of term labels.
    """
    if scope is None:
        return []
    if isinstance(scope, str):
        text = scope if "~" in scope else f"~ {scope}"
        return [_variables(t) for t in parse_formula(text).rhs_termlist if t != INTERCEPT]
    return [label_variables(label) for label in scope]


def eligible_drop_terms(variables: Dict[str, FrozenSet[str]],
                        protected: Iterable[FrozenSet[str]] = ()) -> TermScope:
    """
    Split model terms into those that may be dropped this step and the rest.

    A term is droppable when it is not protected and no other droppable term
    contains all of its variables (an interaction keeps its main effects).
    """
    protected = list(protected)
    present = set(variables.values())
    missing = [p for p in protected if p not in present]
    if missing:
        names = ", ".join(sorted(":".join(sorted(p)) for p in missing))
        raise ScopeError(f"Protected scope has term(s) {names} not included in model")

    candidates = [label for label, v in variables.items() if v not in protected]
    drop = tuple(
        label for label in candidates
        if not any(variables[label] <= variables[other] for other in candidates if other != label)
    )
    retained = tuple(label for label in variables if label not in drop)
    return TermScope(drop=drop, retained=retained)
