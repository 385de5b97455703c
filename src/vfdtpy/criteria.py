# -*- coding: utf-8 -*-
"""
vfdtpy.criteria
===============

Split criteria score a candidate split from the class distribution before
the split and the distributions it would induce on each branch.  Each
criterion also declares the range of its merit, which is the ``R`` term of
the Hoeffding bound.
"""

from __future__ import annotations
import numpy as np


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _entropy(dist_vec: np.ndarray) -> float:
    tot = dist_vec.sum()
    if tot <= 0:
        return 0.0
    p = dist_vec / tot
    p = p[p > 0]
    return float(-np.sum(p * np.log2(p)))

def _gini(dist_vec: np.ndarray) -> float:
    tot = dist_vec.sum()
    if tot <= 0:
        return 0.0
    p = dist_vec / tot
    return float(1.0 - np.sum(p * p))


# -----------------------------------------------------------------------------
# Criteria
# -----------------------------------------------------------------------------
class SplitCriterion:
    """Base class for split criteria.  Higher merit means a better split."""

    name = "base"

    def merit(self, pre: np.ndarray, post: list[np.ndarray]) -> float:
        raise NotImplementedError

    def range_of_merit(self, pre: np.ndarray) -> float:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class InfoGainSplitCriterion(SplitCriterion):
    """
    Information gain (entropy reduction, in bits).

    Parameters
    ----------
    min_branch_frac : float, default=0.01
        A split is only meaningful if at least two branches each receive this
        fraction of the total weight; otherwise its merit is ``-inf``.
    """

    name = "info_gain"

    def __init__(self, min_branch_frac: float = 0.01):
        self.min_branch_frac = float(min_branch_frac)

    def merit(self, pre, post):
        pre = np.asarray(pre, dtype=float)
        tot = sum(float(np.sum(d)) for d in post)
        if tot <= 0:
            return 0.0
        # degenerate partitions (the "no split" option included) score -inf
        n_heavy = sum(1 for d in post if float(np.sum(d)) / tot > self.min_branch_frac)
        if n_heavy < 2:
            return float("-inf")
        after = sum(float(np.sum(d)) / tot * _entropy(np.asarray(d, dtype=float)) for d in post)
        return _entropy(pre) - after

    def range_of_merit(self, pre):
        k = len(pre)
        return float(np.log2(k if k > 2 else 2))

    def __repr__(self):
        return f"InfoGainSplitCriterion(min_branch_frac={self.min_branch_frac})"


class GiniSplitCriterion(SplitCriterion):
    """Gini impurity reduction."""

    name = "gini"

    def merit(self, pre, post):
        pre = np.asarray(pre, dtype=float)
        tot = sum(float(np.sum(d)) for d in post)
        if tot <= 0:
            return 0.0
        after = sum(float(np.sum(d)) / tot * _gini(np.asarray(d, dtype=float)) for d in post)
        return _gini(pre) - after

    def range_of_merit(self, pre):
        return 1.0


_CRITERIA = {
    "info_gain": InfoGainSplitCriterion,
    "infogain": InfoGainSplitCriterion,
    "gini": GiniSplitCriterion,
}

def make_split_criterion(criterion) -> SplitCriterion:
    """Resolve a criterion name (``"info_gain"``, ``"gini"``) or pass an instance through."""
    if isinstance(criterion, SplitCriterion):
        return criterion
    if isinstance(criterion, str) and criterion.lower() in _CRITERIA:
        return _CRITERIA[criterion.lower()]()
    raise ValueError(f"Unknown split criterion: {criterion!r}. "
                     f"Expected one of {sorted(set(_CRITERIA) - {'infogain'})} or a SplitCriterion.")
