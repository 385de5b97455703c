# -*- coding: utf-8 -*-
"""
vfdtpy.splits
=============

Split suggestions and the statistical stopping rule.

The Hoeffding bound

    eps = sqrt(R^2 * ln(1/delta) / (2 * W))

is the largest deviation, with probability at least ``1 - delta``, between the
merit estimated from ``W`` units of weight and its true value.  A leaf splits
when the best suggestion beats the runner-up by more than ``eps``, or when
``eps`` has shrunk below the tie threshold.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import math

import numpy as np


class SplitOutcome(Enum):
    NO_SPLIT = "no_split"
    SPLIT = "split"


@dataclass(eq=False)
class FeatureSplit:
    """
    A candidate split.

    Attributes
    ----------
    feature : int or None
        Feature the test is on; ``None`` for the no‑split option.
    test : object or None
        Decision test, ``None`` meaning "do not split".
    merit : float
        Score assigned by the split criterion.
    distributions : list of ndarray
        Class distribution each branch would receive.
    """
    feature: int | None
    test: object | None
    merit: float
    distributions: list = field(default_factory=list)

    @property
    def outcome(self) -> SplitOutcome:
        return SplitOutcome.NO_SPLIT if self.test is None else SplitOutcome.SPLIT

    @property
    def num_splits(self) -> int:
        return len(self.distributions)

    def distribution_from_split(self, branch: int) -> np.ndarray:
        return np.array(self.distributions[branch], dtype=float)

    def __lt__(self, other: "FeatureSplit") -> bool:
        return self.merit < other.merit


def no_split(criterion, pre_split: np.ndarray) -> FeatureSplit:
    """The option of leaving the leaf as it is."""
    pre = np.asarray(pre_split, dtype=float)
    return FeatureSplit(None, None, criterion.merit(pre, [pre]), [pre.copy()])


def hoeffding_bound(range_of_merit: float, confidence: float, weight: float) -> float:
    """
    Hoeffding bound for ``weight`` observations of a variable with the given range.

    The result never exceeds ``range_of_merit``: no merit difference can be
    larger than the range, so a wider bound carries no information.  With no
    observed weight the range itself is returned; callers defer splitting on
    empty leaves before asking for a bound.
    """
    if weight <= 0:
        return range_of_merit
    eps = math.sqrt(range_of_merit * range_of_merit * math.log(1.0 / confidence) / (2.0 * weight))
    return min(eps, range_of_merit)


def should_split(suggestions: list[FeatureSplit], bound: float, tie_threshold: float) -> bool:
    """
    Decide whether the best of ``suggestions`` (sorted ascending by merit) wins.

    With fewer than two suggestions the answer is whether there is one at all.
    """
    if len(suggestions) < 2:
        return len(suggestions) > 0
    best, second = suggestions[-1], suggestions[-2]
    return bound < tie_threshold or (best.merit - second.merit) > bound
