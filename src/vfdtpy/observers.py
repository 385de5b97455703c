# -*- coding: utf-8 -*-
"""
vfdtpy.observers
================

Feature observers collect per-feature, per-class statistics at an active leaf
and turn them into split suggestions.  Every observer supports:

* ``observe(value, class_index, weight)``
* ``best_split(criterion, pre_split, feature, binary_only)`` returning a
  :class:`~vfdtpy.splits.FeatureSplit` or ``None``
* ``probability_of_value(value, class_index)`` for naive Bayes prediction
* ``merge(other)`` (in place, additive) and ``empty_copy()``

Nominal features keep exact weighted counts.  Numeric features keep one
weighted Gaussian per class and evaluate a fixed number of candidate
thresholds between the observed minimum and maximum.
"""

from __future__ import annotations
import math

import numpy as np

from .conditions import NominalBinaryTest, NominalMultiwayTest, NumericBinaryTest
from .instance import is_missing
from .splits import FeatureSplit


# -----------------------------------------------------------------------------
# Nominal
# -----------------------------------------------------------------------------
class NominalFeatureObserver:
    """Exact class counts for each category of a nominal feature."""

    def __init__(self, num_classes: int, cardinality: int):
        self.num_classes = int(num_classes)
        self.cardinality = int(cardinality)
        # value -> class weight vector
        self.counts: dict[int, np.ndarray] = {}

    def observe(self, value, class_index: int, weight: float) -> None:
        if is_missing(value):
            return
        v = int(value)
        if not 0 <= v < self.cardinality:
            return
        if v not in self.counts:
            self.counts[v] = np.zeros(self.num_classes, dtype=float)
        self.counts[v][class_index] += weight

    def _total(self) -> np.ndarray:
        tot = np.zeros(self.num_classes, dtype=float)
        for d in self.counts.values():
            tot += d
        return tot

    def best_split(self, criterion, pre_split, feature: int, binary_only: bool):
        best = None
        if not binary_only:
            post = [self.counts.get(v, np.zeros(self.num_classes)).copy()
                    for v in range(self.cardinality)]
            merit = criterion.merit(pre_split, post)
            best = FeatureSplit(feature, NominalMultiwayTest(feature, self.cardinality), merit, post)
        total = self._total()
        for v in sorted(self.counts):
            left = self.counts[v].copy()
            post = [left, total - left]
            merit = criterion.merit(pre_split, post)
            if best is None or merit > best.merit:
                test = NominalBinaryTest(feature, v, self.cardinality)
                best = FeatureSplit(feature, test, merit, post)
        return best

    def probability_of_value(self, value, class_index: int) -> float:
        if is_missing(value):
            return 1.0
        v = int(value)
        seen = self.counts.get(v)
        obs = float(seen[class_index]) if seen is not None else 0.0
        class_total = sum(float(d[class_index]) for d in self.counts.values())
        # Laplace smoothing over the declared categories
        return (obs + 1.0) / (class_total + self.cardinality)

    def merge(self, other: "NominalFeatureObserver") -> "NominalFeatureObserver":
        for v, d in other.counts.items():
            if v in self.counts:
                self.counts[v] = self.counts[v] + d
            else:
                self.counts[v] = d.copy()
        return self

    def empty_copy(self) -> "NominalFeatureObserver":
        return NominalFeatureObserver(self.num_classes, self.cardinality)


# -----------------------------------------------------------------------------
# Numeric
# -----------------------------------------------------------------------------
def _normal_cdf(z: float) -> float:
    return 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))


class GaussianEstimator:
    """Weighted running mean/variance (Welford), mergeable with Chan's formula."""

    def __init__(self):
        self.weight = 0.0
        self.mean = 0.0
        self.m2 = 0.0

    def add(self, value: float, weight: float) -> None:
        if weight <= 0:
            return
        if self.weight == 0:
            self.mean = value
            self.weight = weight
            return
        last_mean = self.mean
        self.weight += weight
        self.mean += weight * (value - last_mean) / self.weight
        self.m2 += weight * (value - last_mean) * (value - self.mean)

    @property
    def variance(self) -> float:
        return self.m2 / (self.weight - 1.0) if self.weight > 1.0 else 0.0

    @property
    def std(self) -> float:
        return math.sqrt(max(self.variance, 0.0))

    def density(self, value: float) -> float:
        if self.weight <= 0:
            return 0.0
        sd = self.std
        if sd > 0:
            z = (value - self.mean) / sd
            return math.exp(-0.5 * z * z) / (sd * math.sqrt(2.0 * math.pi))
        return 1.0 if value == self.mean else 0.0

    def weights_less_equal_greater(self, value: float) -> tuple[float, float, float]:
        sd = self.std
        if sd > 0:
            at_or_below = _normal_cdf((value - self.mean) / sd) * self.weight
            # the density mass is capped so the three parts always sum to weight
            equal = min(self.density(value) * self.weight, at_or_below)
            less = at_or_below - equal
        else:
            equal = self.weight if value == self.mean else 0.0
            less = self.weight if value > self.mean else 0.0
        greater = max(self.weight - equal - less, 0.0)
        return less, equal, greater

    def merge(self, other: "GaussianEstimator") -> "GaussianEstimator":
        if other.weight <= 0:
            return self
        if self.weight <= 0:
            self.weight, self.mean, self.m2 = other.weight, other.mean, other.m2
            return self
        total = self.weight + other.weight
        delta = other.mean - self.mean
        self.mean += delta * other.weight / total
        self.m2 += other.m2 + delta * delta * self.weight * other.weight / total
        self.weight = total
        return self


class GaussianNumericFeatureObserver:
    """
    Per-class Gaussian summary of a numeric feature.

    Parameters
    ----------
    num_classes : int
        Size of the class distribution vectors.
    num_bins : int, default=10
        Number of equally spaced candidate thresholds evaluated between the
        smallest and largest value seen.
    """

    def __init__(self, num_classes: int, num_bins: int = 10):
        self.num_classes = int(num_classes)
        self.num_bins = int(num_bins)
        self.estimators = [GaussianEstimator() for _ in range(self.num_classes)]
        self.min_values = np.full(self.num_classes, np.inf)
        self.max_values = np.full(self.num_classes, -np.inf)

    def observe(self, value, class_index: int, weight: float) -> None:
        if is_missing(value):
            return
        v = float(value)
        self.min_values[class_index] = min(self.min_values[class_index], v)
        self.max_values[class_index] = max(self.max_values[class_index], v)
        self.estimators[class_index].add(v, weight)

    def _split_points(self) -> list[float]:
        lo, hi = float(np.min(self.min_values)), float(np.max(self.max_values))
        if not np.isfinite(lo) or not np.isfinite(hi) or lo >= hi:
            return []
        step = (hi - lo) / (self.num_bins + 1.0)
        return [lo + step * (i + 1) for i in range(self.num_bins)]

    def class_dists_from_binary_split(self, threshold: float) -> list[np.ndarray]:
        left = np.zeros(self.num_classes, dtype=float)
        right = np.zeros(self.num_classes, dtype=float)
        for c, est in enumerate(self.estimators):
            if est.weight <= 0:
                continue
            if threshold < self.min_values[c]:
                right[c] += est.weight
            elif threshold >= self.max_values[c]:
                left[c] += est.weight
            else:
                less, equal, greater = est.weights_less_equal_greater(threshold)
                left[c] += less + equal
                right[c] += greater
        return [left, right]

    def best_split(self, criterion, pre_split, feature: int, binary_only: bool):
        best = None
        for thr in self._split_points():
            post = self.class_dists_from_binary_split(thr)
            merit = criterion.merit(pre_split, post)
            if best is None or merit > best.merit:
                best = FeatureSplit(feature, NumericBinaryTest(feature, thr), merit, post)
        return best

    def probability_of_value(self, value, class_index: int) -> float:
        if is_missing(value):
            return 1.0
        return self.estimators[class_index].density(float(value))

    def merge(self, other: "GaussianNumericFeatureObserver") -> "GaussianNumericFeatureObserver":
        for mine, theirs in zip(self.estimators, other.estimators):
            mine.merge(theirs)
        self.min_values = np.minimum(self.min_values, other.min_values)
        self.max_values = np.maximum(self.max_values, other.max_values)
        return self

    def empty_copy(self) -> "GaussianNumericFeatureObserver":
        return GaussianNumericFeatureObserver(self.num_classes, self.num_bins)


def make_observer(feature_type, num_classes: int):
    """Observer matching a :class:`NominalFeature` or :class:`NumericFeature` declaration."""
    if feature_type.is_nominal:
        return NominalFeatureObserver(num_classes, feature_type.cardinality)
    return GaussianNumericFeatureObserver(num_classes)


def naive_bayes_votes(class_distribution: np.ndarray, observers, example) -> np.ndarray:
    """
    Naive Bayes class scores ``P(c) * prod_i P(x_i | c)``, normalised to sum to one.

    Products are accumulated in log space; a zero likelihood gives a zero vote.
    """
    dist = np.asarray(class_distribution, dtype=float)
    total = dist.sum()
    votes = np.zeros_like(dist)
    if total <= 0:
        return votes
    logs = np.full(len(dist), -np.inf)
    for c in range(len(dist)):
        if dist[c] <= 0:
            continue
        lp = math.log(dist[c] / total)
        for i, obs in enumerate(observers):
            p = obs.probability_of_value(example.value(i), c)
            if p <= 0:
                lp = -math.inf
                break
            lp += math.log(p)
        logs[c] = lp
    if not np.isfinite(logs).any():
        return votes
    top = np.max(logs[np.isfinite(logs)])
    for c in range(len(dist)):
        if np.isfinite(logs[c]):
            votes[c] = math.exp(logs[c] - top)
    return votes / votes.sum()
