# -*- coding: utf-8 -*-
"""
vfdtpy.instance
===============

Input records and feature type declarations.

An :class:`Example` is an immutable, weighted, labelled feature vector.
Nominal feature values are integer codes in ``[0, cardinality)``; numeric
feature values are floats.  ``None``, ``NaN`` and out‑of‑range nominal codes
are treated as missing.
"""

from __future__ import annotations
from dataclasses import dataclass
import math


@dataclass(frozen=True)
class NominalFeature:
    """Nominal feature with a fixed number of categories."""
    cardinality: int

    def __post_init__(self):
        if int(self.cardinality) < 1:
            raise ValueError("NominalFeature cardinality must be >= 1")

    @property
    def is_nominal(self) -> bool:
        return True


@dataclass(frozen=True)
class NumericFeature:
    """Real valued feature."""

    @property
    def is_nominal(self) -> bool:
        return False


@dataclass(frozen=True)
class Example:
    features: tuple
    label: int
    weight: float = 1.0

    def __post_init__(self):
        # allow lists / arrays on input but always store a tuple
        object.__setattr__(self, "features", tuple(self.features))
        if self.weight < 0:
            raise ValueError("Example weight must be non-negative")

    def value(self, index: int):
        return self.features[index]


def is_missing(v) -> bool:
    return (v is None) or (isinstance(v, float) and math.isnan(v))


def check_feature_types(feature_types) -> tuple:
    """Validate a sequence of feature type declarations and return it as a tuple."""
    out = tuple(feature_types)
    if len(out) == 0:
        raise ValueError("feature_types must declare at least one feature")
    for i, ft in enumerate(out):
        if not isinstance(ft, (NominalFeature, NumericFeature)):
            raise ValueError(f"feature_types[{i}] is not a NominalFeature or NumericFeature: {ft!r}")
    return out
