# -*- coding: utf-8 -*-
"""
vfdtpy.conditions
=================

Decision tests held by split nodes.  A test maps an :class:`~vfdtpy.instance.Example`
to a branch index, or to ``-1`` when the tested value is missing.  Tests are
frozen dataclasses so two tests on the same feature with the same parameters
compare equal, which the merge protocol relies on.
"""

from __future__ import annotations
from dataclasses import dataclass

from .instance import is_missing


def _feature_name(feature: int, feature_names=None) -> str:
    if feature_names is not None and 0 <= feature < len(feature_names):
        return str(feature_names[feature])
    return f"X[{feature}]"


@dataclass(frozen=True)
class NominalMultiwayTest:
    """One branch per category of a nominal feature."""
    feature: int
    num_values: int

    @property
    def num_branches(self) -> int:
        return self.num_values

    def branch(self, example) -> int:
        v = example.value(self.feature)
        if is_missing(v):
            return -1
        v = int(v)
        return v if 0 <= v < self.num_values else -1

    def describe(self, branch: int, feature_names=None) -> str:
        return f"{_feature_name(self.feature, feature_names)} = {branch}"


@dataclass(frozen=True)
class NominalBinaryTest:
    """
    ``feature == value`` goes to branch 0, any other category to branch 1.

    Codes outside ``[0, num_values)`` are treated as missing, like the
    observers do; ``num_values=None`` only rejects negative codes.
    """
    feature: int
    value: int
    num_values: int | None = None

    @property
    def num_branches(self) -> int:
        return 2

    def branch(self, example) -> int:
        v = example.value(self.feature)
        if is_missing(v):
            return -1
        v = int(v)
        if v < 0 or (self.num_values is not None and v >= self.num_values):
            return -1
        return 0 if v == self.value else 1

    def describe(self, branch: int, feature_names=None) -> str:
        op = "=" if branch == 0 else "!="
        return f"{_feature_name(self.feature, feature_names)} {op} {self.value}"


@dataclass(frozen=True)
class NumericBinaryTest:
    """``feature <= threshold`` goes to branch 0, ``> threshold`` to branch 1."""
    feature: int
    threshold: float

    @property
    def num_branches(self) -> int:
        return 2

    def branch(self, example) -> int:
        v = example.value(self.feature)
        if is_missing(v):
            return -1
        return 0 if float(v) <= self.threshold else 1

    def describe(self, branch: int, feature_names=None) -> str:
        op = "<=" if branch == 0 else ">"
        return f"{_feature_name(self.feature, feature_names)} {op} {self.threshold:.4f}"
