# -*- coding: utf-8 -*-
"""
vfdtpy.config
=============

Immutable configuration shared by a canonical model and all of its partial
copies.  Every option is validated when the configuration is built; invalid
values raise ``ValueError`` rather than silently falling back to a default.
"""

from __future__ import annotations
from dataclasses import dataclass

from .criteria import SplitCriterion, make_split_criterion
from .instance import check_feature_types

LEAF_PREDICTIONS = ("mc", "nb", "nba")

_LEAF_ALIASES = {
    "mc": "mc", "majority": "mc", "majority_class": "mc", "active": "mc",
    "nb": "nb", "naive_bayes": "nb",
    "nba": "nba", "nb_adaptive": "nba", "naive_bayes_adaptive": "nba",
}


def resolve_leaf_prediction(name) -> str:
    key = str(name).lower() if isinstance(name, str) else None
    if key not in _LEAF_ALIASES:
        raise ValueError(f"Unknown leaf_prediction: {name!r}. Expected one of {LEAF_PREDICTIONS}.")
    return _LEAF_ALIASES[key]


@dataclass(frozen=True)
class HoeffdingTreeConfig:
    """
    Hoeffding tree options.

    Parameters
    ----------
    num_classes : int
        Length of every class distribution vector.
    feature_types : sequence of NominalFeature / NumericFeature
        One declaration per feature.
    split_criterion : str or SplitCriterion, default="info_gain"
        ``"info_gain"``, ``"gini"`` or a criterion instance.
    growth_allowed : bool, default=True
        If ``False`` leaves never split.
    binary_only : bool, default=False
        Restrict decision tests to two branches.
    grace_period : float, default=200
        Weight a leaf must accumulate between split attempts.
    tie_threshold : float, default=0.05
        Split anyway once the Hoeffding bound drops below this value.
    split_confidence : float, default=1e-7
        ``delta`` of the Hoeffding bound, in (0, 1).
    leaf_prediction : {"mc", "nb", "nba"}, default="mc"
        Majority class, naive Bayes, or adaptive naive Bayes leaves.
    nb_threshold : float, default=0
        Leaf weight required before naive Bayes predictions are used.
    pre_prune : bool, default=False
        Refuse splits whose merit does not exceed the merit of not splitting.
    """
    num_classes: int
    feature_types: tuple
    split_criterion: SplitCriterion | str = "info_gain"
    growth_allowed: bool = True
    binary_only: bool = False
    grace_period: float = 200
    tie_threshold: float = 0.05
    split_confidence: float = 1e-7
    leaf_prediction: str = "mc"
    nb_threshold: float = 0
    pre_prune: bool = False

    def __post_init__(self):
        def set_(k, v):
            object.__setattr__(self, k, v)

        if int(self.num_classes) < 1:
            raise ValueError("num_classes must be >= 1")
        set_("num_classes", int(self.num_classes))
        set_("feature_types", check_feature_types(self.feature_types))
        set_("split_criterion", make_split_criterion(self.split_criterion))
        set_("growth_allowed", bool(self.growth_allowed))
        set_("binary_only", bool(self.binary_only))
        set_("pre_prune", bool(self.pre_prune))
        if float(self.grace_period) < 0:
            raise ValueError("grace_period must be non-negative")
        set_("grace_period", float(self.grace_period))
        if not 0.0 <= float(self.tie_threshold) <= 1.0:
            raise ValueError("tie_threshold must lie in [0, 1]")
        set_("tie_threshold", float(self.tie_threshold))
        if not 0.0 < float(self.split_confidence) < 1.0:
            raise ValueError("split_confidence must lie in (0, 1)")
        set_("split_confidence", float(self.split_confidence))
        set_("leaf_prediction", resolve_leaf_prediction(self.leaf_prediction))
        if float(self.nb_threshold) < 0:
            raise ValueError("nb_threshold must be non-negative")
        set_("nb_threshold", float(self.nb_threshold))

    @property
    def num_features(self) -> int:
        return len(self.feature_types)

    def compatible_with(self, other: "HoeffdingTreeConfig") -> bool:
        """Models can be merged only if their statistics have the same shape."""
        return (self.num_classes == other.num_classes
                and self.feature_types == other.feature_types)
