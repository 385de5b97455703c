# vfdtpy/__init__.py
"""
vfdtpy: Hoeffding trees (VFDT) for classification on data streams.

Exports:
    - HoeffdingTreeClassifier (scikit-learn style estimator)
    - HoeffdingTreeModel (fold/merge tree model)
    - HoeffdingTreeConfig
    - Example, NominalFeature, NumericFeature
    - InfoGainSplitCriterion, GiniSplitCriterion
"""
from .config import HoeffdingTreeConfig
from .criteria import GiniSplitCriterion, InfoGainSplitCriterion, SplitCriterion
from .instance import Example, NominalFeature, NumericFeature
from .model import HoeffdingTreeModel
from .tree import HoeffdingTreeClassifier

__all__ = [
    "HoeffdingTreeClassifier",
    "HoeffdingTreeModel",
    "HoeffdingTreeConfig",
    "Example",
    "NominalFeature",
    "NumericFeature",
    "SplitCriterion",
    "InfoGainSplitCriterion",
    "GiniSplitCriterion",
]
__version__ = "0.1.0"
