# -*- coding: utf-8 -*-
"""
vfdtpy.model
============

The Hoeffding tree model: owns the root, routes examples to leaves, decides
and executes splits, merges partial models and answers predictions.

Training follows a fold/merge protocol::

    partial = model.partial_copy()        # one per data partition
    for ex in partition:
        partial.update(ex)                # observe only, never splits
    model.merge(partial, try_split=True)  # add statistics, maybe split

``partial_copy`` gives each partition its own tree with the canonical shape
and zeroed statistics, so partial models never share mutable nodes with the
canonical model or with each other and merging adds exactly the weight each
partition observed.  A model instance must not be updated or merged from more
than one thread at a time; ``merge`` needs exclusive access to the model it
is called on.
"""

from __future__ import annotations
import copy
import logging

import numpy as np

from .config import HoeffdingTreeConfig
from .nodes import (KIND_FOR_PREDICTION, LearningNode, SplitNode, empty_structure_copy,
                    filter_to_leaf, heaviest_leaf, iter_leaves, iter_nodes)
from .splits import SplitOutcome, hoeffding_bound, should_split

logger = logging.getLogger(__name__)


class HoeffdingTreeModel:
    """
    Incrementally grown decision tree (VFDT).

    Parameters
    ----------
    num_classes : int
        Number of classes; labels are integers in ``[0, num_classes)``.
    feature_types : sequence of NominalFeature / NumericFeature
        Feature declarations.
    **options
        Any other :class:`~vfdtpy.config.HoeffdingTreeConfig` option
        (``split_criterion``, ``growth_allowed``, ``binary_only``,
        ``grace_period``, ``tie_threshold``, ``split_confidence``,
        ``leaf_prediction``, ``nb_threshold``, ``pre_prune``).

    Attributes
    ----------
    root : SplitNode or LearningNode or None
        Root of the tree.
    active_node_count, inactive_node_count, decision_node_count : int
        Node telemetry.
    examples_seen : int
        Number of examples folded into this model (merged ones included).
    last_example : Example or None
        Most recent example; its path is the one re-evaluated after a merge.
    """

    def __init__(self, num_classes: int, feature_types, **options):
        self._setup(HoeffdingTreeConfig(num_classes, feature_types, **options))
        self.init()

    @classmethod
    def from_config(cls, config: HoeffdingTreeConfig, *, init: bool = True) -> "HoeffdingTreeModel":
        model = cls.__new__(cls)
        model._setup(config)
        if init:
            model.init()
        return model

    def _setup(self, config: HoeffdingTreeConfig) -> None:
        self.config = config
        self.root = None
        self.active_node_count = 0
        self.inactive_node_count = 0
        self.decision_node_count = 0
        self.examples_seen = 0
        self.last_example = None

    def init(self) -> "HoeffdingTreeModel":
        """Reset the tree to a single empty learning leaf."""
        self.root = self._new_leaf(np.zeros(self.config.num_classes))
        self.active_node_count = 1
        self.inactive_node_count = 0
        self.decision_node_count = 0
        return self

    def _new_leaf(self, class_distribution) -> LearningNode:
        kind = KIND_FOR_PREDICTION[self.config.leaf_prediction]
        return LearningNode.fresh(kind, class_distribution, self.config)

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------
    def copy(self) -> "HoeffdingTreeModel":
        """Independent deep copy sharing only the immutable configuration."""
        new = HoeffdingTreeModel.from_config(self.config, init=False)
        new.root = copy.deepcopy(self.root)
        new._copy_counters(self)
        new.examples_seen = self.examples_seen
        new.last_example = self.last_example
        return new

    def partial_copy(self) -> "HoeffdingTreeModel":
        """
        Same tree shape, zero statistics.

        Used to build a partial model for one partition of a batch; merging it
        back adds only what the partition contributed.
        """
        new = HoeffdingTreeModel.from_config(self.config, init=False)
        new.root = empty_structure_copy(self.root)
        new._copy_counters(self)
        return new

    def _copy_counters(self, other: "HoeffdingTreeModel") -> None:
        self.active_node_count = other.active_node_count
        self.inactive_node_count = other.inactive_node_count
        self.decision_node_count = other.decision_node_count

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------
    def _check_example(self, example) -> None:
        if len(example.features) != self.config.num_features:
            raise ValueError(f"Example has {len(example.features)} features, "
                             f"model expects {self.config.num_features}")
        if not 0 <= int(example.label) < self.config.num_classes:
            raise ValueError(f"Label {example.label!r} outside [0, {self.config.num_classes})")

    def update(self, example) -> "HoeffdingTreeModel":
        """Route ``example`` to its leaf and learn from it.  Never splits."""
        self._check_example(example)
        self.examples_seen += 1
        self.last_example = example
        if self.root is None:
            self.init()
        found = filter_to_leaf(self.root, example)
        node = found.node
        if node is None:
            node = self._new_leaf(np.zeros(self.config.num_classes))
            found.parent.set_child(found.branch, node)
            self.active_node_count += 1
            logger.debug("Created missing leaf at branch %d of %r", found.branch, found.parent)
        if node.is_leaf:
            node.learn(self, example)
        return self

    def hoeffding_bound(self, leaf) -> float:
        criterion = self.config.split_criterion
        r = criterion.range_of_merit(leaf.class_distribution)
        return hoeffding_bound(r, self.config.split_confidence, leaf.weight())

    def should_split(self, leaf, suggestions) -> bool:
        return should_split(suggestions, self.hoeffding_bound(leaf), self.config.tie_threshold)

    def attempt_to_split(self, leaf, parent=None, branch: int = -1) -> bool:
        """
        Evaluate ``leaf`` and split or deactivate it if the Hoeffding test says so.

        Returns ``True`` if the tree structure changed.
        """
        cfg = self.config
        if not cfg.growth_allowed or not leaf.is_leaf or not leaf.is_active:
            return False
        if leaf.add_on_weight() < cfg.grace_period:
            return False
        leaf.reset_add_on_weight()
        if leaf.weight() <= 0 or leaf.is_pure():
            return False
        suggestions = leaf.get_best_split_suggestions(cfg.split_criterion, self)
        if not self.should_split(leaf, suggestions):
            return False
        best = suggestions[-1]
        if best.outcome is SplitOutcome.NO_SPLIT:
            self._deactivate(leaf, parent, branch)
            return True
        if not np.isfinite(best.merit):
            return False
        if cfg.pre_prune:
            null_merit = next(s.merit for s in suggestions if s.outcome is SplitOutcome.NO_SPLIT)
            if best.merit <= max(null_merit, 0.0):
                return False
        split_node = SplitNode(best.test, leaf.class_distribution)
        for i in range(best.num_splits):
            split_node.set_child(i, self._new_leaf(best.distribution_from_split(i)))
        self._replace(parent, branch, split_node)
        self.active_node_count += split_node.num_children() - 1
        self.decision_node_count += 1
        logger.info("Split leaf on %r (merit=%.4f, weight=%.1f)", best.test, best.merit, leaf.weight())
        return True

    def _deactivate(self, leaf, parent, branch: int) -> None:
        self._replace(parent, branch, leaf.deactivated())
        self.active_node_count -= 1
        self.inactive_node_count += 1
        logger.info("Deactivated leaf (weight=%.1f)", leaf.weight())

    def _replace(self, parent, branch: int, node) -> None:
        if parent is None:
            self.root = node
        else:
            parent.set_child(branch, node)

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------
    def merge(self, other: "HoeffdingTreeModel", try_split: bool = False) -> "HoeffdingTreeModel":
        """
        Add the statistics of ``other`` (built from disjoint examples) to this model.

        Matching subtrees are combined node by node.  Where the shapes differ,
        every leaf of the other side is folded into the heaviest leaf of the
        corresponding subtree here, so no weight is lost or counted twice.
        ``other`` is left unchanged.  With ``try_split`` the leaf reached by
        the most recent example is evaluated for a split once.
        """
        if other is self:
            raise ValueError("Cannot merge a model with itself")
        if not self.config.compatible_with(other.config):
            raise ValueError("Cannot merge models with different class counts or feature types")
        self.examples_seen += other.examples_seen
        if other.last_example is not None:
            self.last_example = other.last_example
        if other.root is not None:
            if self.root is None:
                self.root = copy.deepcopy(other.root)
            else:
                self._merge_nodes(other.root)
            self._recount()
        if try_split and self.root is not None and self.last_example is not None:
            found = filter_to_leaf(self.root, self.last_example)
            if found.node is not None and found.node.is_leaf:
                self.attempt_to_split(found.node, found.parent, found.branch)
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(self.description())
        return self

    def _merge_nodes(self, other_root) -> None:
        stack = [(self.root, other_root, None, -1)]
        while stack:
            mine, theirs, parent, branch = stack.pop()
            if mine.is_leaf and theirs.is_leaf:
                mine.merge_statistics(theirs)
            elif not mine.is_leaf and not theirs.is_leaf and mine.test == theirs.test:
                mine.class_distribution += theirs.class_distribution
                for i, child in enumerate(theirs.children):
                    if child is None:
                        continue
                    if mine.children[i] is None:
                        mine.children[i] = copy.deepcopy(child)
                    else:
                        stack.append((mine.children[i], child, mine, i))
            elif not mine.is_leaf:
                self._fold_leaves(mine, theirs)
            else:
                adopted = copy.deepcopy(theirs)
                self._replace(parent, branch, adopted)
                self._fold_leaves(adopted, mine)

    def _fold_leaves(self, target, source) -> None:
        """Fold every leaf under ``source`` into the heaviest leaf under ``target``."""
        for leaf in list(iter_leaves(source)):
            found = heaviest_leaf(target)
            dest = found.node
            if dest is None:
                dest = self._new_leaf(np.zeros(self.config.num_classes))
                found.parent.set_child(found.branch, dest)
            dest.merge_statistics(leaf)

    def _recount(self) -> None:
        active = inactive = decision = 0
        for node, _, _, _ in iter_nodes(self.root):
            if not node.is_leaf:
                decision += 1
            elif node.is_active:
                active += 1
            else:
                inactive += 1
        self.active_node_count = active
        self.inactive_node_count = inactive
        self.decision_node_count = decision

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def class_votes(self, example) -> np.ndarray:
        """Votes of the node ``example`` reaches; all zeros for an empty model."""
        if self.root is None:
            return np.zeros(self.config.num_classes)
        found = filter_to_leaf(self.root, example)
        node = found.node if found.node is not None else found.parent
        return np.asarray(node.class_votes(self, example), dtype=float)

    def predict(self, example) -> int:
        """
        Class with the highest vote (lowest index on ties).

        An untrained model (no root) answers class 0.
        """
        if self.root is None:
            return 0
        return int(np.argmax(self.class_votes(example)))

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------
    def n_nodes(self) -> int:
        return sum(1 for _ in iter_nodes(self.root))

    def depth(self) -> int:
        return max((d for _, _, _, d in iter_nodes(self.root)), default=0)

    def total_weight(self) -> float:
        """Sum of the class weights held by the leaves."""
        return float(sum(leaf.weight() for leaf in iter_leaves(self.root)))

    def description(self, feature_names=None, class_names=None) -> str:
        lines = ["Hoeffding Tree Model description:"]
        if self.root is None:
            lines.append("<empty>")
        else:
            _describe(self.root, "", lines, feature_names, class_names)
        return "\n".join(lines)

    def __repr__(self):
        return (f"HoeffdingTreeModel(num_classes={self.config.num_classes}, "
                f"active={self.active_node_count}, inactive={self.inactive_node_count}, "
                f"decision={self.decision_node_count}, examples_seen={self.examples_seen})")


def _describe(node, indent, lines, fn=None, cn=None):
    if node.is_leaf:
        dist = node.class_distribution
        pred = int(np.argmax(dist))
        label = cn[pred] if cn is not None else str(pred)
        lines.append(f"{indent}Leaf [{node.kind}] predict {label} | dist={np.round(dist, 3).tolist()}")
        return
    for i, child in enumerate(node.children):
        lines.append(f"{indent}if {node.test.describe(i, fn)}:")
        if child is None:
            lines.append(f"{indent}  <empty>")
        else:
            _describe(child, indent + "  ", lines, fn, cn)
