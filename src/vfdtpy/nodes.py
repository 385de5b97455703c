# -*- coding: utf-8 -*-
"""
vfdtpy.nodes
============

Tree vertices of a Hoeffding tree.

There are two node classes.  A :class:`SplitNode` holds a decision test, a
snapshot of the class distribution it was created with and one child slot per
branch (slots may be empty).  A :class:`LearningNode` is a leaf whose
behaviour is selected by its ``kind`` tag:

``"active"``
    accumulates class counts and one feature observer per feature; can split.
``"inactive"``
    class counts only; never splits.
``"nb"``
    like ``"active"`` but predicts with naive Bayes once the leaf weight
    reaches ``nb_threshold``.
``"nba"``
    like ``"nb"`` but predicts with whichever of majority class and naive
    Bayes has been right more often on the examples it learned from.

Dispatch on the tag happens inside the leaf methods, so every leaf exposes the
same capabilities: ``learn``, ``class_votes``, ``is_pure``, ``weight`` and
``add_on_weight``.
"""

from __future__ import annotations
from collections import namedtuple
import copy

import numpy as np

from .observers import make_observer, naive_bayes_votes
from .splits import no_split

LEAF_KINDS = ("active", "inactive", "nb", "nba")

# leaf kind created for each leaf_prediction option
KIND_FOR_PREDICTION = {"mc": "active", "nb": "nb", "nba": "nba"}

# Result of a traversal: the reached node (None for an empty child slot), its
# parent (None at the root) and the branch index of the node in its parent.
FoundNode = namedtuple("FoundNode", "node parent branch")


# -----------------------------------------------------------------------------
# Split node
# -----------------------------------------------------------------------------
class SplitNode:
    """Internal node routing examples with ``test``."""

    is_leaf = False

    def __init__(self, test, class_distribution):
        self.test = test
        self.class_distribution = np.array(class_distribution, dtype=float)
        self.children: list = [None] * test.num_branches

    def child_index(self, example) -> int:
        return self.test.branch(example)

    def get_child(self, index: int):
        if 0 <= index < len(self.children):
            return self.children[index]
        return None

    def set_child(self, index: int, node) -> None:
        if not 0 <= index < len(self.children):
            raise IndexError(f"branch {index} out of range for {self.test!r}")
        self.children[index] = node

    def num_children(self) -> int:
        return len(self.children)

    def class_votes(self, model, example) -> np.ndarray:
        return self.class_distribution.copy()

    def weight(self) -> float:
        return float(self.class_distribution.sum())

    def __repr__(self):
        return f"SplitNode(test={self.test!r}, dist={self.class_distribution.tolist()})"


# -----------------------------------------------------------------------------
# Learning node
# -----------------------------------------------------------------------------
class LearningNode:
    """
    Leaf of a Hoeffding tree.

    Parameters
    ----------
    kind : {"active", "inactive", "nb", "nba"}
        Leaf variant.
    class_distribution : array-like of shape (num_classes,)
        Initial class weights, e.g. the partition inherited from a split.
    observers : list or None
        One feature observer per feature; ``None`` for inactive leaves.
    """

    is_leaf = True

    def __init__(self, kind: str, class_distribution, observers=None):
        if kind not in LEAF_KINDS:
            raise ValueError(f"Unknown leaf kind: {kind!r}")
        self.kind = kind
        self.class_distribution = np.array(class_distribution, dtype=float)
        self.observers = None if kind == "inactive" else list(observers or [])
        self.weight_since_attempt = 0.0
        self.mc_correct_weight = 0.0
        self.nb_correct_weight = 0.0
        # set on partial copies: the canonical leaf this one collects deltas for
        self._base = None
        self._view = None

    @classmethod
    def fresh(cls, kind: str, class_distribution, config) -> "LearningNode":
        observers = None
        if kind != "inactive":
            observers = [make_observer(ft, config.num_classes) for ft in config.feature_types]
        return cls(kind, class_distribution, observers)

    @property
    def is_active(self) -> bool:
        return self.kind != "inactive"

    # -- statistics --------------------------------------------------------
    def weight(self) -> float:
        return float(self.class_distribution.sum())

    def add_on_weight(self) -> float:
        """Weight learned since the last split attempt at this leaf."""
        return self.weight_since_attempt

    def is_pure(self) -> bool:
        return int(np.count_nonzero(self.class_distribution > 0)) < 2

    def learn(self, model, example) -> None:
        label = int(example.label)
        w = float(example.weight)
        if self.kind == "inactive":
            self.class_distribution[label] += w
            return
        if self.kind == "nba":
            self._score_predictors(model, example, label, w)
        self.class_distribution[label] += w
        for i, obs in enumerate(self.observers):
            obs.observe(example.value(i), label, w)
        self.weight_since_attempt += w

    def _reference(self) -> "LearningNode":
        """
        Statistics both predictors are scored against.

        A partial copy only holds what its own partition contributed, so it
        scores against a private copy of the canonical leaf that it keeps up
        to date with every example it learns.
        """
        if self._base is None:
            return self
        if self._view is None:
            self._view = copy.deepcopy(self._base)
        return self._view

    def _score_predictors(self, model, example, label: int, w: float) -> None:
        ref = self._reference()
        # majority class defaults to class 0 on an empty leaf
        if int(np.argmax(ref.class_distribution)) == label:
            self.mc_correct_weight += w
        nb = naive_bayes_votes(ref.class_distribution, ref.observers, example)
        if nb.sum() > 0 and int(np.argmax(nb)) == label:
            self.nb_correct_weight += w
        if ref is not self:
            ref.class_distribution[label] += w
            for i, obs in enumerate(ref.observers):
                obs.observe(example.value(i), label, w)

    # -- prediction --------------------------------------------------------
    def class_votes(self, model, example) -> np.ndarray:
        if self.kind in ("active", "inactive"):
            return self.class_distribution.copy()
        if self.weight() < model.config.nb_threshold:
            return self.class_distribution.copy()
        if self.kind == "nba" and self.mc_correct_weight > self.nb_correct_weight:
            return self.class_distribution.copy()
        votes = naive_bayes_votes(self.class_distribution, self.observers, example)
        # every class likelihood vanished, e.g. a zero-variance Gaussian
        if votes.sum() <= 0:
            return self.class_distribution.copy()
        return votes

    # -- split evaluation --------------------------------------------------
    def get_best_split_suggestions(self, criterion, model) -> list:
        """
        Best suggestion of every feature observer plus the option of not
        splitting, sorted ascending by merit.
        """
        pre = self.class_distribution
        suggestions = [no_split(criterion, pre)]
        if self.observers:
            for i, obs in enumerate(self.observers):
                s = obs.best_split(criterion, pre, i, model.config.binary_only)
                if s is not None:
                    suggestions.append(s)
        # stable: on equal merit a real split sorts after "no split"
        return sorted(suggestions, key=lambda s: s.merit)

    def reset_add_on_weight(self) -> None:
        self.weight_since_attempt = 0.0

    # -- structural helpers ------------------------------------------------
    def deactivated(self) -> "LearningNode":
        return LearningNode("inactive", self.class_distribution.copy())

    def empty_copy(self) -> "LearningNode":
        """Same kind, zero statistics; nba copies remember this leaf for scoring."""
        observers = None
        if self.observers is not None:
            observers = [obs.empty_copy() for obs in self.observers]
        new = LearningNode(self.kind, np.zeros_like(self.class_distribution), observers)
        if self.kind == "nba":
            new._base = self
        return new

    def merge_statistics(self, other: "LearningNode") -> None:
        """Add the statistics of ``other`` (a leaf built from disjoint data) to this leaf."""
        self.class_distribution += other.class_distribution
        if self.observers is not None and other.observers is not None:
            for mine, theirs in zip(self.observers, other.observers):
                mine.merge(theirs)
        if self.is_active:
            self.weight_since_attempt += other.weight_since_attempt
        self.mc_correct_weight += other.mc_correct_weight
        self.nb_correct_weight += other.nb_correct_weight

    def __getstate__(self):
        # copies and pickles never drag the canonical leaf along
        state = self.__dict__.copy()
        state["_base"] = None
        state["_view"] = None
        return state

    def __repr__(self):
        return f"LearningNode(kind={self.kind!r}, dist={self.class_distribution.tolist()})"


# -----------------------------------------------------------------------------
# Traversal
# -----------------------------------------------------------------------------
def filter_to_leaf(node, example, parent=None, branch: int = -1) -> FoundNode:
    """
    Follow decision tests from ``node`` down to a leaf.

    Stops early at an empty child slot (returned node is ``None``) or at a
    split node whose test cannot route the example (missing value; the split
    node itself is returned).
    """
    while node is not None and not node.is_leaf:
        index = node.child_index(example)
        if index < 0:
            break
        parent, branch = node, index
        node = node.get_child(index)
    return FoundNode(node, parent, branch)


def iter_nodes(root):
    """Yield ``(node, parent, branch, depth)`` for every node, depth first, parents first."""
    if root is None:
        return
    stack = [(root, None, -1, 0)]
    while stack:
        node, parent, branch, depth = stack.pop()
        yield node, parent, branch, depth
        if not node.is_leaf:
            for i in range(len(node.children) - 1, -1, -1):
                child = node.children[i]
                if child is not None:
                    stack.append((child, node, i, depth + 1))


def iter_leaves(root):
    for node, _, _, _ in iter_nodes(root):
        if node.is_leaf:
            yield node


def heaviest_leaf(node):
    """
    Descend from ``node`` along the heaviest child to a leaf.

    Returns ``(leaf, parent, branch)``; ``leaf`` is ``None`` only if a split
    node on the way has no children at all.
    """
    parent, branch = None, -1
    while node is not None and not node.is_leaf:
        best_i, best_w = -1, -1.0
        for i, child in enumerate(node.children):
            if child is not None and child.weight() > best_w:
                best_i, best_w = i, child.weight()
        if best_i < 0:
            return FoundNode(None, node, 0)
        parent, branch, node = node, best_i, node.children[best_i]
    return FoundNode(node, parent, branch)


def empty_structure_copy(root):
    """
    Copy the shape of a tree with every statistic set to zero.

    Split nodes keep their tests, leaves keep their kind and get fresh
    observers of the same type.
    """
    if root is None:
        return None

    def blank(node):
        if node.is_leaf:
            return node.empty_copy()
        return SplitNode(node.test, np.zeros_like(node.class_distribution))

    new_root = blank(root)
    stack = [(root, new_root)]
    while stack:
        src, dst = stack.pop()
        if src.is_leaf:
            continue
        for i, child in enumerate(src.children):
            if child is None:
                continue
            new_child = blank(child)
            dst.children[i] = new_child
            stack.append((child, new_child))
    return new_root
