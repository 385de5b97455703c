# -*- coding: utf-8 -*-
"""
vfdtpy.tree
===========

This module implements a Hoeffding tree (VFDT) classifier with a
scikit‑learn–like API.  The tree is grown incrementally with
:meth:`HoeffdingTreeClassifier.partial_fit`; :meth:`fit` simply restarts the
model and streams the data through ``partial_fit``.

Each call to ``partial_fit`` is processed in batches.  Every batch is split
into ``n_partitions`` parts, each part is folded into its own partial model,
the partial models are merged together without splitting and the result is
merged into the canonical model, which then attempts a split on the path of
the most recent example.  This is the same aggregate/merge protocol a
distributed stream trainer would use, run in a single process.

In addition to training and prediction, the classifier provides rule tracing,
rule export, pretty printing of the tree and Graphviz export.
"""

# -----------------------------------------------------------------------------

from __future__ import annotations
import logging

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin

from .instance import Example, NominalFeature, NumericFeature
from .model import HoeffdingTreeModel

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _isnan_scalar(v) -> bool:
    return (v is None) or (isinstance(v, float) and np.isnan(v))


# -----------------------------------------------------------------------------
# Classifier
# -----------------------------------------------------------------------------
class HoeffdingTreeClassifier(ClassifierMixin, BaseEstimator):
    """
    Incremental decision tree classifier based on the Hoeffding bound.

    A leaf is split once it has seen enough weight for the Hoeffding bound to
    show, with confidence ``1 - split_confidence``, that its best candidate
    split is better than the runner-up, or once the bound falls below
    ``tie_threshold``.

    Parameters
    ----------
    grace_period : int, default=200
        Weight a leaf must observe between split attempts.
    split_confidence : float, default=1e-7
        Allowed error of a split decision.  Smaller values wait longer.
    tie_threshold : float, default=0.05
        Bound below which a split is forced to break ties.
    split_criterion : {"info_gain", "gini"} or SplitCriterion, default="info_gain"
        Merit of candidate splits.
    leaf_prediction : {"mc", "nb", "nba"}, default="mc"
        Majority class, naive Bayes or adaptive naive Bayes leaves.
    nb_threshold : int, default=0
        Leaf weight required before naive Bayes is used.
    binary_split : bool, default=False
        Only allow two-way splits.  Nominal features otherwise get one branch
        per category.
    growth_allowed : bool, default=True
        If ``False`` the tree stays a single leaf.
    pre_prune : bool, default=False
        Refuse splits whose merit does not beat the merit of not splitting.
    batch_size : int, default=32
        Number of examples folded between two merges (and split attempts).
    n_partitions : int, default=1
        Number of partial models each batch is divided into.
    feature_names : list[str] or None, default=None
        Optional names used by rule/graph exports and by
        ``categorical_features`` given as names.
    categorical_features : list[int|str] or None, default=None
        Indices or names of nominal input features.  Their categories are
        fixed by the first call to ``fit``/``partial_fit``; categories seen
        later are treated as missing.  All other features are numeric.

    Attributes
    ----------
    model_ : HoeffdingTreeModel
        The underlying tree.
    classes_ : ndarray
        Known class labels.
    categories_ : dict[int, list]
        Categories of each nominal feature, in code order.

    Notes
    -----
    Missing values (``None``/``NaN``) stop an example at the split node that
    tests them; that node's class distribution is used for prediction and the
    example is not learned from.
    """

    def __init__(
        self,
        *,
        grace_period: int = 200,
        split_confidence: float = 1e-7,
        tie_threshold: float = 0.05,
        split_criterion="info_gain",
        leaf_prediction: str = "mc",
        nb_threshold: int = 0,
        binary_split: bool = False,
        growth_allowed: bool = True,
        pre_prune: bool = False,
        batch_size: int = 32,
        n_partitions: int = 1,
        feature_names: list[str] | None = None,
        categorical_features: list[int | str] | None = None,
    ):
        self.grace_period = int(grace_period)
        self.split_confidence = float(split_confidence)
        self.tie_threshold = float(tie_threshold)
        self.split_criterion = split_criterion
        self.leaf_prediction = leaf_prediction
        self.nb_threshold = int(nb_threshold)
        self.binary_split = bool(binary_split)
        self.growth_allowed = bool(growth_allowed)
        self.pre_prune = bool(pre_prune)
        self.batch_size = int(batch_size)
        self.n_partitions = int(n_partitions)
        self.feature_names = feature_names
        self.categorical_features = categorical_features

        self.model_ = None
        self.classes_ = None

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def fit(self, X, y, sample_weight=None):
        """Discard any previous model and learn from ``X``/``y`` in order."""
        self.model_ = None
        self.classes_ = None
        return self.partial_fit(X, y, classes=np.unique(np.asarray(y)), sample_weight=sample_weight)

    def partial_fit(self, X, y, classes=None, sample_weight=None):
        """
        Update the tree with a batch of examples.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
        y : array-like of shape (n_samples,)
        classes : array-like, optional
            All class labels.  Required on the first call.
        sample_weight : array-like of shape (n_samples,), optional
            Example weights (default 1).
        """
        X = np.asarray(X, dtype=object)
        y = np.asarray(y)
        if X.ndim != 2:
            raise ValueError("X must be 2-dimensional")
        if len(X) != len(y):
            raise ValueError("X and y must have the same number of rows")
        if sample_weight is None:
            w = np.ones(len(y), dtype=float)
        else:
            w = np.asarray(sample_weight, dtype=float)
            if len(w) != len(y):
                raise ValueError("sample_weight must have the same length as y")
        if self.batch_size < 1 or self.n_partitions < 1:
            raise ValueError("batch_size and n_partitions must be >= 1")

        if self.model_ is None:
            if classes is None:
                raise ValueError("classes must be passed on the first call to partial_fit")
            self._init_model(X, classes)
        elif X.shape[1] != self.n_features_:
            raise ValueError(f"X has {X.shape[1]} features, expected {self.n_features_}")

        examples = [self._encode(x, self._label_index(lbl), wi) for x, lbl, wi in zip(X, y, w)]
        for start in range(0, len(examples), self.batch_size):
            self._train_batch(examples[start:start + self.batch_size])
        return self

    def _init_model(self, X, classes):
        n_features = X.shape[1]
        self.n_features_ = n_features
        if self.feature_names is not None:
            if len(self.feature_names) != n_features:
                raise ValueError("feature_names length must match X.shape[1]")
            self.feature_names_ = list(self.feature_names)
        else:
            self.feature_names_ = [f"f{i}" for i in range(n_features)]
        cf = self.categorical_features or []
        if len(cf) and isinstance(cf[0], str):
            name_to_idx = {n: i for i, n in enumerate(self.feature_names_)}
            cf = [name_to_idx[c] for c in cf]
        cats = set(int(i) for i in cf)
        self.is_cat_ = [(i in cats) for i in range(n_features)]

        self.categories_ = {}
        self._codes = {}
        feature_types = []
        for j in range(n_features):
            if self.is_cat_[j]:
                values = list(dict.fromkeys(v for v in X[:, j] if not _isnan_scalar(v)))
                if not values:
                    raise ValueError(f"categorical feature {j} has no observed values")
                self.categories_[j] = values
                self._codes[j] = {v: k for k, v in enumerate(values)}
                feature_types.append(NominalFeature(len(values)))
            else:
                feature_types.append(NumericFeature())

        self.classes_ = np.unique(np.asarray(classes))
        self._class_index = {c: i for i, c in enumerate(self.classes_.tolist())}
        self.model_ = HoeffdingTreeModel(
            len(self.classes_), feature_types,
            split_criterion=self.split_criterion,
            growth_allowed=self.growth_allowed,
            binary_only=self.binary_split,
            grace_period=self.grace_period,
            tie_threshold=self.tie_threshold,
            split_confidence=self.split_confidence,
            leaf_prediction=self.leaf_prediction,
            nb_threshold=self.nb_threshold,
            pre_prune=self.pre_prune,
        )

    def _label_index(self, label) -> int:
        key = label.item() if isinstance(label, np.generic) else label
        if key not in self._class_index:
            raise ValueError(f"Unknown class label {label!r}; known classes: {self.classes_.tolist()}")
        return self._class_index[key]

    def _encode(self, x, label: int = 0, weight: float = 1.0) -> Example:
        values = []
        for j, v in enumerate(x):
            if _isnan_scalar(v):
                values.append(None)
            elif self.is_cat_[j]:
                values.append(self._codes[j].get(v))
            else:
                values.append(float(v))
        return Example(tuple(values), label, float(weight))

    def _train_batch(self, examples):
        model = self.model_
        parts = np.array_split(np.arange(len(examples)), min(self.n_partitions, len(examples)))
        partials = []
        for idx in parts:
            partial = model.partial_copy()
            for i in idx:
                partial.update(examples[i])
            partials.append(partial)
        combined = partials[0]
        for other in partials[1:]:
            combined.merge(other, try_split=False)
        model.merge(combined, try_split=True)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Merged batch of %d examples from %d partial models; %d nodes",
                         len(examples), len(partials), model.n_nodes())

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def _check_fitted(self):
        if getattr(self, 'model_', None) is None:
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    def predict(self, X):
        """
        Predict class labels for the provided samples.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Input samples.  Missing values may be ``None`` or ``numpy.nan``.

        Returns
        -------
        ndarray of shape (n_samples,)
            Predicted class labels.

        Raises
        ------
        ValueError
            If the estimator has not been fitted.
        """
        self._check_fitted()
        X = np.asarray(X, dtype=object)
        idx = [self.model_.predict(self._encode(x)) for x in X]
        return self.classes_[np.asarray(idx, dtype=int)]

    def predict_proba(self, X):
        """
        Predict class probabilities as the normalised votes of the reached leaf.

        Returns
        -------
        ndarray of shape (n_samples, n_classes)
        """
        self._check_fitted()
        X = np.asarray(X, dtype=object)
        k = len(self.classes_)
        out = np.zeros((len(X), k), dtype=float)
        for r, x in enumerate(X):
            votes = self.model_.class_votes(self._encode(x))
            tot = votes.sum()
            out[r] = votes / tot if tot > 0 else np.full(k, 1.0 / k)
        return out

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------
    def _names(self, feature_names=None):
        return feature_names if feature_names is not None else self.feature_names_

    def predict_rule(self, X, feature_names=None):
        """
        Return the decision rule (antecedent) followed by each input instance.

        Returns
        -------
        list[str]
            One antecedent string per sample.
        """
        self._check_fitted()
        fn = self._names(feature_names)
        rules = []
        for x in np.asarray(X, dtype=object):
            ex = self._encode(x)
            parts = []
            node = self.model_.root
            while node is not None and not node.is_leaf:
                i = node.child_index(ex)
                if i < 0:
                    parts.append(f"{fn[node.test.feature]} MISSING")
                    break
                parts.append(node.test.describe(i, fn))
                node = node.get_child(i)
            rules.append(" AND ".join(parts) if parts else "<root>")
        return rules

    def export_rules(self, *, feature_names=None, class_names=None):
        """
        Export every root-to-leaf path as ``"<conditions> => <class>"``.

        Returns
        -------
        list[str]
        """
        self._check_fitted()
        fn = self._names(feature_names)
        cn = class_names if class_names is not None else [str(c) for c in self.classes_]
        rules = []
        self._collect_rules(self.model_.root, [], rules, fn, cn)
        return rules

    def _collect_rules(self, node, parts, rules, fn, cn):
        if node is None:
            return
        if node.is_leaf:
            body = " AND ".join(parts) if parts else "<root>"
            rules.append(f"{body} => {cn[int(np.argmax(node.class_distribution))]}")
            return
        for i, child in enumerate(node.children):
            self._collect_rules(child, parts + [node.test.describe(i, fn)], rules, fn, cn)

    def export_graphviz(self, filename=None, feature_names=None, class_names=None, format="png"):
        """
        Export the tree to Graphviz.

        When ``format='dot'`` the DOT source is written directly and no
        external ``dot`` binary is needed.  If ``filename`` is ``None`` the DOT
        source is returned.

        Returns
        -------
        str
            Path to the written file, or the DOT source if ``filename`` is None.
        """
        self._check_fitted()
        try:
            import graphviz
        except ImportError:
            raise RuntimeError("Graphviz is required for export_graphviz but not installed.")
        fn = self._names(feature_names)
        cn = class_names if class_names is not None else [str(c) for c in self.classes_]
        dot = graphviz.Digraph(format=format)
        self._add_graph_nodes(dot, self.model_.root, "0", fn, cn)

        if filename is None:
            return dot.source
        if format.lower() == "dot":
            path = f"{filename}.dot"
            dot.save(path)
            return path
        try:
            dot.render(filename, cleanup=True)
            return f"{filename}.{format}"
        except graphviz.ExecutableNotFound:
            # no dot binary: fall back to the source file
            fallback_path = f"{filename}.dot"
            dot.save(fallback_path)
            return fallback_path

    def _add_graph_nodes(self, dot, node, name: str, fn, cn):
        if node.is_leaf:
            dist = node.class_distribution
            pred = cn[int(np.argmax(dist))]
            dot.node(name, f"class={pred}\n{np.round(dist, 2).tolist()}",
                     shape="box", style="filled", color="lightgrey")
            return
        dot.node(name, f"{fn[node.test.feature]}?", shape="ellipse", style="filled", color="lightblue")
        for i, child in enumerate(node.children):
            if child is None:
                continue
            cid = f"{name}_{i}"
            self._add_graph_nodes(dot, child, cid, fn, cn)
            dot.edge(name, cid, label=node.test.describe(i, fn))

    def print_tree(self, feature_names=None, class_names=None):
        """Pretty‑print the tree to ``stdout``."""
        self._check_fitted()
        cn = class_names if class_names is not None else [str(c) for c in self.classes_]
        print(self.model_.description(self._names(feature_names), cn))
