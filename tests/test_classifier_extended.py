import os

import numpy as np
import pytest
from vfdtpy import HoeffdingTreeClassifier


def _threshold_stream(n=600, seed=0):
    """Two uniform numeric features; the label is ``x0 > 0.5``."""
    rng = np.random.default_rng(seed)
    X = rng.random((n, 2))
    y = (X[:, 0] > 0.5).astype(int)
    return X, y


def _categorical_stream(n=400, seed=0):
    """A categorical feature that decides the label and a numeric noise feature."""
    rng = np.random.default_rng(seed)
    cats = rng.choice(['A', 'B'], size=n)
    X = np.empty((n, 2), dtype=object)
    X[:, 0] = cats
    X[:, 1] = rng.random(n)
    y = np.where(cats == 'A', 'no', 'yes')
    return X, y


def test_learns_numeric_threshold():
    X, y = _threshold_stream()
    clf = HoeffdingTreeClassifier(grace_period=50).fit(X, y)
    assert clf.model_.decision_node_count >= 1
    assert clf.model_.root.test.feature == 0
    X_test, y_test = _threshold_stream(300, seed=1)
    assert clf.score(X_test, y_test) > 0.8


def test_learns_categorical_split():
    X, y = _categorical_stream()
    clf = HoeffdingTreeClassifier(grace_period=50, feature_names=['cat', 'noise'],
                                  categorical_features=['cat'])
    clf.fit(X, y)
    assert clf.categories_[0] == list(dict.fromkeys(X[:, 0]))
    assert clf.score(X, y) == 1.0
    assert clf.predict([['A', 0.3], ['B', 0.9]]).tolist() == ['no', 'yes']


def test_unseen_category_is_treated_as_missing():
    X, y = _categorical_stream()
    clf = HoeffdingTreeClassifier(grace_period=50, categorical_features=[0]).fit(X, y)
    pred = clf.predict([['C', 0.5]])
    assert pred[0] in clf.classes_


def test_classifier_proba_sums_to_one():
    X, y = _threshold_stream(200)
    clf = HoeffdingTreeClassifier(grace_period=50).fit(X, y)
    proba = clf.predict_proba(X)
    assert proba.shape == (200, 2)
    assert np.allclose(proba.sum(axis=1), 1.0)


def test_classifier_rule_export():
    X, y = _categorical_stream()
    clf = HoeffdingTreeClassifier(grace_period=50, feature_names=['cat', 'noise'],
                                  categorical_features=[0]).fit(X, y)
    rules = clf.predict_rule(X[:5])
    assert len(rules) == 5
    assert all(r.startswith('cat') for r in rules)
    tree_rules = clf.export_rules(class_names=['no', 'yes'])
    assert len(tree_rules) == 2
    assert all('=>' in r for r in tree_rules)


def test_print_tree(capsys):
    X, y = _threshold_stream(200)
    clf = HoeffdingTreeClassifier(grace_period=50).fit(X, y)
    clf.print_tree()
    out = capsys.readouterr().out
    assert "Hoeffding Tree Model description" in out


def test_classifier_graphviz_export():
    pytest.importorskip("graphviz")
    X, y = _threshold_stream(200)
    clf = HoeffdingTreeClassifier(grace_period=50).fit(X, y)
    src = clf.export_graphviz()
    assert "digraph" in src
    out_path = clf.export_graphviz('test_tree', format='dot')
    assert out_path.endswith('.dot')
    assert os.path.exists(out_path)
    os.remove(out_path)


def test_classifier_not_fitted_raises():
    clf = HoeffdingTreeClassifier()
    with pytest.raises(ValueError):
        clf.predict([[1.0, 2.0]])
    with pytest.raises(ValueError):
        clf.predict_rule([[1.0, 2.0]])
    with pytest.raises(ValueError):
        clf.export_rules()


def test_partial_fit_requires_classes_first():
    X, y = _threshold_stream(10)
    clf = HoeffdingTreeClassifier()
    with pytest.raises(ValueError):
        clf.partial_fit(X, y)
    clf.partial_fit(X, y, classes=[0, 1])
    with pytest.raises(ValueError):
        clf.partial_fit(X, np.full(10, 7))
    with pytest.raises(ValueError):
        clf.partial_fit(X[:, :1], y)


def test_partitions_conserve_weight():
    X, y = _threshold_stream(500)
    clf = HoeffdingTreeClassifier(grace_period=50, n_partitions=4, batch_size=64).fit(X, y)
    assert clf.model_.total_weight() == pytest.approx(500.0)
    assert clf.model_.examples_seen == 500
    assert clf.score(X, y) > 0.8


def test_growth_disabled_keeps_single_leaf():
    X, y = _threshold_stream(300)
    clf = HoeffdingTreeClassifier(grace_period=50, growth_allowed=False).fit(X, y)
    assert clf.model_.n_nodes() == 1
    assert clf.model_.root.is_leaf


@pytest.mark.parametrize("leaf_prediction", ["mc", "nb", "nba"])
def test_leaf_prediction_strategies(leaf_prediction):
    X, y = _threshold_stream(400)
    clf = HoeffdingTreeClassifier(grace_period=50, leaf_prediction=leaf_prediction).fit(X, y)
    assert clf.score(X, y) > 0.8


def test_bad_leaf_prediction_fails_at_fit():
    X, y = _threshold_stream(10)
    with pytest.raises(ValueError):
        HoeffdingTreeClassifier(leaf_prediction="magic").fit(X, y)
