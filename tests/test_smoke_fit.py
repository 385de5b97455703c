import numpy as np
from vfdtpy import HoeffdingTreeClassifier


def test_classifier_smoke():
    X = np.array([[1, 'A'], [2, 'A'], [3, 'B'], [4, 'B']] * 50, dtype=object)
    y = np.array([0, 0, 1, 1] * 50)
    clf = HoeffdingTreeClassifier(categorical_features=[1], feature_names=['num', 'cat'], grace_period=20)
    clf.fit(X, y)
    _ = clf.predict(X)
    _ = clf.export_rules(feature_names=['num', 'cat'], class_names=['no', 'yes'])


def test_partial_fit_smoke():
    rng = np.random.default_rng(0)
    clf = HoeffdingTreeClassifier(grace_period=20)
    for _ in range(5):
        X = rng.random((40, 3))
        y = (X[:, 0] > 0.5).astype(int)
        clf.partial_fit(X, y, classes=[0, 1])
    _ = clf.predict_proba(X)
