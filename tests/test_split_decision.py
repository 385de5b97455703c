import math

import numpy as np
import pytest

from vfdtpy import Example, HoeffdingTreeModel, NominalFeature
from vfdtpy.conditions import NominalBinaryTest, NominalMultiwayTest
from vfdtpy.criteria import InfoGainSplitCriterion
from vfdtpy.splits import FeatureSplit, SplitOutcome, hoeffding_bound, no_split, should_split


def _correlated_stream(n):
    """Feature 0 equals the label, feature 1 is independent of it."""
    for i in range(n):
        label = i % 2
        yield Example((label, (i // 2) % 2), label)


def _model(**kw):
    opts = dict(grace_period=50, split_confidence=1e-7)
    opts.update(kw)
    return HoeffdingTreeModel(2, [NominalFeature(2), NominalFeature(2)], **opts)


def _fold_and_merge(model, examples, try_split=True):
    partial = model.partial_copy()
    for ex in examples:
        partial.update(ex)
    return model.merge(partial, try_split=try_split)


def test_bound_positive_and_decreasing():
    weights = [1, 10, 100, 1000, 10000]
    bounds = [hoeffding_bound(1.0, 1e-7, w) for w in weights]
    assert all(b > 0 for b in bounds)
    assert all(a > b for a, b in zip(bounds, bounds[1:]))


def test_bound_below_range_once_enough_weight():
    r, delta = 2.0, 1e-7
    # the bound drops below R as soon as W > ln(1/delta) / 2
    w_min = math.log(1.0 / delta) / 2.0
    for w in [w_min + 1, 50, 500, 5000]:
        assert hoeffding_bound(r, delta, w) < r


@pytest.mark.parametrize("r", [1.0, 2.0])
def test_bound_never_exceeds_range(r):
    for w in [0.0, 1e-9, 0.5, 1, 5, 8]:
        assert 0 < hoeffding_bound(r, 1e-7, w) <= r
    assert hoeffding_bound(r, 1e-7, 1) == r


def test_empty_leaf_defers_split():
    model = _model(grace_period=0, tie_threshold=1.0)
    assert model.root.weight() == 0
    assert not model.attempt_to_split(model.root)
    assert model.root.is_leaf
    assert model.decision_node_count == 0


def test_should_split_with_few_suggestions():
    assert not should_split([], 0.5, 0.05)
    single = [FeatureSplit(0, NominalBinaryTest(0, 0), 0.1, [])]
    assert should_split(single, 0.5, 0.05)


def test_tie_threshold_forces_split():
    # merit gap 0.01 is below the bound 0.02, but the bound is below the tie threshold
    suggestions = [FeatureSplit(None, None, float("-inf"), []),
                   FeatureSplit(1, NominalBinaryTest(1, 0), 0.50, []),
                   FeatureSplit(0, NominalBinaryTest(0, 0), 0.51, [])]
    assert should_split(suggestions, 0.02, tie_threshold=0.05)
    assert not should_split(suggestions, 0.02, tie_threshold=0.01)


def test_clear_merit_gap_splits():
    suggestions = [FeatureSplit(1, NominalBinaryTest(1, 0), 0.1, []),
                   FeatureSplit(0, NominalBinaryTest(0, 0), 0.9, [])]
    assert should_split(suggestions, 0.3, tie_threshold=0.0)


def test_no_split_sentinel_outcome():
    s = no_split(InfoGainSplitCriterion(), np.array([3.0, 1.0]))
    assert s.outcome is SplitOutcome.NO_SPLIT
    assert s.test is None
    real = FeatureSplit(0, NominalBinaryTest(0, 0), 0.2, [])
    assert real.outcome is SplitOutcome.SPLIT


def test_suggestions_sorted_and_include_no_split():
    model = _model()
    for ex in _correlated_stream(20):
        model.update(ex)
    leaf = model.root
    suggestions = leaf.get_best_split_suggestions(model.config.split_criterion, model)
    merits = [s.merit for s in suggestions]
    assert merits == sorted(merits)
    assert any(s.outcome is SplitOutcome.NO_SPLIT for s in suggestions)
    assert len(suggestions) == 3


def test_correlated_feature_is_selected():
    model = _model()
    _fold_and_merge(model, _correlated_stream(52))
    root = model.root
    assert not root.is_leaf
    assert root.test.feature == 0
    assert isinstance(root.test, NominalMultiwayTest)
    assert model.decision_node_count == 1
    assert model.active_node_count == 2


def test_binary_only_uses_two_way_tests():
    model = _model(binary_only=True)
    _fold_and_merge(model, _correlated_stream(52))
    assert isinstance(model.root.test, NominalBinaryTest)
    assert model.root.test.feature == 0


def test_split_conserves_weight():
    model = _model()
    _fold_and_merge(model, _correlated_stream(60))
    root = model.root
    children_total = sum(child.class_distribution for child in root.children)
    np.testing.assert_allclose(children_total, root.class_distribution)
    assert model.total_weight() == pytest.approx(60.0)


def test_no_attempt_before_grace_period():
    model = _model()
    _fold_and_merge(model, _correlated_stream(49))
    assert model.root.is_leaf
    assert model.root.add_on_weight() == pytest.approx(49.0)
    # the next merge reaches the grace period and splits
    _fold_and_merge(model, _correlated_stream(1))
    assert not model.root.is_leaf


def test_attempt_resets_add_on_weight():
    # two useless features: equal merits and no tie breaking, so no split
    model = _model(grace_period=10, tie_threshold=0.0)
    for i in range(12):
        model.update(Example(((i // 2) % 2, (i // 4) % 2), i % 2))
    assert not model.attempt_to_split(model.root)
    assert model.root.is_leaf
    assert model.root.add_on_weight() == 0.0


def test_pure_leaf_never_splits():
    model = _model(grace_period=10)
    for _ in range(10):
        _fold_and_merge(model, [Example((i % 2, (i // 3) % 2), 1) for i in range(100)])
    assert model.root.is_leaf
    assert model.root.is_pure()
    assert model.total_weight() == pytest.approx(1000.0)


def test_growth_not_allowed():
    model = _model(growth_allowed=False)
    _fold_and_merge(model, _correlated_stream(200))
    assert model.root.is_leaf


def test_merge_without_try_split_does_not_split():
    model = _model()
    _fold_and_merge(model, _correlated_stream(100), try_split=False)
    assert model.root.is_leaf
    _fold_and_merge(model, [], try_split=True)
    assert not model.root.is_leaf


def test_pre_prune_blocks_zero_gain_split():
    # with the gini criterion a useless split still has merit 0 and can win a forced tie
    model = HoeffdingTreeModel(2, [NominalFeature(2)], split_criterion="gini",
                               grace_period=10, tie_threshold=1.0, pre_prune=True)
    for i in range(40):
        model.update(Example(((i // 2) % 2,), i % 2))
    assert not model.attempt_to_split(model.root)
    assert model.root.is_leaf
