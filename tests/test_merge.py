import numpy as np
import pytest

from vfdtpy import Example, HoeffdingTreeModel, NominalFeature, NumericFeature
from vfdtpy.nodes import iter_nodes


def _numeric_examples(n, seed):
    """Two numeric features; the label is 1 when the first one exceeds 0.5."""
    rng = np.random.default_rng(seed)
    X = rng.random((n, 2))
    w = rng.uniform(0.5, 2.0, size=n)
    return [Example(tuple(x), int(x[0] > 0.5), float(wi)) for x, wi in zip(X, w)]


def _numeric_model(**kw):
    opts = dict(grace_period=50)
    opts.update(kw)
    return HoeffdingTreeModel(2, [NumericFeature(), NumericFeature()], **opts)


def _fold(model, examples):
    partial = model.partial_copy()
    for ex in examples:
        partial.update(ex)
    return partial


def _weight(examples):
    return sum(ex.weight for ex in examples)


def test_merge_of_two_partials_conserves_weight():
    model = _numeric_model()
    first, second = _numeric_examples(300, 0), _numeric_examples(300, 1)
    model.merge(_fold(model, first), try_split=True)
    before = model.total_weight()

    p1 = _fold(model, first[:120])
    p2 = _fold(model, second)
    combined = p1.merge(p2, try_split=False)
    assert combined.total_weight() == pytest.approx(_weight(first[:120]) + _weight(second))

    model.merge(combined, try_split=True)
    assert model.total_weight() == pytest.approx(before + _weight(first[:120]) + _weight(second))


def test_merge_of_independent_models_adds_weights():
    a, b = _numeric_model(), _numeric_model()
    for ex in _numeric_examples(40, 2):
        a.update(ex)
    for ex in _numeric_examples(70, 3):
        b.update(ex)
    wa, wb = a.total_weight(), b.total_weight()
    a.merge(b)
    assert a.total_weight() == pytest.approx(wa + wb)
    assert a.examples_seen == 110
    # the merged-in model is left untouched
    assert b.total_weight() == pytest.approx(wb)


def test_partial_copy_does_not_touch_canonical_model():
    model = _numeric_model()
    model.merge(_fold(model, _numeric_examples(200, 4)), try_split=True)
    before = model.total_weight()
    n_nodes = model.n_nodes()
    partial = _fold(model, _numeric_examples(200, 5))
    assert model.total_weight() == pytest.approx(before)
    assert partial.n_nodes() == n_nodes
    canonical_ids = {id(node) for node, _, _, _ in iter_nodes(model.root)}
    partial_ids = {id(node) for node, _, _, _ in iter_nodes(partial.root)}
    assert canonical_ids.isdisjoint(partial_ids)


def test_copy_is_independent():
    model = _numeric_model()
    for ex in _numeric_examples(30, 6):
        model.update(ex)
    clone = model.copy()
    clone.update(Example((0.1, 0.1), 0))
    assert clone.total_weight() == pytest.approx(model.total_weight() + 1.0)
    assert clone.config is model.config


def _split_model():
    model = HoeffdingTreeModel(2, [NominalFeature(2), NominalFeature(2)], grace_period=50)
    partial = model.partial_copy()
    for i in range(60):
        partial.update(Example((i % 2, (i // 2) % 2), i % 2))
    model.merge(partial, try_split=True)
    assert not model.root.is_leaf
    return model


def _leaf_model(n):
    model = HoeffdingTreeModel(2, [NominalFeature(2), NominalFeature(2)], grace_period=50)
    for i in range(n):
        model.update(Example((i % 2, 0), i % 2))
    return model


def test_leaf_merged_into_split_keeps_weight_and_structure():
    split, leaf = _split_model(), _leaf_model(10)
    split.merge(leaf)
    assert not split.root.is_leaf
    assert split.total_weight() == pytest.approx(70.0)
    assert split.decision_node_count == 1


def test_split_merged_into_leaf_adopts_structure():
    split, leaf = _split_model(), _leaf_model(10)
    leaf.merge(split)
    assert not leaf.root.is_leaf
    assert leaf.root.test == split.root.test
    assert leaf.total_weight() == pytest.approx(70.0)
    assert split.total_weight() == pytest.approx(60.0)
    assert leaf.decision_node_count == 1
    assert leaf.active_node_count == 2


def test_merge_fills_missing_children():
    a, b = _split_model(), _split_model()
    a.root.children[1] = None
    a.merge(b)
    assert a.root.children[1] is not None
    assert a.total_weight() == pytest.approx(30.0 + 60.0)


def test_merge_rejects_incompatible_models():
    a = HoeffdingTreeModel(2, [NumericFeature()])
    with pytest.raises(ValueError):
        a.merge(HoeffdingTreeModel(3, [NumericFeature()]))
    with pytest.raises(ValueError):
        a.merge(HoeffdingTreeModel(2, [NominalFeature(3)]))
    with pytest.raises(ValueError):
        a.merge(a)


def test_merge_into_empty_root():
    a, b = _numeric_model(), _numeric_model()
    a.root = None
    for ex in _numeric_examples(25, 7):
        b.update(ex)
    a.merge(b)
    assert a.root is not b.root
    assert a.total_weight() == pytest.approx(b.total_weight())
    assert a.active_node_count == 1
