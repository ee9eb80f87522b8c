# tests/test_ensemble.py

import math

import pytest

from _model_helpers import leaf, model_json, stump
from phishguard.models.ensemble import (
    Ensemble,
    TreeModel,
    check_feature_names,
    ensemble_from_json,
    ensemble_margin,
    evaluate_tree,
    logistic,
    predict_proba,
)
from phishguard.utils.errors import FeatureSchemaError, ModelCorruptError

NAMES = ("a", "b")


def _tree(descriptor):
    return TreeModel.from_xgboost(descriptor)


def _ensemble(*descriptors):
    return Ensemble(feature_names=NAMES, trees=tuple(_tree(d) for d in descriptors))


def test_missing_feature_follows_default_left():
    left = _tree(stump(0, 5.0, -1.0, 1.0, default_left=True))
    right = _tree(stump(0, 5.0, -1.0, 1.0, default_left=False))

    assert evaluate_tree(left, {}, NAMES) == -1.0
    assert evaluate_tree(right, {}, NAMES) == 1.0


@pytest.mark.parametrize("missing", [None, float("nan"), "abc", "1", True, [1]])
def test_non_numeric_values_count_as_missing(missing):
    tree = _tree(stump(0, 5.0, -1.0, 1.0, default_left=False))
    assert evaluate_tree(tree, {"a": missing}, NAMES) == 1.0


def test_split_is_strictly_less_than():
    tree = _tree(stump(1, 5.0, -1.0, 1.0))
    assert evaluate_tree(tree, {"b": 4.999}, NAMES) == -1.0
    assert evaluate_tree(tree, {"b": 5.0}, NAMES) == 1.0
    assert evaluate_tree(tree, {"b": 7}, NAMES) == 1.0


def test_three_leaf_trees_sum_margin():
    ens = _ensemble(leaf(2.0), leaf(2.0), leaf(2.0))
    assert ensemble_margin(ens, {}) == 6.0
    assert predict_proba(ens, {}) == 1 / (1 + math.exp(-6.0))


def test_empty_ensemble_is_one_half():
    ens = Ensemble(feature_names=NAMES)
    assert ens.is_empty
    assert ensemble_margin(ens, {"a": 1}) == 0.0
    assert predict_proba(ens, {"a": 1}) == 0.5


@pytest.mark.parametrize("margin", [-1e6, -800.0, -40.0, 0.0, 40.0, 800.0, 1e6, float("inf")])
def test_probability_stays_inside_open_interval(margin):
    p = logistic(margin)
    assert 0.0 < p < 1.0


def test_scoring_is_deterministic():
    ens = _ensemble(stump(0, 0.5, 0.3, -0.7), stump(1, 10, 1.1, -0.2), leaf(0.05))
    feats = {"a": 1, "b": 3}
    assert predict_proba(ens, feats) == predict_proba(ens, feats)


def test_child_out_of_range_is_corrupt():
    bad = stump(0, 1.0, 0.0, 0.0)
    bad["left_children"] = [7, -1, -1]
    with pytest.raises(ModelCorruptError):
        evaluate_tree(_tree(bad), {"a": 0}, NAMES)


def test_cycle_is_corrupt():
    cyclic = {
        "left_children": [1, 0],
        "right_children": [1, 0],
        "split_indices": [0, 0],
        "split_conditions": [0.0, 0.0],
        "default_left": [1, 1],
        "base_weights": [0.0, 0.0],
    }
    with pytest.raises(ModelCorruptError):
        evaluate_tree(_tree(cyclic), {}, NAMES)


def test_split_feature_outside_ordering_is_corrupt():
    with pytest.raises(ModelCorruptError):
        evaluate_tree(_tree(stump(9, 1.0, 0.0, 0.0)), {"a": 1}, NAMES)


def test_empty_tree_is_corrupt():
    empty = {k: [] for k in leaf(0.0)}
    with pytest.raises(ModelCorruptError):
        evaluate_tree(_tree(empty), {}, NAMES)


def test_node_arrays_are_read_only():
    tree = _tree(leaf(1.0))
    with pytest.raises(ValueError):
        tree.leaf_weights[0] = 5.0


def test_unequal_arrays_rejected():
    bad = stump(0, 1.0, 0.0, 0.0)
    bad["base_weights"] = [0.0, 1.0]
    with pytest.raises(ValueError):
        TreeModel.from_xgboost(bad)


def test_check_feature_names():
    check_feature_names({"a": 1}, NAMES)
    check_feature_names({}, NAMES)
    with pytest.raises(FeatureSchemaError) as exc:
        check_feature_names({"a": 1, "zzz": 2}, NAMES)
    assert exc.value.unknown == {"zzz"}


def test_ensemble_from_json():
    ens = ensemble_from_json(model_json([leaf(1.0), stump(1, 2.0, 0.1, 0.2)]), NAMES, name="t")
    assert len(ens) == 2
    assert ens.name == "t"
    assert ens.feature_names == NAMES


def test_ensemble_from_json_checks_embedded_names():
    ens = ensemble_from_json(model_json([leaf(1.0)], feature_names=NAMES), NAMES)
    assert len(ens) == 1
    with pytest.raises(ValueError):
        ensemble_from_json(model_json([leaf(1.0)], feature_names=["b", "a"]), NAMES)


@pytest.mark.parametrize("doc", [{}, {"learner": {}}, {"learner": {"gradient_booster": {"model": {"trees": {}}}}}, []])
def test_ensemble_from_json_requires_trees_array(doc):
    with pytest.raises(ValueError):
        ensemble_from_json(doc, NAMES)
