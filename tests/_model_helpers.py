# tests/_model_helpers.py
"""Builders for tiny XGBoost-format JSON models used across the tests."""

import json


def leaf(weight):
    return {
        "left_children": [-1],
        "right_children": [-1],
        "split_indices": [0],
        "split_conditions": [weight],
        "default_left": [0],
        "base_weights": [weight],
    }


def stump(feature_index, threshold, left_weight, right_weight, default_left=True):
    """Root split on one feature with two leaves (node 1 = left, node 2 = right)."""
    return {
        "left_children": [1, -1, -1],
        "right_children": [2, -1, -1],
        "split_indices": [feature_index, 0, 0],
        "split_conditions": [threshold, left_weight, right_weight],
        "default_left": [1 if default_left else 0, 0, 0],
        "base_weights": [0.0, left_weight, right_weight],
    }


def model_json(trees, feature_names=None):
    learner = {"gradient_booster": {"model": {"trees": list(trees)}}}
    if feature_names is not None:
        learner["feature_names"] = list(feature_names)
    return {"learner": learner}


def model_bytes(trees, feature_names=None):
    return json.dumps(model_json(trees, feature_names)).encode("utf-8")
