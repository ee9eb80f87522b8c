"""
phishguard/models/ensemble.py
-----------------------------
Inference for gradient-boosted tree ensembles stored in XGBoost's flat
JSON layout (one set of parallel node arrays per tree).

Both the URL model and the DOM model go through this module; a model
only differs by its feature-name ordering, which `split_indices`
refer to.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from phishguard.utils.errors import FeatureSchemaError, ModelCorruptError

FeatureVector = Mapping[str, Any]

# Smallest/largest doubles strictly inside (0, 1)
_P_MIN = math.nextafter(0.0, 1.0)
_P_MAX = math.nextafter(1.0, 0.0)


def _frozen(values: Sequence, dtype) -> np.ndarray:
    arr = np.asarray(values, dtype=dtype)
    if arr.ndim != 1:
        raise ValueError("node array must be one-dimensional")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class TreeModel:
    """One decision tree as parallel node arrays; node 0 is the root."""

    left_children: np.ndarray
    right_children: np.ndarray
    split_indices: np.ndarray
    split_conditions: np.ndarray
    default_left: np.ndarray
    leaf_weights: np.ndarray

    @classmethod
    def from_arrays(
        cls,
        left_children: Sequence[int],
        right_children: Sequence[int],
        split_indices: Sequence[int],
        split_conditions: Sequence[float],
        default_left: Sequence[Any],
        leaf_weights: Sequence[float],
    ) -> "TreeModel":
        tree = cls(
            left_children=_frozen(left_children, np.int64),
            right_children=_frozen(right_children, np.int64),
            split_indices=_frozen(split_indices, np.int64),
            split_conditions=_frozen(split_conditions, np.float64),
            default_left=_frozen([bool(x) for x in default_left], np.bool_),
            leaf_weights=_frozen(leaf_weights, np.float64),
        )
        lengths = {len(a) for a in tree._arrays()}
        if len(lengths) != 1:
            raise ValueError(f"node arrays have unequal lengths: {sorted(lengths)}")
        return tree

    @classmethod
    def from_xgboost(cls, descriptor: Mapping[str, Any]) -> "TreeModel":
        """Build from one entry of learner.gradient_booster.model.trees."""
        return cls.from_arrays(
            descriptor["left_children"],
            descriptor["right_children"],
            descriptor["split_indices"],
            descriptor["split_conditions"],
            descriptor["default_left"],
            descriptor["base_weights"],
        )

    def _arrays(self) -> Tuple[np.ndarray, ...]:
        return (
            self.left_children,
            self.right_children,
            self.split_indices,
            self.split_conditions,
            self.default_left,
            self.leaf_weights,
        )

    @property
    def num_nodes(self) -> int:
        return len(self.left_children)


@dataclass(frozen=True)
class Ensemble:
    """Ordered trees plus the feature ordering their split indices refer to."""

    feature_names: Tuple[str, ...]
    trees: Tuple[TreeModel, ...] = ()
    name: str = ""

    def __len__(self) -> int:
        return len(self.trees)

    @property
    def is_empty(self) -> bool:
        return not self.trees


# ---------------------------------------------------------------------------
# Feature vector helpers
# ---------------------------------------------------------------------------

def _feature_value(features: FeatureVector, name: str) -> Optional[float]:
    """Numeric value of a feature, or None when it counts as missing."""
    value = features.get(name)
    if value is None or isinstance(value, (str, bytes, bool)):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(number):
        return None
    return number


def check_feature_names(features: FeatureVector, feature_names: Iterable[str]) -> None:
    """
    Reject vectors carrying names outside the model ordering.

    Absent names are fine: they follow the trees' default branches.
    """
    unknown = set(features) - set(feature_names)
    if unknown:
        raise FeatureSchemaError(unknown, feature_names)


# ---------------------------------------------------------------------------
# Tree evaluation
# ---------------------------------------------------------------------------

def evaluate_tree(tree: TreeModel, features: FeatureVector, feature_names: Sequence[str]) -> float:
    """
    Walk `tree` from the root and return the weight of the leaf reached.

    A node with both children negative is a leaf. A missing feature value
    (absent, None, NaN, or not a number: strings and booleans count as
    missing) follows default_left; otherwise the walk goes left iff
    value < split_condition.

    Raises ModelCorruptError on out-of-range node or feature indices and
    when the walk visits more nodes than the tree has (a cycle).
    """
    n = tree.num_nodes
    if n == 0:
        raise ModelCorruptError("tree has no nodes")

    node = 0
    for _ in range(n):
        if node < 0 or node >= n:
            raise ModelCorruptError(f"node id {node} out of range [0, {n})")

        left = int(tree.left_children[node])
        right = int(tree.right_children[node])
        if left < 0 and right < 0:
            return float(tree.leaf_weights[node])

        split = int(tree.split_indices[node])
        if split < 0 or split >= len(feature_names):
            raise ModelCorruptError(f"split feature index {split} at node {node} out of range")

        value = _feature_value(features, feature_names[split])
        if value is None:
            go_left = bool(tree.default_left[node])
        else:
            go_left = value < tree.split_conditions[node]
        node = left if go_left else right

    raise ModelCorruptError(f"traversal exceeded {n} nodes (cycle)")


# ---------------------------------------------------------------------------
# Ensemble scoring
# ---------------------------------------------------------------------------

def logistic(margin: float) -> float:
    """1 / (1 + e^-margin), overflow-safe, kept strictly inside (0, 1)."""
    if margin >= 0:
        p = 1.0 / (1.0 + math.exp(-margin))
    else:
        e = math.exp(margin)
        p = e / (1.0 + e)
    return min(_P_MAX, max(_P_MIN, p))


def ensemble_margin(ensemble: Ensemble, features: FeatureVector) -> float:
    """Sum of every tree's leaf weight; 0.0 for an empty ensemble."""
    score = 0.0
    for tree in ensemble.trees:
        score += evaluate_tree(tree, features, ensemble.feature_names)
    return score


def predict_proba(ensemble: Ensemble, features: FeatureVector) -> float:
    """Phishing probability in (0, 1). Raises ModelCorruptError."""
    return logistic(ensemble_margin(ensemble, features))


# ---------------------------------------------------------------------------
# Deserialisation
# ---------------------------------------------------------------------------

def find_trees(model_json: Any) -> Optional[list]:
    """Return learner.gradient_booster.model.trees if it is a list, else None."""
    node = model_json
    for key in ("learner", "gradient_booster", "model", "trees"):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, list) else None


def artifact_feature_names(model_json: Any) -> Tuple[str, ...]:
    """Feature names embedded in the artifact (empty if it carries none)."""
    learner = model_json.get("learner") if isinstance(model_json, dict) else None
    names = learner.get("feature_names") if isinstance(learner, dict) else None
    if not isinstance(names, list):
        return ()
    return tuple(str(n) for n in names)


def ensemble_from_json(model_json: Any, feature_names: Sequence[str], name: str = "") -> Ensemble:
    """
    Build an Ensemble from a decoded XGBoost JSON model.

    Raises ValueError when the trees array is absent, a tree descriptor
    is malformed (including integers too large for the node arrays), or
    the artifact's embedded feature names disagree with `feature_names`.
    """
    trees = find_trees(model_json)
    if trees is None:
        raise ValueError("trees array not found at learner.gradient_booster.model.trees")

    embedded = artifact_feature_names(model_json)
    if embedded and embedded != tuple(feature_names):
        raise ValueError(f"artifact feature names {list(embedded)} != expected {list(feature_names)}")

    built = []
    for i, descriptor in enumerate(trees):
        if not isinstance(descriptor, dict):
            raise ValueError(f"tree {i} is not an object")
        try:
            built.append(TreeModel.from_xgboost(descriptor))
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"tree {i} is malformed: {type(e).__name__}: {e}") from e

    return Ensemble(feature_names=tuple(feature_names), trees=tuple(built), name=name)
