"""
phishguard/models/dom_model.py
------------------------------
Wrapper for the page-structure (DOM) XGBoost model.

Model file is expected at: data/models/dom_model_v2.json
"""

from pathlib import Path
from typing import Optional

from phishguard.features.dom_features import DOM_FEATURE_NAMES
from phishguard.models.ensemble import Ensemble, FeatureVector, predict_proba
from phishguard.models.store import MODEL_STORE, ModelStore
from phishguard.utils.config import CONFIG

DOM_MODEL_NAME = "dom"


async def get_dom_model(path: Optional[Path] = None, store: ModelStore = MODEL_STORE) -> Ensemble:
    """
    Returns the loaded DOM ensemble; empty (probability 0.5) if the
    artifact is missing or malformed.
    """
    return await store.get(DOM_MODEL_NAME, path or CONFIG.dom_model_path, DOM_FEATURE_NAMES)


def score_dom(features: FeatureVector, model: Ensemble) -> float:
    return predict_proba(model, features)
