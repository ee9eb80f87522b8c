"""
phishguard/models/url_model.py
------------------------------
Wrapper for the URL-level XGBoost model.

Model file: data/models/url_model_long.json (see CONFIG.url_model_path)

Input: the dict produced by phishguard.features.url_features.extract_url_features
"""

from pathlib import Path
from typing import Optional

from phishguard.features.url_features import URL_FEATURE_NAMES
from phishguard.models.ensemble import Ensemble, FeatureVector, predict_proba
from phishguard.models.store import MODEL_STORE, ModelStore
from phishguard.utils.config import CONFIG

URL_MODEL_NAME = "url"


async def get_url_model(path: Optional[Path] = None, store: ModelStore = MODEL_STORE) -> Ensemble:
    return await store.get(URL_MODEL_NAME, path or CONFIG.url_model_path, URL_FEATURE_NAMES)


def score_url(features: FeatureVector, model: Ensemble) -> float:
    """
    Phishing probability of a URL feature vector.
    Raises ModelCorruptError if a tree is structurally broken.
    """
    return predict_proba(model, features)
