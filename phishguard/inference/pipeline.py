"""
phishguard/inference/pipeline.py
--------------------------------
End-to-end scoring of a page: features -> per-model probability ->
weighted blend -> label.

Steps:
- URL features (mandatory; MalformedUrlError reaches the caller)
- DOM features (optional; unavailable pages fall back to a fixed pDom)
- URL model and DOM model probabilities
- pFinal = alpha * pUrl + (1 - alpha) * pDom
- label by threshold

Model faults never propagate: a ModelCorruptError is logged and the
model's fallback probability is used instead.
"""

import math
from typing import Optional

from phishguard.features.dom_features import Document, extract_dom_features
from phishguard.features.url_features import extract_url_features
from phishguard.inference.verdicts import Label, Verdict
from phishguard.models.dom_model import score_dom
from phishguard.models.ensemble import Ensemble, FeatureVector
from phishguard.models.url_model import score_url
from phishguard.utils.config import CONFIG
from phishguard.utils.errors import ModelCorruptError
from phishguard.utils.logging_utils import get_logger

logger = get_logger()


# ---------------------------------------------------------------------------
# Blend + label
# ---------------------------------------------------------------------------

def _check_probability(name: str, value: float) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be a finite probability in [0, 1], got {value!r}")


def combine(p_url: float, p_dom: float, alpha: float) -> float:
    """alpha * p_url + (1 - alpha) * p_dom. Inputs are validated, never clamped."""
    _check_probability("p_url", p_url)
    _check_probability("p_dom", p_dom)
    _check_probability("alpha", alpha)
    return alpha * p_url + (1 - alpha) * p_dom


def label_probability(probability: float, threshold: float = CONFIG.PHISH_THRESHOLD) -> Label:
    # Two-way split: Label.UNCERTAIN is never produced here
    if probability >= threshold:
        return Label.PHISHING
    return Label.SAFE


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def page_url_for_scoring(url: str) -> str:
    """The page URL up to (excluding) the query string and fragment."""
    return url.split("?")[0].split("#")[0]


def _url_probability(features: FeatureVector, model: Ensemble) -> float:
    try:
        return score_url(features, model)
    except ModelCorruptError as e:
        logger.warning(f"URL model fault, using {CONFIG.URL_FALLBACK_PROBABILITY}: {e}")
        return CONFIG.URL_FALLBACK_PROBABILITY


def _dom_probability(features: Optional[FeatureVector], model: Ensemble) -> float:
    if features is None:
        return CONFIG.DOM_FALLBACK_PROBABILITY
    try:
        return score_dom(features, model)
    except ModelCorruptError as e:
        logger.warning(f"DOM model fault, using {CONFIG.DOM_FALLBACK_PROBABILITY}: {e}")
        return CONFIG.DOM_FALLBACK_PROBABILITY


def score_features(
    url_features: FeatureVector,
    dom_features: Optional[FeatureVector],
    url_model: Ensemble,
    dom_model: Ensemble,
    alpha: float,
) -> Verdict:
    """
    Score already-extracted feature vectors.
    dom_features=None means the page could not be inspected.
    """
    p_url = _url_probability(url_features, url_model)
    p_dom = _dom_probability(dom_features, dom_model)
    p_final = combine(p_url, p_dom, alpha)
    return Verdict(
        label=label_probability(p_final),
        probability=p_final,
        p_url=p_url,
        p_dom=p_dom,
    )


def score_page(
    page_url: str,
    document: Optional[Document],
    url_model: Ensemble,
    dom_model: Ensemble,
    alpha: float,
) -> Verdict:
    """
    Extract both feature vectors from a page and score them.

    Raises MalformedUrlError if the page URL cannot be parsed.
    """
    url = page_url_for_scoring(page_url)
    url_feats = extract_url_features(url)

    dom = extract_dom_features(document, url)
    if not dom.available:
        logger.info(f"DOM features unavailable for {url}: {dom.reason}")

    verdict = score_features(url_feats, dom.features, url_model, dom_model, alpha)
    logger.info(
        "Scored page | url={url} label={label} p={p:.3f} pUrl={pu:.3f} pDom={pd:.3f}",
        url=url,
        label=verdict.label.value,
        p=verdict.probability,
        pu=verdict.p_url,
        pd=verdict.p_dom,
    )
    return verdict
