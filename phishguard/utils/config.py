"""
Global configuration values for the phishing detector.
"""

import json
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from phishguard.utils.logging_utils import get_logger

logger = get_logger()


def _env_path(name: str, default: str) -> Path:
    return Path(os.environ.get(name, default))


@dataclass(frozen=True)
class DetectorConfig:
    # Final probability at or above this is labelled phishing
    PHISH_THRESHOLD: float = 0.71

    # pDom when the page could not be inspected or the DOM model faulted (not 0.5)
    DOM_FALLBACK_PROBABILITY: float = 0.55
    # Probability of an empty ensemble
    URL_FALLBACK_PROBABILITY: float = 0.5

    DEFAULT_BLEND_WEIGHT: float = 0.5

    MODEL_DIR: Path = field(default_factory=lambda: _env_path("PHISHGUARD_MODEL_DIR", "data/models"))
    URL_MODEL_FILE: str = "url_model_long.json"
    DOM_MODEL_FILE: str = "dom_model_v2.json"
    BLEND_WEIGHT_FILE: str = "alpha.json"

    VERDICT_STORE_SIZE: int = 10_000

    @property
    def url_model_path(self) -> Path:
        return self.MODEL_DIR / self.URL_MODEL_FILE

    @property
    def dom_model_path(self) -> Path:
        return self.MODEL_DIR / self.DOM_MODEL_FILE

    @property
    def blend_weight_path(self) -> Path:
        return self.MODEL_DIR / self.BLEND_WEIGHT_FILE


CONFIG = DetectorConfig()


def _parse_alpha(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None
    return min(1.0, max(0.0, value))


def load_blend_weight(path: Optional[Path] = None, default: float = CONFIG.DEFAULT_BLEND_WEIGHT) -> float:
    """
    Read the URL-model blend weight from a small JSON object: {"alpha": 0.6}.

    The value is clamped into [0, 1]. Anything unreadable or malformed
    falls back to `default`; this never raises.
    """
    path = Path(path) if path is not None else CONFIG.blend_weight_path
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Blend weight unavailable at {path} ({type(e).__name__}); using {default}")
        return default

    alpha = _parse_alpha(data.get("alpha")) if isinstance(data, dict) else None
    if alpha is None:
        logger.warning(f"Malformed blend weight in {path}; using {default}")
        return default
    return alpha
