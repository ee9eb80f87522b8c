"""
phishguard/models/store.py
--------------------------
Loads tree-ensemble artifacts once per process and shares them.

A load never fails hard: a missing file, broken JSON or a malformed
tree array yields an empty Ensemble (probability 0.5) and a warning.
Callers that arrive while a load is in flight await the same task.
"""

import asyncio
import json
from pathlib import Path
from typing import Callable, Dict, Sequence, Union

from phishguard.models.ensemble import Ensemble, ensemble_from_json
from phishguard.utils.logging_utils import get_logger

logger = get_logger()

ArtifactSource = Union[str, Path, bytes, Callable[[], bytes]]


def _read_source(source: ArtifactSource) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    return source()


def parse_artifact(raw: Union[bytes, str], feature_names: Sequence[str], name: str = "") -> Ensemble:
    """
    Decode serialized model bytes into an Ensemble.

    Returns an empty Ensemble (and logs why) when the payload is not the
    expected shape.
    """
    try:
        model_json = json.loads(raw)
        ensemble = ensemble_from_json(model_json, feature_names, name=name)
    except (ValueError, RecursionError) as e:
        # RecursionError: JSON nested deeper than the decoder allows
        logger.warning(f"Model '{name}' is malformed, using empty ensemble: {e}")
        return Ensemble(feature_names=tuple(feature_names), name=name)

    logger.info(f"Loaded model '{name}' with {len(ensemble)} trees")
    return ensemble


def load_ensemble(source: ArtifactSource, feature_names: Sequence[str], name: str = "") -> Ensemble:
    """Synchronous load (no caching). Degrades to an empty Ensemble."""
    try:
        raw = _read_source(source)
    except Exception as e:
        logger.warning(f"Model '{name}' unavailable ({type(e).__name__}: {e}), using empty ensemble")
        return Ensemble(feature_names=tuple(feature_names), name=name)
    return parse_artifact(raw, feature_names, name=name)


class ModelStore:
    """
    Process-lifetime cache of loaded ensembles, keyed by artifact name.

    Only the event loop thread touches the dictionaries; file reads run
    in a worker thread.
    """

    def __init__(self):
        self._models: Dict[str, Ensemble] = {}
        self._loading: Dict[str, "asyncio.Task[Ensemble]"] = {}

    async def get(self, name: str, source: ArtifactSource, feature_names: Sequence[str]) -> Ensemble:
        if name in self._models:
            return self._models[name]

        task = self._loading.get(name)
        if task is None:
            task = asyncio.ensure_future(
                asyncio.to_thread(load_ensemble, source, tuple(feature_names), name)
            )
            self._loading[name] = task
            task.add_done_callback(lambda t, key=name: self._finish(key, t))

        # shield: one cancelled waiter must not cancel the shared load
        return await asyncio.shield(task)

    def _finish(self, name: str, task: "asyncio.Task[Ensemble]") -> None:
        self._loading.pop(name, None)
        if not task.cancelled() and task.exception() is None:
            self._models[name] = task.result()

    def cached(self, name: str) -> bool:
        return name in self._models

    def clear(self) -> None:
        self._models.clear()
        self._loading.clear()


MODEL_STORE = ModelStore()
