"""
phishguard/api/app.py
---------------------
FastAPI service endpoint for the page phishing scorer.

Accepts either pre-extracted feature vectors (from a page observer) or
a page URL plus its HTML, returns a verdict and remembers the last
verdict per session id.
"""

import asyncio
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

# Logging
from phishguard.utils.logging_utils import configure_logging, get_logger

from phishguard.features.dom_features import DOM_FEATURE_NAMES
from phishguard.features.url_features import URL_FEATURE_NAMES
from phishguard.inference.pipeline import score_features, score_page
from phishguard.inference.verdicts import InMemoryVerdictStore, Verdict
from phishguard.models.dom_model import get_dom_model
from phishguard.models.ensemble import check_feature_names
from phishguard.models.url_model import get_url_model
from phishguard.utils.config import CONFIG, load_blend_weight
from phishguard.utils.errors import FeatureSchemaError, MalformedUrlError


# -------------------------------------------------------------------
# Initialize logging BEFORE creating the FastAPI app
# -------------------------------------------------------------------
configure_logging()
logger = get_logger()


# -------------------------------------------------------------------
# Create FastAPI Application
# -------------------------------------------------------------------
app = FastAPI(
    title="PhishGuard Page Scorer",
    description="Scores a web page for phishing from its URL and its DOM (two XGBoost models, blended).",
    version="1.0.0",
)

verdict_store = InMemoryVerdictStore(CONFIG.VERDICT_STORE_SIZE)

_blend_weight: Optional[float] = None
_blend_weight_task: "Optional[asyncio.Future[float]]" = None


async def get_blend_weight() -> float:
    """Read alpha.json once; requests arriving during the read share it."""
    global _blend_weight, _blend_weight_task
    if _blend_weight is not None:
        return _blend_weight

    if _blend_weight_task is None:
        _blend_weight_task = asyncio.ensure_future(
            asyncio.to_thread(load_blend_weight, CONFIG.blend_weight_path)
        )
    task = _blend_weight_task
    try:
        weight = await asyncio.shield(task)
    finally:
        if task.done() and _blend_weight_task is task:
            _blend_weight_task = None
    _blend_weight = weight
    return weight


# -------------------------------------------------------------------
# Schemas
# -------------------------------------------------------------------

class ScoreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # values pass through unconverted; the tree walk decides what counts as missing
    url_features: Dict[str, Any] = Field(..., alias="urlFeatures")
    dom_features: Optional[Dict[str, Any]] = Field(None, alias="domFeatures")
    session_id: Optional[str] = Field(None, alias="sessionId")


class PageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., min_length=1)
    html: Optional[str] = None
    session_id: Optional[str] = Field(None, alias="sessionId")


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(content={"error": error, "detail": detail}, status_code=status_code)


def _respond(verdict: Verdict, session_id: Optional[str]) -> JSONResponse:
    if session_id is not None:
        verdict_store.put(session_id, verdict)
    return JSONResponse(content=verdict.as_dict(), status_code=200)


# -------------------------------------------------------------------
# ROUTES
# -------------------------------------------------------------------

@app.post("/score")
async def score(req: ScoreRequest):
    """
    Score pre-extracted feature vectors. domFeatures may be null when
    the page could not be inspected.
    """
    try:
        check_feature_names(req.url_features, URL_FEATURE_NAMES)
        if req.dom_features is not None:
            check_feature_names(req.dom_features, DOM_FEATURE_NAMES)
    except FeatureSchemaError as e:
        logger.warning(f"Rejected feature payload: {e}")
        return _error(422, "unknown_features", str(e))

    try:
        url_model, dom_model, alpha = await asyncio.gather(
            get_url_model(), get_dom_model(), get_blend_weight()
        )
        verdict = score_features(req.url_features, req.dom_features, url_model, dom_model, alpha)
    except Exception as e:
        logger.error(f"Error while scoring features: {type(e).__name__}: {e}")
        return _error(500, f"internal_error:{type(e).__name__}", str(e))

    return _respond(verdict, req.session_id)


@app.post("/score-page")
async def score_page_endpoint(req: PageRequest):
    """
    Extract URL and DOM features server-side from a page URL and its HTML.
    """
    try:
        url_model, dom_model, alpha = await asyncio.gather(
            get_url_model(), get_dom_model(), get_blend_weight()
        )
        verdict = score_page(req.url, req.html, url_model, dom_model, alpha)
    except MalformedUrlError as e:
        logger.warning(f"Malformed page URL: {e}")
        return _error(400, "malformed_url", str(e))
    except Exception as e:
        logger.error(f"Error while scoring page: {type(e).__name__}: {e}")
        return _error(500, f"internal_error:{type(e).__name__}", str(e))

    return _respond(verdict, req.session_id)


@app.get("/verdict/{session_id}")
def get_verdict(session_id: str):
    return verdict_store.get(session_id).as_dict()


@app.delete("/verdict/{session_id}")
def end_session(session_id: str):
    verdict_store.discard(session_id)
    return {"status": "discarded", "sessionId": session_id}


@app.get("/")
def home():
    logger.info("Health check called on /")
    return {
        "status": "running",
        "message": "PhishGuard page scorer",
        "endpoints": {
            "POST /score": "Score pre-extracted URL / DOM feature vectors",
            "POST /score-page": "Score a page from its URL and HTML",
            "GET /verdict/{session_id}": "Last verdict for a session",
            "DELETE /verdict/{session_id}": "Forget a session's verdict",
        },
    }
