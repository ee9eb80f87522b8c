# tests/test_api.py

import asyncio
import threading
import time

import pytest
from fastapi.testclient import TestClient

from _model_helpers import model_bytes, stump
from phishguard.api import app as app_module
from phishguard.api.app import app
from phishguard.features.dom_features import DOM_FEATURE_NAMES
from phishguard.features.url_features import URL_FEATURE_NAMES
from phishguard.models.dom_model import DOM_MODEL_NAME
from phishguard.models.store import MODEL_STORE
from phishguard.models.url_model import URL_MODEL_NAME

client = TestClient(app)


@pytest.fixture(autouse=True)
def loaded_models(monkeypatch):
    """
    Preload both models into the shared store so the service never
    touches data/models during tests.
    """
    MODEL_STORE.clear()
    # have_ip >= 0.5 -> strongly phishing
    url_src = model_bytes([stump(0, 0.5, -2.0, 4.0)], feature_names=URL_FEATURE_NAMES)
    # has_password_field >= 0.5 -> phishing
    dom_src = model_bytes([stump(1, 0.5, -1.0, 2.0)])

    async def preload():
        await MODEL_STORE.get(URL_MODEL_NAME, url_src, URL_FEATURE_NAMES)
        await MODEL_STORE.get(DOM_MODEL_NAME, dom_src, DOM_FEATURE_NAMES)

    asyncio.run(preload())
    monkeypatch.setattr(app_module, "_blend_weight", 0.5)
    yield
    MODEL_STORE.clear()


def test_home():
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "running"


def test_score_features_without_dom():
    resp = client.post("/score", json={"urlFeatures": {"have_ip": 1, "url_length": 24}, "domFeatures": None})
    assert resp.status_code == 200
    body = resp.json()

    assert body["pDom"] == 0.55
    assert body["label"] == "Phishing"
    assert 0.0 <= body["probability"] <= 1.0


def test_score_rejects_unknown_feature_names():
    resp = client.post("/score", json={"urlFeatures": {"have_ip": 1, "favicon": 1}})
    assert resp.status_code == 422
    assert resp.json()["error"] == "unknown_features"


def test_score_page():
    html = '<html><body><form><input type="password"></form></body></html>'
    resp = client.post("/score-page", json={"url": "http://192.168.0.1/login", "html": html})
    assert resp.status_code == 200
    body = resp.json()
    assert body["label"] == "Phishing"
    assert body["pDom"] > 0.55


def test_score_page_malformed_url():
    resp = client.post("/score-page", json={"url": "nonsense"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "malformed_url"


def test_verdict_roundtrip_per_session():
    resp = client.post(
        "/score",
        json={"urlFeatures": {"have_ip": 0}, "domFeatures": {"has_password_field": 0}, "sessionId": "tab-7"},
    )
    assert resp.status_code == 200
    scored = resp.json()

    assert client.get("/verdict/tab-7").json() == scored

    assert client.delete("/verdict/tab-7").status_code == 200
    unknown = client.get("/verdict/tab-7").json()
    assert unknown["label"] == "Unknown"
    assert unknown["probability"] == 0


def test_unknown_session_verdict():
    body = client.get("/verdict/never-seen").json()
    assert body == {"label": "Unknown", "probability": 0.0, "pUrl": 0.0, "pDom": 0.0}


def test_non_numeric_feature_values_follow_default_branch():
    absent = client.post("/score", json={"urlFeatures": {}}).json()

    for value in ("1", "abc", True):
        resp = client.post("/score", json={"urlFeatures": {"have_ip": value}})
        assert resp.status_code == 200
        assert resp.json()["pUrl"] == absent["pUrl"]

    numeric = client.post("/score", json={"urlFeatures": {"have_ip": 1}}).json()
    assert numeric["pUrl"] > absent["pUrl"]


def test_blend_weight_is_read_once_by_concurrent_requests(monkeypatch):
    calls = []
    lock = threading.Lock()

    def slow_load(path):
        with lock:
            calls.append(path)
        time.sleep(0.05)
        return 0.3

    monkeypatch.setattr(app_module, "_blend_weight", None)
    monkeypatch.setattr(app_module, "_blend_weight_task", None)
    monkeypatch.setattr(app_module, "load_blend_weight", slow_load)

    async def many():
        return await asyncio.gather(*[app_module.get_blend_weight() for _ in range(6)])

    assert asyncio.run(many()) == [0.3] * 6
    assert len(calls) == 1

    assert asyncio.run(app_module.get_blend_weight()) == 0.3
    assert len(calls) == 1
