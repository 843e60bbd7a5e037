"""
Tests for the HTTP control API.

The lifespan is not run; routes get an orchestrator built from the shared
fixtures through a dependency override.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeProvider
from uilingo.api.app import app, get_orchestrator
from uilingo.i18n import ProviderError


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_orchestrator():
    def install(orchestrator):
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return orchestrator

    return install


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_translate_and_fetch_strings(client, use_orchestrator, make_orchestrator, store):
    use_orchestrator(make_orchestrator([FakeProvider("qwen")]))

    response = client.post("/translate/de")

    assert response.status_code == 200
    assert response.json() == {"code": "de", "status": "applied", "source": "qwen"}

    strings = client.get("/strings/de")
    assert strings.json() == {"a": "[de] Hello", "b": "[de] Bye"}

    again = client.post("/translate/de")
    assert again.json()["source"] == "cache"


def test_translate_builtin(client, use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator([FakeProvider("qwen")]))

    response = client.post("/translate/sk")

    assert response.json() == {"code": "sk", "status": "delegated", "source": "builtin"}


def test_translate_unknown_language(client, use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator([FakeProvider("qwen")]))

    response = client.post("/translate/xx")

    assert response.status_code == 404
    assert response.json()["detail"] == "Unknown language: xx"


def test_translate_all_providers_fail(client, use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator([
        FakeProvider("qwen", error=ProviderError("model offline", "qwen")),
    ]))

    response = client.post("/translate/de")

    assert response.status_code == 502
    assert response.json()["detail"] == "Translation failed: model offline"


def test_strings_missing(client, use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator([FakeProvider("qwen")]))
    assert client.get("/strings/de").status_code == 404


def test_status_and_languages(client, use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator([FakeProvider("qwen")]))
    client.post("/translate/fr")

    status = client.get("/status").json()
    assert status["plugin"] == "uilingo"
    assert status["cached"] == ["fr"]
    assert status["translating"] is None

    languages = {row["code"]: row for row in client.get("/languages").json()}
    assert languages["fr"]["cached"] is True
    assert languages["sk"]["builtin"] is True


def test_cancel_when_idle(client, use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator([FakeProvider("qwen")]))
    assert client.post("/cancel").json() == {"cancelled": False}


def test_clear_cache(client, use_orchestrator, make_orchestrator, store):
    use_orchestrator(make_orchestrator([FakeProvider("qwen")]))
    client.post("/translate/de")

    response = client.delete("/cache")

    assert response.json() == {"cleared": True}
    assert store.clears == 1
    assert client.get("/status").json()["cached"] == []


class TestControlEvents:
    def test_clear_cache_message(self, client, use_orchestrator, make_orchestrator, store):
        orchestrator = use_orchestrator(make_orchestrator([FakeProvider("qwen")]))
        orchestrator.attach()

        response = client.post("/events", json={"type": "clear_cache"})

        assert response.status_code == 200
        assert response.json()["type"] == "clear_cache"
        assert response.json()["id"].startswith("evt_")
        assert store.clears == 1

    def test_get_status_reply_on_bus(self, client, use_orchestrator, make_orchestrator, bus):
        orchestrator = use_orchestrator(make_orchestrator([FakeProvider("qwen")]))
        orchestrator.attach()

        client.post("/events", json={"type": "get_status", "plugin": "devtools"})

        [reply] = bus.get_history("status")
        assert reply.payload["active"] == "en"
        assert bus.get_history("get_status")[0].plugin == "devtools"

    def test_missing_type(self, client, use_orchestrator, make_orchestrator):
        use_orchestrator(make_orchestrator([FakeProvider("qwen")]))
        assert client.post("/events", json={"code": "de"}).status_code == 422

    def test_outgoing_type_rejected(self, client, use_orchestrator, make_orchestrator, bus):
        use_orchestrator(make_orchestrator([FakeProvider("qwen")]))

        response = client.post("/events", json={"type": "translated", "code": "de"})

        assert response.status_code == 422
        assert bus.get_history() == []
