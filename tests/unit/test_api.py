import pytest
from fastapi.testclient import TestClient

from comptable import api
from comptable.models.output import AnalysisResult, CellAnswer, Competitor
from comptable.pipeline.executor import PipelineError


@pytest.fixture
def client():
    api.app.dependency_overrides[api.get_keys] = lambda: {"openrouter": "sk-or", "groq": "gsk"}
    yield TestClient(api.app)
    api.app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "openrouter_configured": True, "groq_configured": True}


def test_prompts(client):
    prompts = client.get("/api/prompts").json()

    assert "competitors" in prompts["fanout"]


def test_analyze(client, monkeypatch):
    seen = {}

    async def fake_run(target, openrouter_key, groq_key, config=None):
        seen["args"] = (target, openrouter_key, groq_key)
        return AnalysisResult(
            target=target,
            competitors=[Competitor(name="Lyft", frequency=3, rank=1)],
            table=[[]],
        )

    monkeypatch.setattr(api, "run_analysis", fake_run)

    response = client.post("/api/analyze", json={"target": "Uber"})

    assert response.status_code == 200
    assert response.json()["competitors"][0]["name"] == "Lyft"
    assert seen["args"] == ("Uber", "sk-or", "gsk")


def test_analyze_blank_target(client):
    assert client.post("/api/analyze", json={"target": "   "}).status_code == 400


def test_analyze_pipeline_error(client, monkeypatch):
    async def fake_run(*args, **kwargs):
        raise PipelineError("Could not query models: boom")

    monkeypatch.setattr(api, "run_analysis", fake_run)

    response = client.post("/api/analyze", json={"target": "Uber"})

    assert response.status_code == 502
    assert "boom" in response.json()["detail"]


def test_missing_key():
    api.app.dependency_overrides[api.get_keys] = lambda: {"openrouter": None, "groq": None}
    try:
        response = TestClient(api.app).post("/api/cell", json={"competitor": "Lyft", "criterion": "Price"})
    finally:
        api.app.dependency_overrides.clear()

    assert response.status_code == 503


def test_cell(client, monkeypatch):
    class FakeClient:
        closed = False

        async def close(self):
            FakeClient.closed = True

    class FakeResolver:
        client = FakeClient()

        async def resolve_cell(self, competitor, criterion):
            return CellAnswer(competitor=competitor, criterion=criterion, answer="$1.50/mile")

    monkeypatch.setattr(api, "build_cell_resolver", lambda key, config: FakeResolver())

    response = client.post("/api/cell", json={"competitor": "Lyft", "criterion": "Price"})

    assert response.status_code == 200
    assert response.json() == {
        "competitor": "Lyft",
        "criterion": "Price",
        "answer": "$1.50/mile",
        "error": False,
    }
    assert FakeClient.closed
