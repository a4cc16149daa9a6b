from unittest.mock import AsyncMock, MagicMock

import pytest

from sourdough.core.ai_client import AIClient, get_ai_client
from sourdough.errors import AIUnavailable, InvalidInput
from sourdough.services.term_explainer import TermExplainer, normalize_term
from sourdough.settings import Settings

test_settings = Settings(ai_mode="mock")


def _gemini_client(text):
    client = MagicMock(spec=AIClient)
    client.is_mock = False
    client.generate_text = AsyncMock(return_value=text)
    return client


def test_normalize_term():
    assert normalize_term("  Bulk_Fermentation ") == "bulk fermentation"


@pytest.mark.asyncio
async def test_mock_mode_uses_glossary():
    explainer = TermExplainer(AIClient(test_settings))

    text = await explainer.explain("autolyse")

    assert text.startswith("Autolyse is a rest")


@pytest.mark.asyncio
async def test_missing_term_is_invalid():
    with pytest.raises(InvalidInput):
        await TermExplainer(AIClient(test_settings)).explain("  ")


@pytest.mark.asyncio
async def test_gemini_prompt_names_the_term():
    client = _gemini_client("It is a rest.")

    text = await TermExplainer(client).explain("cold_retard")

    assert text == "It is a rest."
    prompt = client.generate_text.await_args.args[0]
    assert prompt.endswith("for a sourdough baker: cold retard")


@pytest.mark.asyncio
async def test_gemini_failure_is_unavailable():
    with pytest.raises(AIUnavailable):
        await TermExplainer(_gemini_client(None)).generate("hello")


def test_explain_endpoint(client):
    client.app.dependency_overrides[get_ai_client] = lambda: AIClient(test_settings)

    response = client.get("/api/genai/explain", params={"term": "levain"})

    assert response.status_code == 200
    assert "levain" in response.json()["explanation"].lower()


def test_explain_endpoint_requires_term(client):
    client.app.dependency_overrides[get_ai_client] = lambda: AIClient(test_settings)

    response = client.get("/api/genai/explain")

    assert response.status_code == 400
    assert response.json() == {"detail": "Missing term", "error": "invalid_input"}


def test_generate_endpoint_maps_ai_failure_to_503(client):
    client.app.dependency_overrides[get_ai_client] = lambda: _gemini_client(None)

    response = client.post("/api/genai/generate", json={"prompt": "Plan my bake"})

    assert response.status_code == 503
    assert response.json()["error"] == "ai_unavailable"
