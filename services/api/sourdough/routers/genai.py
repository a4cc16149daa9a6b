"""Baking helper endpoints backed by the AI client.

Endpoints:
- GET /genai/explain?term= - Explain a sourdough term
- POST /genai/generate - Free-form prompt
"""

from fastapi import APIRouter, Depends, Query, Request

from ..core.ai_client import AIClient, get_ai_client
from ..schemas import ExplainResponse, GenerateRequest, GenerateResponse
from ..services.term_explainer import TermExplainer
from ..settings import get_settings
from ..limiter import limiter

router = APIRouter(prefix="/genai", tags=["genai"])

GENAI_LIMIT = get_settings().genai_rate_limit


@router.get("/explain", response_model=ExplainResponse)
@limiter.limit(GENAI_LIMIT)
async def explain_term(
    request: Request,
    term: str = Query("", max_length=200),
    client: AIClient = Depends(get_ai_client),
):
    explanation = await TermExplainer(client).explain(term)
    return ExplainResponse(explanation=explanation)


@router.post("/generate", response_model=GenerateResponse)
@limiter.limit(GENAI_LIMIT)
async def generate(
    request: Request,
    body: GenerateRequest,
    client: AIClient = Depends(get_ai_client),
):
    result = await TermExplainer(client).generate(body.prompt)
    return GenerateResponse(result=result)
