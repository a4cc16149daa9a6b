"""Sourdough term explanations and free-form prompts via the AI client.

Mock mode answers from a small glossary so local runs need no API key.
"""

import logging

from ..core.ai_client import AIClient
from ..errors import AIUnavailable, InvalidInput

logger = logging.getLogger("sourdough.genai")

SYSTEM_INSTRUCTION = (
    "You are a friendly sourdough baking coach. Answer in plain language, "
    "in at most two short paragraphs."
)

MOCK_GLOSSARY = {
    "autolyse": "Autolyse is a rest after mixing only flour and water, before adding levain and salt. "
                "It lets the flour hydrate fully and starts gluten development with no kneading.",
    "levain": "A levain is an offshoot of your starter, built a few hours before mixing "
              "so it peaks with lots of active yeast and bacteria when you add it to the dough.",
    "bulk fermentation": "Bulk fermentation is the first rise of the whole dough mass. "
                         "Strength and flavour develop here; watch volume and bubbles, not the clock.",
    "stretch and fold": "Stretch and folds build dough strength gently: lift one side of the dough, "
                        "fold it over, rotate the bowl and repeat on all four sides.",
    "hydration": "Hydration is the water weight as a percentage of the flour weight. "
                 "Higher hydration gives a more open crumb but a stickier dough.",
    "cold retard": "A cold retard is a long, cool proof in the fridge. It slows fermentation, "
                   "deepens flavour and makes the loaf easier to score.",
}


def normalize_term(term: str) -> str:
    return " ".join(term.replace("_", " ").split()).lower()


class TermExplainer:
    def __init__(self, client: AIClient):
        self.client = client

    async def explain(self, term: str) -> str:
        name = normalize_term(term or "")
        if not name:
            raise InvalidInput("Missing term")

        if self.client.is_mock:
            return MOCK_GLOSSARY.get(
                name,
                f"'{name}' is a sourdough baking term. Configure Gemini for a detailed explanation.",
            )

        prompt = f"Explain the following baking concept for a sourdough baker: {name}"
        text = await self.client.generate_text(prompt, system_instruction=SYSTEM_INSTRUCTION)
        if text is None:
            raise AIUnavailable("Failed to get explanation from Gemini.")
        logger.info(f"Explained term '{name}' ({len(text)} chars)")
        return text

    async def generate(self, prompt: str) -> str:
        if not prompt or not prompt.strip():
            raise InvalidInput("Missing prompt")

        if self.client.is_mock:
            return f"[mock] {prompt.strip()[:200]}"

        text = await self.client.generate_text(prompt)
        if text is None:
            raise AIUnavailable("Failed to get response from Gemini.")
        return text
