import re
import json
import logging
import asyncio
from openai import OpenAI
from config import get_settings

logger = logging.getLogger("llm_service")

_FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\r?\n?```\s*$")


def strip_code_fence(text: str) -> str:
    """Remove one enclosing ``` fence, whatever its language tag."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_json_response(text: str):
    """Parse a model response as JSON, tolerating a surrounding code fence."""
    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {e}\nResponse: {cleaned[:500]}")
        raise ValueError(f"LLM returned invalid JSON: {e}")


class LLMService:
    """OpenAI chat-completions wrapper (any OpenAI-compatible endpoint)."""

    def __init__(self):
        settings = get_settings()
        self.client = OpenAI(
            base_url=settings.LLM_BASE_URL,
            api_key=settings.OPENAI_API_KEY,
        )
        self.model = settings.LLM_MODEL
        self.max_tokens = settings.LLM_MAX_TOKENS

    async def generate(
        self,
        prompt: str,
        system_instruction: str = "",
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        """Generate text content."""
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_completion_tokens=max_tokens or self.max_tokens,
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"LLM generation error: {e}")
            raise

    async def generate_json(
        self,
        prompt: str,
        system_instruction: str = "",
        temperature: float = 0.1,
        max_tokens: int | None = None,
    ):
        """Generate structured JSON output."""
        response = await self.generate(
            prompt,
            system_instruction=system_instruction,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return parse_json_response(response)


# Singleton
_llm_service = None


def get_llm_service() -> LLMService:
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
