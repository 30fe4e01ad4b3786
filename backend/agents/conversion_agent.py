import logging
from agents.base_agent import AgentStatus, BaseAgent
from config import get_settings
from models.tiptap import MARK_GRAMMAR, NODE_GRAMMAR, NodeType
from services.errors import ConversionError

logger = logging.getLogger("agent.conversion")

SYSTEM_PROMPT = "You are a document converter. Convert HTML to TipTap JSON format exactly as specified."

TRUNCATION_MARKER = "\n...(truncated)"


def build_conversion_instructions() -> str:
    node_instructions = "\n".join(f"- {e.name}: {e.description}\n  Example: {e.example}" for e in NODE_GRAMMAR)
    mark_instructions = "\n".join(f"- {m.name}: {m.description}\n  Example: {m.example}" for m in MARK_GRAMMAR)

    return f"""TipTap JSON Structure:
Document: {{"type":"doc","content":[...nodes...]}}

Available Nodes:
{node_instructions}

Available Marks (text formatting):
{mark_instructions}

Rules:
- Always wrap in {{"type":"doc","content":[...]}}
- Text must be in "text" nodes with "text" property
- Marks are applied as array in "marks" property
- Preserve HTML structure (headings, lists, tables, etc.)
- For images: Convert IMAGE_PLACEHOLDER_0, IMAGE_PLACEHOLDER_1, etc. to mediaView nodes with assetId matching the placeholder
- MediaView attrs: assetId (string), asset (object with url, caption, media), display (object with width, height, align, aspectRatio)
- Heading and paragraph support textAlign attr: "left", "center", "right", "justify"
- Links should have target="_blank" for external URLs
- Highlight marks can have color attr for different highlight colors"""


def build_conversion_prompt(html: str, image_count: int, max_html_chars: int) -> str:
    body = html[:max_html_chars]
    if len(html) > max_html_chars:
        body += TRUNCATION_MARKER

    image_info = ""
    if image_count > 0:
        image_info = (
            f"\n\nIMPORTANT: {image_count} image(s) with placeholders IMAGE_PLACEHOLDER_0, "
            "IMAGE_PLACEHOLDER_1, etc. Keep the placeholder tokens literally, do not translate or drop them."
        )

    return f"""Convert this HTML to TipTap JSON:

{body}{image_info}

{build_conversion_instructions()}

Return ONLY valid JSON in TipTap format."""


class ConversionAgent(BaseAgent):
    """Agent 3: Structural Conversion. Asks the LLM for a TipTap node tree."""

    def __init__(self, llm_service):
        settings = get_settings()
        super().__init__(
            "conversion",
            llm_service,
            config={
                "max_attempts": settings.CONVERT_MAX_ATTEMPTS,
                "retry_backoff": settings.CONVERT_RETRY_BACKOFF_SECONDS,
            },
        )
        self.temperature = settings.LLM_TEMPERATURE
        self.max_html_chars = settings.MAX_HTML_CHARS

    async def convert(self, html: str, image_count: int) -> dict:
        """Return the node tree, or raise ConversionError once every attempt has failed."""
        result = await self.execute({"html": html, "image_count": image_count})
        if result.status == AgentStatus.FAILED:
            raise ConversionError(
                f"Failed to convert after {self.max_attempts} attempts: {result.error}",
                last_error=result.error,
                attempts=result.retry_count + 1,
            ) from self.last_error
        logger.info(f"[CONVERT] Converted on attempt {result.retry_count + 1}")
        return result.output

    async def run(self, input_data: dict) -> dict:
        prompt = build_conversion_prompt(input_data["html"], input_data["image_count"], self.max_html_chars)
        return await self.llm.generate_json(prompt, SYSTEM_PROMPT, temperature=self.temperature)

    async def validate(self, output) -> dict:
        if not isinstance(output, dict):
            raise ValueError(f"Expected a JSON object, got {type(output).__name__}")
        if output.get("type") != NodeType.DOC.value:
            raise ValueError(f"Expected a '{NodeType.DOC.value}' root node, got {output.get('type')!r}")
        if not isinstance(output.get("content", []), list):
            raise ValueError("Root node content must be a list")
        return output
