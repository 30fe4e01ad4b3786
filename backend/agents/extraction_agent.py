import logging
from agents.base_agent import BaseAgent
from models.content import ExtractedContent
from services.docx_extractor import DocxExtractor
from services.errors import EmptyContentError

logger = logging.getLogger("agent.extraction")


class ExtractionAgent(BaseAgent):
    """Agent 1: Content Extraction. Turns .docx bytes into HTML with image placeholders."""

    def __init__(self, extractor=None):
        super().__init__("extraction", config={"max_attempts": 1})
        self.extractor = extractor or DocxExtractor

    async def run(self, input_data: bytes) -> ExtractedContent:
        return await self.extractor.extract(input_data)

    async def validate(self, output: ExtractedContent) -> ExtractedContent:
        if not output.html or not output.html.strip():
            raise EmptyContentError("Extracted HTML is empty")
        return output
