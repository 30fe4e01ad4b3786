import io
import asyncio
import logging

import mammoth

from models.content import ExtractedContent, ExtractedImage
from models.tiptap import placeholder_token
from services.errors import ExtractionError

logger = logging.getLogger("docx_extractor")


class DocxExtractor:
    """Extract HTML and embedded images from .docx files."""

    @staticmethod
    async def extract(raw: bytes) -> ExtractedContent:
        """
        Convert a .docx payload to HTML.
        Every embedded image is replaced in the HTML by IMAGE_PLACEHOLDER_<n>,
        where n is the image's 0-based position in document order.
        """
        if not raw:
            raise ExtractionError("Empty document")
        return await asyncio.to_thread(DocxExtractor._extract_sync, raw)

    @staticmethod
    def _extract_sync(raw: bytes) -> ExtractedContent:
        images: list[ExtractedImage] = []

        def convert_image(image) -> dict:
            index = len(images)
            with image.open() as image_bytes:
                data = image_bytes.read()
            content_type = image.content_type or ""
            images.append(
                ExtractedImage(
                    data=data,
                    format=content_type.split("/")[-1] if "/" in content_type else "png",
                    index=index,
                )
            )
            return {"src": placeholder_token(index)}

        try:
            result = mammoth.convert_to_html(
                io.BytesIO(raw),
                convert_image=mammoth.images.img_element(convert_image),
            )
        except Exception as e:
            raise ExtractionError(f"Unreadable .docx document: {e}") from e

        for message in result.messages:
            logger.debug(f"mammoth: {message}")

        logger.info(f"Extracted {len(result.value)} chars of HTML and {len(images)} image(s)")
        return ExtractedContent(html=result.value, images=images)
