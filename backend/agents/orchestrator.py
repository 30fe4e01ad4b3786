import logging
import time
from enum import Enum
from typing import Optional

from agents.asset_upload_agent import AssetUploadAgent
from agents.base_agent import AgentStatus
from agents.conversion_agent import ConversionAgent
from agents.extraction_agent import ExtractionAgent
from config import get_settings
from models.content import OwnerContext, TextEditorContent, UploadedAsset
from models.tiptap import referenced_placeholder_indices
from services.content_validator import create_editor_content, validate_or_raise
from services.errors import ContentValidationError, ConversionError, EmptyContentError
from services.event_stream import EventSink
from services.placeholder_resolver import replace_image_placeholders
from services.storage import StorageProvider

logger = logging.getLogger("orchestrator")

MSG_NO_FILE = "No file provided"
MSG_NO_CONTENT = "No content found in file"
MSG_UNREADABLE = "Failed to read document"
MSG_CONVERSION_FAILED = "Conversion failed"
MSG_VALIDATION_FAILED = "Generated content validation failed"
MSG_UNEXPECTED = "An error occurred during file conversion"


class ConversionState(str, Enum):
    IDLE = "idle"
    VALIDATING_INPUT = "validating_input"
    EXTRACTING = "extracting"
    UPLOADING_ASSETS = "uploading_assets"
    CONVERTING = "converting"
    RESOLVING_PLACEHOLDERS = "resolving_placeholders"
    VALIDATING_OUTPUT = "validating_output"
    COMPLETED = "completed"
    FAILED = "failed"


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


class ConversionOrchestrator:
    """
    Runs one .docx → TipTap conversion and reports it on an EventSink.

    Stages run strictly in order: extract, upload images, convert, resolve
    placeholders, validate. Every run ends with exactly one terminal event.
    Image upload failures are absorbed; any other stage failure ends the run.
    """

    def __init__(
        self,
        llm_service,
        storage: Optional[StorageProvider] = None,
        extractor=None,
    ):
        self.settings = get_settings()
        self.extraction = ExtractionAgent(extractor)
        self.uploader = AssetUploadAgent(storage)
        self.conversion = ConversionAgent(llm_service)
        self.state = ConversionState.IDLE
        self.history: list[ConversionState] = [ConversionState.IDLE]

    def _transition(self, state: ConversionState) -> None:
        logger.info(f"[CONVERT] {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def check_input(self, filename: Optional[str]) -> Optional[str]:
        """Return a caller-facing error message, or None when the file is acceptable."""
        if not filename:
            return MSG_NO_FILE
        allowed = [ext.lower() for ext in self.settings.ALLOWED_EXTENSIONS]
        if file_extension(filename) not in allowed:
            return f"Only {', '.join(allowed)} files are supported"
        return None

    async def run(
        self,
        filename: Optional[str],
        data: Optional[bytes],
        owner: OwnerContext,
        sink: EventSink,
    ) -> Optional[TextEditorContent]:
        start = time.time()
        uploaded_assets: list[UploadedAsset] = []
        try:
            # Validating input
            self._transition(ConversionState.VALIDATING_INPUT)
            input_error = self.check_input(filename) or (None if data is not None else MSG_NO_FILE)
            if input_error:
                await self._fail(sink, input_error)
                return None

            # Extracting
            self._transition(ConversionState.EXTRACTING)
            await sink.progress("extracting", 20, "Extracting content...")
            extraction = await self.extraction.execute(data)
            if extraction.status == AgentStatus.FAILED:
                logger.error(f"[CONVERT] Extraction of {filename} failed: {extraction.error}")
                message = MSG_NO_CONTENT if extraction.error_type == EmptyContentError.__name__ else MSG_UNREADABLE
                await self._fail(sink, message)
                return None
            content = extraction.output

            # Uploading assets (skipped when the document has no images)
            if content.images:
                self._transition(ConversionState.UPLOADING_ASSETS)
                count = len(content.images)
                await sink.progress("uploading", 40, f"Uploading {count} image(s)...")
                upload = await self.uploader.execute({"images": content.images, "owner": owner})
                if upload.status == AgentStatus.FAILED:
                    # uploads are best-effort; convert without assets
                    logger.error(f"[UPLOAD ERROR] Image upload stage failed: {upload.error}")
                else:
                    uploaded_assets = upload.output

            # Converting
            self._transition(ConversionState.CONVERTING)
            await sink.progress("converting", 60, "Converting to TipTap format...")
            try:
                tree = await self.conversion.convert(content.html, len(content.images))
            except ConversionError as e:
                logger.error(f"[CONVERT] {e}")
                await self._fail(sink, MSG_CONVERSION_FAILED, uploaded_assets)
                return None

            # Resolving placeholders
            self._transition(ConversionState.RESOLVING_PLACEHOLDERS)
            if uploaded_assets:
                logger.info(f"[CONVERT] Replacing {len(uploaded_assets)} image placeholders")
                replace_image_placeholders(tree, uploaded_assets)
            self._log_unreferenced(tree, uploaded_assets)

            # Validating output
            self._transition(ConversionState.VALIDATING_OUTPUT)
            try:
                document = validate_or_raise(create_editor_content(tree, uploaded_assets))
            except ContentValidationError as e:
                logger.error(f"[VALIDATION ERROR] {e}: {e.details}")
                await self._fail(sink, MSG_VALIDATION_FAILED, uploaded_assets)
                return None

            self._transition(ConversionState.COMPLETED)
            await sink.complete(document)
            logger.info(
                f"[CONVERT] {filename} converted in {time.time() - start:.2f}s "
                f"({len(uploaded_assets)}/{len(content.images)} image(s) uploaded)"
            )
            return document

        except Exception as e:
            logger.error(f"[FILE CONVERT] Error: {e}", exc_info=True)
            await self._fail(sink, MSG_UNEXPECTED, uploaded_assets)
            return None

    async def _fail(self, sink: EventSink, message: str, uploaded_assets: Optional[list[UploadedAsset]] = None) -> None:
        self._transition(ConversionState.FAILED)
        if uploaded_assets and self.settings.CLEANUP_ASSETS_ON_FAILURE:
            await self._cleanup(uploaded_assets)
        await sink.error(message)

    async def _cleanup(self, uploaded_assets: list[UploadedAsset]) -> None:
        """Best-effort removal of assets stored by a run that did not complete."""
        for asset in uploaded_assets:
            if asset.media is None:
                continue
            try:
                await self.uploader.storage.delete(asset.media)
            except Exception as e:
                logger.error(f"[CLEANUP] Failed to delete image {asset.index}: {e}")

    @staticmethod
    def _log_unreferenced(tree: dict, uploaded_assets: list[UploadedAsset]) -> None:
        referenced = referenced_placeholder_indices(tree)
        unreferenced = sorted(a.index for a in uploaded_assets if a.index not in referenced)
        if unreferenced:
            logger.warning(f"[CONVERT] Uploaded image(s) {unreferenced} are not referenced in the document")
