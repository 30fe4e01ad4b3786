import json
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExtractedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    format: str = "png"
    index: int

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"

    @property
    def filename(self) -> str:
        return f"image-{self.index}.{self.format}"


class ExtractedContent(BaseModel):
    html: str
    images: list[ExtractedImage] = []


class MediaAccess(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class MediaDescriptor(BaseModel):
    """Durable record of a stored file, as returned by a storage provider."""

    mediaId: str
    orgId: str
    storageProvider: str
    url: str
    originalFileName: str
    mimeType: str
    size: int
    access: MediaAccess = MediaAccess.PUBLIC
    thumbnail: str = ""
    caption: str = ""
    ownerId: str
    metadata: dict[str, Any] = {}


class UploadedAsset(BaseModel):
    index: int
    url: str
    caption: str = ""
    media: Optional[MediaDescriptor] = None


class OwnerContext(BaseModel):
    user_id: str
    org_id: str


class EditorType(str, Enum):
    TIPTAP = "tiptap"
    LEXICAL = "lexical"


class ContentType(str, Enum):
    JSON = "json"
    HTML = "html"
    MARKDOWN = "markdown"


class EditorConfig(BaseModel):
    editorType: EditorType
    contentType: ContentType


class TextEditorContent(BaseModel):
    """Final document handed to editors: serialized tree plus its media."""

    type: Literal["doc"]
    content: str
    assets: list[UploadedAsset] = []
    widgets: list[dict[str, Any]] = Field(default_factory=list, max_length=0)
    config: EditorConfig

    @field_validator("content")
    @classmethod
    def content_is_serialized_tree(cls, value: str) -> str:
        try:
            tree = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"content is not valid JSON: {e}")
        if not isinstance(tree, dict) or not isinstance(tree.get("type"), str):
            raise ValueError("content must serialize a node object with a type")
        return value


# --- Stream events ---

class ProgressEvent(BaseModel):
    step: str
    progress: int = Field(ge=0, le=100)
    label: str


class ErrorEvent(BaseModel):
    error: str


class CompleteEvent(BaseModel):
    content: TextEditorContent
    step: str = "complete"
    progress: Literal[100] = 100
    label: str = "Conversion complete!"
