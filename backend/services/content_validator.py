import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from models.content import (
    ContentType,
    EditorConfig,
    EditorType,
    TextEditorContent,
    UploadedAsset,
)
from services.errors import ContentValidationError

logger = logging.getLogger("content_validator")


@dataclass
class ValidationResult:
    success: bool
    data: Optional[TextEditorContent] = None
    error: Optional[list[dict[str, Any]]] = None


def create_editor_content(tree: dict, uploaded_assets: Optional[list[UploadedAsset]] = None) -> dict:
    """Assemble the final editor document around a converted node tree."""
    return {
        "type": "doc",
        "content": json.dumps(tree, ensure_ascii=False),
        "assets": [asset.model_dump(mode="json") for asset in uploaded_assets or []],
        "widgets": [],
        "config": EditorConfig(
            editorType=EditorType.TIPTAP,
            contentType=ContentType.JSON,
        ).model_dump(mode="json"),
    }


def validate_editor_content(
    candidate: Any,
    required_editor_type: Optional[EditorType] = EditorType.TIPTAP,
) -> ValidationResult:
    """Check the document schema, then that it was produced for the expected editor."""
    try:
        content = TextEditorContent.model_validate(candidate)
    except ValidationError as e:
        return ValidationResult(success=False, error=e.errors(include_url=False))

    if required_editor_type is not None and content.config.editorType != required_editor_type:
        return ValidationResult(
            success=False,
            error=[{
                "loc": ("config", "editorType"),
                "msg": f"Editor type must be {required_editor_type.value}",
                "type": "editor_type_mismatch",
                "input": content.config.editorType.value,
            }],
        )
    return ValidationResult(success=True, data=content)


def validate_or_raise(candidate: Any, required_editor_type: Optional[EditorType] = EditorType.TIPTAP) -> TextEditorContent:
    result = validate_editor_content(candidate, required_editor_type)
    if not result.success:
        raise ContentValidationError("Editor content failed validation", details=result.error)
    return result.data
