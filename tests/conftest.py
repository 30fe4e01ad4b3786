"""
Shared fixtures for the conversion pipeline tests.

Collaborators are replaced with in-process fakes:
  - ScriptedLLM     : returns canned model responses, parsed like LLMService
  - FakeStorage     : records uploads, fails for chosen image indices
  - StaticExtractor : returns a prepared ExtractedContent (or raises)

Settings are read from the environment; DATABASE_URL and UPLOAD_DIR point at
a temporary directory before any application module is imported.
"""
from __future__ import annotations

import os
import tempfile
from typing import Iterable, Optional

import pytest

_TMP = tempfile.mkdtemp(prefix="lms-convert-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/test.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["STORAGE_PROVIDER"] = "local"
os.environ["OPENAI_API_KEY"] = "sk-test-key"
os.environ["CLEANUP_ASSETS_ON_FAILURE"] = "false"

from config import get_settings  # noqa: E402
from models.content import (  # noqa: E402
    ExtractedContent,
    ExtractedImage,
    MediaDescriptor,
    OwnerContext,
)
from services.errors import StorageError  # noqa: E402
from services.llm_service import parse_json_response  # noqa: E402
from services.storage import StorageProvider  # noqa: E402


# ─────────────────────────────────────────────────────────────────────────────
# Fakes
# ─────────────────────────────────────────────────────────────────────────────

class ScriptedLLM:
    """Stands in for LLMService. Each call consumes the next scripted response."""

    def __init__(self, responses: Iterable):
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def generate_json(self, prompt, system_instruction="", temperature=0.1, max_tokens=None):
        self.calls.append(
            {"prompt": prompt, "system_instruction": system_instruction, "temperature": temperature}
        )
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return parse_json_response(response)


class FakeStorage(StorageProvider):
    """Storage provider that keeps everything in memory."""

    name = "fake"

    def __init__(self, fail_indices: Iterable[int] = (), urls: Optional[dict[int, str]] = None):
        super().__init__()
        self.fail_indices = set(fail_indices)
        self.urls = urls or {}
        self.uploaded: list[str] = []
        self.deleted: list[str] = []

    async def _put(self, key: str, data: bytes, mime_type: str) -> str:
        # key ends with "<mediaId>-image-<n>.<ext>"
        filename = key.rsplit("/", 1)[-1].split("-", 1)[1]
        index = int(filename.split("-", 1)[1].split(".", 1)[0])
        if index in self.fail_indices:
            raise StorageError(f"simulated failure for {filename}")
        self.uploaded.append(filename)
        return self.urls.get(index, f"https://cdn.test/{filename}")

    async def _remove(self, key: str) -> None:
        self.deleted.append(key)

    async def _record(self, media: MediaDescriptor, key: str, classification: str) -> None:
        pass

    async def _forget(self, media: MediaDescriptor) -> None:
        pass


class StaticExtractor:
    def __init__(self, content: Optional[ExtractedContent] = None, error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.calls = 0

    async def extract(self, raw: bytes) -> ExtractedContent:
        self.calls += 1
        if self.error:
            raise self.error
        return self.content


# ─────────────────────────────────────────────────────────────────────────────
# Builders
# ─────────────────────────────────────────────────────────────────────────────

def make_images(count: int) -> list[ExtractedImage]:
    return [ExtractedImage(data=b"\x89PNG\r\n\x1a\n" + bytes([i]), format="png", index=i) for i in range(count)]


def doc_tree(*nodes: dict) -> dict:
    return {"type": "doc", "content": list(nodes)}


def paragraph(text: str) -> dict:
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


def media_view(index: int) -> dict:
    return {"type": "mediaView", "attrs": {"assetId": f"IMAGE_PLACEHOLDER_{index}"}}


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; re-read them around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def set_env(monkeypatch):
    """Set environment variables and drop the cached settings."""
    def _set(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, str(value))
        get_settings.cache_clear()
    return _set


@pytest.fixture
def owner() -> OwnerContext:
    return OwnerContext(user_id="user-1", org_id="org-1")


@pytest.fixture
async def db_tables():
    from db.database import close_db, init_db

    await init_db()
    yield
    # pooled connections belong to this test's event loop
    await close_db()
