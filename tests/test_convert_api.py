import asyncio
import json

import pytest
from httpx import ASGITransport, AsyncClient

from agents.orchestrator import ConversionOrchestrator
from api.routes.convert import MSG_TIMEOUT, get_orchestrator
from conftest import FakeStorage, ScriptedLLM, doc_tree, make_images, media_view, paragraph
from docx_factory import build_docx
from main import app
from models.content import ExtractedContent

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class SlowLLM:
    async def generate_json(self, prompt, system_instruction="", temperature=0.1, max_tokens=None):
        await asyncio.sleep(5)


class StubExtractor:
    def __init__(self, content):
        self.content = content

    async def extract(self, raw):
        return self.content


def parse_sse(body: str) -> list[dict]:
    return [json.loads(frame[len("data: "):]) for frame in body.split("\n\n") if frame.startswith("data: ")]


@pytest.fixture
def use_orchestrator():
    def _use(orchestrator):
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return orchestrator

    yield _use
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "lms-convert"}


async def test_convert_streams_progress_then_complete(client, use_orchestrator):
    llm = ScriptedLLM([json.dumps(doc_tree(paragraph("Hello")))])
    use_orchestrator(ConversionOrchestrator(llm, storage=FakeStorage()))

    response = await client.post(
        "/api/v1/editor/convert",
        files={"file": ("lesson.docx", build_docx(["Hello"]), DOCX_MIME)},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = parse_sse(response.text)
    assert [e["type"] for e in events] == ["progress", "progress", "complete"]
    assert [e["data"]["progress"] for e in events] == [20, 60, 100]
    content = events[-1]["data"]["content"]
    assert json.loads(content["content"]) == doc_tree(paragraph("Hello"))


async def test_convert_rejects_other_extensions(client, use_orchestrator):
    llm = ScriptedLLM(["{}"])
    use_orchestrator(ConversionOrchestrator(llm, storage=FakeStorage()))

    response = await client.post(
        "/api/v1/editor/convert",
        files={"file": ("report.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert parse_sse(response.text) == [{"type": "error", "data": {"error": "Only docx files are supported"}}]
    assert llm.calls == []


async def test_convert_without_file(client, use_orchestrator):
    use_orchestrator(ConversionOrchestrator(ScriptedLLM(["{}"]), storage=FakeStorage()))

    response = await client.post("/api/v1/editor/convert")

    assert parse_sse(response.text) == [{"type": "error", "data": {"error": "No file provided"}}]


async def test_owner_headers_reach_storage(client, use_orchestrator):
    content = ExtractedContent(html="<p>x</p>", images=make_images(1))
    llm = ScriptedLLM([json.dumps(doc_tree(media_view(0)))])
    use_orchestrator(ConversionOrchestrator(llm, storage=FakeStorage(), extractor=StubExtractor(content)))

    response = await client.post(
        "/api/v1/editor/convert",
        files={"file": ("lesson.docx", b"docx", DOCX_MIME)},
        headers={"X-User-Id": "alice", "X-Org-Id": "acme"},
    )

    media = parse_sse(response.text)[-1]["data"]["content"]["assets"][0]["media"]
    assert media["ownerId"] == "alice"
    assert media["orgId"] == "acme"


async def test_owner_defaults_from_settings(client, use_orchestrator):
    content = ExtractedContent(html="<p>x</p>", images=make_images(1))
    llm = ScriptedLLM([json.dumps(doc_tree(media_view(0)))])
    use_orchestrator(ConversionOrchestrator(llm, storage=FakeStorage(), extractor=StubExtractor(content)))

    response = await client.post(
        "/api/v1/editor/convert",
        files={"file": ("lesson.docx", b"docx", DOCX_MIME)},
    )

    media = parse_sse(response.text)[-1]["data"]["content"]["assets"][0]["media"]
    assert media["ownerId"] == "local-user"
    assert media["orgId"] == "local-org"


async def test_convert_times_out(client, use_orchestrator, set_env):
    set_env(CONVERT_MAX_DURATION_SECONDS="0.05")
    content = ExtractedContent(html="<p>x</p>")
    use_orchestrator(ConversionOrchestrator(SlowLLM(), storage=FakeStorage(), extractor=StubExtractor(content)))

    response = await client.post(
        "/api/v1/editor/convert",
        files={"file": ("lesson.docx", b"docx", DOCX_MIME)},
    )

    events = parse_sse(response.text)
    assert events[-1] == {"type": "error", "data": {"error": MSG_TIMEOUT}}
    assert [e["type"] for e in events].count("error") == 1
