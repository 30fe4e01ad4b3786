"""Command-line entry point: convert a local .docx without the HTTP server."""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from agents.orchestrator import ConversionOrchestrator
from config import get_settings
from models.content import MediaDescriptor, OwnerContext
from services.event_stream import RecordingEventSink
from services.llm_service import get_llm_service
from services.storage import StorageProvider, get_storage_provider

logger = logging.getLogger("lms_convert.cli")


class MockStorageProvider(StorageProvider):
    """Pretends to store files; returns placeholder URLs and persists nothing."""

    name = "mock"

    async def _put(self, key: str, data: bytes, mime_type: str) -> str:
        filename = key.rsplit("/", 1)[-1].split("-", 1)[-1]
        logger.info(f"[MOCK UPLOAD] {filename} ({mime_type}, {len(data)} bytes)")
        return f"https://via.placeholder.com/800x600?text={filename}"

    async def _remove(self, key: str) -> None:
        logger.info(f"[MOCK DELETE] {key}")

    async def _record(self, media: MediaDescriptor, key: str, classification: str) -> None:
        pass

    async def _forget(self, media: MediaDescriptor) -> None:
        pass


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert a .docx document into TipTap editor content.")
    parser.add_argument("path", type=Path, help="Path of the .docx file to convert")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Where to write the resulting document JSON (default: <path>.tiptap.json)",
    )
    parser.add_argument(
        "--storage",
        choices=["mock", "local", "s3"],
        default="mock",
        help="Storage provider for extracted images (default: mock, nothing is persisted)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args(list(sys.argv[1:] if argv is None else argv))


async def convert_file(path: Path, storage: StorageProvider) -> tuple[RecordingEventSink, dict | None]:
    settings = get_settings()
    owner = OwnerContext(user_id=settings.DEFAULT_OWNER_ID, org_id=settings.DEFAULT_ORG_ID)
    orchestrator = ConversionOrchestrator(get_llm_service(), storage=storage)
    sink = RecordingEventSink()
    document = await orchestrator.run(path.name, path.read_bytes(), owner, sink)
    return sink, document.model_dump(mode="json") if document else None


async def _run(args: argparse.Namespace) -> int:
    if args.storage == "mock":
        storage = MockStorageProvider()
    else:
        from db.database import init_db

        await init_db()
        storage = get_storage_provider(args.storage)

    start = time.perf_counter()
    sink, document = await convert_file(args.path, storage)
    for event in sink.events:
        logger.info(f"{event['type']}: {event['data'].get('label') or event['data'].get('error', '')}")

    if document is None:
        logger.error(f"Conversion of {args.path} failed after {time.perf_counter() - start:.2f}s")
        return 1

    output = args.output or args.path.with_suffix(".tiptap.json")
    output.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Wrote {output} ({len(document['assets'])} asset(s)) in {time.perf_counter() - start:.2f}s")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    if not args.path.exists():
        logger.error(f"File not found: {args.path}")
        sys.exit(2)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
