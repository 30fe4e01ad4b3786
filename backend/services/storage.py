import os
import io
import uuid
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import delete

from config import get_settings
from db.database import async_session
from db.models import Media
from models.content import MediaAccess, MediaDescriptor, OwnerContext
from services.errors import StorageError

logger = logging.getLogger("storage")


@dataclass
class StorageFile:
    """In-memory file handed to a storage provider."""

    file: BinaryIO
    filename: str
    mime_type: str

    @classmethod
    def from_bytes(cls, data: bytes, filename: str, mime_type: str) -> "StorageFile":
        return cls(file=io.BytesIO(data), filename=filename, mime_type=mime_type)

    def read(self) -> bytes:
        self.file.seek(0)
        return self.file.read()


class UploadAdapter:
    """Default upload policy: any MIME type, bounded size."""

    title = "Default Adapter"

    def __init__(self, max_size: int, allowed_mime_types: Optional[list[str]] = None):
        self.max_size = max_size
        self.allowed_mime_types = allowed_mime_types or ["*"]

    def validate(self, size: int, mime_type: str) -> None:
        if size > self.max_size:
            raise StorageError(
                f"File size exceeds maximum allowed size of {self.max_size // (1024 * 1024)}MB"
            )
        if self.allowed_mime_types[0] != "*" and mime_type not in self.allowed_mime_types:
            raise StorageError(f"File type {mime_type} is not allowed")


class StorageProvider(ABC):
    """Persists files and returns durable media descriptors."""

    name: str = ""

    def __init__(self, adapter: Optional[UploadAdapter] = None):
        settings = get_settings()
        self.adapter = adapter or UploadAdapter(settings.MAX_MEDIA_SIZE_BYTES)
        self.folder_prefix = settings.UPLOAD_FOLDER_PREFIX

    async def upload(
        self,
        file: StorageFile,
        owner: OwnerContext,
        classification: str,
        caption: str = "",
        access: MediaAccess = MediaAccess.PUBLIC,
    ) -> MediaDescriptor:
        data = file.read()
        self.adapter.validate(len(data), file.mime_type)

        media_id = uuid.uuid4().hex
        key = self._object_key(owner, classification, media_id, file.filename)
        try:
            url = await self._put(key, data, file.mime_type)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Upload failed: {e}") from e

        descriptor = MediaDescriptor(
            mediaId=media_id,
            orgId=owner.org_id,
            storageProvider=self.name,
            url=url,
            originalFileName=file.filename,
            mimeType=file.mime_type,
            size=len(data),
            access=access,
            thumbnail=url if file.mime_type.startswith("image/") else "",
            caption=caption,
            ownerId=owner.user_id,
            metadata={"key": key},
        )
        try:
            await self._record(descriptor, key, classification)
        except Exception as e:
            try:
                await self._remove(key)
            except Exception as cleanup_error:
                logger.error(f"[{self.name}] Failed to remove {key} after record error: {cleanup_error}")
            raise StorageError(f"Upload failed: {e}") from e
        logger.info(f"[{self.name}] Stored {file.filename} ({len(data)} bytes) as {key}")
        return descriptor

    async def delete(self, media: MediaDescriptor) -> bool:
        if not media.url:
            raise StorageError("File URL not found for media")
        key = media.metadata.get("key")
        if not key:
            raise StorageError(f"Storage key missing for mediaId: {media.mediaId}")
        try:
            await self._remove(key)
        except Exception as e:
            raise StorageError(f"Delete failed for mediaId: {media.mediaId}: {e}") from e

        await self._forget(media)
        logger.info(f"[{self.name}] Deleted {key}")
        return True

    def _object_key(self, owner: OwnerContext, classification: str, media_id: str, filename: str) -> str:
        safe_name = filename.replace("/", "_").replace("..", "_")
        return f"{self.folder_prefix}/{owner.org_id}/{classification}/{media_id}-{safe_name}"

    async def _record(self, media: MediaDescriptor, key: str, classification: str) -> None:
        async with async_session() as session:
            session.add(
                Media(
                    media_id=media.mediaId,
                    org_id=media.orgId,
                    owner_id=media.ownerId,
                    storage_provider=media.storageProvider,
                    storage_key=key,
                    url=media.url,
                    original_file_name=media.originalFileName,
                    mime_type=media.mimeType,
                    size=media.size,
                    access=media.access.value,
                    caption=media.caption,
                    entity_type=classification,
                    entity_id=media.ownerId,
                )
            )
            await session.commit()

    async def _forget(self, media: MediaDescriptor) -> None:
        async with async_session() as session:
            await session.execute(delete(Media).where(Media.media_id == media.mediaId))
            await session.commit()

    @abstractmethod
    async def _put(self, key: str, data: bytes, mime_type: str) -> str:
        """Write the object and return its public URL."""
        ...

    @abstractmethod
    async def _remove(self, key: str) -> None:
        ...


class LocalStorageProvider(StorageProvider):
    """Stores files under UPLOAD_DIR, served by the app at /media."""

    name = "local"

    def __init__(self, root: Optional[str] = None, public_base_url: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        settings = get_settings()
        self.root = Path(root or settings.UPLOAD_DIR)
        self.public_base_url = (public_base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    async def _put(self, key: str, data: bytes, mime_type: str) -> str:
        path = self.root / key
        await asyncio.to_thread(self._write, path, data)
        return f"{self.public_base_url}/media/{key}"

    async def _remove(self, key: str) -> None:
        path = self.root / key
        if path.exists():
            await asyncio.to_thread(os.remove, path)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)


class S3StorageProvider(StorageProvider):
    """Stores files in an S3 bucket with public-read URLs."""

    name = "s3"

    def __init__(self, bucket: Optional[str] = None, region: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        settings = get_settings()
        self.bucket = bucket or settings.S3_BUCKET
        self.region = region or settings.AWS_REGION
        self.public_url_base = settings.S3_PUBLIC_URL_BASE
        if not self.bucket:
            raise StorageError("S3_BUCKET is not set")
        self._session = aioboto3.Session()

    def _client(self):
        return self._session.client("s3", region_name=self.region)

    def _url(self, key: str) -> str:
        if self.public_url_base:
            return f"{self.public_url_base.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def _put(self, key: str, data: bytes, mime_type: str) -> str:
        try:
            async with self._client() as s3:
                await s3.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=mime_type)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Upload failed: {e}") from e
        return self._url(key)

    async def _remove(self, key: str) -> None:
        async with self._client() as s3:
            await s3.delete_object(Bucket=self.bucket, Key=key)


def get_storage_provider(name: Optional[str] = None) -> StorageProvider:
    provider = (name or get_settings().STORAGE_PROVIDER).lower()
    if provider == "local":
        return LocalStorageProvider()
    elif provider == "s3":
        return S3StorageProvider()
    elif provider == "custom":
        raise StorageError("Custom storage provider is not implemented")
    else:
        raise StorageError(f"Unknown storage provider: {provider}")
