import logging
from agents.base_agent import BaseAgent
from models.content import ExtractedImage, MediaAccess, OwnerContext, UploadedAsset
from services.storage import StorageFile, StorageProvider, get_storage_provider

logger = logging.getLogger("agent.asset_upload")


class AssetUploadAgent(BaseAgent):
    """Agent 2: Asset Upload. Stores extracted images one at a time, skipping failures."""

    def __init__(self, storage: StorageProvider | None = None):
        super().__init__("asset_upload", config={"max_attempts": 1})
        self._storage = storage

    @property
    def storage(self) -> StorageProvider:
        if self._storage is None:
            self._storage = get_storage_provider()
        return self._storage

    async def run(self, input_data: dict) -> list[UploadedAsset]:
        return await self.upload_all(input_data["images"], input_data["owner"])

    async def upload_all(self, images: list[ExtractedImage], owner: OwnerContext) -> list[UploadedAsset]:
        """
        Upload images sequentially in input order.
        A failed upload is logged and skipped; it never aborts the batch.
        """
        uploaded: list[UploadedAsset] = []
        seen: set[int] = set()

        for image in images:
            if image.index in seen:
                logger.warning(f"[UPLOAD] Skipping duplicate image index {image.index}")
                continue
            seen.add(image.index)
            try:
                asset = await self._upload_one(image, owner)
            except Exception as e:
                logger.error(f"[UPLOAD ERROR] Failed to upload image {image.index}: {e}")
                continue
            uploaded.append(asset)
            logger.info(f"[UPLOAD] Uploaded image {image.index}")

        if len(uploaded) < len(images):
            logger.warning(f"[UPLOAD] {len(images) - len(uploaded)} of {len(images)} image(s) were not uploaded")
        return uploaded

    async def _upload_one(self, image: ExtractedImage, owner: OwnerContext) -> UploadedAsset:
        file = StorageFile.from_bytes(image.data, image.filename, image.mime_type)
        media = await self.storage.upload(
            file,
            owner,
            classification="document",
            caption=f"Extracted image {image.index}",
            access=MediaAccess.PUBLIC,
        )
        return UploadedAsset(
            index=image.index,
            url=media.url,
            caption=media.caption,
            media=media,
        )
