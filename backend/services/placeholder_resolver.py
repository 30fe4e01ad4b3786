import logging
from typing import Iterable

from models.content import UploadedAsset
from models.tiptap import NodeType, PLACEHOLDER_PATTERN, visit

logger = logging.getLogger("placeholder_resolver")


def replace_image_placeholders(tree: dict, uploaded_assets: Iterable[UploadedAsset]) -> int:
    """
    Attach uploaded assets to mediaView nodes whose assetId is IMAGE_PLACEHOLDER_<n>.

    The tree is edited in place. assetId is left as-is, so a second pass
    rewrites the same values. Placeholders with no uploaded asset stay
    unresolved. Returns the number of nodes resolved.
    """
    if not isinstance(tree, dict) or not tree.get("content"):
        return 0

    asset_map = {asset.index: asset for asset in uploaded_assets}
    resolved = 0

    def resolve(node: dict) -> None:
        nonlocal resolved
        attrs = node.get("attrs")
        if not isinstance(attrs, dict):
            return
        placeholder = attrs.get("assetId")
        if not isinstance(placeholder, str):
            return
        match = PLACEHOLDER_PATTERN.search(placeholder)
        if not match:
            return
        asset = asset_map.get(int(match.group(1)))
        if asset is None:
            logger.warning(f"No uploaded asset for {placeholder}; leaving it unresolved")
            return
        attrs["asset"] = {
            "url": asset.url,
            "caption": asset.caption,
            "media": asset.media.model_dump(mode="json") if asset.media else None,
        }
        resolved += 1
        logger.info(f"Replaced {placeholder} with {asset.url}")

    visit(tree, resolve, NodeType.MEDIA_VIEW)
    return resolved
