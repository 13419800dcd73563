import logging
import time
from typing import Optional

import cloudinary
import cloudinary.uploader
from fastapi.concurrency import run_in_threadpool

from .config import settings

logger = logging.getLogger(__name__)


class AssetStore:
    """Image hosting on Cloudinary."""

    def __init__(self, folder: str):
        self.folder = folder

    async def upload(self, image: str) -> dict:
        public_id = f"image-storefront-{int(time.time() * 1000)}"
        result = await run_in_threadpool(
            cloudinary.uploader.upload,
            image,
            public_id=public_id,
            resource_type="auto",
            folder=self.folder,
        )
        logger.info("Uploaded image %s", result.get("public_id"))
        return result

    async def destroy(self, public_id: str) -> dict:
        result = await run_in_threadpool(cloudinary.uploader.destroy, public_id)
        logger.info("Removed image %s: %s", public_id, result.get("result"))
        return result


_store: Optional[AssetStore] = None


def get_asset_store() -> AssetStore:
    global _store
    if _store is None:
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )
        _store = AssetStore(folder=settings.CLOUDINARY_FOLDER)
    return _store
