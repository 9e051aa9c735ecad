"""
Module: images.loader

Purpose:
    Asynchronous photo decoding for the export pipeline. A load is
    "ready" only once decoding has completed AND the bitmap has non-zero
    natural dimensions; a decode that was merely requested is not ready.

Key Classes:
    - LoadedAsset: Result of one decode
    - AssetLoader: Abstract async loader
    - PillowAssetLoader: Pillow-backed loader with memory-bounded decode
    - AssetLoadError: Decode failure

Dependencies:
    - PIL: Decoding
    - asyncio (std): Decoding runs in a worker thread

Used By:
    - export.assets: Readiness wait with timeouts
"""

from __future__ import annotations

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .cropper import reduce_for_box

logger = logging.getLogger(__name__)

EXIF_ORIENTATION_TAG = 0x0112
_AXIS_SWAPPING_ORIENTATIONS = (5, 6, 7, 8)


class AssetLoadError(Exception):
    """Image bytes could not be decoded."""
    pass


@dataclass(frozen=True)
class LoadedAsset:
    """
    Decoded bitmap for one image handle.

    Attributes:
        handle_id: Handle the bytes came from
        image: Decoded bitmap (None when decoding produced nothing)
        natural_size: (width, height) of the full-resolution source
    """

    handle_id: str
    image: Optional[Image.Image]
    natural_size: Tuple[int, int]

    @property
    def is_ready(self) -> bool:
        """Decoded and has a real size."""
        width, height = self.natural_size
        return self.image is not None and width > 0 and height > 0


class AssetLoader(ABC):
    """
    Abstract async image decoder.

    Implementations must yield to the event loop at least once so a
    surrounding timeout can fire.
    """

    @abstractmethod
    async def load(
        self,
        handle_id: str,
        data: bytes,
        *,
        needed_min_side: int = 0,
    ) -> LoadedAsset:
        """
        Decode image bytes.

        Args:
            handle_id: Handle the bytes belong to
            data: Encoded image
            needed_min_side: Shortest side the caller will draw at; larger
                decodes are reduced to this (0 keeps full resolution)

        Raises:
            AssetLoadError: If the bytes are not a decodable image
        """


class PillowAssetLoader(AssetLoader):
    """
    Decode with Pillow, honouring EXIF orientation.

    Decoding runs in a worker thread so the event loop stays free and a
    surrounding timeout can fire while a large photo is still decoding.
    """

    async def load(
        self,
        handle_id: str,
        data: bytes,
        *,
        needed_min_side: int = 0,
    ) -> LoadedAsset:
        image, natural_size = await asyncio.to_thread(self._decode, data, needed_min_side)
        logger.debug(
            f"Decoded {handle_id}: natural {natural_size[0]}x{natural_size[1]}, "
            f"kept {image.width}x{image.height}"
        )
        return LoadedAsset(handle_id=handle_id, image=image, natural_size=natural_size)

    @staticmethod
    def _decode(data: bytes, needed_min_side: int) -> Tuple[Image.Image, Tuple[int, int]]:
        try:
            with Image.open(io.BytesIO(data)) as source:
                natural_size = source.size
                if source.getexif().get(EXIF_ORIENTATION_TAG, 1) in _AXIS_SWAPPING_ORIENTATIONS:
                    natural_size = (natural_size[1], natural_size[0])
                if needed_min_side > 0 and source.format == "JPEG":
                    # JPEG can decode at 1/2, 1/4, 1/8 scale directly
                    draft_factor = max(1, min(source.size) // max(needed_min_side, 1))
                    if draft_factor >= 2:
                        source.draft(
                            "RGB",
                            (source.size[0] // draft_factor, source.size[1] // draft_factor),
                        )
                oriented = ImageOps.exif_transpose(source)
                mode = "RGBA" if "A" in oriented.getbands() or "transparency" in oriented.info else "RGB"
                image = oriented.convert(mode)
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            raise AssetLoadError(f"Cannot decode image: {e}") from e

        return reduce_for_box(image, needed_min_side), natural_size
