"""
Module: images.handles

Purpose:
    Registry of transient image handles. Each uploaded photo gets one
    handle holding its encoded bytes; the slot that owns the handle must
    revoke it exactly once when the photo is replaced or removed.

Key Classes:
    - ImageHandleRegistry: Issues, resolves and revokes handles
    - HandleRevokedError: Raised when resolving a released handle

Dependencies:
    - core.models.images: ImageRef

Used By:
    - editor.store: Revokes handles on replace/remove
    - editor.controller: Registers uploads
    - export.pipeline: Copies bytes into the export snapshot
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from typing import Deque, Dict

from photosheet.core.models import ImageRef

logger = logging.getLogger(__name__)

URL_SCHEME = "blob:photosheet/"

# Revoked ids remembered for double-release warnings
REVOKED_HISTORY_LIMIT = 256


class HandleRevokedError(KeyError):
    """Handle was never issued or has already been revoked."""


class ImageHandleRegistry:
    """
    Owner of the bytes behind every live ImageRef.

    Handles are not reclaimed implicitly: a handle stays live until
    revoke() is called for it. The most recent REVOKED_HISTORY_LIMIT
    revoked ids are remembered so a second release of one of them is
    logged; older ids simply revoke as unknown.

    Example:
        >>> registry = ImageHandleRegistry()
        >>> ref = registry.register(b"...", "site.jpg", "image/jpeg")
        >>> registry.revoke(ref.handle_id)
        True
        >>> registry.revoke(ref.handle_id)
        False
    """

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}
        self._recently_revoked: Deque[str] = deque(maxlen=REVOKED_HISTORY_LIMIT)
        self.issued_count = 0
        self.revoked_count = 0

    def register(self, data: bytes, filename: str, mime_type: str) -> ImageRef:
        """Store bytes under a fresh handle and return its reference."""
        handle_id = uuid.uuid4().hex
        self._data[handle_id] = bytes(data)
        self.issued_count += 1
        logger.debug(f"Issued image handle {handle_id} for {filename} ({len(data)} bytes)")
        return ImageRef(
            handle_id=handle_id,
            url=f"{URL_SCHEME}{handle_id}",
            filename=filename,
            mime_type=mime_type,
            size_bytes=len(data),
        )

    def resolve(self, handle_id: str) -> bytes:
        """
        Bytes of a live handle.

        Raises:
            HandleRevokedError: If the handle is unknown or revoked
        """
        try:
            return self._data[handle_id]
        except KeyError:
            raise HandleRevokedError(handle_id) from None

    def revoke(self, handle_id: str) -> bool:
        """
        Release a handle.

        Returns:
            True if the handle was live, False if it was already released
        """
        if handle_id not in self._data:
            if handle_id in self._recently_revoked:
                logger.warning(f"Image handle {handle_id} released twice")
            return False
        del self._data[handle_id]
        self._recently_revoked.append(handle_id)
        self.revoked_count += 1
        logger.debug(f"Revoked image handle {handle_id}")
        return True

    def is_live(self, handle_id: str) -> bool:
        return handle_id in self._data

    @property
    def live_count(self) -> int:
        """Number of handles issued and not yet revoked."""
        return len(self._data)
