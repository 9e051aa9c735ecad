"""
Module: editor.controller

Purpose:
    Slot interaction controller. Turns user actions into store
    mutations: validates uploads, registers image handles, applies
    transform edits and debounces description typing. Refusals from the
    store are reported through the injected notify capability instead
    of propagating to the UI.

Key Classes:
    - SlotInteractionController: User-action entry points

Key Constants:
    - REMOVE_DESCRIPTION: Sentinel value that deletes a description
      immediately, bypassing and cancelling the debounce

Dependencies:
    - asyncio (std): Debounce timers on the running loop
    - PIL: Source size for crop confirmation
    - editor.store, editor.validation, layout.projection, images.cropper

Used By:
    - Application shell / tests
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Callable, Dict, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from photosheet.core.models import MAX_SCALE, MIN_SCALE, FitMode, ShapeFamily, Slot
from photosheet.images import compute_cover_crop
from photosheet.layout import RenderMode, project_page
from photosheet.notifications import NotificationLevel, Notify

from .errors import EditorError, TemplateRuleError
from .store import DocumentStore
from .validation import ImageValidationError, validate_image_upload

logger = logging.getLogger(__name__)

REMOVE_DESCRIPTION = "__REMOVE__"
DESCRIPTION_DEBOUNCE_SECONDS = 0.1

_SlotKey = Tuple[str, str]


class SlotInteractionController:
    """
    Mediates user actions against the document store.

    Every action returns True when the store accepted it and False when
    it was refused; refusals are reported via notify(message, WARNING)
    and leave the document unchanged.

    Description edits are coalesced per slot: only the last value typed
    within the debounce window is written. Debouncing needs a running
    event loop; without one, writes are applied immediately.

    Example:
        >>> controller = SlotInteractionController(store, channel.notify)
        >>> controller.assign_image(page_id, slot_id, data, "north.jpg")
        True
    """

    def __init__(
        self,
        store: DocumentStore,
        notify: Notify,
        *,
        debounce_seconds: float = DESCRIPTION_DEBOUNCE_SECONDS,
    ) -> None:
        self.store = store
        self.notify = notify
        self.debounce_seconds = debounce_seconds
        self._pending: Dict[_SlotKey, Tuple[asyncio.TimerHandle, str]] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _attempt(self, action: Callable[[], object]) -> bool:
        try:
            action()
        except EditorError as e:
            logger.info(f"Edit refused: {e}")
            self.notify(str(e), NotificationLevel.WARNING)
            return False
        return True

    def _slot(self, page_id: str, slot_id: str) -> Optional[Slot]:
        """Current state of a slot, None when it does not exist."""
        document = self.store.document
        if document is None or document.page_index(page_id) < 0:
            return None
        page = document.pages[document.page_index(page_id)]
        index = page.slot_index(slot_id)
        return page.slots[index] if index >= 0 else None

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def assign_image(self, page_id: str, slot_id: str, data: bytes, filename: str) -> bool:
        """
        Validate an upload and attach it to a slot.

        On success the slot's scale, rotation, fit mode and confirmed
        crop are reset and its previous handle is released.
        """
        try:
            mime_type = validate_image_upload(data, filename)
        except ImageValidationError as e:
            logger.info(f"Upload rejected: {e}")
            self.notify(str(e), NotificationLevel.ERROR)
            return False

        registry = self.store.registry
        ref = registry.register(data, filename, mime_type)
        if not self._attempt(lambda: self.store.set_slot_image(page_id, slot_id, ref)):
            registry.revoke(ref.handle_id)
            return False
        return True

    def remove_image(self, page_id: str, slot_id: str) -> bool:
        self._cancel_pending(page_id, slot_id)
        return self._attempt(lambda: self.store.remove_slot_image(page_id, slot_id))

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def rotate(self, page_id: str, slot_id: str) -> bool:
        """Turn the photo a further 90 degrees clockwise."""
        slot = self._slot(page_id, slot_id)
        rotation = ((slot.rotation if slot else 0) + 90) % 360
        return self._attempt(lambda: self.store.update_slot(page_id, slot_id, rotation=rotation))

    def set_scale(self, page_id: str, slot_id: str, scale: float) -> bool:
        """Set zoom, clamped to [MIN_SCALE, MAX_SCALE]."""
        clamped = min(MAX_SCALE, max(MIN_SCALE, float(scale)))
        return self._attempt(lambda: self.store.update_slot(page_id, slot_id, scale=clamped))

    def set_fit_mode(self, page_id: str, slot_id: str, fit_mode: FitMode) -> bool:
        return self._attempt(lambda: self.store.update_slot(page_id, slot_id, fit_mode=fit_mode))

    def toggle_fit_mode(self, page_id: str, slot_id: str) -> bool:
        slot = self._slot(page_id, slot_id)
        current = slot.fit_mode if slot else FitMode.FILL
        target = FitMode.COVER if current is FitMode.FILL else FitMode.FILL
        return self.set_fit_mode(page_id, slot_id, target)

    def confirm_crop(self, page_id: str, slot_id: str) -> bool:
        """
        Fix the visible region of an original-ratio slot as its crop.

        The crop is computed from the slot's projected box and stored as
        fractions of the rotated source, so export re-applies it at print
        resolution.
        """
        try:
            document = self.store.require_document()
            if document.template.family is not ShapeFamily.CUSTOM_ORIGINAL:
                raise TemplateRuleError("Crop confirmation is only available for original-ratio templates.")
        except EditorError as e:
            self.notify(str(e), NotificationLevel.WARNING)
            return False

        slot = self._slot(page_id, slot_id)
        if slot is None or slot.image is None:
            self.notify("Add a photo to this slot first.", NotificationLevel.WARNING)
            return False

        page = document.pages[document.page_index(page_id)]
        view = project_page(page, document.template, mode=RenderMode.INTERACTIVE)
        slot_view = next(v for v in view.slots if v.slot_id == slot_id)
        box = (slot_view.image_box.width, slot_view.image_box.height)

        try:
            data = self.store.registry.resolve(slot.image.handle_id)
            with Image.open(io.BytesIO(data)) as source:
                source_size = ImageOps.exif_transpose(source).size
        except (KeyError, UnidentifiedImageError, OSError) as e:
            logger.warning(f"Cannot read source for crop of {slot_id}: {e}")
            self.notify("This photo can no longer be read.", NotificationLevel.ERROR)
            return False

        crop = compute_cover_crop(source_size, box, rotation=slot.rotation, scale=slot.scale)
        logger.debug(f"Confirmed crop for {slot_id}: {crop}")
        return self._attempt(lambda: self.store.update_slot(page_id, slot_id, confirmed_crop=crop))

    # ------------------------------------------------------------------
    # Descriptions
    # ------------------------------------------------------------------

    def add_description(self, page_id: str, slot_id: str) -> bool:
        """Open an empty description field on a slot with a photo."""
        slot = self._slot(page_id, slot_id)
        if slot is not None and slot.description is not None:
            return True
        return self._attempt(lambda: self.store.update_slot(page_id, slot_id, description=""))

    def set_description(self, page_id: str, slot_id: str, text: str) -> bool:
        """
        Debounced description edit.

        The REMOVE_DESCRIPTION sentinel is applied immediately and
        cancels any write still waiting for this slot.
        """
        if text == REMOVE_DESCRIPTION:
            return self.remove_description(page_id, slot_id)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._attempt(lambda: self.store.update_slot(page_id, slot_id, description=text))

        key = (page_id, slot_id)
        self._cancel_pending(page_id, slot_id)
        handle = loop.call_later(self.debounce_seconds, self._write_pending, key)
        self._pending[key] = (handle, text)
        return True

    def remove_description(self, page_id: str, slot_id: str) -> bool:
        self._cancel_pending(page_id, slot_id)
        return self._attempt(lambda: self.store.update_slot(page_id, slot_id, description=None))

    def flush_descriptions(self) -> None:
        """Write every pending description now."""
        for key in list(self._pending):
            handle, _ = self._pending[key]
            handle.cancel()
            self._write_pending(key)

    def has_pending_description(self, page_id: str, slot_id: str) -> bool:
        return (page_id, slot_id) in self._pending

    def _cancel_pending(self, page_id: str, slot_id: str) -> None:
        entry = self._pending.pop((page_id, slot_id), None)
        if entry is not None:
            entry[0].cancel()

    def _write_pending(self, key: _SlotKey) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        page_id, slot_id = key
        try:
            self.store.update_slot(page_id, slot_id, description=entry[1])
        except EditorError as e:
            # Slot was removed or emptied while the write was waiting
            logger.debug(f"Dropped stale description for {slot_id}: {e}")

    # ------------------------------------------------------------------
    # Slots and pages
    # ------------------------------------------------------------------

    def add_slot(self, page_id: str) -> bool:
        return self._attempt(lambda: self.store.add_slot(page_id))

    def remove_slot(self, page_id: str, slot_id: str) -> bool:
        self._cancel_pending(page_id, slot_id)
        return self._attempt(lambda: self.store.remove_slot(page_id, slot_id))

    def add_page(self) -> bool:
        return self._attempt(self.store.add_page)

    def delete_page(self, page_id: str) -> bool:
        document = self.store.document
        if document is not None and document.page_index(page_id) >= 0 and document.page_count >= 2:
            for slot in document.pages[document.page_index(page_id)].slots:
                self._cancel_pending(page_id, slot.id)
        return self._attempt(lambda: self.store.delete_page(page_id))
