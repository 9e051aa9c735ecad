"""
Module: editor.store

Purpose:
    The document model. Owns the active Document and every editorial
    mutation. Each mutation builds new frozen objects for the entities
    it touches and swaps the whole Document in one assignment, so a
    reader holding the previous Document never sees a change.

    Image handles are released here: whenever a slot lets go of an
    image (replace, remove, slot removal, page deletion, template
    change, reset) its handle is revoked exactly once.

Key Classes:
    - DocumentStore: Mutations, subscriptions, handle release

Dependencies:
    - core.models: Document tree
    - images.handles: ImageHandleRegistry
    - editor.errors: Refusals

Used By:
    - editor.controller: User actions
    - layout.surface: Reactive projection
    - export.pipeline: Snapshot source
    - manifest: Document loading
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

from photosheet.core.models import (
    MAX_PAGES,
    MAX_SCALE,
    MIN_SCALE,
    VALID_ROTATIONS,
    CropBox,
    Document,
    FitMode,
    ImageRef,
    Page,
    PageMetadata,
    ShapeFamily,
    Slot,
    Template,
    TemplateError,
    TextAlign,
    TitleStyle,
)
from photosheet.images import ImageHandleRegistry

from .errors import (
    InvalidSlotUpdateError,
    InvalidUpdateError,
    NoTemplateError,
    PageLimitError,
    SlotLimitError,
    TemplateRuleError,
    UnknownEntityError,
)

logger = logging.getLogger(__name__)

DocumentListener = Callable[[Optional[Document]], None]

_METADATA_FIELDS = {f.name for f in fields(PageMetadata)}
_TITLE_STYLE_FIELDS = {f.name for f in fields(TitleStyle)}
_SLOT_UPDATE_FIELDS = {"scale", "rotation", "fit_mode", "description", "confirmed_crop"}
_CROP_INVALIDATING_FIELDS = {"scale", "rotation"}


def _fresh_slots(count: int) -> Tuple[Slot, ...]:
    return tuple(Slot() for _ in range(count))


class DocumentStore:
    """
    In-memory owner of the active document.

    All mutations are synchronous; the next read sees the result.
    Refused mutations raise an EditorError and leave `document` as the
    identical object it was before the call.

    Example:
        >>> store = DocumentStore(ImageHandleRegistry())
        >>> store.set_template("fourCut-portrait")
        >>> len(store.document.current_page.slots)
        4
    """

    def __init__(self, registry: Optional[ImageHandleRegistry] = None) -> None:
        self.registry = registry if registry is not None else ImageHandleRegistry()
        self._document: Optional[Document] = None
        self._listeners: List[DocumentListener] = []

    # ------------------------------------------------------------------
    # Reading and subscriptions
    # ------------------------------------------------------------------

    @property
    def document(self) -> Optional[Document]:
        return self._document

    def require_document(self) -> Document:
        """The active document, or NoTemplateError."""
        if self._document is None:
            raise NoTemplateError("Choose a template first.")
        return self._document

    def subscribe(self, callback: DocumentListener) -> Callable[[], None]:
        """
        Call `callback(document)` after every successful mutation.

        Returns:
            Function that removes the subscription
        """
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _commit(self, document: Optional[Document], released: Iterable[ImageRef] = ()) -> None:
        self._document = document
        for ref in released:
            self.registry.revoke(ref.handle_id)
        for listener in list(self._listeners):
            listener(document)

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def _page(self, document: Document, page_id: str) -> Tuple[int, Page]:
        index = document.page_index(page_id)
        if index < 0:
            raise UnknownEntityError(f"Page not found: {page_id}")
        return index, document.pages[index]

    def _slot(self, page: Page, slot_id: str) -> Tuple[int, Slot]:
        index = page.slot_index(slot_id)
        if index < 0:
            raise UnknownEntityError(f"Slot not found: {slot_id}")
        return index, page.slots[index]

    def _replace_slot(self, document: Document, page_index: int, slot_index: int, slot: Slot) -> Document:
        page = document.pages[page_index]
        slots = page.slots[:slot_index] + (slot,) + page.slots[slot_index + 1:]
        return document.with_page(page_index, replace(page, slots=slots))

    # ------------------------------------------------------------------
    # Template and pages
    # ------------------------------------------------------------------

    def set_template(self, template: Union[Template, str]) -> None:
        """
        Activate a template and reset to one fresh page.

        Raises:
            InvalidUpdateError: If the identifier is not a template
        """
        if isinstance(template, str):
            try:
                template = Template.parse(template)
            except TemplateError as e:
                raise InvalidUpdateError(str(e)) from e

        released = list(self._document.image_refs()) if self._document else []
        page = Page(slots=_fresh_slots(template.family.initial_slot_count))
        logger.info(f"Template set to {template.id}, released {len(released)} image(s)")
        self._commit(Document(template=template, pages=(page,)), released)

    def add_page(self) -> str:
        """
        Append a page after the last one and make it current.

        Metadata and title style are copied from the current page.

        Returns:
            Id of the new page

        Raises:
            PageLimitError: If the document already has MAX_PAGES pages
        """
        document = self.require_document()
        if document.page_count >= MAX_PAGES:
            raise PageLimitError(f"A document can have at most {MAX_PAGES} pages.")
        current = document.current_page
        page = Page(
            metadata=current.metadata,
            title_style=current.title_style,
            slots=_fresh_slots(document.template.family.initial_slot_count),
        )
        pages = document.pages + (page,)
        self._commit(replace(document, pages=pages, current_page_index=len(pages) - 1))
        return page.id

    def delete_page(self, page_id: str) -> None:
        """
        Delete a page and release its images.

        Raises:
            PageLimitError: If it is the only page
            UnknownEntityError: If the page does not exist
        """
        document = self.require_document()
        index, page = self._page(document, page_id)
        if document.page_count < 2:
            raise PageLimitError("The last page cannot be deleted.")
        pages = document.pages[:index] + document.pages[index + 1:]
        current = document.current_page_index
        if current > index or current >= len(pages):
            current = max(0, current - 1)
        self._commit(
            replace(document, pages=pages, current_page_index=current),
            page.image_refs(),
        )

    def set_current_page(self, index: int) -> None:
        document = self.require_document()
        if not 0 <= index < document.page_count:
            raise UnknownEntityError(f"Page {index + 1} does not exist.")
        if index != document.current_page_index:
            self._commit(replace(document, current_page_index=index))

    def update_page_metadata(self, page_id: str, **changes: Any) -> None:
        """Partial merge into a page's metadata."""
        document = self.require_document()
        index, page = self._page(document, page_id)
        unknown = set(changes) - _METADATA_FIELDS
        if unknown:
            raise InvalidUpdateError(f"Unknown metadata field(s): {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            if not isinstance(value, str):
                raise InvalidUpdateError(f"{name} must be text")
        metadata = replace(page.metadata, **changes)
        self._commit(document.with_page(index, replace(page, metadata=metadata)))

    def update_title_style(self, page_id: str, **changes: Any) -> None:
        """Partial merge into a page's title style."""
        document = self.require_document()
        index, page = self._page(document, page_id)
        unknown = set(changes) - _TITLE_STYLE_FIELDS
        if unknown:
            raise InvalidUpdateError(f"Unknown title style field(s): {', '.join(sorted(unknown))}")
        if "align" in changes and not isinstance(changes["align"], TextAlign):
            try:
                changes["align"] = TextAlign(changes["align"])
            except ValueError as e:
                raise InvalidUpdateError(f"Unknown alignment: {changes['align']!r}") from e
        if "bold" in changes:
            changes["bold"] = bool(changes["bold"])
        try:
            style = replace(page.title_style, **changes)
        except ValueError as e:
            raise InvalidUpdateError(str(e)) from e
        self._commit(document.with_page(index, replace(page, title_style=style)))

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def update_slot(self, page_id: str, slot_id: str, **changes: Any) -> None:
        """
        Partial merge into a slot.

        Accepts scale, rotation, fit_mode, description and
        confirmed_crop. Changing scale or rotation clears a confirmed
        crop unless the same update sets one.

        Raises:
            InvalidSlotUpdateError: Unknown field, out-of-range value, or
                a transform on a slot without an image
        """
        document = self.require_document()
        page_index, page = self._page(document, page_id)
        slot_index, slot = self._slot(page, slot_id)
        changes = self._validate_slot_changes(document.template, slot, changes)
        if _CROP_INVALIDATING_FIELDS & set(changes) and "confirmed_crop" not in changes:
            if any(changes[name] != getattr(slot, name) for name in _CROP_INVALIDATING_FIELDS & set(changes)):
                changes["confirmed_crop"] = None
        updated = replace(slot, **changes)
        self._commit(self._replace_slot(document, page_index, slot_index, updated))

    def _validate_slot_changes(self, template: Template, slot: Slot, changes: dict) -> dict:
        unknown = set(changes) - _SLOT_UPDATE_FIELDS
        if unknown:
            raise InvalidSlotUpdateError(f"Unknown slot field(s): {', '.join(sorted(unknown))}")
        changes = dict(changes)

        if "scale" in changes:
            scale = changes["scale"]
            if not isinstance(scale, (int, float)) or not MIN_SCALE <= scale <= MAX_SCALE:
                raise InvalidSlotUpdateError(f"Scale must be between {MIN_SCALE} and {MAX_SCALE}.")
            changes["scale"] = float(scale)
        if "rotation" in changes and changes["rotation"] not in VALID_ROTATIONS:
            raise InvalidSlotUpdateError("Rotation must be 0, 90, 180 or 270 degrees.")
        if "fit_mode" in changes and not isinstance(changes["fit_mode"], FitMode):
            try:
                changes["fit_mode"] = FitMode(changes["fit_mode"])
            except ValueError as e:
                raise InvalidSlotUpdateError(f"Unknown fit mode: {changes['fit_mode']!r}") from e
        if "description" in changes and changes["description"] is not None:
            if not isinstance(changes["description"], str):
                raise InvalidSlotUpdateError("Description must be text.")
        if changes.get("confirmed_crop") is not None:
            if template.family is not ShapeFamily.CUSTOM_ORIGINAL:
                raise TemplateRuleError("Crop confirmation is only available for original-ratio templates.")
            if not isinstance(changes["confirmed_crop"], CropBox):
                raise InvalidSlotUpdateError("confirmed_crop must be a CropBox.")

        if not slot.has_image:
            empty = Slot(id=slot.id)
            for name, value in changes.items():
                if value != getattr(empty, name):
                    raise InvalidSlotUpdateError("Add a photo to this slot first.")
        return changes

    def set_slot_image(self, page_id: str, slot_id: str, image: ImageRef) -> None:
        """
        Attach an image, resetting scale, rotation, fit mode and crop.

        The previously held handle, if any, is revoked right after the
        swap.

        Raises:
            InvalidSlotUpdateError: If another slot already holds the handle
        """
        document = self.require_document()
        page_index, page = self._page(document, page_id)
        slot_index, slot = self._slot(page, slot_id)
        if slot.image is None or slot.image.handle_id != image.handle_id:
            if any(ref.handle_id == image.handle_id for ref in document.image_refs()):
                raise InvalidSlotUpdateError("This photo is already placed in another slot.")
        updated = Slot(id=slot.id, image=image, description=slot.description)
        released = [slot.image] if slot.image is not None and slot.image != image else []
        self._commit(self._replace_slot(document, page_index, slot_index, updated), released)

    def remove_slot_image(self, page_id: str, slot_id: str) -> None:
        """Detach the image and reset the slot to its empty invariants."""
        document = self.require_document()
        page_index, page = self._page(document, page_id)
        slot_index, slot = self._slot(page, slot_id)
        released = [slot.image] if slot.image is not None else []
        self._commit(
            self._replace_slot(document, page_index, slot_index, slot.cleared()),
            released,
        )

    def add_slot(self, page_id: str) -> str:
        """
        Append an empty slot (custom templates only).

        Returns:
            Id of the new slot

        Raises:
            TemplateRuleError: If the template has a fixed slot count
            SlotLimitError: If the page already holds the maximum
        """
        document = self.require_document()
        index, page = self._page(document, page_id)
        template = document.template
        if not template.is_custom:
            raise TemplateRuleError(f"{template.id} has a fixed number of slots.")
        if len(page.slots) >= template.max_slots:
            raise SlotLimitError(f"A page can hold at most {template.max_slots} photos.")
        slot = Slot()
        self._commit(document.with_page(index, replace(page, slots=page.slots + (slot,))))
        return slot.id

    def remove_slot(self, page_id: str, slot_id: str) -> None:
        """Remove a slot and release its image (custom templates only)."""
        document = self.require_document()
        page_index, page = self._page(document, page_id)
        template = document.template
        if not template.is_custom:
            raise TemplateRuleError(f"{template.id} has a fixed number of slots.")
        slot_index, slot = self._slot(page, slot_id)
        slots = page.slots[:slot_index] + page.slots[slot_index + 1:]
        self._commit(
            document.with_page(page_index, replace(page, slots=slots)),
            [slot.image] if slot.image is not None else [],
        )

    def reset(self) -> None:
        """Discard the document and release every image it held."""
        if self._document is None:
            return
        released = list(self._document.image_refs())
        logger.info(f"Document reset, released {len(released)} image(s)")
        self._commit(None, released)
