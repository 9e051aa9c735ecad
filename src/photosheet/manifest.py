"""
Module: manifest

Purpose:
    Build a populated DocumentStore from a JSON manifest, so documents
    can be exported without an interactive editor.

    {
      "template": "custom-portrait",
      "pages": [
        {
          "metadata": {"title": "Site Photo Record", "project_name": "Bridge",
                       "sub_project_name": "Pier 2", "manager": "Kim"},
          "title_style": {"align": "center", "font_size": 16, "bold": true},
          "slots": [
            {"image": "photos/north.jpg", "rotation": 90, "fit_mode": "cover",
             "scale": 1.2, "description": "North face"},
            null
          ]
        }
      ]
    }

    Image paths are relative to the manifest file. A null slot entry is
    an empty slot. Fixed templates accept at most their slot count.

Key Functions:
    - load_manifest(): Path -> DocumentStore
    - apply_manifest(): Parsed dict -> DocumentStore

Key Classes:
    - ManifestError: Invalid manifest

Dependencies:
    - json (std)
    - editor.store, editor.validation

Used By:
    - cli: `photosheet export`
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from photosheet.editor import DocumentStore, EditorError, ImageValidationError, validate_image_upload

logger = logging.getLogger(__name__)

_SLOT_FIELDS = ("scale", "rotation", "fit_mode")


class ManifestError(Exception):
    """Manifest could not be read or describes an invalid document."""
    pass


def load_manifest(path: Path, store: Optional[DocumentStore] = None) -> DocumentStore:
    """
    Read a manifest file into a store.

    Args:
        path: Manifest JSON file
        store: Store to populate (a new one by default)

    Returns:
        The populated store

    Raises:
        ManifestError: If the file, an image, or the document is invalid
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Manifest {path} is not valid JSON: {e}") from e
    return apply_manifest(raw, base_dir=path.parent, store=store)


def apply_manifest(
    raw: Any,
    *,
    base_dir: Path,
    store: Optional[DocumentStore] = None,
) -> DocumentStore:
    """Populate a store from an already-parsed manifest."""
    if not isinstance(raw, dict):
        raise ManifestError("Manifest root must be an object")
    pages = raw.get("pages") or [{}]
    if not isinstance(pages, list):
        raise ManifestError("'pages' must be a list")

    store = store or DocumentStore()
    try:
        store.set_template(str(raw.get("template", "")))
        for index, page_spec in enumerate(pages):
            if index > 0:
                store.add_page()
            _apply_page(store, index, page_spec or {}, base_dir)
        store.set_current_page(0)
    except EditorError as e:
        store.reset()
        raise ManifestError(str(e)) from e
    except ManifestError:
        store.reset()
        raise

    document = store.document
    logger.info(
        f"Loaded manifest: {document.template.id}, {document.page_count} page(s), "
        f"{sum(1 for _ in document.image_refs())} image(s)"
    )
    return store


def _apply_page(store: DocumentStore, index: int, spec: Dict[str, Any], base_dir: Path) -> None:
    if not isinstance(spec, dict):
        raise ManifestError(f"Page {index + 1} must be an object")
    page_id = store.document.pages[index].id

    metadata = spec.get("metadata") or {}
    if metadata:
        store.update_page_metadata(page_id, **metadata)
    style = spec.get("title_style") or {}
    if style:
        store.update_title_style(page_id, **style)

    slot_specs = spec.get("slots") or []
    if not isinstance(slot_specs, list):
        raise ManifestError(f"Page {index + 1}: 'slots' must be a list")

    template = store.document.template
    if template.is_custom:
        for _ in slot_specs:
            store.add_slot(page_id)
    elif len(slot_specs) > template.max_slots:
        raise ManifestError(
            f"Page {index + 1}: {template.id} holds {template.max_slots} photos, "
            f"manifest lists {len(slot_specs)}"
        )

    slots = store.document.pages[index].slots
    for slot, slot_spec in zip(slots, slot_specs):
        if slot_spec is None:
            continue
        if not isinstance(slot_spec, dict):
            raise ManifestError(f"Page {index + 1}: slot entries must be objects or null")
        _apply_slot(store, page_id, slot.id, slot_spec, base_dir)


def _apply_slot(
    store: DocumentStore,
    page_id: str,
    slot_id: str,
    spec: Dict[str, Any],
    base_dir: Path,
) -> None:
    image = spec.get("image")
    if not image:
        return
    image_path = (base_dir / image).resolve()
    try:
        data = image_path.read_bytes()
        mime_type = validate_image_upload(data, image_path.name)
    except OSError as e:
        raise ManifestError(f"Cannot read image {image_path}: {e}") from e
    except ImageValidationError as e:
        raise ManifestError(str(e)) from e

    ref = store.registry.register(data, image_path.name, mime_type)
    try:
        store.set_slot_image(page_id, slot_id, ref)
    except EditorError:
        store.registry.revoke(ref.handle_id)
        raise

    changes = {name: spec[name] for name in _SLOT_FIELDS if name in spec}
    if spec.get("description") is not None:
        changes["description"] = str(spec["description"])
    if changes:
        store.update_slot(page_id, slot_id, **changes)
