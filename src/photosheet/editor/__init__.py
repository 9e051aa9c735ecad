"""
Editor Package

Document store, upload validation and the slot interaction controller.
"""

from .errors import (
    EditorError,
    InvalidSlotUpdateError,
    InvalidUpdateError,
    NoTemplateError,
    PageLimitError,
    SlotLimitError,
    TemplateRuleError,
    UnknownEntityError,
)
from .store import DocumentStore
from .validation import MAX_UPLOAD_BYTES, ImageValidationError, validate_image_upload
from .controller import REMOVE_DESCRIPTION, SlotInteractionController

__all__ = [
    "EditorError",
    "InvalidSlotUpdateError",
    "InvalidUpdateError",
    "NoTemplateError",
    "PageLimitError",
    "SlotLimitError",
    "TemplateRuleError",
    "UnknownEntityError",
    "DocumentStore",
    "MAX_UPLOAD_BYTES",
    "ImageValidationError",
    "validate_image_upload",
    "REMOVE_DESCRIPTION",
    "SlotInteractionController",
]
