"""
Module: editor.errors

Purpose:
    Refusals raised by the document store. Each carries a message fit
    to show the user as-is; the document is never changed when one is
    raised.

Key Classes:
    - EditorError: Base class
    - NoTemplateError, PageLimitError, SlotLimitError, TemplateRuleError,
      InvalidUpdateError, InvalidSlotUpdateError, UnknownEntityError
"""

from __future__ import annotations


class EditorError(Exception):
    """Base class for refused edits."""
    pass


class NoTemplateError(EditorError):
    """No template has been selected yet."""
    pass


class PageLimitError(EditorError):
    """Page count would leave [1, MAX_PAGES]."""
    pass


class SlotLimitError(EditorError):
    """Slot count would leave the template's range."""
    pass


class TemplateRuleError(EditorError):
    """Operation not allowed for the active template."""
    pass


class InvalidUpdateError(EditorError):
    """Unknown field or out-of-range value in a partial update."""
    pass


class InvalidSlotUpdateError(InvalidUpdateError):
    """Slot update violates slot invariants."""
    pass


class UnknownEntityError(EditorError):
    """Page or slot id does not exist."""
    pass
