"""Core models shared by the editor, layout and export packages."""
