"""
Module: export.persistence

Purpose:
    Persistence gateway: the save-location / write-bytes capability the
    export pipeline hands its output to, plus a directory-backed
    implementation used by the CLI.

Key Classes:
    - SaveTarget: Opaque handle returned by request_save_target
    - PersistenceGateway: Protocol consumed by the pipeline
    - DirectoryGateway: Writes into a directory, with a fallback directory
      acting as the "offer download" path
    - PersistenceError: Save location unusable

Dependencies:
    - pathlib, os (std)

Used By:
    - export.pipeline: PERSISTING phase
    - cli: `photosheet export`
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, runtime_checkable

from .config import MimeDescriptor

logger = logging.getLogger(__name__)

# chooser(suggested_filename, mime) -> filename to use, or None to cancel
FilenameChooser = Callable[[str, MimeDescriptor], Optional[str]]


class PersistenceError(Exception):
    """The save location cannot be used."""
    pass


@dataclass(frozen=True)
class SaveTarget:
    """Where one file will be written."""

    filename: str
    location: str


@runtime_checkable
class PersistenceGateway(Protocol):
    """
    Save capability consumed by the export pipeline.

    request_save_target returns None when the user cancels. write and
    offer_download return False on failure rather than raising.
    """

    @property
    def supports_save_target(self) -> bool: ...

    async def request_save_target(
        self, suggested_filename: str, mime: MimeDescriptor
    ) -> Optional[SaveTarget]: ...

    async def write(self, target: SaveTarget, data: bytes) -> bool: ...

    async def offer_download(self, filename: str, data: bytes) -> bool: ...


def _unique_path(directory: Path, filename: str) -> Path:
    """First non-existing path: name.ext, name (1).ext, name (2).ext, ..."""
    candidate = directory / filename
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


class DirectoryGateway:
    """
    Gateway that saves into a directory.

    Args:
        directory: Target directory (created if missing)
        fallback_directory: Where offer_download delivers; None disables
            the fallback
        chooser: Optional save-dialog stand-in; returns the filename to
            use or None to cancel
        overwrite: Replace existing files instead of numbering new ones

    Example:
        >>> gateway = DirectoryGateway(Path("out"))
        >>> target = await gateway.request_save_target("Survey.pdf", ExportFormat.PDF.mime)
        >>> await gateway.write(target, pdf_bytes)
        True
    """

    def __init__(
        self,
        directory: Path,
        *,
        fallback_directory: Optional[Path] = None,
        chooser: Optional[FilenameChooser] = None,
        overwrite: bool = False,
    ) -> None:
        self.directory = Path(directory)
        self.fallback_directory = Path(fallback_directory) if fallback_directory else None
        self.chooser = chooser
        self.overwrite = overwrite

    @property
    def supports_save_target(self) -> bool:
        return True

    def has_permission(self) -> bool:
        """Directory exists (or can be created) and is writable."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create {self.directory}: {e}")
            return False
        return os.access(self.directory, os.W_OK)

    async def request_save_target(
        self, suggested_filename: str, mime: MimeDescriptor
    ) -> Optional[SaveTarget]:
        """
        Resolve the file to write.

        Raises:
            PersistenceError: If the directory is not writable
        """
        if not self.has_permission():
            raise PersistenceError(f"No write permission for {self.directory}")

        filename = suggested_filename
        if self.chooser is not None:
            filename = self.chooser(suggested_filename, mime)
            if filename is None:
                logger.info(f"Save of {suggested_filename} cancelled")
                return None
        if not filename.lower().endswith(f".{mime.extension}"):
            filename = f"{filename}.{mime.extension}"

        path = self.directory / filename if self.overwrite else _unique_path(self.directory, filename)
        return SaveTarget(filename=path.name, location=str(path))

    async def write(self, target: SaveTarget, data: bytes) -> bool:
        try:
            Path(target.location).write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write {target.location}: {e}")
            return False
        logger.info(f"Wrote {target.location} ({len(data)} bytes)")
        return True

    async def offer_download(self, filename: str, data: bytes) -> bool:
        """Deliver into the fallback directory."""
        if self.fallback_directory is None:
            return False
        try:
            self.fallback_directory.mkdir(parents=True, exist_ok=True)
            path = _unique_path(self.fallback_directory, filename)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Fallback delivery of {filename} failed: {e}")
            return False
        logger.info(f"Delivered {filename} to fallback location {path}")
        return True
