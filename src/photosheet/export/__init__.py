"""
Module: export

Purpose:
    Off-screen render, capture and delivery of a document.

Key Classes:
    - ExportPipeline: The export state machine
    - ExportOptions / QualityTier / ExportFormat: Run configuration
    - ExportResult / ExportState: Outcome
    - DirectoryGateway: Directory-backed persistence gateway

Used By:
    - cli
"""

from .config import (
    DEFAULT_ASSET_TIMEOUT_SECONDS,
    ExportFormat,
    ExportOptions,
    MimeDescriptor,
    QualityTier,
    capture_scale,
)
from .models import (
    DocumentSnapshot,
    ExportError,
    ExportInProgressError,
    ExportResult,
    ExportState,
    SavedFile,
)
from .offscreen import OffscreenSurface, SurfaceDisposedError
from .assets import AssetReadiness, wait_for_assets
from .persistence import DirectoryGateway, PersistenceError, PersistenceGateway, SaveTarget
from .pipeline import ExportPipeline

__all__ = [
    # Config
    "DEFAULT_ASSET_TIMEOUT_SECONDS",
    "ExportFormat",
    "ExportOptions",
    "MimeDescriptor",
    "QualityTier",
    "capture_scale",
    # Models
    "DocumentSnapshot",
    "ExportError",
    "ExportInProgressError",
    "ExportResult",
    "ExportState",
    "SavedFile",
    # Stages
    "OffscreenSurface",
    "SurfaceDisposedError",
    "AssetReadiness",
    "wait_for_assets",
    # Persistence
    "DirectoryGateway",
    "PersistenceError",
    "PersistenceGateway",
    "SaveTarget",
    # Pipeline
    "ExportPipeline",
]
