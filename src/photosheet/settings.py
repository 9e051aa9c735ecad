"""
Settings persistence for photosheet.

JSON-backed store for export preferences (quality tier, format, device
pixel ratio, last export directory). Any malformed data results in a
graceful fallback to defaults, never a crash.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from photosheet.export import DEFAULT_ASSET_TIMEOUT_SECONDS, ExportFormat, ExportOptions, QualityTier

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".photosheet" / "settings.json"


@dataclass
class ExportPreferences:
    format: str = ExportFormat.PDF.value
    quality: str = QualityTier.STANDARD.value
    device_pixel_ratio: float = 1.0
    asset_timeout: float = DEFAULT_ASSET_TIMEOUT_SECONDS
    last_export_dir: Optional[str] = None

    def to_options(self) -> ExportOptions:
        """ExportOptions for these preferences (defaults for bad values)."""
        try:
            fmt = ExportFormat(self.format)
        except ValueError:
            fmt = ExportFormat.PDF
        try:
            quality = QualityTier(self.quality)
        except ValueError:
            quality = QualityTier.STANDARD
        dpr = self.device_pixel_ratio if self.device_pixel_ratio > 0 else 1.0
        timeout = self.asset_timeout if self.asset_timeout > 0 else DEFAULT_ASSET_TIMEOUT_SECONDS
        return ExportOptions(format=fmt, quality=quality, device_pixel_ratio=dpr, asset_timeout=timeout)


class SettingsStore:
    """Lightweight JSON-backed store for persisting export preferences."""

    CURRENT_VERSION = 1

    def __init__(self, path: Path = DEFAULT_SETTINGS_PATH) -> None:
        self.path = Path(path)
        self.data: Dict[str, object] = {}
        self.load_error: Optional[str] = None

        if self.path.exists():
            try:
                self.data = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(self.data, dict):
                    raise ValueError("settings root is not an object")
                self._migrate()
            except (json.JSONDecodeError, ValueError) as e:
                self.load_error = f"Settings file is corrupted: {e}"
                logger.warning(self.load_error)
                self.data = {}
            except OSError as e:
                self.load_error = f"Failed to read settings: {e}"
                logger.warning(self.load_error)
                self.data = {}

        if "version" not in self.data:
            self.data["version"] = self.CURRENT_VERSION

    def _migrate(self) -> None:
        """Drop export preferences written by an incompatible schema."""
        stored = self.data.get("version")
        if stored != self.CURRENT_VERSION:
            logger.info(f"Settings schema {stored} -> {self.CURRENT_VERSION}, resetting export preferences")
            self.data.pop("export", None)
            self.data["version"] = self.CURRENT_VERSION
        self.data["app_version"] = self._get_app_version()

    def _get_app_version(self) -> str:
        """Get current app version string."""
        try:
            from photosheet import __version__
            return __version__
        except ImportError:
            return "0.0.0"

    def _get_dict(self) -> Dict[str, object]:
        if not isinstance(self.data, dict):
            self.data = {}
        return self.data

    def get_export_preferences(self) -> ExportPreferences:
        """Stored preferences; defaults for anything missing or malformed."""
        raw = self._get_dict().get("export")
        prefs = ExportPreferences()
        if not isinstance(raw, dict):
            return prefs

        fmt = raw.get("format")
        if fmt in {f.value for f in ExportFormat}:
            prefs.format = fmt
        quality = raw.get("quality")
        if quality in {q.value for q in QualityTier}:
            prefs.quality = quality
        for name in ("device_pixel_ratio", "asset_timeout"):
            value = raw.get(name)
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
                setattr(prefs, name, float(value))
        last_dir = raw.get("last_export_dir")
        if isinstance(last_dir, str) and last_dir:
            prefs.last_export_dir = last_dir
        return prefs

    def set_export_preferences(self, prefs: ExportPreferences) -> None:
        self._get_dict()["export"] = {
            "format": prefs.format,
            "quality": prefs.quality,
            "device_pixel_ratio": prefs.device_pixel_ratio,
            "asset_timeout": prefs.asset_timeout,
            "last_export_dir": prefs.last_export_dir,
        }
        self._save()

    def set_last_export_dir(self, directory: Path) -> None:
        prefs = self.get_export_preferences()
        prefs.last_export_dir = str(directory)
        self.set_export_preferences(prefs)

    def _save(self) -> None:
        """Safely write settings with atomic replacement.

        Uses a temp file to prevent corruption if write is interrupted.
        """
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(self.data, indent=2), encoding="utf-8")
            temp_path.replace(self.path)
        except OSError as e:
            logger.warning(f"Failed to save settings: {e}")
            try:
                if temp_path.exists():
                    temp_path.unlink()
            except OSError:
                logger.debug(f"Could not remove {temp_path}")
