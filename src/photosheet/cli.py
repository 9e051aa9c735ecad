"""
Module: cli

Purpose:
    Command line entry point.

        photosheet export MANIFEST --out DIR [--format pdf|jpeg]
                          [--quality low|standard|high] [--dpr X]
                          [--timeout S] [--fallback-dir DIR] [--verbose]
        photosheet layout TEMPLATE COUNT

    Export defaults come from the settings store; explicitly passed
    options are remembered for next time.

Key Functions:
    - main(): Parse arguments and dispatch
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from photosheet import __version__
from photosheet.core.models import Template, TemplateError
from photosheet.export import (
    DirectoryGateway,
    ExportError,
    ExportFormat,
    ExportOptions,
    ExportPipeline,
    ExportState,
    QualityTier,
)
from photosheet.layout import grid_cells, layout
from photosheet.manifest import ManifestError, load_manifest
from photosheet.notifications import Notification, NotificationChannel
from photosheet.settings import DEFAULT_SETTINGS_PATH, SettingsStore
from photosheet.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 3


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photosheet",
        description="Lay out site photos on A4 sheets and export PDF or JPEG.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Export a manifest to PDF or JPEG")
    export.add_argument("manifest", type=Path, help="Manifest JSON file")
    export.add_argument("--out", type=Path, default=None, help="Output directory")
    export.add_argument("--format", choices=[f.value for f in ExportFormat], default=None)
    export.add_argument("--quality", choices=[q.value for q in QualityTier], default=None)
    export.add_argument("--dpr", type=float, default=None, help="Device pixel ratio")
    export.add_argument("--timeout", type=float, default=None, help="Per-image load timeout (s)")
    export.add_argument("--fallback-dir", type=Path, default=None,
                        help="Where to deliver files if the output directory fails")
    export.add_argument("--settings", type=Path, default=DEFAULT_SETTINGS_PATH)
    export.add_argument("-v", "--verbose", action="store_true")

    grid = sub.add_parser("layout", help="Print the grid for a template and slot count")
    grid.add_argument("template", help="Template id, e.g. custom-portrait")
    grid.add_argument("count", type=int, help="Slot count")
    return parser


def _print_notification(notification: Notification) -> None:
    print(f"[{notification.level.value}] {notification.message}", file=sys.stderr)


def _run_export(args: argparse.Namespace) -> int:
    configure_logging(args.verbose)
    settings = SettingsStore(args.settings)
    prefs = settings.get_export_preferences()

    if args.format:
        prefs.format = args.format
    if args.quality:
        prefs.quality = args.quality
    if args.dpr is not None:
        prefs.device_pixel_ratio = args.dpr
    if args.timeout is not None:
        prefs.asset_timeout = args.timeout

    out_dir = args.out or (Path(prefs.last_export_dir) if prefs.last_export_dir else Path.cwd())
    try:
        options = prefs.to_options()
        if args.dpr is not None or args.timeout is not None:
            options = ExportOptions(
                format=options.format,
                quality=options.quality,
                device_pixel_ratio=args.dpr if args.dpr is not None else options.device_pixel_ratio,
                asset_timeout=args.timeout if args.timeout is not None else options.asset_timeout,
            )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    try:
        store = load_manifest(args.manifest)
    except ManifestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    channel = NotificationChannel()
    channel.subscribe(_print_notification)
    gateway = DirectoryGateway(out_dir, fallback_directory=args.fallback_dir)
    pipeline = ExportPipeline(gateway, channel.notify)

    try:
        result = asyncio.run(pipeline.run(store.document, store.registry, options))
    except ExportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        store.reset()

    for saved in result.files:
        print(saved.location or saved.filename)

    if result.state is ExportState.DONE:
        prefs.last_export_dir = str(out_dir.resolve())
        settings.set_export_preferences(prefs)
        return EXIT_OK
    if result.state is ExportState.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_FAILED


def _run_layout(args: argparse.Namespace) -> int:
    try:
        template = Template.parse(args.template)
    except TemplateError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    if args.count < 0 or args.count > template.max_slots:
        print(f"Error: {template.id} holds 0-{template.max_slots} slots", file=sys.stderr)
        return EXIT_FAILED

    grid = layout(template, args.count)
    print(f"{template.id}: {grid.rows} rows x {grid.columns} columns"
          f"{' (placeholder)' if grid.is_placeholder else ''}")
    print(f"gap: {grid.gap_x:.2f}px x {grid.gap_y:.2f}px, "
          f"floor: {grid.slot_min_width:.0f}x{grid.slot_min_height:.0f}px")
    if grid.overrides:
        print(f"min-height override: {grid.overrides[0].min_height:.0f}px on {len(grid.overrides)} slot(s)")
    for row in range(grid.rows):
        cells = [c for c in grid_cells(grid, args.count) if c[0] == row]
        print(" ".join("[ ]" if spacer else "[#]" for _, _, spacer in cells))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "export":
        return _run_export(args)
    return _run_layout(args)


if __name__ == "__main__":
    raise SystemExit(main())
