#!/usr/bin/env python3
"""
Load Interference Layer Script
Runs one refresh through the same pipeline the map uses and prints the stats
panel, the table and (optionally) the GeoJSON.

Usage:
    python scripts/load_layer.py --source jamming/agg --severity high --union
    python scripts/load_layer.py --source spoofing/h3 --both --json
"""
import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path
root_path = str(Path(__file__).resolve().parent.parent)
if root_path not in sys.path:
    sys.path.insert(0, root_path)

from core.config import load_client_config
from core.errors import StartupConfigError
from core.models import DATA_SOURCES
from core.settings import QuerySettings, apply_setting
from core.severity import BUCKET_TABLES
from service.api_client import ApiClient
from service.coordinator import RefreshCoordinator
from service.presentation import format_timestamp

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def build_settings(args) -> QuerySettings:
    """Run CLI options through the same transition the UI uses."""
    settings = QuerySettings()
    changes = [
        ("data_source", args.source),
        ("lookback_hours", args.lookback_hours),
        ("severity_scheme", args.scheme),
        ("union_by_severity", args.union),
        ("show_both_spoofing_layers", args.both),
    ]
    if args.severity:
        changes.append(("jamming_severity_levels", args.severity))
    if args.segments:
        changes.append(("spoofing_segments", args.segments))
    if args.altitudes:
        changes.append(("altitudes", args.altitudes))

    for name, value in changes:
        settings, _ = apply_setting(settings, name, value)
    return settings


def print_result(coordinator: RefreshCoordinator, as_json: bool):
    display = coordinator.stats_panel.display
    labels = display.labels or {}
    print(f"\nAPI URL: {display.api_url}")
    print(f"Period:  {format_timestamp(display.period_start)} → {format_timestamp(display.period_end)}")
    for key, value in (("cells", display.cells), ("aircraft", display.aircraft), ("high", display.high)):
        label = labels.get(key, {})
        if label.get("visible", True):
            print(f"  {label.get('label', key)} {value}")
    print(f"  Size: {display.size}")

    if as_json:
        print(json.dumps(coordinator.result.data, indent=2))
        return

    table = coordinator.table_view.table
    print(f"\n{table.count_label}")
    print(" | ".join(table.columns))
    for row in table.rows:
        print(" | ".join(cell.text for cell in row))


def main():
    parser = argparse.ArgumentParser(description="Load one GNSS interference layer")
    parser.add_argument("--base-url", help="API (proxy) base URL; defaults to $API_BASE_URL")
    parser.add_argument("--source", choices=DATA_SOURCES, default="jamming/agg")
    parser.add_argument("--lookback-hours", type=int, default=24)
    parser.add_argument("--altitudes", help="Altitude band, e.g. FL100-FL450")
    parser.add_argument("--scheme", choices=sorted(BUCKET_TABLES), default="v3",
                        help="Severity bucket scheme")
    parser.add_argument("--severity", help="Comma-separated severity levels to keep")
    parser.add_argument("--union", action="store_true", help="Merge cells of the same severity")
    parser.add_argument("--segments", help="Comma-separated spoofing segments to keep")
    parser.add_argument("--both", action="store_true", help="Load both spoofing layers")
    parser.add_argument("--sort", help="Sort table by column")
    parser.add_argument("--json", action="store_true", help="Print GeoJSON instead of the table")
    args = parser.parse_args()

    if args.base_url:
        base_url, timeout = args.base_url, None
    else:
        try:
            config = load_client_config(require_map_token=False)
        except StartupConfigError as e:
            logger.error(f"{e} (or pass --base-url)")
            sys.exit(1)
        base_url, timeout = config.api_base_url, config.request_timeout

    try:
        settings = build_settings(args)
    except ValueError as e:
        parser.error(str(e))

    notices = []
    coordinator = RefreshCoordinator(
        ApiClient(base_url, timeout=timeout),
        settings=settings,
        notify=notices.append,
    )
    if args.sort:
        coordinator.sort_table(args.sort)

    if not coordinator.refresh_now():
        print(f"\n✗ {notices[-1] if notices else 'Nothing loaded'}")
        sys.exit(1)

    print_result(coordinator, args.json)


if __name__ == "__main__":
    main()
