"""
Export Functions for the GPS Speedometer Telemetry Engine

This module provides functions to export recorded telemetry snapshots to
CSV and JSON for external analysis or backup.
"""

import csv
import io
import json
from typing import Iterable, Mapping
from . import telemetry

SNAPSHOT_FIELDS = list(telemetry.default_snapshot(0).keys())


def export_history_csv(history: Iterable[Mapping]) -> str:
    """
    Export recorded telemetry snapshots to CSV format.

    Args:
        history: Snapshots in broadcast order, e.g. SnapshotHistory.entries().

    Returns:
        CSV string with one header row and one row per snapshot. Missing
        values are written as empty cells.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(SNAPSHOT_FIELDS)
    for snapshot in history:
        writer.writerow([
            "" if snapshot.get(field) is None else snapshot.get(field)
            for field in SNAPSHOT_FIELDS
        ])

    return buffer.getvalue()


def export_snapshot_json(snapshot: Mapping) -> str:
    """
    Export a single telemetry snapshot as a JSON document.

    Args:
        snapshot: Telemetry snapshot.

    Returns:
        Indented JSON string.
    """
    return json.dumps(dict(snapshot), indent=2)
