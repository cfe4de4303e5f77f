"""
Recorded Fix Logs for the GPS Speedometer Telemetry Engine

This module loads recorded position fixes so they can be replayed through a
telemetry session. Two formats are supported: a plain CSV with one fix per
row, and the Android GnssLogger text format, whose "Fix" records are
described by a "# Fix,..." header comment in the same file.
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, Iterator, List, Optional
from . import utils

CSV_COLUMNS = ["latitude", "longitude", "timestamp", "speed", "heading"]

GNSS_FIELD_MAP = {
    "LatitudeDegrees": "latitude",
    "LongitudeDegrees": "longitude",
    "UnixTimeMillis": "timestamp",
    "SpeedMps": "speed",
    "BearingDegrees": "heading",
}


def _clean_value(value) -> Optional[float]:
    return utils.finite_or_none(utils.safe_float(value))


def load_csv_fixes(path: Path) -> List[Dict]:
    """
    Load fixes from a CSV file.

    Expected columns: latitude, longitude, timestamp (epoch milliseconds),
    and optionally speed (m/s) and heading (degrees). Unparseable numbers
    become None; rows without a timestamp are dropped. File order is kept.

    Args:
        path: Path to the CSV file.

    Returns:
        List of raw fix dictionaries.

    Raises:
        ValueError: If a required column is missing.
    """
    df = pd.read_csv(path)
    df.columns = [str(column).strip().lower() for column in df.columns]

    missing = [c for c in ("latitude", "longitude", "timestamp") if c not in df.columns]
    if missing:
        raise ValueError(f"Fix log {path} is missing columns: {', '.join(missing)}")

    for column in CSV_COLUMNS:
        if column not in df.columns:
            df[column] = np.nan
        df[column] = pd.to_numeric(df[column], errors="coerce")

    df = df.dropna(subset=["timestamp"]).reset_index(drop=True)

    return [
        {column: _clean_value(getattr(row, column)) for column in CSV_COLUMNS}
        for row in df[CSV_COLUMNS].itertuples(index=False)
    ]


def get_fix_header(lines: List[str]) -> Optional[List[str]]:
    """
    Find the field names of "Fix" records in a GnssLogger file.

    Args:
        lines: All lines of the file.

    Returns:
        Field names following the record type, or None if the file has no
        "# Fix," header comment.
    """
    for line in lines:
        stripped = line.strip()
        if stripped.startswith("#"):
            header_list = [field.strip() for field in stripped.lstrip("#").strip().split(",")]
            if header_list and header_list[0] == "Fix":
                return header_list[1:]
    return None


def load_gnss_logger_fixes(path: Path) -> List[Dict]:
    """
    Load fixes from a GnssLogger text file.

    Args:
        path: Path to the log file.

    Returns:
        List of raw fix dictionaries, in file order, without entries lacking
        a timestamp.

    Raises:
        ValueError: If the file has no "# Fix," header comment.
    """
    with Path(path).open("r", encoding="utf-8") as file:
        lines = file.readlines()

    header = get_fix_header(lines)
    if header is None:
        raise ValueError(f"Fix log {path} has no '# Fix,' header line")

    fixes = []
    for line in lines:
        if not line.startswith("Fix"):
            continue

        split_line = line.rstrip().split(",")
        record = dict(zip(header, split_line[1:]))

        fix = {name: _clean_value(record.get(field)) for field, name in GNSS_FIELD_MAP.items()}
        if fix["timestamp"] is None:
            continue
        fixes.append(fix)

    return fixes


def load_fix_log(path: Path) -> List[Dict]:
    """
    Load a recorded fix log, choosing the parser from the file suffix.

    Args:
        path: Path to a .csv file or a GnssLogger .txt file.

    Returns:
        List of raw fix dictionaries with latitude, longitude, timestamp,
        speed and heading keys.
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return load_csv_fixes(path)
    return load_gnss_logger_fixes(path)


class FixLogSource:
    """
    Position source replaying a recorded fix log.

    Usage:
        source = FixLogSource("drive.csv")
        session.start(source)
        for fix in source.fixes():
            session.handle_position(fix)
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"FixLogSource({str(self.path)!r})"

    def is_available(self) -> bool:
        return self.path.is_file()

    def fixes(self) -> Iterator[Dict]:
        yield from load_fix_log(self.path)
