"""
Replay a Recorded Fix Log Through the Speedometer

This script feeds every fix of a recorded log (CSV or GnssLogger text)
through a telemetry session, then prints the final readouts. Persisted
accumulators are read from and written to a JSON state file, so replaying
several logs in a row accumulates distance and best run times.

Usage:
    python replay_fixes.py --fix-log drive.csv
    python replay_fixes.py --fix-log gnss_log.txt --reset --export-csv history.csv
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional
from speedometer import analyze_fixes

logger = logging.getLogger("speedometer.replay")


def replay(fix_log: Path, state_file: Path, reset: bool = False,
           export_csv: Optional[Path] = None) -> int:
    """
    Replay a fix log through a fresh telemetry session.

    Args:
        fix_log: Path to the recorded fix log.
        state_file: JSON state file for persisted accumulators.
        reset: Reset all accumulators before replaying.
        export_csv: Optional path to write the snapshot history to.

    Returns:
        Process exit status: 0 on success, 1 if the log cannot be read.
    """
    history = analyze_fixes.SnapshotHistory()
    session = analyze_fixes.TelemetrySession(analyze_fixes.JsonFileStore(state_file))
    session.bridge.register(history, label="Snapshot History")

    if reset:
        session.reset()

    source = analyze_fixes.FixLogSource(fix_log)
    try:
        session.start(source)
    except analyze_fixes.SensorUnavailable as exc:
        print(f"{exc} (fix log not found: {fix_log})", file=sys.stderr)
        return 1

    accepted = 0
    dropped = 0
    first_fix_s = None
    try:
        for fix in source.fixes():
            snapshot = session.handle_position(fix)
            if snapshot is None:
                dropped += 1
                continue
            accepted += 1
            if first_fix_s is None:
                first_fix_s = snapshot["gpsTimestamp"]
    except (OSError, ValueError) as exc:
        print(f"Unable to read fix log {fix_log}: {exc}", file=sys.stderr)
        return 1
    finally:
        session.stop()

    if first_fix_s is not None:
        # Session duration follows the log clock, not the replay wall time
        session.session_start = first_fix_s
        session.tick(now=session.snapshot()["gpsTimestamp"])

    logger.info("Replayed %d fixes (%d dropped)", accepted, dropped)

    print(f"{'='*60}")
    print(f"Replayed {fix_log}: {accepted} fixes accepted, {dropped} dropped")
    print(f"{'='*60}")
    for name, text in analyze_fixes.build_readouts(session.snapshot()).items():
        print(f"  {name:<16} {text}")

    if export_csv is not None:
        export_csv = Path(export_csv)
        export_csv.write_text(analyze_fixes.export_history_csv(history.entries()), encoding="utf-8")
        print(f"\nSnapshot history written to {export_csv}")

    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Replay a recorded GPS fix log through the speedometer telemetry engine"
    )
    parser.add_argument(
        "--fix-log",
        type=str,
        required=True,
        help="Path to a .csv fix log or a GnssLogger .txt file"
    )
    parser.add_argument(
        "--state-file",
        type=str,
        default=str(analyze_fixes.DEFAULT_STATE_FILE),
        help="JSON file holding persisted accumulators (default: state/speedometer_state.json)"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Reset all accumulators before replaying"
    )
    parser.add_argument(
        "--export-csv",
        type=str,
        default=None,
        help="Write every snapshot produced during the replay to this CSV file"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log dropped fixes and state changes"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    sys.exit(replay(
        Path(args.fix_log),
        Path(args.state_file),
        reset=args.reset,
        export_csv=Path(args.export_csv) if args.export_csv else None,
    ))


if __name__ == "__main__":
    main()
