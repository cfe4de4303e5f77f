"""
FastAPI Web Application for the GPS Speedometer

This module exposes the telemetry engine over HTTP: position fixes are
posted by the device, and displays poll the current snapshot or its
formatted readouts. Recorded snapshots can be exported as CSV or JSON.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from speedometer import analyze_fixes

logger = logging.getLogger("speedometer.app")


def configure_logging() -> bool:
    """
    Send engine logs to stderr when the host has not configured logging.

    Returns:
        True if a handler was installed on the root logger.
    """
    if logging.getLogger().handlers:
        return False
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return True


# ============================================================================
# SESSION SETUP
# ============================================================================

def create_session(kv_store=None,
                   history: Optional[analyze_fixes.SnapshotHistory] = None
                   ) -> analyze_fixes.TelemetrySession:
    """
    Build the process-wide telemetry session.

    When a SnapshotHistory is given it is registered as a display so every
    snapshot can be exported later.

    Args:
        kv_store: Key-value store for persisted accumulators. Defaults to
            the JSON state file.
        history: Optional snapshot recorder.

    Returns:
        The telemetry session.
    """
    if kv_store is None:
        kv_store = analyze_fixes.JsonFileStore(analyze_fixes.DEFAULT_STATE_FILE)
    session = analyze_fixes.TelemetrySession(kv_store)
    if history is not None:
        session.bridge.register(history, label="Snapshot History")
    return session


history = analyze_fixes.SnapshotHistory()
session = create_session(history=history)


async def run_session_ticker(interval_s: float = analyze_fixes.SESSION_TICK_S) -> None:
    """Update the session clock on a fixed interval while tracking."""
    while True:
        await asyncio.sleep(interval_s)
        if session.is_tracking:
            session.tick()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    ticker = asyncio.create_task(run_session_ticker())
    logger.info("Session ticker started")
    try:
        yield
    finally:
        ticker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ticker


# ============================================================================
# APPLICATION SETUP
# ============================================================================

# Mutating routes are ``async def`` so they run on the event loop thread,
# one at a time, together with the session ticker.
app = FastAPI(lifespan=lifespan)


class FixPayload(BaseModel):
    latitude: float
    longitude: float
    timestamp: float
    speed: Optional[float] = None
    heading: Optional[float] = None


class SensorErrorPayload(BaseModel):
    message: str


# ============================================================================
# API ROUTES - TELEMETRY
# ============================================================================

@app.get("/api/snapshot")
async def get_snapshot():
    """
    Get the current telemetry snapshot.

    Returns:
        Dictionary with every snapshot field.
    """
    return dict(session.snapshot())


@app.get("/api/readouts")
async def get_readouts():
    """
    Get the current snapshot rendered as display strings.

    Returns:
        Dictionary mapping readout names to formatted text.
    """
    return analyze_fixes.build_readouts(session.snapshot())


@app.post("/api/fix")
async def post_fix(fix: FixPayload):
    """
    Feed one position fix into the engine.

    Args:
        fix: Position fix with timestamp in epoch milliseconds.

    Returns:
        Dictionary with ``accepted`` (False if the fix was dropped) and the
        current ``snapshot``.

    Raises:
        HTTPException: If tracking has not been started (status 409).
    """
    if not session.is_tracking:
        raise HTTPException(status_code=409, detail="Tracking is not started")

    snapshot = session.handle_position(fix.model_dump())
    return {
        "accepted": snapshot is not None,
        "snapshot": dict(snapshot if snapshot is not None else session.snapshot()),
    }


# ============================================================================
# API ROUTES - SESSION CONTROL
# ============================================================================

@app.post("/api/tracking/start")
async def start_tracking():
    try:
        session.start()
    except analyze_fixes.SensorUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"tracking": session.is_tracking}


@app.post("/api/tracking/stop")
async def stop_tracking():
    session.stop()
    return {"tracking": session.is_tracking}


@app.post("/api/tracking/error")
async def report_sensor_error(payload: SensorErrorPayload):
    """
    Report a failure of the device position source.

    Tracking is stopped and the failure is returned as a user-facing notice.

    Raises:
        HTTPException: Always, with status 503.
    """
    try:
        session.handle_error(payload.message)
    except analyze_fixes.SensorUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@app.post("/api/reset")
async def reset_stats():
    """
    Reset every accumulator and run timer.

    Returns:
        The snapshot after the reset.
    """
    return dict(session.reset())


@app.get("/api/displays")
async def get_displays():
    return session.bridge.labels()


# ============================================================================
# API ROUTES - EXPORT
# ============================================================================

@app.get("/api/export/history")
async def export_history():
    """
    Export every recorded snapshot as CSV.

    Returns:
        PlainTextResponse: CSV file with Content-Disposition header
        for download. Filename: speedometer_history.csv
    """
    entries = history.entries()
    headers = {"Content-Disposition": "attachment; filename=speedometer_history.csv"}
    return PlainTextResponse(
        analyze_fixes.export_history_csv(entries),
        media_type="text/csv",
        headers=headers
    )


@app.get("/api/export/snapshot")
async def export_snapshot():
    headers = {"Content-Disposition": "attachment; filename=speedometer_snapshot.json"}
    return PlainTextResponse(
        analyze_fixes.export_snapshot_json(session.snapshot()),
        media_type="application/json",
        headers=headers
    )


# ============================================================================
# RUN INSTRUCTIONS
# ============================================================================
# Run with: uvicorn app:app --reload
#       or: python app.py

if __name__ == "__main__":
    import uvicorn

    configure_logging()
    uvicorn.run(app, host="127.0.0.1", port=8000)
